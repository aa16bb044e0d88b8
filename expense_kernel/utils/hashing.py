"""
Deterministic hashing utilities.

All hashing in the expense kernel must be deterministic and reproducible.
The audit chain is recomputed from stored columns during validation, so
every input is reduced to a canonical string first.
"""

import hashlib
import json
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

GENESIS = "GENESIS"


def _json_serializer(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.astimezone(timezone.utc).isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to canonical JSON: sorted keys, no whitespace, and fixed
    renderings of Decimal, datetime (UTC), and UUID.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def hash_payload(payload: dict) -> str:
    """Hex-encoded SHA-256 of the canonical JSON form of ``payload``."""
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_audit_record(
    *,
    organization_id: UUID,
    seq: int,
    subject_id: UUID,
    action: str,
    object_type: str,
    object_id: str,
    message: str,
    occurred_at: datetime,
    prev_hash: str | None,
) -> str:
    """
    Compute the chained hash of one audit record.

    The previous record's hash is part of the input, so altering any
    earlier record changes every hash after it.
    """
    return hash_payload(
        {
            "organization_id": organization_id,
            "seq": seq,
            "subject_id": subject_id,
            "action": action,
            "object_type": object_type,
            "object_id": object_id,
            "message": message,
            "occurred_at": occurred_at,
            "prev_hash": prev_hash or GENESIS,
        }
    )
