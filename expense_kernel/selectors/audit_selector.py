"""
Module: expense_kernel.selectors.audit_selector
Responsibility: Read access to an organization's audit log, newest first.
Architecture position: Kernel > Selectors.

Failure modes:
    - Returns an empty list when nothing matches (never raises on absence).
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from expense_kernel.models.audit_record import AuditAction, AuditObjectType, AuditRecord
from expense_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AuditRecordDTO:
    seq: int
    occurred_at: datetime
    subject_id: UUID
    action: AuditAction
    object_type: AuditObjectType
    object_id: str
    message: str
    hash: str

    @classmethod
    def from_model(cls, record: AuditRecord) -> "AuditRecordDTO":
        return cls(
            seq=record.seq,
            occurred_at=record.occurred_at,
            subject_id=record.subject_id,
            action=AuditAction(record.action),
            object_type=AuditObjectType(record.object_type),
            object_id=record.object_id,
            message=record.message,
            hash=record.hash,
        )


class AuditSelector(BaseSelector):

    def list_for_organization(
        self,
        organization_id: UUID,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[AuditRecordDTO]:
        """Audit records in reverse chronological order (highest seq first)."""
        query = (
            select(AuditRecord)
            .where(AuditRecord.organization_id == organization_id)
            .order_by(AuditRecord.seq.desc())
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        return [AuditRecordDTO.from_model(r) for r in self.session.scalars(query)]

    def list_for_object(
        self,
        object_type: AuditObjectType,
        object_id: str | UUID,
    ) -> list[AuditRecordDTO]:
        """Every record about one object, newest first."""
        query = (
            select(AuditRecord)
            .where(
                AuditRecord.object_type == AuditObjectType(object_type).value,
                AuditRecord.object_id == str(object_id),
            )
            .order_by(AuditRecord.organization_id, AuditRecord.seq.desc())
        )
        return [AuditRecordDTO.from_model(r) for r in self.session.scalars(query)]

    def count_for_organization(self, organization_id: UUID) -> int:
        return self.session.scalar(
            select(func.count())
            .select_from(AuditRecord)
            .where(AuditRecord.organization_id == organization_id)
        )
