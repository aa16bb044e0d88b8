"""
Module: expense_kernel.selectors.user_selector
Responsibility: User lookup for picking reviewers and organization members.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - The requesting user never appears in their own search results.
    - Search terms are validated by the caller (alphanumeric only), so they
      carry no LIKE wildcards.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import or_, select

from expense_kernel.models.user import User
from expense_kernel.selectors.base import BaseSelector

DEFAULT_SEARCH_LIMIT = 20


@dataclass(frozen=True)
class UserDTO:
    id: UUID
    username: str
    display_name: str


class UserSelector(BaseSelector):

    def search(
        self,
        term: str,
        exclude_user_id: UUID,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[UserDTO]:
        """Users whose username, first or last name contains ``term`` (case-insensitive)."""
        pattern = f"%{term}%"
        query = (
            select(User)
            .where(
                or_(
                    User.username.ilike(pattern),
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                ),
                User.id != exclude_user_id,
            )
            .order_by(User.username)
            .limit(limit)
        )
        return [
            UserDTO(id=u.id, username=u.username, display_name=u.display_name)
            for u in self.session.scalars(query)
        ]
