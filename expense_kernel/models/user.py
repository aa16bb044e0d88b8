"""
Module: expense_kernel.models.user
Responsibility: Minimal user identity row.  Authentication lives outside
    the kernel; users are only referenced as actors, members, creators,
    and reviewers.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from datetime import datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import EntityBase


class User(EntityBase):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.username

    def __repr__(self) -> str:
        return f"<User {self.username}>"
