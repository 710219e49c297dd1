# src/turnline/models/user.py
"""Operator identities referenced for attribution."""

from __future__ import annotations

import uuid
from enum import StrEnum

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from turnline.db.session import Base


class UserRole(StrEnum):
    ADMIN = "ADMIN"
    OPERATOR = "OPERATOR"


class User(Base):
    """Authenticated principal. Records are managed outside the queue core."""

    __tablename__ = "app_user"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.OPERATOR.value)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
