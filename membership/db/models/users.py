from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from membership.core.security import get_password_hash, is_password_hash
from membership.db.base import Base, Model
from membership.db.fields import register_field_setter


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Uuid(as_uuid=True), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class User(Model):
    """Club member or administrator account."""
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_name_deleted", "name", "deleted_at"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    email_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    google_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    microsoft_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    salutation: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    academic_title: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    rank: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    birthday: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    street: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    of_mg: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    roles: Mapped[list["Role"]] = relationship(
        "Role",
        secondary=user_roles,
        back_populates="users",
        lazy="selectin",
    )

    def has_role(self, name: str) -> bool:
        return any(role.name == name for role in self.roles)


class Role(Model):
    """Named permission group assigned to users."""
    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    users: Mapped[list["User"]] = relationship(
        "User",
        secondary=user_roles,
        back_populates="roles",
        lazy="selectin",
    )


def _set_password(user: User, value: Any) -> None:
    # Plain text coming in through a field map is hashed; stored hashes pass through.
    if value is None or is_password_hash(value):
        user.password = value
    else:
        user.password = get_password_hash(str(value))


register_field_setter(User, "password", _set_password)
