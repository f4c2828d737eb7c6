from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from membership.db.base import Model, now_utc
from membership.db.models.users import User


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; treat them as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=now_utc().tzinfo)
    return value


class PasswordSetupToken(Model):
    """One-time token mailed to a new member to set the initial password."""
    __tablename__ = "password_setup_tokens"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship(User, lazy="joined")

    def is_used(self) -> bool:
        return self.used_at is not None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or now_utc()) >= _as_aware(self.expires_at)

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return not self.is_used() and not self.is_expired(now)

    def mark_as_used(self, now: Optional[datetime] = None) -> None:
        self.used_at = now or now_utc()
