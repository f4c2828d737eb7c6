from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from membership.db.base import Model
from membership.db.models.users import User


class Booking(Model):
    """Membership fee booking, from expected payment to the received transfer."""
    __tablename__ = "bookings"

    expected_purpose: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    expected_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_purpose: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    actual_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    of_mg: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    account_statement_page: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    code: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user: Mapped[Optional[User]] = relationship(User, lazy="joined")

    @property
    def is_received(self) -> bool:
        return self.received_at is not None
