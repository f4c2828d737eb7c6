from __future__ import annotations

from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from membership.db.models.bookings import Booking

from .base import BaseRepository
from .store import SqlAlchemyStore


class BookingRepository(BaseRepository[Booking]):
    """Repository for membership fee bookings."""

    model = Booking
    store: SqlAlchemyStore[Booking]
    entity_name = "Booking"

    def __init__(self, session: Session) -> None:
        super().__init__(SqlAlchemyStore(session, Booking))

    def find_by_user(self, user_id: UUID) -> List[Booking]:
        stmt = self.store.ordered(select(Booking).where(Booking.user_id == user_id))
        return self._execute(
            f"Finding by user: {user_id}", lambda: list(self.store.scalars(stmt))
        )
