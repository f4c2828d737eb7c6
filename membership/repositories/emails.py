from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from membership.db.models.emails import Email
from membership.schemas.pagination import Page, PageRequest, Sort

from .base import BaseRepository
from .store import SqlAlchemyStore


class EmailRepository(BaseRepository[Email]):
    """Repository for the log of sent emails."""

    model = Email
    store: SqlAlchemyStore[Email]
    entity_name = "Email"

    def __init__(self, session: Session) -> None:
        super().__init__(SqlAlchemyStore(session, Email))

    def find_by_user(self, user_id: UUID, page_request: PageRequest) -> Page[Email]:
        """Emails sent to one member, newest first unless the request sorts otherwise."""
        if not page_request.sort:
            page_request = page_request.model_copy(update={"sort": (Sort.desc("created_at"),)})
        stmt = select(Email).where(Email.user_id == user_id)
        count_stmt = select(func.count()).select_from(Email).where(Email.user_id == user_id)
        return self._execute(
            f"Finding by user: {user_id}",
            lambda: self.store.paginate(stmt, count_stmt, page_request),
        )
