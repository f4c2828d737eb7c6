from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from membership.db.models.tokens import PasswordSetupToken

from .base import BaseRepository
from .store import SqlAlchemyStore


class PasswordSetupTokenRepository(BaseRepository[PasswordSetupToken]):
    """Repository for one-time password setup tokens."""

    model = PasswordSetupToken
    store: SqlAlchemyStore[PasswordSetupToken]
    entity_name = "PasswordSetupToken"

    def __init__(self, session: Session) -> None:
        super().__init__(SqlAlchemyStore(session, PasswordSetupToken))

    def find_by_token(self, token: str) -> Optional[PasswordSetupToken]:
        if token is None or not token.strip():
            raise ValueError("Token must not be null or blank")
        stmt = select(PasswordSetupToken).where(PasswordSetupToken.token == token)
        return self._execute(
            "Finding by token string", lambda: self.store.scalar_one_or_none(stmt)
        )

    def find_by_user(self, user_id: UUID) -> List[PasswordSetupToken]:
        stmt = self.store.ordered(
            select(PasswordSetupToken).where(PasswordSetupToken.user_id == user_id)
        )
        return self._execute(
            f"Finding by user: {user_id}", lambda: list(self.store.scalars(stmt))
        )

    def find_expired_tokens(self, now: datetime) -> List[PasswordSetupToken]:
        """Unused tokens whose expiry lies before ``now``."""
        if now is None:
            raise ValueError("Timestamp must not be null")
        stmt = self.store.ordered(
            select(PasswordSetupToken).where(
                PasswordSetupToken.expires_at < now,
                PasswordSetupToken.used_at.is_(None),
            )
        )
        return self._execute(
            "Finding expired tokens", lambda: list(self.store.scalars(stmt))
        )

    def delete_by_user(self, user_id: UUID) -> int:
        """Physically remove every token of a user; returns the number of rows removed."""
        stmt = delete(PasswordSetupToken).where(PasswordSetupToken.user_id == user_id)

        def op() -> int:
            result = self.store.execute(stmt)
            self.store.commit()
            return result.rowcount or 0

        return self._execute(f"Deleting tokens for user: {user_id}", op)
