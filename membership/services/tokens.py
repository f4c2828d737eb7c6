from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from membership.core.security import generate_token
from membership.core.settings import get_app_settings
from membership.db.base import now_utc
from membership.db.models.tokens import PasswordSetupToken
from membership.db.models.users import User
from membership.repositories.tokens import PasswordSetupTokenRepository

from .base import BaseService

logger = logging.getLogger(__name__)


class PasswordSetupTokenService(BaseService[PasswordSetupToken, PasswordSetupTokenRepository]):
    """Issues and redeems the one-time links new members use to set a password."""

    entity_name = "PasswordSetupToken"

    def __init__(
        self,
        repository: PasswordSetupTokenRepository,
        lifetime: Optional[timedelta] = None,
    ) -> None:
        super().__init__(repository)
        if lifetime is None:
            lifetime = timedelta(hours=get_app_settings().PASSWORD_SETUP_TOKEN_HOURS)
        self.lifetime = lifetime

    # PUBLIC_INTERFACE
    def issue(self, user: User, now: Optional[datetime] = None) -> PasswordSetupToken:
        """Replace any outstanding tokens of ``user`` with a fresh one."""
        if user is None or user.id is None:
            raise ValueError("User must be persisted before issuing a token")
        now = now or now_utc()
        self.repository.delete_by_user(user.id)
        token = PasswordSetupToken(
            user_id=user.id,
            token=generate_token(),
            expires_at=now + self.lifetime,
        )
        return self.create(token)

    # PUBLIC_INTERFACE
    def consume(self, token: str, now: Optional[datetime] = None) -> Optional[PasswordSetupToken]:
        """
        Mark a valid token as used and return it.

        Returns None for unknown, revoked, expired or already used tokens.
        """
        found = self.repository.find_by_token(token)
        if found is None or found.is_deleted or not found.is_valid(now):
            logger.info("Rejected password setup token")
            return None
        found.mark_as_used(now)
        return self.repository.update(found.id, found)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Soft-delete unused tokens past their expiry; returns how many were removed."""
        expired = self.repository.find_expired_tokens(now or now_utc())
        removed = 0
        for token in expired:
            if token.is_active and self.delete_by_id(token.id):
                removed += 1
        return removed
