from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from membership.core.exceptions import AccountLockedError, AuthenticationError
from membership.core.logging import logging_context
from membership.core.login_attempts import LoginAttemptRegistry
from membership.core.security import get_password_hash, is_password_hash, verify_password
from membership.core.settings import AppSettings, get_app_settings
from membership.db.models.users import User
from membership.repositories.users import UserRepository

from .base import BaseService

logger = logging.getLogger(__name__)


def _require(value: Optional[str], label: str) -> None:
    if value is None or not value.strip():
        raise ValueError(f"{label} must not be null or blank")


class UserService(BaseService[User, UserRepository]):
    """
    Member accounts and the authentication flow.

    Every login attempt goes through the identity's LoginAttemptTracker: a
    locked identity is refused before credentials are checked, a failure
    increments the counter and a success resets it.
    """

    entity_name = "User"

    def __init__(
        self,
        repository: UserRepository,
        login_attempts: Optional[LoginAttemptRegistry] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        super().__init__(repository)
        if login_attempts is None:
            settings = settings or get_app_settings()
            login_attempts = LoginAttemptRegistry(
                max_attempts=settings.LOGIN_MAX_ATTEMPTS,
                lockout_duration=timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES),
                retention=timedelta(hours=settings.LOGIN_ATTEMPT_RETENTION_HOURS),
            )
        self.login_attempts = login_attempts

    # PUBLIC_INTERFACE
    def login(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user by email and password.

        Returns:
            The user on success, None for unknown or deleted account, missing password or
            wrong password.
        Raises:
            ValueError: blank email or password.
            AccountLockedError: too many recent failures for this email.
            AuthenticationError: unexpected failure while checking credentials.
        """
        _require(email, "Email")
        _require(password, "Password")

        self.login_attempts.cleanup()
        tracker = self.login_attempts.get(email)

        with logging_context(identity=email):
            if tracker.is_locked():
                logger.warning("Rejected login for locked account")
                raise AccountLockedError(email)

            try:
                user = self.repository.find_by_email(email)
            except Exception as exc:
                logger.exception("Error during login")
                raise AuthenticationError("An error occurred during login") from exc

            if user is None or user.is_deleted or user.password is None:
                tracker.increment_failed_attempts()
                return None

            if not verify_password(password, user.password):
                logger.warning("Failed login attempt")
                tracker.increment_failed_attempts()
                return None

            tracker.reset()
            logger.info("Successful login")
            return user

    # PUBLIC_INTERFACE
    def register(self, name: str, email: str, password: Optional[str] = None) -> User:
        """Create a member account; the password (if any) is stored hashed."""
        return self.create(User(name=name, email=email, password=password))

    # PUBLIC_INTERFACE
    def change_password(self, email: str, current_password: str, new_password: str) -> User:
        _require(email, "Email")
        _require(current_password, "Current password")
        _require(new_password, "New password")

        user = self.repository.find_by_email(email)
        if user is None or user.password is None:
            raise ValueError("Current password is incorrect")
        if not verify_password(current_password, user.password):
            raise ValueError("Current password is incorrect")
        return self.repository.update_with_data(user.id, {"password": new_password})

    def validate_for_create(self, entity: User) -> None:
        _require(entity.name, "Name")
        _require(entity.email, "Email")
        if self.repository.find_by_email(entity.email) is not None:
            raise ValueError(f"A user with email {entity.email} already exists")

    def apply_business_rules_for_create(self, entity: User) -> None:
        if entity.password is not None and not is_password_hash(entity.password):
            entity.password = get_password_hash(entity.password)
        if entity.of_mg is None:
            entity.of_mg = False

    def after_delete(self, entity_id: UUID) -> None:
        logger.info("Soft-deleted user %s", entity_id)
