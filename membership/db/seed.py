"""
Database seeding utilities for minimal reference data.

Seeds:
- Default roles (ADMIN, USER, MEMBER)

Usage:
  python -m membership.db.run_migrations upgrade head
  python -m membership.db.seed
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from sqlalchemy.orm import Session

from membership.core.logging import configure_logging
from membership.core.settings import get_app_settings
from membership.db.models.users import Role
from membership.db.session import session_scope
from membership.repositories.users import RoleRepository

logger = logging.getLogger(__name__)

DEFAULT_ROLES = ("ADMIN", "USER", "MEMBER")


# PUBLIC_INTERFACE
def seed_roles(session: Session, names: Iterable[str] = DEFAULT_ROLES) -> List[Role]:
    """Create the named roles that do not exist yet; returns the newly created ones."""
    repository = RoleRepository(session)
    missing = [name for name in names if repository.find_by_name(name) is None]
    if not missing:
        return []
    created = repository.create_all([Role(name=name) for name in missing])
    logger.info("Seeded roles: %s", ", ".join(missing))
    return created


# PUBLIC_INTERFACE
def seed_all() -> None:
    """Seed the database with minimal reference data."""
    with session_scope() as session:
        seed_roles(session)


if __name__ == "__main__":
    configure_logging(get_app_settings().log_level)
    seed_all()
