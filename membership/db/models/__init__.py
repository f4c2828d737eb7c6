"""
ORM models for the membership domain: users and roles, bookings, sent emails
and password setup tokens.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

# Re-export commonly used models for convenience and to ensure import side-effects
# register all mapped classes with SQLAlchemy metadata.

from .users import (  # noqa: F401
    User,
    Role,
    user_roles,
)
from .bookings import Booking  # noqa: F401
from .emails import Email  # noqa: F401
from .tokens import PasswordSetupToken  # noqa: F401
