"""
Repository layer for data access.

BaseRepository gives every entity the same logged CRUD, pagination and
soft-delete surface on top of an EntityStore. The per-entity repositories here
bind it to a SQLAlchemy Session and add their own finders.
"""

from .base import BaseRepository  # noqa: F401
from .bookings import BookingRepository  # noqa: F401
from .emails import EmailRepository  # noqa: F401
from .store import EntityStore, SqlAlchemyStore  # noqa: F401
from .tokens import PasswordSetupTokenRepository  # noqa: F401
from .users import RoleRepository, UserRepository  # noqa: F401
