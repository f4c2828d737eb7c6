"""
Service layer.

Services wrap a repository with business rules (validation, hashing, lockout)
and leave data access to the repository layer.
"""

from .base import BaseService  # noqa: F401
from .tokens import PasswordSetupTokenService  # noqa: F401
from .users import UserService  # noqa: F401
