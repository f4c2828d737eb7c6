"""
Database package initializer exposing key public interfaces for configuration
and engine/session management.
"""

from .base import Base, Model
from .config import get_settings, Settings
from .session import (
    configure_engine,
    get_engine,
    get_session,
    session_scope,
)

# Import models to ensure they are registered with SQLAlchemy metadata
# when the db package is imported.
from . import models as models  # noqa: F401

__all__ = [
    "Base",
    "Model",
    "Settings",
    "get_settings",
    "configure_engine",
    "get_engine",
    "get_session",
    "session_scope",
    "models",
]
