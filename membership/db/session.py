from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from .config import Settings, get_settings


_ENGINE: Engine | None = None
_SESSION_MAKER: sessionmaker[Session] | None = None


def _ensure_engine_initialized(settings: Optional[Settings] = None) -> None:
    """
    Lazily initialize the Engine and session maker.
    """
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is None:
        settings = settings or get_settings()
        _ENGINE = create_engine(
            settings.database_url,
            echo=settings.SQL_ECHO,
            pool_pre_ping=True,
        )
    if _SESSION_MAKER is None:
        _SESSION_MAKER = sessionmaker(
            bind=_ENGINE, expire_on_commit=False, autoflush=False
        )


# PUBLIC_INTERFACE
def configure_engine(engine: Engine) -> None:
    """Use an externally built engine (tests, scripts) instead of the settings-driven one."""
    global _ENGINE, _SESSION_MAKER
    _ENGINE = engine
    _SESSION_MAKER = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


# PUBLIC_INTERFACE
def get_engine() -> Engine:
    """Return the global Engine instance."""
    _ensure_engine_initialized()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
def get_session() -> Generator[Session, None, None]:
    """
    Yield a Session for dependency-injection style callers.
    Ensures engine/session factory is initialized.
    """
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    with _SESSION_MAKER() as session:
        yield session


# PUBLIC_INTERFACE
@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Context manager for one unit of work: commits on success, rolls back on error.

    Usage:
        with session_scope() as session:
            UserRepository(session).create(user)
    """
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    session = _SESSION_MAKER()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
