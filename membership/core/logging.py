from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional


# Context variables for enriched logging
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
identity_var: ContextVar[Optional[str]] = ContextVar("identity", default=None)


class LoggingContextFilter(logging.Filter):
    """
    Logging filter that injects correlation_id and identity from contextvars
    into each log record so formatters can include them.

    If no values are present in the context, placeholders are used.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        cid = correlation_id_var.get()
        ident = identity_var.get()
        setattr(record, "correlation_id", cid or "-")
        setattr(record, "identity", ident or "-")
        return True


# PUBLIC_INTERFACE
def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging with a structured format and context filter."""
    handler = logging.StreamHandler(stream=sys.stdout)
    fmt = (
        "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | identity=%(identity)s | "
        "%(message)s"
    )
    formatter = logging.Formatter(fmt=fmt)
    handler.setFormatter(formatter)
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    # Remove pre-existing default handlers configured elsewhere (e.g., basicConfig)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)


# PUBLIC_INTERFACE
@contextmanager
def logging_context(
    *, correlation_id: Optional[str] = None, identity: Optional[str] = None
) -> Iterator[None]:
    """Bind correlation id and/or identity for log records emitted inside the block."""
    cid_token = correlation_id_var.set(correlation_id) if correlation_id is not None else None
    ident_token = identity_var.set(identity) if identity is not None else None
    try:
        yield
    finally:
        if ident_token is not None:
            identity_var.reset(ident_token)
        if cid_token is not None:
            correlation_id_var.reset(cid_token)
