from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import DateTime, MetaData, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from membership.core.exceptions import InvalidStateTransitionError


# Standardized naming convention for alembic-friendly constraints/indexes.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def now_utc() -> datetime:
    """Return an aware UTC datetime for default/updated timestamps."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base class with metadata naming conventions."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class UUIDPkMixin:
    """Mixin that provides a UUID primary key assigned on first flush."""
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )


class TimestampMixin:
    """
    Mixin that provides created_at and updated_at timestamp columns.

    created_at is written once on INSERT; updated_at stays NULL until the first
    UPDATE and is refreshed on every UPDATE after that.
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_utc, nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None, onupdate=now_utc
    )


class SoftDeleteMixin:
    """Mixin that marks rows as logically removed through a deleted_at timestamp."""
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

    def delete(self):
        """Soft-delete now. Raises InvalidStateTransitionError if already deleted."""
        if self.is_deleted:
            raise InvalidStateTransitionError("Entity is already deleted")
        self.deleted_at = now_utc()
        return self

    def delete_at(self, deletion_time: datetime):
        """Soft-delete with an explicit timestamp (imports, back-dated removals)."""
        if deletion_time is None:
            raise ValueError("Deletion time cannot be None")
        if self.is_deleted:
            raise InvalidStateTransitionError("Entity is already deleted")
        self.deleted_at = deletion_time
        return self

    def restore(self):
        """Clear the deletion mark. Raises InvalidStateTransitionError if active."""
        if self.is_active:
            raise InvalidStateTransitionError("Entity is not deleted and cannot be restored")
        self.deleted_at = None
        return self


# PUBLIC_INTERFACE
class Model(UUIDPkMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    Abstract base of every domain entity.

    Two entities are equal when they share the concrete type and a non-null id;
    entities that were never persisted are only equal to themselves. The hash
    depends on the type alone so it stays stable when the id gets assigned.
    """
    __abstract__ = True

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if other is None or type(self) is not type(other):
            return False
        if self.id is None or other.id is None:
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"
