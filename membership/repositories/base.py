from __future__ import annotations

import logging
import math
from typing import Any, Callable, Generic, Iterable, List, Mapping, Optional, Type, TypeVar
from uuid import UUID

from membership.core.exceptions import (
    EntityNotFoundError,
    RepositoryError,
    RepositoryOperationError,
)
from membership.core.settings import get_app_settings
from membership.db.base import Model
from membership.db.fields import field_setters
from membership.schemas.pagination import Page, PageRequest

from .store import EntityStore

ModelT = TypeVar("ModelT", bound=Model)
R = TypeVar("R")


class BaseRepository(Generic[ModelT]):
    """
    Generic repository giving every entity type the same CRUD, pagination,
    soft-delete and map-driven create/update surface.

    The repository is a stateless decorator over an injected EntityStore. Every
    operation is logged at DEBUG before it runs. Failures are handled in two
    tiers:

      * ``count``, ``exists_by_id``, ``find_by_id`` and ``find_first`` log the
        error and return 0 / False / None.
      * every other operation logs the error, rolls back the store and raises
        RepositoryOperationError chained to the original exception.

    EntityNotFoundError and InvalidStateTransitionError are never wrapped so
    callers can tell them apart from storage failures.

    Subclasses set ``model`` and ``entity_name``; the name only appears in logs
    and error messages.
    """

    model: Type[ModelT]
    entity_name: str = "Entity"

    def __init__(self, store: EntityStore[ModelT], model: Optional[Type[ModelT]] = None) -> None:
        model = model or getattr(type(self), "model", None)
        if model is None:
            raise TypeError(f"{type(self).__name__} requires a model class")
        self.store = store
        self.model = model
        self.logger = logging.getLogger(f"{type(self).__module__}.{type(self).__name__}")

    def get_entity_name(self) -> str:
        return self.entity_name

    # Plain lookups

    def find_all(self) -> List[ModelT]:
        """Every stored row, soft-deleted ones included."""
        return self._execute("Fetching all", self.store.find_all)

    def find_by_id(self, entity_id: UUID) -> Optional[ModelT]:
        return self._execute_or_default(
            f"Finding by ID: {entity_id}", lambda: self.store.find_by_id(entity_id), None
        )

    def find_by_id_or_fail(self, entity_id: UUID) -> ModelT:
        def op() -> ModelT:
            entity = self.store.find_by_id(entity_id)
            if entity is None:
                raise EntityNotFoundError(self.get_entity_name(), entity_id)
            return entity

        return self._execute(f"Finding by ID or fail: {entity_id}", op)

    def find_first(self) -> Optional[ModelT]:
        """First row under the store's default ordering, read through a size-1 page."""
        def op() -> Optional[ModelT]:
            page = self.store.find_page(PageRequest(page=0, size=1))
            return page.content[0] if page.has_content else None

        return self._execute_or_default("Finding first", op, None)

    def find_page(self, page_request: PageRequest) -> Page[ModelT]:
        return self._execute(
            "Finding with pagination", lambda: self.store.find_page(page_request)
        )

    def find_all_by_id(self, ids: Iterable[UUID]) -> List[ModelT]:
        """Batch lookup; ids without a row are left out of the result."""
        id_list = list(ids)
        return self._execute("Finding by IDs", lambda: self.store.find_all_by_id(id_list))

    def count(self) -> int:
        return self._execute_or_default("Counting all entities", self.store.count, 0)

    def exists_by_id(self, entity_id: UUID) -> bool:
        return self._execute_or_default(
            f"Checking existence by ID: {entity_id}",
            lambda: self.store.exists_by_id(entity_id),
            False,
        )

    # Writes

    def create(self, entity: ModelT) -> ModelT:
        return self._execute(
            f"Creating entity: {entity.id}", lambda: self.store.save(entity)
        )

    def create_all(self, entities: Iterable[ModelT]) -> List[ModelT]:
        entity_list = list(entities)
        return self._execute(
            "Creating multiple entities", lambda: self.store.save_all(entity_list)
        )

    def create_and_flush(self, entity: ModelT) -> ModelT:
        return self._execute(
            f"Creating and flushing entity: {entity.id}",
            lambda: self.store.save_and_flush(entity),
        )

    def flush(self) -> None:
        self._execute("Flushing repository", self.store.flush)

    def update(self, entity_id: UUID, entity: ModelT) -> ModelT:
        """
        Persist ``entity`` as the new state of ``entity_id``.

        An entity without id takes ``entity_id``; one carrying a different id is
        rejected since ids never change.
        """
        def op() -> ModelT:
            if not self.store.exists_by_id(entity_id):
                raise EntityNotFoundError(self.get_entity_name(), entity_id)
            if entity.id is None:
                entity.id = entity_id
            elif entity.id != entity_id:
                raise ValueError(
                    f"{self.get_entity_name()} id {entity.id} does not match {entity_id}"
                )
            return self.store.save(entity)

        return self._execute(f"Updating entity: {entity_id}", op)

    def delete_by_id(self, entity_id: UUID) -> bool:
        """
        Soft-delete the row. Returns False when there is no such row.

        The row stays visible to ``find_all``/``find_with_deleted``. Deleting a
        row that is already soft-deleted raises InvalidStateTransitionError.
        """
        def op() -> bool:
            entity = self.store.find_by_id(entity_id)
            if entity is None:
                self.logger.warning(
                    "%s entity not found for deletion with ID: %s", self.get_entity_name(), entity_id
                )
                return False
            entity.delete()
            self.store.save(entity)
            return True

        return self._execute(f"Deleting entity: {entity_id}", op)

    def restore_by_id(self, entity_id: UUID) -> bool:
        """Undo a soft delete. Returns False when there is no such row."""
        def op() -> bool:
            entity = self.store.find_by_id(entity_id)
            if entity is None:
                self.logger.warning(
                    "%s entity not found for restore with ID: %s", self.get_entity_name(), entity_id
                )
                return False
            entity.restore()
            self.store.save(entity)
            return True

        return self._execute(f"Restoring entity: {entity_id}", op)

    def force_delete_by_id(self, entity_id: UUID) -> bool:
        """Physically remove the row. Returns False when there is no such row."""
        def op() -> bool:
            if not self.store.exists_by_id(entity_id):
                self.logger.warning(
                    "%s entity not found for permanent deletion with ID: %s",
                    self.get_entity_name(),
                    entity_id,
                )
                return False
            self.store.delete_by_id(entity_id)
            return True

        return self._execute(f"Permanently deleting entity: {entity_id}", op)

    # Map-driven construction

    def create_from_data(self, data: Mapping[str, Any]) -> ModelT:
        def op() -> ModelT:
            return self.store.save(self.create_entity_from_data(data))

        return self._execute("Creating entity with data", op)

    def create_many(self, data_list: Iterable[Mapping[str, Any]]) -> List[ModelT]:
        def op() -> List[ModelT]:
            entities = [self.create_entity_from_data(data) for data in data_list]
            return self.store.save_all(entities)

        return self._execute("Creating many entities", op)

    def update_with_data(self, entity_id: UUID, data: Mapping[str, Any]) -> ModelT:
        def op() -> ModelT:
            entity = self.find_by_id_or_fail(entity_id)
            self.update_entity_from_data(entity, data)
            return self.store.save(entity)

        return self._execute(f"Updating entity with data: {entity_id}", op)

    def create_entity_from_data(self, data: Mapping[str, Any]) -> ModelT:
        """Build a new, unsaved entity through the zero-argument constructor."""
        entity = self.model()
        self.update_entity_from_data(entity, data)
        return entity

    def update_entity_from_data(self, entity: ModelT, data: Mapping[str, Any]) -> ModelT:
        """
        Assign every known field of ``data`` onto ``entity``.

        Names are looked up on the concrete model first, then on its supertype.
        Unknown (or managed) names are skipped with a warning; they never abort
        the update. Values that cannot be converted to the field's type raise.
        """
        table = field_setters(type(entity))
        for name, value in data.items():
            setter = table.lookup(name)
            if setter is None:
                self.logger.warning(
                    "Field '%s' not found in entity class %s", name, type(entity).__name__
                )
                continue
            setter(entity, value)
        return entity

    # Bulk processing

    def process_in_chunks(
        self, chunk_size: Optional[int], processor: Callable[[List[ModelT]], Any]
    ) -> None:
        """
        Visit the whole table page by page, calling ``processor`` once per page.
        A ``chunk_size`` of None uses the configured DEFAULT_CHUNK_SIZE.

        The number of pages is computed from a single count taken up front. Rows
        inserted or removed while the scan runs shift later pages, so a row may
        be seen twice or not at all; no snapshot is taken.
        """
        if chunk_size is None:
            chunk_size = get_app_settings().DEFAULT_CHUNK_SIZE
        if chunk_size < 1:
            raise ValueError("chunk_size must be a positive integer")

        def op() -> None:
            total_pages = math.ceil(self.store.count() / chunk_size)
            for page in range(total_pages):
                chunk = self.store.find_page(PageRequest(page=page, size=chunk_size))
                processor(chunk.content)

        self._execute("Processing in chunks", op)

    # Soft-delete views

    def find_active(self) -> List[ModelT]:
        def op() -> List[ModelT]:
            return [entity for entity in self.store.find_all() if entity.deleted_at is None]

        return self._execute("Finding active entities", op)

    def find_deleted(self) -> List[ModelT]:
        def op() -> List[ModelT]:
            return [entity for entity in self.store.find_all() if entity.deleted_at is not None]

        return self._execute("Finding deleted entities", op)

    def find_with_deleted(self) -> List[ModelT]:
        return self._execute("Finding all entities including deleted", self.store.find_all)

    # Logging / error wrapping

    def _execute(self, operation: str, fn: Callable[[], R]) -> R:
        self.logger.debug("%s %s entities", operation, self.get_entity_name())
        try:
            return fn()
        except RepositoryError:
            raise
        except Exception as exc:
            self.logger.exception(
                "Error %s %s entities: %s", operation.lower(), self.get_entity_name(), exc
            )
            # Drop half-applied changes so a later commit cannot persist them.
            self.store.rollback()
            raise RepositoryOperationError(operation) from exc

    def _execute_or_default(self, operation: str, fn: Callable[[], R], default: R) -> R:
        self.logger.debug("%s %s entities", operation, self.get_entity_name())
        try:
            return fn()
        except Exception as exc:
            self.logger.exception(
                "Error %s %s entities: %s", operation.lower(), self.get_entity_name(), exc
            )
            return default
