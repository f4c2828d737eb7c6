from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Iterable, List, Mapping, Optional, TypeVar
from uuid import UUID

from membership.core.exceptions import RepositoryError, RepositoryOperationError
from membership.db.base import Model
from membership.repositories.base import BaseRepository
from membership.schemas.pagination import Page, PageRequest

ModelT = TypeVar("ModelT", bound=Model)
RepoT = TypeVar("RepoT", bound=BaseRepository)
R = TypeVar("R")


class BaseService(Generic[ModelT, RepoT]):
    """
    Base class for services. Wraps one repository and runs overridable hooks
    around its writes:

      validate_for_* -> apply_business_rules_for_* -> repository call -> after_*

    Services should keep business logic and orchestration, delegating data access
    to repositories. Errors follow the repository policy: RepositoryError
    subclasses and ValueError from validation hooks pass through, anything
    else is logged and wrapped.
    """

    entity_name: str = "Entity"

    def __init__(self, repository: RepoT) -> None:
        self.repository = repository
        self.logger = logging.getLogger(f"{type(self).__module__}.{type(self).__name__}")

    # Reads

    def find_all(self) -> List[ModelT]:
        return self.repository.find_all()

    def find_by_id(self, entity_id: UUID) -> Optional[ModelT]:
        return self.repository.find_by_id(entity_id)

    def find_by_id_or_fail(self, entity_id: UUID) -> ModelT:
        return self.repository.find_by_id_or_fail(entity_id)

    def find_page(self, page_request: PageRequest) -> Page[ModelT]:
        return self.repository.find_page(page_request)

    def count(self) -> int:
        return self.repository.count()

    def exists_by_id(self, entity_id: UUID) -> bool:
        return self.repository.exists_by_id(entity_id)

    def find_active(self) -> List[ModelT]:
        return self.repository.find_active()

    def find_deleted(self) -> List[ModelT]:
        return self.repository.find_deleted()

    def find_with_deleted(self) -> List[ModelT]:
        return self.repository.find_with_deleted()

    def process_in_chunks(self, chunk_size: Optional[int], processor: Callable[[List[ModelT]], Any]) -> None:
        self.repository.process_in_chunks(chunk_size, processor)

    # Writes

    def create(self, entity: ModelT) -> ModelT:
        def op() -> ModelT:
            self.validate_for_create(entity)
            self.apply_business_rules_for_create(entity)
            created = self.repository.create(entity)
            self.after_create(created)
            return created

        return self._execute("Creating entity", op)

    def create_all(self, entities: Iterable[ModelT]) -> List[ModelT]:
        entity_list = list(entities)

        def op() -> List[ModelT]:
            for entity in entity_list:
                self.validate_for_create(entity)
                self.apply_business_rules_for_create(entity)
            created = self.repository.create_all(entity_list)
            for entity in created:
                self.after_create(entity)
            return created

        return self._execute("Creating multiple entities", op)

    def create_from_data(self, data: Mapping[str, Any]) -> ModelT:
        def op() -> ModelT:
            entity = self.repository.create_entity_from_data(data)
            self.validate_for_create(entity)
            self.apply_business_rules_for_create(entity)
            created = self.repository.create(entity)
            self.after_create(created)
            return created

        return self._execute("Creating entity with data", op)

    def update(self, entity_id: UUID, entity: ModelT) -> ModelT:
        def op() -> ModelT:
            self.validate_for_update(entity_id, entity)
            self.apply_business_rules_for_update(entity_id, entity)
            updated = self.repository.update(entity_id, entity)
            self.after_update(updated)
            return updated

        return self._execute(f"Updating entity: {entity_id}", op)

    def update_with_data(self, entity_id: UUID, data: Mapping[str, Any]) -> ModelT:
        def op() -> ModelT:
            updated = self.repository.update_with_data(entity_id, data)
            self.validate_for_update(entity_id, updated)
            self.apply_business_rules_for_update(entity_id, updated)
            self.after_update(updated)
            return updated

        return self._execute(f"Updating entity with data: {entity_id}", op)

    def delete_by_id(self, entity_id: UUID) -> bool:
        def op() -> bool:
            self.validate_for_delete(entity_id)
            self.apply_business_rules_for_delete(entity_id)
            deleted = self.repository.delete_by_id(entity_id)
            if deleted:
                self.after_delete(entity_id)
            return deleted

        return self._execute(f"Deleting entity: {entity_id}", op)

    # Hooks; override in concrete services for entity-specific logic

    def validate_for_create(self, entity: ModelT) -> None:
        pass

    def validate_for_update(self, entity_id: UUID, entity: ModelT) -> None:
        pass

    def validate_for_delete(self, entity_id: UUID) -> None:
        pass

    def apply_business_rules_for_create(self, entity: ModelT) -> None:
        pass

    def apply_business_rules_for_update(self, entity_id: UUID, entity: ModelT) -> None:
        pass

    def apply_business_rules_for_delete(self, entity_id: UUID) -> None:
        pass

    def after_create(self, entity: ModelT) -> None:
        pass

    def after_update(self, entity: ModelT) -> None:
        pass

    def after_delete(self, entity_id: UUID) -> None:
        pass

    def _execute(self, operation: str, fn: Callable[[], R]) -> R:
        self.logger.debug("%s %s entities", operation, self.entity_name)
        try:
            return fn()
        except (RepositoryError, ValueError):
            raise
        except Exception as exc:
            self.logger.exception(
                "Error %s %s entities: %s", operation.lower(), self.entity_name, exc
            )
            raise RepositoryOperationError(operation) from exc
