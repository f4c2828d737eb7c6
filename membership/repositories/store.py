"""
Single-entity stores consumed by BaseRepository.

EntityStore is the narrow interface the generic repository delegates to;
SqlAlchemyStore implements it over a synchronous SQLAlchemy Session.
"""
from __future__ import annotations

from typing import Any, Generic, Iterable, List, Optional, Protocol, Sequence, Type, TypeVar
from uuid import UUID

from sqlalchemy import Executable, Select, func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from membership.db.base import Model
from membership.schemas.pagination import Page, PageRequest

ModelT = TypeVar("ModelT", bound=Model)


# PUBLIC_INTERFACE
class EntityStore(Protocol[ModelT]):
    """Lower-level data access for one entity type."""

    def find_all(self) -> List[ModelT]: ...

    def find_page(self, page_request: PageRequest) -> Page[ModelT]: ...

    def find_by_id(self, entity_id: UUID) -> Optional[ModelT]: ...

    def exists_by_id(self, entity_id: UUID) -> bool: ...

    def save(self, entity: ModelT) -> ModelT: ...

    def save_all(self, entities: Iterable[ModelT]) -> List[ModelT]: ...

    def save_and_flush(self, entity: ModelT) -> ModelT: ...

    def flush(self) -> None: ...

    def rollback(self) -> None: ...
    def delete_by_id(self, entity_id: UUID) -> None: ...

    def count(self) -> int: ...

    def find_all_by_id(self, ids: Iterable[UUID]) -> List[ModelT]: ...


# PUBLIC_INTERFACE
class SqlAlchemyStore(Generic[ModelT]):
    """
    EntityStore backed by a SQLAlchemy Session.

    Writes follow the unit-of-work of the session: ``save`` and ``save_all``
    commit, ``save_and_flush`` also refreshes the row so database-side state is
    visible right away, ``flush`` pushes pending changes without committing.
    A failed commit rolls the session back before the error propagates;
    ``rollback`` lets the repository do the same for any other failed operation.

    Default ordering is ``created_at, id`` so pagination is deterministic.
    """

    def __init__(self, session: Session, model: Type[ModelT]) -> None:
        self.session = session
        self.model = model

    # Session helpers

    def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return self.session.execute(statement, params or {})

    def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        return self.execute(statement, params).scalars()

    def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        return self.execute(statement, params).scalar_one_or_none()

    def commit(self) -> None:
        """Commit current transaction."""
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def add(self, entity: ModelT) -> ModelT:
        """
        Attach an entity to the session.

        New entities (no id yet) are added as-is; detached copies or entities
        carrying a caller-chosen id are merged, and the persistent instance is
        returned.
        """
        state = sa_inspect(entity)
        if state.persistent or state.pending:
            return entity
        if state.transient and entity.id is None:
            self.session.add(entity)
            return entity
        return self.session.merge(entity)

    def add_all(self, entities: Iterable[ModelT]) -> List[ModelT]:
        """Attach multiple entities to the session."""
        return [self.add(entity) for entity in entities]

    # Queries

    def ordered(self, statement: Select, page_request: Optional[PageRequest] = None) -> Select:
        """Apply the request's sort order, or the default ``created_at, id`` ordering."""
        if page_request is None or not page_request.sort:
            return statement.order_by(self.model.created_at, self.model.id)
        mapper = sa_inspect(self.model)
        for criterion in page_request.sort:
            if criterion.field not in mapper.column_attrs:
                raise ValueError(
                    f"Cannot sort {self.model.__name__} by unknown field '{criterion.field}'"
                )
            column = getattr(self.model, criterion.field)
            statement = statement.order_by(
                column.desc() if criterion.direction == "desc" else column.asc()
            )
        return statement.order_by(self.model.id)

    def paginate(
        self, statement: Select, count_statement: Select, page_request: PageRequest
    ) -> Page[ModelT]:
        """Run ``statement`` for one page and ``count_statement`` for the total."""
        total = int(self.execute(count_statement).scalar_one())
        stmt = self.ordered(statement, page_request).offset(page_request.offset).limit(page_request.size)
        content = list(self.scalars(stmt))
        return Page(
            content=content,
            page=page_request.page,
            size=page_request.size,
            total_elements=total,
        )

    def find_all(self) -> List[ModelT]:
        return list(self.scalars(self.ordered(select(self.model))))

    def find_page(self, page_request: PageRequest) -> Page[ModelT]:
        count_stmt = select(func.count()).select_from(self.model)
        return self.paginate(select(self.model), count_stmt, page_request)

    def find_by_id(self, entity_id: UUID) -> Optional[ModelT]:
        return self.session.get(self.model, entity_id)

    def exists_by_id(self, entity_id: UUID) -> bool:
        stmt = select(self.model.id).where(self.model.id == entity_id)
        return self.scalar_one_or_none(stmt) is not None

    def find_all_by_id(self, ids: Iterable[UUID]) -> List[ModelT]:
        id_list: Sequence[UUID] = list(ids)
        if not id_list:
            return []
        stmt = self.ordered(select(self.model).where(self.model.id.in_(id_list)))
        return list(self.scalars(stmt))

    def count(self) -> int:
        stmt = select(func.count()).select_from(self.model)
        return int(self.execute(stmt).scalar_one())

    # Writes

    def save(self, entity: ModelT) -> ModelT:
        attached = self.add(entity)
        self.commit()
        return attached

    def save_all(self, entities: Iterable[ModelT]) -> List[ModelT]:
        attached = self.add_all(entities)
        self.commit()
        return attached

    def save_and_flush(self, entity: ModelT) -> ModelT:
        attached = self.add(entity)
        try:
            self.session.flush()
        except Exception:
            self.session.rollback()
            raise
        self.commit()
        self.session.refresh(attached)
        return attached

    def flush(self) -> None:
        self.session.flush()

    def rollback(self) -> None:
        """Discard pending changes and expire loaded instances."""
        self.session.rollback()

    def delete_by_id(self, entity_id: UUID) -> None:
        entity = self.find_by_id(entity_id)
        if entity is None:
            return
        self.session.delete(entity)
        self.commit()
