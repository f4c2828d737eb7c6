from __future__ import annotations

from typing import Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Session

from membership.db.models.users import Role, User
from membership.schemas.pagination import Page, PageRequest

from .base import BaseRepository
from .store import SqlAlchemyStore

SEARCH_STATUSES = (None, "all", "active", "deleted")


class UserRepository(BaseRepository[User]):
    """Repository for member accounts."""

    model = User
    store: SqlAlchemyStore[User]
    entity_name = "User"

    def __init__(self, session: Session) -> None:
        super().__init__(SqlAlchemyStore(session, User))

    def find_by_email(self, email: str) -> Optional[User]:
        if email is None or not email.strip():
            raise ValueError("Email must not be null or blank")
        stmt = select(User).where(User.email == email)
        return self._execute(
            f"Finding by email: {email}", lambda: self.store.scalar_one_or_none(stmt)
        )

    def search(
        self,
        query: Optional[str],
        page_request: PageRequest,
        status: Optional[str] = "active",
    ) -> Page[User]:
        """
        Case-insensitive search over name, email and phone.

        Exact matches rank first, then prefix matches, then substring matches;
        ties are ordered by name. A blank query lists all users. ``status``
        narrows to active or deleted users ("all"/None disables the filter).
        """
        if status not in SEARCH_STATUSES:
            raise ValueError(f"Unsupported status filter: {status!r}")

        filters = []
        if status == "active":
            filters.append(User.deleted_at.is_(None))
        elif status == "deleted":
            filters.append(User.deleted_at.is_not(None))

        term = (query or "").strip()
        rank = None
        if term:
            lowered = term.lower()
            columns = (User.name, User.email, User.phone)
            filters.append(or_(*(col.ilike(f"%{term}%") for col in columns)))
            rank = case(
                (or_(func.lower(User.name) == lowered, func.lower(User.email) == lowered), 1),
                (or_(User.name.ilike(f"{term}%"), User.email.ilike(f"{term}%")), 2),
                else_=3,
            )

        stmt = select(User).where(*filters)
        count_stmt = select(func.count()).select_from(User).where(*filters)

        def op() -> Page[User]:
            if rank is None or page_request.sort:
                return self.store.paginate(stmt, count_stmt, page_request)
            total = int(self.store.execute(count_stmt).scalar_one())
            ranked = (
                stmt.order_by(rank, User.name, User.id)
                .offset(page_request.offset)
                .limit(page_request.size)
            )
            return Page(
                content=list(self.store.scalars(ranked)),
                page=page_request.page,
                size=page_request.size,
                total_elements=total,
            )

        return self._execute(f"Searching with query '{term}'", op)


class RoleRepository(BaseRepository[Role]):
    """Repository for roles."""

    model = Role
    store: SqlAlchemyStore[Role]
    entity_name = "Role"

    def __init__(self, session: Session) -> None:
        super().__init__(SqlAlchemyStore(session, Role))

    def find_by_name(self, name: str) -> Optional[Role]:
        if name is None or not name.strip():
            raise ValueError("Role name must not be null or blank")
        stmt = select(Role).where(Role.name == name)
        return self._execute(
            f"Finding by name: {name}", lambda: self.store.scalar_one_or_none(stmt)
        )
