import logging
import uuid
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from membership.core.exceptions import (
    EntityNotFoundError,
    InvalidStateTransitionError,
    RepositoryOperationError,
)
from membership.core.security import verify_password
from membership.db.models import User
from membership.repositories.base import BaseRepository
from membership.repositories.users import UserRepository
from membership.schemas.pagination import Page, PageRequest, Sort


@pytest.fixture
def repo(db):
    return UserRepository(db)


@pytest.fixture
def seeded(repo, clock):
    """Five users with strictly increasing created_at."""
    users = []
    for i in range(5):
        users.append(
            repo.create(User(name=f"User {i}", email=f"user{i}@example.com", created_at=clock.now))
        )
        clock.advance(minutes=1)
    return users


def _failing_repo(**failures):
    store = MagicMock()
    for name, exc in failures.items():
        getattr(store, name).side_effect = exc
    return BaseRepository(store, model=User), store


# Lookups


def test_create_assigns_id_and_created_at(repo):
    user = repo.create(User(name="Alice", email="alice@example.com"))
    assert user.id is not None
    assert user.created_at is not None
    assert user.updated_at is None
    assert repo.find_by_id(user.id) is user


def test_find_by_id_missing_returns_none(repo):
    assert repo.find_by_id(uuid.uuid4()) is None


def test_find_by_id_or_fail_raises_not_found(repo):
    missing = uuid.uuid4()
    with pytest.raises(EntityNotFoundError) as excinfo:
        repo.find_by_id_or_fail(missing)
    assert str(excinfo.value) == f"User with ID {missing} not found"
    assert excinfo.value.entity_id == missing


def test_count_and_exists(repo, seeded):
    assert repo.count() == 5
    assert repo.exists_by_id(seeded[0].id) is True
    assert repo.exists_by_id(uuid.uuid4()) is False


def test_find_first_uses_default_ordering(repo, seeded):
    assert repo.find_first() == seeded[0]


def test_find_first_empty(repo):
    assert repo.find_first() is None


def test_find_page_metadata(repo, seeded):
    page = repo.find_page(PageRequest(page=2, size=2))
    assert page.content == [seeded[4]]
    assert page.total_elements == 5
    assert page.total_pages == 3
    assert page.has_previous and not page.has_next
    assert page.is_last


def test_find_page_with_sort(repo, seeded):
    page = repo.find_page(PageRequest.of(0, 2, Sort.desc("name")))
    assert [u.name for u in page.content] == ["User 4", "User 3"]


def test_find_page_unknown_sort_field_is_wrapped(repo, seeded):
    with pytest.raises(RepositoryOperationError) as excinfo:
        repo.find_page(PageRequest.of(0, 2, Sort.asc("no_such_column")))
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_find_all_by_id_omits_missing(repo, seeded):
    found = repo.find_all_by_id([seeded[1].id, uuid.uuid4(), seeded[3].id])
    assert found == [seeded[1], seeded[3]]
    assert repo.find_all_by_id([]) == []


# Writes


def test_create_all_keeps_input_order(repo):
    created = repo.create_all(
        [User(name="B", email="b@example.com"), User(name="A", email="a@example.com")]
    )
    assert [u.name for u in created] == ["B", "A"]
    assert all(u.id is not None for u in created)


def test_create_and_flush_refreshes(repo):
    user = repo.create_and_flush(User(name="Flushed", email="flush@example.com"))
    assert user.id is not None
    assert user.of_mg is False
    repo.flush()


def test_update_persists_new_state(repo, seeded, db):
    target = seeded[0]
    replacement = User(name="Renamed", email=target.email)
    updated = repo.update(target.id, replacement)
    assert updated.id == target.id
    assert updated.name == "Renamed"
    assert updated.updated_at is not None
    db.expire_all()
    assert repo.find_by_id(target.id).name == "Renamed"


def test_update_missing_raises_not_found(repo):
    with pytest.raises(EntityNotFoundError):
        repo.update(uuid.uuid4(), User(name="Ghost", email="ghost@example.com"))


def test_update_rejects_id_mismatch(repo, seeded):
    with pytest.raises(RepositoryOperationError) as excinfo:
        repo.update(seeded[0].id, seeded[1])
    assert isinstance(excinfo.value.__cause__, ValueError)


# Soft delete


def test_delete_by_id_is_soft(repo, seeded):
    target = seeded[2]
    assert repo.delete_by_id(target.id) is True

    assert repo.find_by_id(target.id).is_deleted
    assert target not in repo.find_active()
    assert repo.find_deleted() == [target]
    assert len(repo.find_with_deleted()) == 5
    assert repo.count() == 5


def test_delete_by_id_twice_raises(repo, seeded):
    repo.delete_by_id(seeded[0].id)
    with pytest.raises(InvalidStateTransitionError):
        repo.delete_by_id(seeded[0].id)


def test_delete_by_id_missing_returns_false_and_warns(repo, caplog):
    caplog.set_level(logging.WARNING)
    missing = uuid.uuid4()
    assert repo.delete_by_id(missing) is False
    assert f"User entity not found for deletion with ID: {missing}" in caplog.text


def test_restore_by_id(repo, seeded):
    target = seeded[0]
    repo.delete_by_id(target.id)
    assert repo.restore_by_id(target.id) is True
    assert repo.find_by_id(target.id).is_active
    with pytest.raises(InvalidStateTransitionError):
        repo.restore_by_id(target.id)
    assert repo.restore_by_id(uuid.uuid4()) is False


def test_force_delete_by_id(repo, seeded):
    assert repo.force_delete_by_id(seeded[0].id) is True
    assert repo.count() == 4
    assert repo.find_by_id(seeded[0].id) is None
    assert repo.force_delete_by_id(seeded[0].id) is False


def test_find_active_is_idempotent(repo, seeded):
    repo.delete_by_id(seeded[1].id)
    first = repo.find_active()
    assert first == repo.find_active()
    assert len(first) == 4


# Map-driven construction


def test_create_from_data_coerces_and_skips_unknown(repo, caplog):
    caplog.set_level(logging.WARNING)
    user = repo.create_from_data(
        {
            "name": "Bob",
            "email": "bob@example.com",
            "of_mg": "true",
            "birthday": "1990-05-01",
            "password": "s3cret",
            "favourite_colour": "green",
        }
    )
    assert user.id is not None
    assert user.of_mg is True
    assert user.birthday == date(1990, 5, 1)
    assert user.password != "s3cret"
    assert verify_password("s3cret", user.password)
    assert "Field 'favourite_colour' not found in entity class User" in caplog.text


def test_managed_fields_are_not_assignable(repo, caplog):
    caplog.set_level(logging.WARNING)
    forced_id = uuid.uuid4()
    user = repo.create_from_data({"name": "Eve", "email": "eve@example.com", "id": forced_id})
    assert user.id != forced_id
    assert "Field 'id' not found" in caplog.text


def test_create_many(repo):
    users = repo.create_many(
        [
            {"name": "One", "email": "one@example.com"},
            {"name": "Two", "email": "two@example.com", "city": "Berlin"},
        ]
    )
    assert [u.name for u in users] == ["One", "Two"]
    assert users[1].city == "Berlin"
    assert repo.count() == 2


def test_update_with_data(repo, seeded):
    updated = repo.update_with_data(seeded[0].id, {"city": "Hamburg", "unknown": 1})
    assert updated.city == "Hamburg"
    assert updated.name == "User 0"


def test_update_with_data_missing_raises_not_found(repo):
    with pytest.raises(EntityNotFoundError):
        repo.update_with_data(uuid.uuid4(), {"city": "Hamburg"})


def test_update_with_data_bad_value_is_wrapped(repo, seeded):
    with pytest.raises(RepositoryOperationError) as excinfo:
        repo.update_with_data(seeded[0].id, {"birthday": "not-a-date"})
    assert isinstance(excinfo.value.__cause__, ValueError)


# Chunked processing


def test_process_in_chunks_visits_every_row_once(repo, clock):
    for i in range(25):
        repo.create(User(name=f"Bulk {i:02d}", email=f"bulk{i}@example.com", created_at=clock.now))
        clock.advance(seconds=1)

    chunks = []
    repo.process_in_chunks(10, lambda chunk: chunks.append([u.name for u in chunk]))

    assert [len(c) for c in chunks] == [10, 10, 5]
    seen = [name for chunk in chunks for name in chunk]
    assert seen == [f"Bulk {i:02d}" for i in range(25)]


def test_process_in_chunks_reads_count_once():
    store = MagicMock()
    store.count.return_value = 25
    store.find_page.side_effect = lambda pr: Page(
        content=list(range(pr.offset, min(pr.offset + pr.size, 25))),
        page=pr.page,
        size=pr.size,
        total_elements=25,
    )
    repo = BaseRepository(store, model=User)
    calls = []
    repo.process_in_chunks(10, calls.append)

    assert store.count.call_count == 1
    assert [len(c) for c in calls] == [10, 10, 5]
    assert [c.args[0].page for c in store.find_page.call_args_list] == [0, 1, 2]


def test_process_in_chunks_empty_table(repo):
    processor = MagicMock()
    repo.process_in_chunks(10, processor)
    processor.assert_not_called()


def test_process_in_chunks_rejects_bad_chunk_size(repo):
    with pytest.raises(ValueError):
        repo.process_in_chunks(0, lambda chunk: None)


# Failure policy


def test_graceful_operations_return_defaults(caplog):
    boom = RuntimeError("connection lost")
    repo, store = _failing_repo(count=boom, exists_by_id=boom, find_by_id=boom, find_page=boom)

    assert repo.count() == 0
    assert repo.exists_by_id(uuid.uuid4()) is False
    assert repo.find_by_id(uuid.uuid4()) is None
    assert repo.find_first() is None
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 4
    assert all(r.exc_info for r in errors)
    store.rollback.assert_not_called()


def test_other_operations_wrap_errors(caplog):
    boom = RuntimeError("connection lost")
    repo, store = _failing_repo(find_all=boom, save=boom, find_by_id=boom, find_page=boom)

    with pytest.raises(RepositoryOperationError) as excinfo:
        repo.find_all()
    assert str(excinfo.value) == "Failed to execute operation: Fetching all"
    assert excinfo.value.__cause__ is boom

    for call in (
        lambda: repo.create(User(name="x", email="x@example.com")),
        lambda: repo.find_by_id_or_fail(uuid.uuid4()),
        lambda: repo.delete_by_id(uuid.uuid4()),
        lambda: repo.find_page(PageRequest()),
        repo.find_active,
        repo.find_deleted,
    ):
        with pytest.raises(RepositoryOperationError):
            call()
    assert store.rollback.call_count == 7


def test_operations_log_debug_trace(repo, caplog):
    caplog.set_level(logging.DEBUG, logger="membership.repositories.users.UserRepository")
    repo.count()
    assert "Counting all entities User entities" in caplog.text


def test_repository_requires_model():
    with pytest.raises(TypeError):
        BaseRepository(MagicMock())


def test_entity_name_defaults():
    repo = BaseRepository(MagicMock(), model=User)
    assert repo.get_entity_name() == "Entity"
    assert UserRepository.entity_name == "User"


def test_find_deleted_after_timestamped_delete(repo, seeded, clock):
    target = seeded[0]
    target.delete_at(clock.now - timedelta(days=1))
    repo.update(target.id, target)
    assert repo.find_deleted() == [target]


def test_failed_map_update_is_not_committed_later(repo, db):
    alice = repo.create(User(name="Alice", email="alice@example.com"))
    with pytest.raises(RepositoryOperationError):
        repo.update_with_data(alice.id, {"name": "Hacked", "birthday": "not-a-date"})

    repo.create(User(name="Bob", email="bob@example.com"))
    db.expire_all()
    assert repo.find_by_id(alice.id).name == "Alice"


def test_process_in_chunks_defaults_to_configured_size(monkeypatch):
    monkeypatch.setenv("DEFAULT_CHUNK_SIZE", "2")
    store = MagicMock()
    store.count.return_value = 5
    store.find_page.side_effect = lambda pr: Page(
        content=list(range(pr.offset, min(pr.offset + pr.size, 5))),
        page=pr.page,
        size=pr.size,
        total_elements=5,
    )
    calls = []
    BaseRepository(store, model=User).process_in_chunks(None, calls.append)
    assert calls == [[0, 1], [2, 3], [4]]
