import uuid
from datetime import UTC, datetime

import pytest

from membership.core.exceptions import InvalidStateTransitionError
from membership.db.models import PasswordSetupToken, Role, User


def test_soft_delete_state_machine():
    user = User(name="A", email="a@example.com")
    assert user.is_active and not user.is_deleted

    user.delete()
    assert user.is_deleted
    with pytest.raises(InvalidStateTransitionError):
        user.delete()

    user.restore()
    assert user.is_active
    with pytest.raises(InvalidStateTransitionError):
        user.restore()


def test_delete_at_uses_given_timestamp():
    user = User()
    when = datetime(2023, 6, 1, tzinfo=UTC)
    user.delete_at(when)
    assert user.deleted_at == when
    with pytest.raises(InvalidStateTransitionError):
        user.delete_at(when)
    with pytest.raises(ValueError):
        User().delete_at(None)


def test_equality_by_type_and_id():
    shared = uuid.uuid4()
    assert User(id=shared) == User(id=shared)
    assert User(id=shared) != Role(id=shared)
    assert User() != User()
    unsaved = User()
    assert unsaved == unsaved
    assert hash(User(id=shared)) == hash(User())


def test_repr_names_type_and_id():
    shared = uuid.uuid4()
    assert repr(Role(id=shared)) == f"Role(id={shared})"


def test_has_role():
    user = User(roles=[Role(name="admin")])
    assert user.has_role("admin")
    assert not user.has_role("treasurer")


def test_token_validity():
    now = datetime(2024, 1, 1, tzinfo=UTC)
    token = PasswordSetupToken(expires_at=datetime(2024, 1, 2, tzinfo=UTC))
    assert token.is_valid(now)
    assert token.is_expired(datetime(2024, 1, 2, tzinfo=UTC))
    token.mark_as_used(now)
    assert token.is_used() and not token.is_valid(now)


def test_token_expiry_accepts_naive_storage_value():
    token = PasswordSetupToken(expires_at=datetime(2024, 1, 2))
    assert not token.is_expired(datetime(2024, 1, 1, tzinfo=UTC))
