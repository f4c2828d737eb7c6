from datetime import timedelta

import pytest

from membership.db.models import PasswordSetupToken, User
from membership.repositories.tokens import PasswordSetupTokenRepository
from membership.services.tokens import PasswordSetupTokenService


@pytest.fixture
def repo(db):
    return PasswordSetupTokenRepository(db)


@pytest.fixture
def service(repo):
    return PasswordSetupTokenService(repo, lifetime=timedelta(hours=72))


def test_issue_creates_token_with_lifetime(service, make_user, clock):
    user = make_user()
    token = service.issue(user, now=clock.now)
    assert token.id is not None
    assert len(token.token) >= 32
    assert token.expires_at == clock.now + timedelta(hours=72)
    assert token.is_valid(clock.now)


def test_issue_replaces_previous_tokens(service, repo, make_user, clock):
    user = make_user()
    first = service.issue(user, now=clock.now)
    second = service.issue(user, now=clock.now)
    assert first.token != second.token
    assert repo.find_by_token(first.token) is None
    assert repo.find_by_user(user.id) == [second]


def test_issue_requires_persisted_user(service):
    with pytest.raises(ValueError):
        service.issue(User(name="New", email="new@example.com"))


def test_consume_marks_token_used(service, repo, make_user, clock):
    token = service.issue(make_user(), now=clock.now)
    consumed = service.consume(token.token, now=clock.now)
    assert consumed is not None
    assert consumed.is_used()
    assert service.consume(token.token, now=clock.now) is None


def test_consume_rejects_expired_and_unknown(service, make_user, clock):
    token = service.issue(make_user(), now=clock.now)
    assert service.consume(token.token, now=clock.now + timedelta(hours=72)) is None
    assert service.consume("does-not-exist", now=clock.now) is None


def test_find_by_token_rejects_blank(repo):
    with pytest.raises(ValueError):
        repo.find_by_token("")


def test_find_expired_tokens(repo, make_user, clock):
    user = make_user()
    expired = repo.create(
        PasswordSetupToken(user_id=user.id, token="expired", expires_at=clock.now - timedelta(hours=1))
    )
    used = PasswordSetupToken(user_id=user.id, token="used", expires_at=clock.now - timedelta(hours=1))
    used.mark_as_used(clock.now - timedelta(hours=2))
    repo.create(used)
    repo.create(
        PasswordSetupToken(user_id=user.id, token="fresh", expires_at=clock.now + timedelta(hours=1))
    )

    assert repo.find_expired_tokens(clock.now) == [expired]
    with pytest.raises(ValueError):
        repo.find_expired_tokens(None)


def test_purge_expired_soft_deletes(service, repo, make_user, clock):
    user = make_user()
    stale = repo.create(
        PasswordSetupToken(user_id=user.id, token="stale", expires_at=clock.now - timedelta(minutes=1))
    )
    assert service.purge_expired(now=clock.now) == 1
    assert repo.find_by_id(stale.id).is_deleted
    assert service.purge_expired(now=clock.now) == 0


def test_delete_by_user_returns_rowcount(repo, make_user, clock):
    user = make_user()
    for value in ("a", "b"):
        repo.create(PasswordSetupToken(user_id=user.id, token=value, expires_at=clock.now))
    assert repo.delete_by_user(user.id) == 2
    assert repo.find_by_user(user.id) == []


def test_consume_rejects_revoked_token(service, repo, make_user, clock):
    token = service.issue(make_user(), now=clock.now)
    repo.delete_by_id(token.id)
    assert service.consume(token.token, now=clock.now) is None
