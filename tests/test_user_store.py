from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import ForbiddenError, InfrastructureError, NotFoundError
from app.models.user import User
from app.services.user_store import UserStore


def test_create_if_absent_creates_once(store, db):
    user, created = store.create_if_absent("user_1")
    assert created is True
    assert user.identity_key == "user_1"
    assert user.has_paid is False

    again, created_again = store.create_if_absent("user_1")
    assert created_again is False
    assert again.id == user.id
    assert db.query(User).filter(User.identity_key == "user_1").count() == 1


def test_find_by_identity_missing(store):
    assert store.find_by_identity("nobody") is None


def test_append_upload_keeps_insertion_order(store):
    store.create_if_absent("user_1")
    store.append_upload("user_1", "first.wav", "one")
    user = store.append_upload("user_1", "second.wav", "two")

    assert [u.file_name for u in user.uploads] == ["first.wav", "second.wav"]
    assert [u.transcription for u in user.uploads] == ["one", "two"]
    assert all(u.created_at is not None for u in user.uploads)
    assert store.count_uploads("user_1") == 2


def test_append_upload_with_limit_rechecks_gate(store):
    store.create_if_absent("user_1")
    store.append_upload("user_1", "a.wav", "a", limit=2)
    store.append_upload("user_1", "b.wav", "b", limit=2)

    with pytest.raises(ForbiddenError) as exc:
        store.append_upload("user_1", "c.wav", "c", limit=2)
    assert exc.value.reason == "LimitExceeded"
    assert store.count_uploads("user_1") == 2


def test_append_upload_with_limit_ignored_for_paid_user(store):
    store.create_if_absent("user_1")
    store.set_paid("user_1", True)
    for i in range(4):
        store.append_upload("user_1", f"{i}.wav", "t", limit=2)
    assert store.count_uploads("user_1") == 4


def test_append_upload_unknown_user(store):
    with pytest.raises(NotFoundError):
        store.append_upload("ghost", "a.wav", "a")


def test_set_paid_is_idempotent(store):
    store.create_if_absent("user_1")
    assert store.set_paid("user_1", True).has_paid is True
    assert store.set_paid("user_1", True).has_paid is True
    assert store.find_by_identity("user_1").has_paid is True


def test_set_paid_unknown_user(store):
    with pytest.raises(NotFoundError):
        store.set_paid("ghost", True)


def test_count_uploads_unknown_user_is_zero(store):
    assert store.count_uploads("ghost") == 0


def test_storage_failure_is_infrastructure_error():
    db = MagicMock()
    db.query.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    store = UserStore(db)

    with pytest.raises(InfrastructureError):
        store.find_by_identity("user_1")
    with pytest.raises(InfrastructureError):
        store.create_if_absent("user_1")
    db.rollback.assert_called()
