from __future__ import annotations

import hashlib

import pytest

from loginapi.errors import BlockedWordError, ConflictError, NotFoundError, ValidationError
from loginapi.users import UserStore, email_hash


def test_create_populates_defaults(store: UserStore) -> None:
    user = store.create({"username": "abc1", "email": "Abc1@Email.com"})

    assert user.email == "abc1@email.com"
    assert user.full_name == "abc1"
    assert user.display_name == "abc1"
    assert user.email_hash == hashlib.md5(b"abc1@email.com").hexdigest()
    assert user.is_admin is False
    assert user.is_suspended is False
    assert user.send_notifications is False
    assert user.send_engagements is False
    assert user.deleted_at is None


def test_create_honours_supplied_values(store: UserStore) -> None:
    user = store.create(
        {
            "username": "admin1",
            "full_name": "Ada Admin",
            "display_name": "ada",
            "is_admin": True,
            "send_notifications": True,
        }
    )

    assert user.full_name == "Ada Admin"
    assert user.display_name == "ada"
    assert user.is_admin is True
    assert user.send_notifications is True
    assert user.email == ""
    assert user.email_hash == ""


def test_create_requires_valid_username(store: UserStore) -> None:
    with pytest.raises(ValidationError):
        store.create({"email": "nobody@email.com"})
    with pytest.raises(ValidationError):
        store.create({"username": "bad name"})
    with pytest.raises(BlockedWordError):
        store.create({"username": "damn"})
    with pytest.raises(ValidationError):
        store.create({"username": "fine", "email": "invalid"})


def test_create_conflicts_on_duplicate_keys(store: UserStore) -> None:
    store.create({"username": "abc1", "email": "abc1@email.com"})

    with pytest.raises(ConflictError):
        store.create({"username": "abc1", "email": "other@email.com"})
    with pytest.raises(ConflictError):
        store.create({"username": "abc2", "email": "abc1@email.com"})


def test_update_merges_changes(store: UserStore) -> None:
    created = store.create({"username": "before", "email": "before@email.com"})

    updated = store.update("before@email.com", {"username": "after", "email": "after@email.com"})

    assert updated.id == created.id
    assert updated.username == "after"
    assert updated.email_hash == email_hash("after@email.com")
    assert updated.full_name == "before"
    assert store.read("after") == updated
    with pytest.raises(NotFoundError):
        store.read("before")


def test_update_rejects_invalid_values_without_changes(store: UserStore) -> None:
    created = store.create({"username": "steady", "email": "steady@email.com"})

    with pytest.raises(BlockedWordError):
        store.update("steady", {"username": "damn"})
    with pytest.raises(ValidationError):
        store.update("steady", {"email": "invalid", "is_admin": True})

    assert store.read(str(created.id)) == created


@pytest.mark.parametrize("field", ["username", "email", "full_name", "is_admin"])
def test_update_rejects_explicit_null(store: UserStore, field: str) -> None:
    created = store.create({"username": "nullish", "email": "nullish@email.com"})

    with pytest.raises(ValidationError):
        store.update("nullish", {field: None})

    assert store.read(str(created.id)) == created


def test_update_conflict_with_other_user(store: UserStore) -> None:
    store.create({"username": "one", "email": "one@email.com"})
    store.create({"username": "two", "email": "two@email.com"})

    with pytest.raises(ConflictError):
        store.update("two", {"email": "one@email.com"})


def test_update_to_own_username_is_allowed(store: UserStore) -> None:
    store.create({"username": "same"})
    assert store.update("same", {"username": "same"}).username == "same"


def test_update_missing_user(store: UserStore) -> None:
    with pytest.raises(NotFoundError):
        store.update("ghost@email.com", {})


def test_delete_then_everything_is_not_found(store: UserStore) -> None:
    created = store.create({"username": "doomed", "email": "doomed@email.com"})

    deleted = store.delete("doomed@email.com")
    assert deleted.id == created.id
    assert deleted.deleted_at is not None

    with pytest.raises(NotFoundError):
        store.read("doomed")
    with pytest.raises(NotFoundError):
        store.update("doomed", {"is_admin": True})
    with pytest.raises(NotFoundError):
        store.delete(str(created.id))


def test_is_admin(store: UserStore) -> None:
    store.create({"username": "boss", "is_admin": True})
    store.create({"username": "worker"})

    assert store.is_admin("boss") is True
    assert store.is_admin("worker") is False
    with pytest.raises(NotFoundError):
        store.is_admin("nobody")


def test_email_hash_is_deterministic() -> None:
    assert email_hash("A@Email.com") == email_hash("a@email.com")
    assert email_hash(None) == ""
