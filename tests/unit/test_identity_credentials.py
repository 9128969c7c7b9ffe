import pytest

from messenger.domain.errors import UnknownUser, UsernameTaken, WrongPassword
from messenger.domain.identity import CredentialStore
from messenger.infra import password


def test_register_then_verify():
	store = CredentialStore()
	store.register("alice", "p4ss")
	assert "alice" in store
	assert store.verify("alice", "p4ss") is True
	assert store.verify("alice", "wrong") is False


def test_register_duplicate_username_rejected():
	store = CredentialStore()
	store.register("alice", "p4ss")
	with pytest.raises(UsernameTaken) as exc:
		store.register("alice", "other")
	assert exc.value.detail == "Username already taken"
	assert len(store) == 1
	assert store.verify("alice", "p4ss") is True


def test_verify_unknown_user_is_false():
	store = CredentialStore()
	assert store.verify("ghost", "anything") is False


def test_same_password_gets_distinct_salts():
	store = CredentialStore()
	store.register("alice", "shared")
	store.register("bob", "shared")
	alice = store._records["alice"]
	bob = store._records["bob"]
	assert alice.salt != bob.salt
	assert alice.password_hash != bob.password_hash


def test_change_password_rotates_salt():
	store = CredentialStore()
	store.register("alice", "old")
	before = store._records["alice"]
	store.change_password("alice", "old", "new")
	after = store._records["alice"]
	assert after.salt != before.salt
	assert store.verify("alice", "new") is True
	assert store.verify("alice", "old") is False


def test_change_password_wrong_current():
	store = CredentialStore()
	store.register("alice", "old")
	with pytest.raises(WrongPassword) as exc:
		store.change_password("alice", "nope", "new")
	assert exc.value.detail == "Current password is incorrect"
	assert store.verify("alice", "old") is True


def test_change_password_unknown_user():
	store = CredentialStore()
	with pytest.raises(UnknownUser):
		store.change_password("ghost", "a", "b")


def test_derive_hash_is_deterministic_per_salt():
	salt = password.new_salt()
	first = password.derive_hash("p4ss", salt)
	assert len(first) == 64
	assert password.hashes_match(first, password.derive_hash("p4ss", salt))
	assert not password.hashes_match(first, password.derive_hash("p4ss", password.new_salt()))


def test_register_issues_stable_user_id():
	store = CredentialStore()
	user_id = store.register("alice", "old")
	assert user_id
	assert store.user_id_for("alice") == user_id
	assert store.register("bob", "old") != user_id
	store.change_password("alice", "old", "new")
	assert store.user_id_for("alice") == user_id
	assert store.user_id_for("ghost") is None


def test_password_whitespace_is_significant():
	store = CredentialStore()
	store.register("alice", "p4ss ")
	assert store.verify("alice", "p4ss ") is True
	assert store.verify("alice", "p4ss") is False
