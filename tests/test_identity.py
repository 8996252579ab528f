from __future__ import annotations

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from socialapp.core.errors import (
    AlreadyFollowingError,
    ConflictError,
    NotFollowingError,
    NotFoundError,
    SelfFollowError,
    UnauthorizedError,
    ValidationError,
)
from socialapp.services import identity, wallet


def _sign(account, nonce: str) -> str:
    signed = account.sign_message(encode_defunct(text=wallet.login_message(nonce)))
    return "0x" + bytes(signed.signature).hex()


def test_create_user_sets_defaults_and_hashes_password(db, make_user) -> None:
    user = make_user("alice", password="secret123", email="alice@example.com")

    assert user.id is not None
    assert user.bio == "Hey there! I'm alice"
    assert user.avatar_url.startswith("https://ui-avatars.com/api/?name=alice")
    assert user.password_hash and user.password_hash != "secret123"
    assert identity.validate_credential(user, "secret123") is True
    assert identity.validate_credential(user, "wrong-password") is False


def test_create_user_rejects_duplicates(db, make_user) -> None:
    make_user("alice", password="secret123", email="alice@example.com")

    with pytest.raises(ConflictError):
        make_user("alice", password="secret123")
    with pytest.raises(ConflictError):
        make_user("alice2", password="secret123", email="alice@example.com")


@pytest.mark.parametrize("username", ["ab", "x" * 51, "bad name", "semi;colon"])
def test_create_user_rejects_bad_usernames(db, make_user, username) -> None:
    with pytest.raises(ValidationError):
        make_user(username, password="secret123")


def test_create_user_rejects_short_password(db, make_user) -> None:
    with pytest.raises(ValidationError):
        make_user("alice", password="12345")


def test_passwordless_user_never_validates(db, make_user) -> None:
    user = make_user("walletonly")
    assert user.password_hash is None
    assert identity.validate_credential(user, "") is False
    assert identity.validate_credential(user, "anything") is False
    assert identity.validate_credential(None, "anything") is False


def test_authenticate_uses_one_message_for_unknown_user_and_bad_password(db, make_user) -> None:
    make_user("alice", password="secret123")

    with pytest.raises(ValidationError) as unknown:
        identity.authenticate(db, "nobody", "secret123")
    with pytest.raises(ValidationError) as wrong:
        identity.authenticate(db, "alice", "nope-nope")

    assert unknown.value.message == wrong.value.message == "Invalid credentials"
    assert identity.authenticate(db, "alice", "secret123").username == "alice"


def test_update_profile_only_touches_profile_fields(db, make_user) -> None:
    user = make_user("alice", password="secret123")
    original_hash = user.password_hash

    updated = identity.update_profile(
        db,
        user.id,
        {"bio": "gm", "location": "Lisbon", "website": None, "username": "mallory", "password_hash": "x"},
    )

    assert updated.bio == "gm"
    assert updated.location == "Lisbon"
    assert updated.website == ""
    assert updated.username == "alice"
    assert updated.password_hash == original_hash
    assert updated.followers_count == 0


def test_update_profile_missing_user(db) -> None:
    with pytest.raises(NotFoundError):
        identity.update_profile(db, 999, {"bio": "gm"})


def test_search_users_is_case_insensitive_substring(db, make_user) -> None:
    make_user("CryptoKitty")
    make_user("kitten_fan")
    make_user("doggo")

    names = [u.username for u in identity.search_users(db, "KIT")]
    assert names == ["CryptoKitty", "kitten_fan"]
    assert identity.search_users(db, "%") == []


def test_recommendations_exclude_viewer(db, make_user) -> None:
    alice = make_user("alice")
    make_user("bob")
    make_user("carol")

    names = {u.username for u in identity.get_recommendations(db, alice.id)}
    assert names == {"bob", "carol"}


# ---------- Follow graph ----------

def test_follow_then_stats_and_lists(db, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")

    identity.follow(db, alice.id, bob.id)

    assert identity.is_following(db, alice.id, bob.id) is True
    assert identity.is_following(db, bob.id, alice.id) is False
    assert identity.follow_stats(db, bob.id) == (1, 0)
    assert identity.follow_stats(db, alice.id) == (0, 1)
    assert [u.username for u in identity.get_followers(db, bob.id)] == ["alice"]
    assert [u.username for u in identity.get_following(db, alice.id)] == ["bob"]

    found = identity.find_by_id(db, bob.id, include_stats=True)
    assert (found.followers_count, found.following_count) == (1, 0)


def test_follow_twice_is_a_conflict(db, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    identity.follow(db, alice.id, bob.id)

    with pytest.raises(AlreadyFollowingError) as exc:
        identity.follow(db, alice.id, bob.id)
    assert isinstance(exc.value, ConflictError)
    assert identity.follow_stats(db, bob.id) == (1, 0)


def test_self_follow_rejected(db, make_user) -> None:
    alice = make_user("alice")
    with pytest.raises(SelfFollowError) as exc:
        identity.follow(db, alice.id, alice.id)
    assert isinstance(exc.value, ValidationError)


def test_follow_unknown_user(db, make_user) -> None:
    alice = make_user("alice")
    with pytest.raises(NotFoundError):
        identity.follow(db, alice.id, 424242)


def test_unfollow_without_edge_is_not_found(db, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")

    with pytest.raises(NotFollowingError) as exc:
        identity.unfollow(db, alice.id, bob.id)
    assert isinstance(exc.value, NotFoundError)

    identity.follow(db, alice.id, bob.id)
    identity.unfollow(db, alice.id, bob.id)
    assert identity.is_following(db, alice.id, bob.id) is False


# ---------- Wallet login ----------

def test_wallet_login_signs_up_then_logs_in(db) -> None:
    account = Account.create()

    nonce = wallet.issue_nonce(db, account.address)
    assert len(nonce) == 6 and nonce.isdigit()

    user, created = identity.wallet_login(
        db, address=account.address, signature=_sign(account, nonce), username="satoshi", bcrypt_rounds=4
    )
    assert created is True
    assert user.wallet_address == account.address.lower()
    assert user.password_hash is None

    nonce = wallet.issue_nonce(db, account.address)
    again, created = identity.wallet_login(db, address=account.address, signature=_sign(account, nonce))
    assert created is False
    assert again.id == user.id


def test_wallet_nonce_is_single_use(db) -> None:
    account = Account.create()
    nonce = wallet.issue_nonce(db, account.address)
    signature = _sign(account, nonce)

    identity.wallet_login(db, address=account.address, signature=signature, username="satoshi", bcrypt_rounds=4)

    with pytest.raises(ValidationError):
        identity.wallet_login(db, address=account.address, signature=signature)


def test_wallet_login_rejects_someone_elses_signature(db) -> None:
    owner = Account.create()
    attacker = Account.create()
    nonce = wallet.issue_nonce(db, owner.address)

    with pytest.raises(UnauthorizedError):
        identity.wallet_login(db, address=owner.address, signature=_sign(attacker, nonce), username="mallory")


def test_new_wallet_needs_username_and_keeps_nonce(db) -> None:
    account = Account.create()
    nonce = wallet.issue_nonce(db, account.address)
    signature = _sign(account, nonce)

    with pytest.raises(ValidationError):
        identity.wallet_login(db, address=account.address, signature=signature)

    user, created = identity.wallet_login(
        db, address=account.address, signature=signature, username="retry_ok", bcrypt_rounds=4
    )
    assert created is True
    assert user.username == "retry_ok"


def test_wallet_address_format_checked(db) -> None:
    with pytest.raises(ValidationError):
        wallet.issue_nonce(db, "0x1234")


def test_wallet_login_rejects_malformed_signature(db) -> None:
    account = Account.create()
    wallet.issue_nonce(db, account.address)

    with pytest.raises(ValidationError):
        identity.wallet_login(db, address=account.address, signature="0xnothex", username="satoshi")


# ---------- Unique-constraint backstops ----------

def test_concurrent_duplicate_follow_becomes_already_following(db, make_user, monkeypatch) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    identity.follow(db, alice.id, bob.id)

    # Second request raced past the existence check
    monkeypatch.setattr(identity, "is_following", lambda *_: False)
    with pytest.raises(AlreadyFollowingError):
        identity.follow(db, alice.id, bob.id)

    assert identity.follow_stats(db, bob.id) == (1, 0)


def test_concurrent_duplicate_username_becomes_conflict(db, make_user, monkeypatch) -> None:
    make_user("alice", password="secret123")

    monkeypatch.setattr(identity, "find_by_username", lambda *_: None)
    with pytest.raises(ConflictError):
        make_user("alice", password="secret123")

    monkeypatch.undo()
    assert identity.find_by_username(db, "alice") is not None
