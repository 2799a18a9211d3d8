"""Tests for registration, login, refresh, logout and password changes."""
from uuid import uuid4

import pytest

from app.core.errors import (
    AccountBanned, EmailAlreadyExists, InvalidCredentials, SigningError, TokenInvalid,
    UserNotFound,
)
from app.core.security import verify_password
from app.models.user import VerifyStatus
from app.services.sessions import SessionManager
from app.services.tokens import TokenKind

from conftest import PASSWORD


def test_register_opens_unverified_session(sessions, tokens, store):
    result = sessions.register("  Alice@Example.com ", "secret-1", " Alice ")

    assert result.user.email == "alice@example.com"
    assert result.user.name == "Alice"
    assert result.user.verify_status == VerifyStatus.UNVERIFIED
    access = tokens.verify(result.access_token, TokenKind.ACCESS)
    assert access.verify_status == "Unverified"
    assert store.find_refresh_token(result.refresh_token) is not None

    user = store.find_user_by_email("alice@example.com")
    assert user.password_hash != "secret-1"
    assert verify_password("secret-1", user.password_hash)


def test_register_duplicate_email(sessions):
    sessions.register("alice@example.com", "secret-1", "Alice")
    with pytest.raises(EmailAlreadyExists):
        sessions.register("ALICE@example.com", "secret-2", "Other Alice")


def test_authenticate(sessions, make_user):
    alice = make_user("alice@example.com")
    assert sessions.authenticate("alice@example.com", PASSWORD).id == alice.id
    with pytest.raises(InvalidCredentials):
        sessions.authenticate("alice@example.com", "wrong")
    with pytest.raises(InvalidCredentials):
        sessions.authenticate("nobody@example.com", PASSWORD)


def test_login_and_logout(sessions, tokens, store, make_user):
    alice = make_user("alice@example.com")

    pair = sessions.login(alice.id, VerifyStatus.VERIFIED)
    assert tokens.verify(pair.access_token, TokenKind.ACCESS).verify_status == "Verified"
    assert store.find_refresh_token(pair.refresh_token) is not None

    sessions.logout(pair.refresh_token)
    assert store.find_refresh_token(pair.refresh_token) is None
    with pytest.raises(TokenInvalid):
        sessions.logout(pair.refresh_token)


def test_login_uses_stored_status(sessions, tokens, make_user):
    alice = make_user("alice@example.com", status=VerifyStatus.VERIFIED)
    pair = sessions.login(alice.id, VerifyStatus.UNVERIFIED)
    assert tokens.verify(pair.access_token, TokenKind.ACCESS).verify_status == "Verified"


def test_banned_user_cannot_log_in(sessions, make_user):
    mallory = make_user("mallory@example.com", status=VerifyStatus.BANNED)
    with pytest.raises(AccountBanned):
        sessions.login(mallory.id, VerifyStatus.BANNED)


def test_login_unknown_user(sessions):
    with pytest.raises(UserNotFound):
        sessions.login(uuid4(), VerifyStatus.VERIFIED)


def test_sessions_are_independent(sessions, store, make_user):
    alice = make_user("alice@example.com")
    laptop = sessions.login(alice.id, VerifyStatus.VERIFIED)
    phone = sessions.login(alice.id, VerifyStatus.VERIFIED)

    sessions.logout(laptop.refresh_token)

    assert store.find_refresh_token(phone.refresh_token) is not None


def test_refresh_rotates(sessions, store, make_user):
    alice = make_user("alice@example.com")
    pair = sessions.login(alice.id, VerifyStatus.VERIFIED)

    fresh = sessions.refresh(pair.refresh_token)

    assert fresh.refresh_token != pair.refresh_token
    with pytest.raises(TokenInvalid):
        sessions.refresh(pair.refresh_token)
    sessions.logout(fresh.refresh_token)
    with pytest.raises(TokenInvalid):
        sessions.refresh(fresh.refresh_token)


def test_change_password_keeps_sessions_by_default(sessions, store, make_user):
    alice = make_user("alice@example.com")
    pair = sessions.login(alice.id, VerifyStatus.VERIFIED)

    sessions.check_password(alice.id, PASSWORD)
    sessions.change_password(alice.id, "brand-new-1")

    assert sessions.authenticate("alice@example.com", "brand-new-1").id == alice.id
    assert store.find_refresh_token(pair.refresh_token) is not None


def test_change_password_can_revoke_sessions(store, tokens, verification, make_user):
    manager = SessionManager(store, tokens, verification,
                             revoke_sessions_on_password_change=True)
    alice = make_user("alice@example.com")
    pair = manager.login(alice.id, VerifyStatus.VERIFIED)

    manager.change_password(alice.id, "brand-new-1")

    assert store.find_refresh_token(pair.refresh_token) is None


def test_check_password_rejects_wrong_old_password(sessions, make_user):
    alice = make_user("alice@example.com")
    with pytest.raises(InvalidCredentials):
        sessions.check_password(alice.id, "not-it")


def test_change_password_unknown_user(sessions):
    with pytest.raises(UserNotFound):
        sessions.change_password(uuid4(), "brand-new-1")


def test_signing_failure_leaves_no_account(sessions, tokens, store, monkeypatch):
    def no_key(*args, **kwargs):
        raise SigningError("no key")

    monkeypatch.setattr(tokens, "issue", no_key)
    with pytest.raises(SigningError):
        sessions.register("alice@example.com", "secret-1", "Alice")
    assert store.find_user_by_email("alice@example.com") is None

    monkeypatch.undo()
    result = sessions.register("alice@example.com", "secret-1", "Alice")
    assert store.find_user_by_email("alice@example.com").email_verify_token
    assert result.user.email == "alice@example.com"


def test_refresh_carries_stored_status(sessions, verification, tokens, store):
    reg = sessions.register("alice@example.com", "secret-1", "Alice")
    alice = store.find_user_by_email("alice@example.com")
    verification.confirm_email_verification(alice.email_verify_token)

    fresh = sessions.refresh(reg.refresh_token)

    assert tokens.verify(fresh.access_token, TokenKind.ACCESS).verify_status == "Verified"
    assert tokens.verify(fresh.refresh_token, TokenKind.REFRESH).verify_status == "Verified"


def test_banned_user_cannot_refresh(sessions, store, make_user):
    alice = make_user("alice@example.com")
    pair = sessions.login(alice.id, VerifyStatus.VERIFIED)
    store.update_user(alice.id, {"verify_status": VerifyStatus.BANNED})

    with pytest.raises(AccountBanned):
        sessions.refresh(pair.refresh_token)
    assert store.find_refresh_token(pair.refresh_token) is None
