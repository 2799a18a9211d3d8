"""Shared pytest fixtures for the identity service tests."""
from datetime import timedelta
from typing import Dict, List, Mapping

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.security import hash_password
from app.db.model_registry import metadata
from app.main import create_app
from app.models.user import User, VerifyStatus
from app.services.profiles import ProfileManager
from app.services.sessions import SessionManager
from app.services.store import CredentialStore
from app.services.tokens import TokenKeys, TokenKind, TokenService
from app.services.verification import VerificationService

SECRET = "test-secret"
PASSWORD = "correct horse"


class RecordingMailer:
    """Keeps sent mail in memory instead of talking to SMTP."""

    def __init__(self) -> None:
        self.sent: List[Dict] = []

    def send(self, to: str, subject: str, template_fields: Mapping[str, str]) -> str:
        self.sent.append({"to": to, "subject": subject, "fields": dict(template_fields)})
        return f"<{len(self.sent)}@mail.test>"

    def last_token(self) -> str:
        return self.sent[-1]["fields"]["link"].split("token=", 1)[1]


class FailingMailer:
    def send(self, to: str, subject: str, template_fields: Mapping[str, str]) -> str:
        raise ConnectionError("smtp unreachable")


def make_keys(**ttl_overrides) -> TokenKeys:
    ttl = {
        TokenKind.ACCESS: timedelta(minutes=15),
        TokenKind.REFRESH: timedelta(days=30),
        TokenKind.EMAIL_VERIFY: timedelta(hours=24),
        TokenKind.FORGOT_PASSWORD_VERIFY: timedelta(hours=24),
    }
    ttl.update(ttl_overrides)
    return TokenKeys(secret=SECRET, issuer="chirp-test", ttl=ttl)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        jwt_secret=SECRET,
        jwt_secret_access="",
        jwt_secret_refresh="",
        jwt_secret_email_verify="",
        jwt_secret_forgot_password="",
        jwt_issuer="chirp-test",
        session_cookie_secure=False,
        app_base_url="http://app.test",
        revoke_sessions_on_password_change=False,
        smtp_server="",
    )


@pytest.fixture()
def engine():
    # one shared in-memory connection so every session sees the same tables
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(bind=engine)
    yield engine
    metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db) -> CredentialStore:
    return CredentialStore(db)


@pytest.fixture()
def keys() -> TokenKeys:
    return make_keys()


@pytest.fixture()
def tokens(keys, store) -> TokenService:
    return TokenService(keys, store)


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def verification(store, tokens, mailer) -> VerificationService:
    return VerificationService(store, tokens, mailer, "http://app.test")


@pytest.fixture()
def sessions(store, tokens, verification) -> SessionManager:
    return SessionManager(store, tokens, verification)


@pytest.fixture()
def profiles(store) -> ProfileManager:
    return ProfileManager(store, search_limit=50)


@pytest.fixture()
def make_user(store):
    """Insert a user directly, bypassing registration."""

    def _make(email: str, name: str = "Someone", status: VerifyStatus = VerifyStatus.VERIFIED,
              username: str | None = None, password: str = PASSWORD) -> User:
        user = User(email=email, name=name, username=username,
                    password_hash=hash_password(password), verify_status=status)
        return store.insert_user(user)

    return _make


@pytest.fixture()
def client(settings, session_factory, mailer):
    app = create_app(settings=settings, session_factory=session_factory, mailer=mailer)
    with TestClient(app) as c:
        yield c
