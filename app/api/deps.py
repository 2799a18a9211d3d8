from typing import Iterator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.services.profiles import ProfileManager
from app.services.sessions import SessionManager
from app.services.store import CredentialStore
from app.services.tokens import TokenService
from app.services.verification import VerificationService


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_token_service(request: Request, store: CredentialStore = Depends(get_store)) -> TokenService:
    return TokenService(request.app.state.token_keys, store)


def get_verification(
    request: Request,
    store: CredentialStore = Depends(get_store),
    tokens: TokenService = Depends(get_token_service),
) -> VerificationService:
    s = request.app.state.settings
    return VerificationService(store, tokens, request.app.state.mailer, s.app_base_url)


def get_session_manager(
    request: Request,
    store: CredentialStore = Depends(get_store),
    tokens: TokenService = Depends(get_token_service),
    verification: VerificationService = Depends(get_verification),
) -> SessionManager:
    s = request.app.state.settings
    return SessionManager(store, tokens, verification,
                          revoke_sessions_on_password_change=s.revoke_sessions_on_password_change)


def get_profiles(request: Request, store: CredentialStore = Depends(get_store)) -> ProfileManager:
    return ProfileManager(store, search_limit=request.app.state.settings.search_result_limit)
