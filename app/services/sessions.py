# app/services/sessions.py
from typing import Optional
from datetime import date
from uuid import uuid4
import logging

from app.core.errors import (
    AccountBanned, EmailAlreadyExists, InvalidCredentials, TokenInvalid, UserNotFound,
)
from app.core.messages import Messages
from app.core.security import hash_password, normalize_email, verify_password
from app.models.user import User, VerifyStatus
from app.schemas.auth import MessageResponse, RegisterResponse, TokenPair
from app.schemas.users import UserOut
from app.services.store import CredentialStore, DuplicateRecord, UserId
from app.services.tokens import TokenKind, TokenService
from app.services.verification import VerificationService

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(self, store: CredentialStore, tokens: TokenService,
                 verification: VerificationService,
                 revoke_sessions_on_password_change: bool = False) -> None:
        self.store = store
        self.tokens = tokens
        self.verification = verification
        self.revoke_sessions_on_password_change = revoke_sessions_on_password_change

    def register(self, email: str, password: str, name: str,
                 date_of_birth: Optional[date] = None) -> RegisterResponse:
        """
        Create an unverified account, mail its verification link and open a
        session right away.
        """
        email = normalize_email(email)
        if self.store.find_user_by_email(email) is not None:
            raise EmailAlreadyExists()

        # signed before the insert, so a signing failure leaves no half-made account
        user_id = uuid4()
        verify_token = self.tokens.issue(TokenKind.EMAIL_VERIFY, user_id, VerifyStatus.UNVERIFIED)
        user = User(
            id=user_id,
            email=email,
            name=name.strip(),
            password_hash=hash_password(password),
            verify_status=VerifyStatus.UNVERIFIED,
            email_verify_token=verify_token,
            date_of_birth=date_of_birth,
        )
        try:
            self.store.insert_user(user)
        except DuplicateRecord as e:
            # lost a race with a concurrent registration for the same email
            raise EmailAlreadyExists() from e

        self.verification.mail_email_verification(user, verify_token)
        pair = self.tokens.issue_pair(user.id, VerifyStatus.UNVERIFIED)
        logger.info("Registered user %s", user.id)
        return RegisterResponse(
            message=Messages.REGISTER_SUCCESS,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user=UserOut.model_validate(user),
        )

    def authenticate(self, email: str, password: str) -> User:
        """Credential check performed before :meth:`login`."""
        user = self.store.find_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentials()
        return user

    def login(self, user_id: UserId, verify_status: VerifyStatus) -> TokenPair:
        """
        Open a session for an already authenticated user.

        The stored status wins over the one supplied by the caller, so a
        token is never minted with a stale status.
        """
        user = self.store.find_user_by_id(user_id)
        if user is None:
            raise UserNotFound()
        stored = VerifyStatus(user.verify_status)
        if VerifyStatus(verify_status) != stored:
            logger.info("Login for %s with stale status %s; using stored %s",
                        user.id, VerifyStatus(verify_status).value, stored.value)
        if stored == VerifyStatus.BANNED:
            raise AccountBanned()
        return self.tokens.issue_pair(user.id, stored)

    def refresh(self, refresh_token: str) -> TokenPair:
        """Rotate a refresh token; the new pair carries the stored status."""
        payload = self.tokens.verify_refresh(refresh_token)
        user = self.store.find_user_by_id(payload.user_id)
        if user is None:
            raise UserNotFound()
        if user.verify_status == VerifyStatus.BANNED:
            self.tokens.revoke_refresh(refresh_token)
            raise AccountBanned()
        return self.tokens.rotate_refresh(refresh_token, verify_status=user.verify_status)

    def logout(self, refresh_token: str) -> MessageResponse:
        if not self.tokens.revoke_refresh(refresh_token):
            raise TokenInvalid("Refresh token has been revoked or was never issued")
        return MessageResponse(message=Messages.LOGOUT_SUCCESS)

    def change_password(self, user_id: UserId, new_password: str) -> MessageResponse:
        if not self.store.update_user(user_id, {"password_hash": hash_password(new_password)}):
            raise UserNotFound()
        if self.revoke_sessions_on_password_change:
            revoked = self.store.delete_refresh_tokens_for_user(user_id)
            logger.info("Password changed for %s; revoked %d session(s)", user_id, revoked)
        return MessageResponse(message=Messages.CHANGE_PASSWORD_SUCCESS)

    def check_password(self, user_id: UserId, password: str) -> None:
        user = self.store.find_user_by_id(user_id)
        if user is None:
            raise UserNotFound()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentials("Old password is incorrect")
