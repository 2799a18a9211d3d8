# app/services/verification.py
"""
Email verification and password-reset flows.

Both flows store the outstanding token on the user row
(``email_verify_token`` / ``forgot_password_token``). The stored value is
what makes a token single use: a signature that still verifies is rejected
once the stored value no longer equals it. Consumption is a compare-and-set
on that column, so concurrent confirmations of the same token produce one
success.
"""
from typing import Optional
import logging

from app.core.errors import (
    AccountBanned, TokenExpired, TokenInvalid, UserNotFound,
)
from app.core.messages import Messages, ResultCode
from app.core.security import hash_password
from app.models.user import User, VerifyStatus
from app.schemas.auth import MessageResponse, TokenPayload, VerifyResponse
from app.services.mailer import Mailer, send_best_effort
from app.services.store import CredentialStore, UserId
from app.services.tokens import TokenKind, TokenService

logger = logging.getLogger(__name__)


class VerificationService:
    def __init__(self, store: CredentialStore, tokens: TokenService, mailer: Mailer,
                 app_base_url: str) -> None:
        self.store = store
        self.tokens = tokens
        self.mailer = mailer
        self.app_base_url = app_base_url.rstrip("/")

    # ---- links & mail ----

    def verify_link(self, token: str) -> str:
        return f"{self.app_base_url}/auth/verify-email?token={token}"

    def reset_link(self, token: str) -> str:
        return f"{self.app_base_url}/auth/reset-password?token={token}"

    def mail_email_verification(self, user: User, token: str) -> Optional[str]:
        return send_best_effort(self.mailer, user.email, "Verify your email", {
            "name": user.name,
            "button_content": "Verify your email",
            "instructions": "To verify your email please click the button below.",
            "link": self.verify_link(token),
        })

    def _mail_reset(self, user: User, token: str) -> Optional[str]:
        return send_best_effort(self.mailer, user.email, "Reset your password", {
            "name": user.name,
            "button_content": "Reset password",
            "instructions": "We received a request to reset your password. "
                            "Click the button below to choose a new one.",
            "link": self.reset_link(token),
        })

    def _load(self, user_id: UserId) -> User:
        user = self.store.find_user_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return user

    # ---- email verification ----

    def issue_email_verification(self, user: User) -> str:
        """Mint a fresh EmailVerify token, store it over any previous one, mail it."""
        token = self.tokens.issue(TokenKind.EMAIL_VERIFY, user.id, user.verify_status)
        self.store.update_user(user.id, {"email_verify_token": token})
        self.mail_email_verification(user, token)
        return token

    def request_email_verification(self, user_id: UserId) -> MessageResponse:
        """Resend: rotate the verification token, invalidating the old link."""
        user = self._load(user_id)
        if user.verify_status == VerifyStatus.VERIFIED:
            return MessageResponse(message=Messages.EMAIL_ALREADY_VERIFIED_BEFORE,
                                   code=ResultCode.ALREADY_VERIFIED)
        if user.verify_status == VerifyStatus.BANNED:
            raise AccountBanned()
        self.issue_email_verification(user)
        logger.info("Rotated email verification token for %s", user.id)
        return MessageResponse(message=Messages.CHECK_EMAIL_TO_VERIFY)

    def send_email_verification(self, user_id: UserId) -> MessageResponse:
        """Mail the currently outstanding token again without rotating it."""
        user = self._load(user_id)
        if user.verify_status == VerifyStatus.BANNED:
            raise AccountBanned()
        if user.verify_status == VerifyStatus.VERIFIED or user.email_verify_token == "":
            return MessageResponse(message=Messages.EMAIL_ALREADY_VERIFIED_BEFORE,
                                   code=ResultCode.ALREADY_VERIFIED)
        if user.email_verify_token is None:
            # never issued, e.g. an imported account
            return self.request_email_verification(user.id)
        receipt = self.mail_email_verification(user, user.email_verify_token)
        if receipt is None:
            return MessageResponse(ok=False, message="Could not send verification email")
        return MessageResponse(message=Messages.VERIFY_EMAIL_SENT)

    def confirm_email_verification(self, token: str) -> VerifyResponse:
        payload = self.tokens.verify(token, TokenKind.EMAIL_VERIFY)
        user = self._load(payload.user_id)

        if user.verify_status == VerifyStatus.BANNED:
            raise AccountBanned()
        if user.email_verify_token == "":
            return self._already_verified()
        if user.email_verify_token != token:
            raise TokenInvalid("Verification link has been superseded")

        won = self.store.compare_and_set_user(
            user.id, "email_verify_token", token,
            {"email_verify_token": "", "verify_status": VerifyStatus.VERIFIED},
            also={"verify_status": VerifyStatus.UNVERIFIED},
        )
        if not won:
            current = self._load(user.id)
            if current.verify_status == VerifyStatus.BANNED:
                raise AccountBanned()
            if current.email_verify_token == "":
                return self._already_verified()
            raise TokenInvalid("Verification link has been superseded")

        logger.info("User %s verified their email", user.id)
        pair = self.tokens.issue_pair(user.id, VerifyStatus.VERIFIED)
        return VerifyResponse(message=Messages.EMAIL_VERIFY_SUCCESS, tokens=pair)

    @staticmethod
    def _already_verified() -> VerifyResponse:
        return VerifyResponse(message=Messages.EMAIL_ALREADY_VERIFIED_BEFORE,
                              code=ResultCode.ALREADY_VERIFIED)

    # ---- password reset ----

    def _outstanding_reset(self, user: User) -> bool:
        """True when the stored reset token is still usable."""
        if not user.forgot_password_token:
            return False
        try:
            self.tokens.verify(user.forgot_password_token, TokenKind.FORGOT_PASSWORD_VERIFY)
        except (TokenExpired, TokenInvalid):
            return False
        return True

    def request_password_reset(self, email: str) -> MessageResponse:
        user = self.store.find_user_by_email(email)
        if user is None:
            raise UserNotFound()
        if self._outstanding_reset(user):
            return MessageResponse(message=Messages.ALREADY_SEND_FORGOT_PASSWORD_EMAIL,
                                   code=ResultCode.ALREADY_REQUESTED)

        token = self.tokens.issue(TokenKind.FORGOT_PASSWORD_VERIFY, user.id, user.verify_status)
        won = self.store.compare_and_set_user(
            user.id, "forgot_password_token", user.forgot_password_token,
            {"forgot_password_token": token},
        )
        if not won:
            # a concurrent request stored its own token and sends its own mail
            return MessageResponse(message=Messages.ALREADY_SEND_FORGOT_PASSWORD_EMAIL,
                                   code=ResultCode.ALREADY_REQUESTED)
        self._mail_reset(user, token)
        logger.info("Password reset requested for %s", user.id)
        return MessageResponse(message=Messages.CHECK_EMAIL_TO_RESET_PASSWORD)

    def check_password_reset_token(self, token: str) -> TokenPayload:
        """Validate a reset token without consuming it."""
        payload = self.tokens.verify(token, TokenKind.FORGOT_PASSWORD_VERIFY)
        user = self._load(payload.user_id)
        if not user.forgot_password_token or user.forgot_password_token != token:
            raise TokenInvalid("Reset link has already been used")
        return payload

    def confirm_password_reset(self, token: str, new_password: str) -> MessageResponse:
        payload = self.check_password_reset_token(token)
        won = self.store.compare_and_set_user(
            payload.user_id, "forgot_password_token", token,
            {"password_hash": hash_password(new_password), "forgot_password_token": None},
        )
        if not won:
            raise TokenInvalid("Reset link has already been used")
        revoked = self.store.delete_refresh_tokens_for_user(payload.user_id)
        logger.info("Password reset for %s; revoked %d session(s)", payload.user_id, revoked)
        return MessageResponse(message=Messages.RESET_PASSWORD_SUCCESS)
