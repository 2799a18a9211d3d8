# app/services/tokens.py
"""
Issue and verify the four token kinds.

Tokens are HS256 JWTs. The only server-side state is the refresh-token
allow-list in the credential store: a refresh token is honoured only while
its record exists, whatever its ``exp`` claim says.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Optional, Tuple
from uuid import uuid4
import logging

import jwt

from app.core.config import Settings
from app.core.errors import SigningError, TokenExpired, TokenInvalid, TokenKindMismatch
from app.core.security import ensure_aware, now_utc
from app.models.user import VerifyStatus
from app.schemas.auth import TokenPair, TokenPayload
from app.services.store import CredentialStore, UserId

logger = logging.getLogger(__name__)

ALGO = "HS256"
REQUIRED_CLAIMS = ["sub", "kind", "verify_status", "iat", "exp", "jti"]


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    EMAIL_VERIFY = "email_verify"
    FORGOT_PASSWORD_VERIFY = "forgot_password_verify"


@dataclass(frozen=True)
class TokenKeys:
    """Signing material and lifetimes, built once at startup."""

    secret: str
    issuer: str
    ttl: Dict[TokenKind, timedelta]
    secrets: Dict[TokenKind, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, s: Settings) -> "TokenKeys":
        return cls(
            secret=s.jwt_secret,
            issuer=s.jwt_issuer,
            ttl={
                TokenKind.ACCESS: timedelta(minutes=s.access_ttl_min),
                TokenKind.REFRESH: timedelta(days=s.refresh_ttl_days),
                TokenKind.EMAIL_VERIFY: timedelta(hours=s.email_verify_exp_hours),
                TokenKind.FORGOT_PASSWORD_VERIFY: timedelta(hours=s.password_reset_exp_hours),
            },
            secrets={
                TokenKind.ACCESS: s.jwt_secret_access,
                TokenKind.REFRESH: s.jwt_secret_refresh,
                TokenKind.EMAIL_VERIFY: s.jwt_secret_email_verify,
                TokenKind.FORGOT_PASSWORD_VERIFY: s.jwt_secret_forgot_password,
            },
        )

    def secret_for(self, kind: TokenKind) -> str:
        return self.secrets.get(kind) or self.secret


def _ts(dt: datetime) -> int:
    return int(dt.timestamp())


class TokenService:
    def __init__(self, keys: TokenKeys, store: CredentialStore) -> None:
        self.keys = keys
        self.store = store

    def _sign(self, kind: TokenKind, user_id: UserId, verify_status: VerifyStatus,
              expires_at: Optional[datetime] = None) -> Tuple[str, datetime, datetime]:
        secret = self.keys.secret_for(kind)
        if not secret:
            raise SigningError(f"No signing key configured for {kind.value} tokens")
        # whole seconds, so stored timestamps match the iat/exp claims
        issued_at = now_utc().replace(microsecond=0)
        if expires_at is None:
            expires_at = issued_at + self.keys.ttl[kind]
        payload = {
            "iss": self.keys.issuer,
            "sub": str(user_id),
            "kind": kind.value,
            "verify_status": VerifyStatus(verify_status).value,
            "iat": _ts(issued_at),
            "exp": _ts(expires_at),
            "jti": uuid4().hex,
        }
        try:
            token = jwt.encode(payload, secret, algorithm=ALGO)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            raise SigningError(f"Could not sign {kind.value} token: {e}") from e
        return token, issued_at, expires_at

    def issue(self, kind: TokenKind, user_id: UserId, verify_status: VerifyStatus,
              expires_at: Optional[datetime] = None) -> str:
        """
        Sign a token of ``kind`` for ``user_id``.

        Refresh tokens are also written to the allow-list. ``expires_at``
        overrides the kind's lifetime; rotation uses it to keep the original
        refresh expiry.
        """
        kind = TokenKind(kind)
        token, issued_at, expires = self._sign(kind, user_id, verify_status, expires_at)
        if kind is TokenKind.REFRESH:
            self.store.insert_refresh_token(token, user_id, issued_at, expires)
        return token

    def issue_pair(self, user_id: UserId, verify_status: VerifyStatus,
                   refresh_expires_at: Optional[datetime] = None) -> TokenPair:
        return TokenPair(
            access_token=self.issue(TokenKind.ACCESS, user_id, verify_status),
            refresh_token=self.issue(TokenKind.REFRESH, user_id, verify_status,
                                     expires_at=refresh_expires_at),
        )

    def verify(self, token: str, expected_kind: TokenKind) -> TokenPayload:
        """Check signature, issuer, expiry and kind. Does not consult the store."""
        expected_kind = TokenKind(expected_kind)
        if not token:
            raise TokenInvalid("Token is required")
        secret = self.keys.secret_for(expected_kind)
        if not secret:
            raise SigningError(f"No signing key configured for {expected_kind.value} tokens")
        try:
            data = jwt.decode(
                token, secret, algorithms=[ALGO], issuer=self.keys.issuer,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired() from e
        except jwt.PyJWTError as e:
            logger.debug("Rejected %s token: %s", expected_kind.value, e)
            raise TokenInvalid() from e

        if data.get("kind") != expected_kind.value:
            raise TokenKindMismatch(
                f"Expected a {expected_kind.value} token, got {data.get('kind')!r}"
            )
        try:
            return TokenPayload(
                user_id=data["sub"],
                kind=data["kind"],
                verify_status=VerifyStatus(data["verify_status"]).value,
                iat=data["iat"],
                exp=data["exp"],
                jti=data["jti"],
            )
        except ValueError as e:
            raise TokenInvalid("Token payload malformed") from e

    def verify_refresh(self, token: str) -> TokenPayload:
        """Verify a refresh token and require its allow-list record."""
        payload = self.verify(token, TokenKind.REFRESH)
        rec = self.store.find_refresh_token(token)
        if rec is None:
            raise TokenInvalid("Refresh token has been revoked or was never issued")
        expires = ensure_aware(rec.expires_at)
        if expires is not None and expires <= now_utc():
            raise TokenExpired()
        return payload

    def revoke_refresh(self, token: str) -> bool:
        """Delete the allow-list record. Idempotent; True if one was removed."""
        return self.store.delete_refresh_token(token)

    def rotate_refresh(self, token: str,
                       verify_status: Optional[VerifyStatus] = None) -> TokenPair:
        """
        Swap a refresh token for a new pair carrying the same expiry.

        ``verify_status`` is the account's current status; without it the
        old token's claim is copied.
        """
        payload = self.verify_refresh(token)
        if not self.store.delete_refresh_token(token):
            # a concurrent rotation consumed it first
            raise TokenInvalid("Refresh token has been revoked or was never issued")
        old_exp = datetime.fromtimestamp(payload.exp, tz=timezone.utc)
        status = VerifyStatus(verify_status or payload.verify_status)
        return self.issue_pair(payload.user_id, status, refresh_expires_at=old_exp)
