from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.api.deps import get_token_service
from app.core.errors import TokenInvalid, UserNotVerified
from app.models.user import VerifyStatus
from app.schemas.auth import TokenPayload
from app.services.tokens import TokenKind, TokenService


bearer = HTTPBearer(auto_error=False)


def current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    tokens: TokenService = Depends(get_token_service),
) -> TokenPayload:
    """
    Authenticate with an access token and return its decoded claims.

    The token is read from ``Authorization: Bearer <token>`` and, failing
    that, from the session cookie. Handlers receive the subject id and
    verify status from here and pass them on explicitly.
    """
    token = None
    if creds and creds.scheme.lower() == "bearer":
        token = creds.credentials
    if not token:
        token = request.cookies.get(request.app.state.settings.session_cookie_name)
    if not token:
        raise TokenInvalid("Missing or invalid Authorization header")
    return tokens.verify(token, TokenKind.ACCESS)


def verified_user(payload: TokenPayload = Depends(current_user)) -> TokenPayload:
    """Like :func:`current_user` but only for accounts that verified their email."""
    if payload.verify_status != VerifyStatus.VERIFIED.value:
        raise UserNotVerified()
    return payload
