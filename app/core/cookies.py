from fastapi import Response

from app.core.config import Settings


def set_session_cookie(response: Response, access_token: str, settings: Settings) -> None:
    """Attach the access token as an HttpOnly session cookie."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=access_token,
        max_age=settings.access_ttl_min * 60,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        domain=settings.session_cookie_domain or None,
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        domain=settings.session_cookie_domain or None,
        path="/",
    )
