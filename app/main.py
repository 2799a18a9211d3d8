# app/main.py
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from app.api.routes.users import router as users_router
from app.core.config import Settings, settings as default_settings
from app.core.errors import ServiceError
from app.services.mailer import Mailer, SmtpMailer
from app.services.tokens import TokenKeys

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    """Build the application; collaborators are injected for tests."""
    settings = settings or default_settings
    logging.basicConfig(level=settings.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if session_factory is None:
        from app.db.session import SessionLocal
        session_factory = SessionLocal

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.mailer = mailer or SmtpMailer(settings)
    app.state.token_keys = TokenKeys.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", exc.code, request.url.path, exc.detail)
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": exc.code},
            headers=headers,
        )

    app.include_router(users_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
