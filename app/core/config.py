from pydantic import BaseModel
import os


from dotenv import load_dotenv
load_dotenv()


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./app.db")
    app_name: str = os.getenv("APP_NAME", "Chirp Identity")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    # Optional per-kind secrets; empty means "use jwt_secret"
    jwt_secret_access: str = os.getenv("JWT_SECRET_ACCESS_TOKEN", "")
    jwt_secret_refresh: str = os.getenv("JWT_SECRET_REFRESH_TOKEN", "")
    jwt_secret_email_verify: str = os.getenv("JWT_SECRET_EMAIL_VERIFY_TOKEN", "")
    jwt_secret_forgot_password: str = os.getenv("JWT_SECRET_FORGOT_PASSWORD_TOKEN", "")
    jwt_issuer: str = os.getenv("JWT_ISSUER", "chirp-identity")
    access_ttl_min: int = int(os.getenv("ACCESS_TOKEN_TTL_MIN", "15"))
    refresh_ttl_days: int = int(os.getenv("REFRESH_TOKEN_TTL_DAYS", "30"))
    email_verify_exp_hours: int = int(os.getenv("EMAIL_VERIFY_EXP_HOURS", "24"))
    password_reset_exp_hours: int = int(os.getenv("PASSWORD_RESET_EXP_HOURS", "24"))

    # Keep other devices signed in after a password change unless enabled
    revoke_sessions_on_password_change: bool = _flag("REVOKE_SESSIONS_ON_PASSWORD_CHANGE")

    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "access_token")
    session_cookie_secure: bool = _flag("SESSION_COOKIE_SECURE", "1")
    session_cookie_domain: str = os.getenv("SESSION_COOKIE_DOMAIN", "")

    smtp_server: str = os.getenv("SMTP_SERVER", "")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_user: str = os.getenv("SMTP_USER", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    mail_from: str = os.getenv("MAIL_FROM", "")
    mail_from_name: str = os.getenv("MAIL_FROM_NAME", "Chirp")

    app_base_url: str = os.getenv("APP_BASE_URL", "http://localhost:3000")
    search_result_limit: int = int(os.getenv("SEARCH_RESULT_LIMIT", "50"))

settings = Settings()
