from datetime import datetime, timezone
from typing import Optional
import hashlib
import re
from passlib.context import CryptContext

pwd_ctx = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# 5-15 chars, starts with a word char, no "..", no trailing "."
USERNAME_RE = re.compile(r"^(?!.*\.\.)(?!.*\.$)[^\W][\w.]{4,14}$")

def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Return a timezone-aware UTC datetime. If naive, assume UTC."""
    if dt is None:
        return None
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)

def hash_password(p: str) -> str:
    return pwd_ctx.hash(p)

def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_ctx.verify(plain, hashed)

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def sha256(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()

def normalize_email(email: str) -> str:
    return (email or "").strip().lower()

def is_valid_username(username: str) -> bool:
    return bool(username) and USERNAME_RE.match(username) is not None
