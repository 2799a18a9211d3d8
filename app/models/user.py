from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4
from sqlalchemy import Column, Date, DateTime, String, Text, Uuid, Enum as SAEnum
from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerifyStatus(str, Enum):
    UNVERIFIED = "Unverified"
    VERIFIED = "Verified"
    BANNED = "Banned"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String(320), unique=True, index=True, nullable=False)  # store lowercase
    name = Column(String(120), nullable=False, default="")
    username = Column(String(50), unique=True, index=True, nullable=True)
    password_hash = Column(String(255), nullable=False)
    verify_status = Column(
        SAEnum(VerifyStatus, name="verify_status", native_enum=False,
               values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=VerifyStatus.UNVERIFIED,
    )
    # '' once consumed, NULL never issued
    email_verify_token = Column(Text, nullable=True)
    forgot_password_token = Column(Text, nullable=True)

    avatar_url = Column(String(2048), nullable=True)
    cover_photo_url = Column(String(2048), nullable=True)
    bio = Column(String(400), nullable=True)
    location = Column(String(120), nullable=True)
    website = Column(String(2048), nullable=True)
    date_of_birth = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
