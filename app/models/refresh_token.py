from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid
from app.db.base import Base


class RefreshToken(Base):
    """Allow-list entry: a refresh token is valid only while its row exists.

    Only the sha256 of the token is kept.
    """

    __tablename__ = "refresh_tokens"

    token_hash = Column(String(64), primary_key=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
