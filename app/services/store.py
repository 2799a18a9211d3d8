# app/services/store.py
"""
Data access for users, refresh tokens and follow edges.

No policy lives here: callers decide what a missing row or a lost
compare-and-set means. Every mutating call commits its own transaction so
each operation is atomic per record.
"""
from datetime import datetime
from typing import Any, List, Optional, Union
from uuid import UUID
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import normalize_email, sha256
from app.models.follower import Follower
from app.models.refresh_token import RefreshToken
from app.models.user import User

logger = logging.getLogger(__name__)

UserId = Union[UUID, str]

# Columns a patch may touch; anything else is a programming error
USER_PATCHABLE = {
    "name", "username", "password_hash", "verify_status",
    "email_verify_token", "forgot_password_token",
    "avatar_url", "cover_photo_url", "bio", "location", "website", "date_of_birth",
}


def as_uuid(value: UserId) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _check_patch(patch: dict) -> None:
    unknown = set(patch) - USER_PATCHABLE
    if unknown:
        raise ValueError(f"Cannot patch user fields: {sorted(unknown)}")


class DuplicateRecord(RuntimeError):
    """A unique constraint rejected an insert or update."""


class CredentialStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    # ---- users ----

    def find_user_by_id(self, user_id: UserId) -> Optional[User]:
        uid = as_uuid(user_id)
        if uid is None:
            return None
        return self.db.get(User, uid, populate_existing=True)

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(
            select(User).where(User.email == normalize_email(email))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def find_user_by_username(self, username: str) -> Optional[User]:
        return self.db.execute(
            select(User).where(User.username == username)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def insert_user(self, user: User) -> User:
        user.email = normalize_email(user.email)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateRecord(str(e.orig)) from e
        return user

    def update_user(self, user_id: UserId, patch: dict[str, Any]) -> bool:
        """Apply a partial update. Returns False when the user does not exist."""
        _check_patch(patch)
        uid = as_uuid(user_id)
        if uid is None:
            return False
        if not patch:
            return self.find_user_by_id(uid) is not None
        try:
            result = self.db.execute(
                update(User).where(User.id == uid).values(**patch)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateRecord(str(e.orig)) from e
        return result.rowcount == 1

    def compare_and_set_user(self, user_id: UserId, field: str,
                             expected: Optional[str], patch: dict[str, Any],
                             also: Optional[dict[str, Any]] = None) -> bool:
        """
        Apply ``patch`` only if ``field`` still holds ``expected``.

        ``also`` adds further ``column == value`` conditions. This is a
        single conditional UPDATE, so of two concurrent callers presenting
        the same expected value exactly one wins.
        """
        _check_patch(patch)
        fields = {field, *(also or {})}
        if fields - USER_PATCHABLE:
            raise ValueError(f"Unknown user field: {sorted(fields - USER_PATCHABLE)}")
        uid = as_uuid(user_id)
        if uid is None:
            return False
        column = getattr(User, field)
        conditions = [User.id == uid,
                      column.is_(None) if expected is None else column == expected]
        conditions += [getattr(User, k) == v for k, v in (also or {}).items()]
        result = self.db.execute(
            update(User).where(*conditions).values(**patch)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        won = result.rowcount == 1
        if not won:
            logger.debug("compare-and-set on %s.%s lost", uid, field)
        return won

    def search_users_by_name(self, substr: str, limit: int = 50) -> List[User]:
        stmt = (
            select(User)
            .where(User.name.icontains(substr, autoescape=True))
            .order_by(User.name, User.id)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(self.db.execute(stmt).scalars())

    # ---- refresh tokens ----
    # callers pass the raw token; only its sha256 is stored or compared

    def insert_refresh_token(self, token: str, user_id: UserId,
                             issued_at: datetime, expires_at: datetime) -> RefreshToken:
        rec = RefreshToken(token_hash=sha256(token), user_id=as_uuid(user_id),
                           issued_at=issued_at, expires_at=expires_at)
        self.db.add(rec)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateRecord(str(e.orig)) from e
        return rec

    def find_refresh_token(self, token: str) -> Optional[RefreshToken]:
        return self.db.execute(
            select(RefreshToken).where(RefreshToken.token_hash == sha256(token))
        ).scalar_one_or_none()

    def delete_refresh_token(self, token: str) -> bool:
        """Returns True when a record was removed."""
        result = self.db.execute(delete(RefreshToken).where(RefreshToken.token_hash == sha256(token)))
        self.db.commit()
        return result.rowcount > 0

    def delete_refresh_tokens_for_user(self, user_id: UserId) -> int:
        uid = as_uuid(user_id)
        if uid is None:
            return 0
        result = self.db.execute(delete(RefreshToken).where(RefreshToken.user_id == uid))
        self.db.commit()
        return result.rowcount

    # ---- follow edges ----

    def insert_follow_edge(self, follower_id: UserId, followed_id: UserId) -> Follower:
        edge = Follower(user_id=as_uuid(follower_id), followed_user_id=as_uuid(followed_id))
        self.db.add(edge)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateRecord(str(e.orig)) from e
        return edge

    def delete_follow_edge(self, follower_id: UserId, followed_id: UserId) -> bool:
        result = self.db.execute(
            delete(Follower).where(
                Follower.user_id == as_uuid(follower_id),
                Follower.followed_user_id == as_uuid(followed_id),
            )
        )
        self.db.commit()
        return result.rowcount > 0

    def exists_follow_edge(self, follower_id: UserId, followed_id: UserId) -> bool:
        found = self.db.execute(
            select(Follower.id).where(
                Follower.user_id == as_uuid(follower_id),
                Follower.followed_user_id == as_uuid(followed_id),
            )
        ).first()
        return found is not None
