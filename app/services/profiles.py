# app/services/profiles.py
from typing import Any, List, Mapping
import logging

from app.core.errors import (
    CannotFollowSelf, InvalidUsernameFormat, UserNotFound, UsernameTaken,
)
from app.core.messages import Messages, ResultCode
from app.core.security import is_valid_username
from app.schemas.auth import MessageResponse
from app.schemas.users import UserOut
from app.services.store import CredentialStore, DuplicateRecord, UserId, as_uuid

logger = logging.getLogger(__name__)

CLEARABLE = {"avatar_url", "cover_photo_url", "bio", "location", "website", "date_of_birth"}


class ProfileManager:
    def __init__(self, store: CredentialStore, search_limit: int = 50) -> None:
        self.store = store
        self.search_limit = search_limit

    def get_profile(self, user_id: UserId) -> UserOut:
        user = self.store.find_user_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return UserOut.model_validate(user)

    def is_username_taken(self, username: str, by_other_than: UserId | None = None) -> bool:
        owner = self.store.find_user_by_username(username)
        if owner is None:
            return False
        return by_other_than is None or owner.id != as_uuid(by_other_than)

    def update_profile(self, user_id: UserId, fields: Mapping[str, Any]) -> UserOut:
        """
        Apply a partial profile update.

        Only keys present in ``fields`` are written. ``None`` clears the
        optional profile fields and is ignored for name and username. A new
        username is checked for uniqueness and then format before anything
        is written.
        """
        patch = {k: v for k, v in fields.items() if v is not None or k in CLEARABLE}
        if "username" in patch:
            username = patch["username"]
            if self.is_username_taken(username, by_other_than=user_id):
                raise UsernameTaken()
            if not is_valid_username(username):
                raise InvalidUsernameFormat()
        try:
            found = self.store.update_user(user_id, patch)
        except DuplicateRecord as e:
            raise UsernameTaken() from e
        if not found:
            raise UserNotFound()
        return self.get_profile(user_id)

    def follow(self, follower_id: UserId, followed_id: UserId) -> MessageResponse:
        if as_uuid(follower_id) == as_uuid(followed_id):
            raise CannotFollowSelf()
        if self.store.find_user_by_id(followed_id) is None:
            raise UserNotFound("Followed user not found")
        if self.store.exists_follow_edge(follower_id, followed_id):
            return MessageResponse(message=Messages.ALREADY_FOLLOWED,
                                   code=ResultCode.ALREADY_FOLLOWING)
        try:
            self.store.insert_follow_edge(follower_id, followed_id)
        except DuplicateRecord:
            return MessageResponse(message=Messages.ALREADY_FOLLOWED,
                                   code=ResultCode.ALREADY_FOLLOWING)
        logger.debug("%s now follows %s", follower_id, followed_id)
        return MessageResponse(message=Messages.FOLLOW_SUCCESS)

    def unfollow(self, follower_id: UserId, followed_id: UserId) -> MessageResponse:
        if not self.store.delete_follow_edge(follower_id, followed_id):
            return MessageResponse(message=Messages.ALREADY_UNFOLLOWED,
                                   code=ResultCode.NOT_FOLLOWING)
        return MessageResponse(message=Messages.UNFOLLOW_SUCCESS)

    def search_by_name(self, query: str) -> List[UserOut]:
        query = (query or "").strip()
        if not query:
            return []
        return [UserOut.model_validate(u)
                for u in self.store.search_users_by_name(query, limit=self.search_limit)]
