from typing import Optional, Annotated, List
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, StringConstraints
from uuid import UUID

from app.models.user import VerifyStatus

ProfileStr = Annotated[str, StringConstraints(max_length=400, strip_whitespace=True)]

class UserOut(BaseModel):
    """Public view of a user. Secrets and pending tokens are never included."""
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    email: str
    name: str
    username: Optional[str] = None
    verify_status: VerifyStatus
    avatar_url: Optional[str] = None
    cover_photo_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    date_of_birth: Optional[date] = None
    created_at: Optional[datetime] = None

class UpdateMeBody(BaseModel):
    name: Optional[Annotated[str, StringConstraints(min_length=1, max_length=100, strip_whitespace=True)]] = None
    username: Optional[Annotated[str, StringConstraints(strip_whitespace=True)]] = None
    date_of_birth: Optional[date] = None
    bio: Optional[ProfileStr] = None
    location: Optional[Annotated[str, StringConstraints(max_length=120, strip_whitespace=True)]] = None
    website: Optional[Annotated[str, StringConstraints(max_length=2048, strip_whitespace=True)]] = None
    avatar_url: Optional[Annotated[str, StringConstraints(max_length=2048, strip_whitespace=True)]] = None
    cover_photo_url: Optional[Annotated[str, StringConstraints(max_length=2048, strip_whitespace=True)]] = None

class UserResponse(BaseModel):
    message: str
    user: UserOut

class SearchResponse(BaseModel):
    message: str
    users: List[UserOut]

class FollowBody(BaseModel):
    followed_user_id: UUID
