from uuid import UUID
from fastapi import APIRouter, Depends, Query, Response, status

from app.api.deps import get_profiles, get_session_manager, get_settings, get_verification
from app.api.deps_auth import current_user, verified_user
from app.core.config import Settings
from app.core.cookies import clear_session_cookie, set_session_cookie
from app.core.messages import Messages
from app.schemas.auth import (
    ChangePasswordBody, EmailVerifyBody, ForgotPasswordBody, ForgotPasswordTokenBody,
    LoginBody, LoginResponse, LogoutBody, MessageResponse, RefreshBody, RegisterBody,
    RegisterResponse, ResetPasswordBody, TokenPair, TokenPayload, VerifyResponse,
)
from app.schemas.users import FollowBody, SearchResponse, UpdateMeBody, UserOut, UserResponse
from app.services.profiles import ProfileManager
from app.services.sessions import SessionManager
from app.services.verification import VerificationService


router = APIRouter(prefix="/users", tags=["users"])


# ---------- REGISTER ----------
@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account and send the verification email",
    description="""
Creates an **unverified** account with a unique email and returns a usable
session right away. A verification link is emailed (best-effort).
""",
)
def register(body: RegisterBody, sessions: SessionManager = Depends(get_session_manager)):
    return sessions.register(body.email, body.password, body.name, body.date_of_birth)


# ---------- LOGIN ----------
@router.post("/login", response_model=LoginResponse, summary="Log in with email and password")
def login(
    body: LoginBody,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    user = sessions.authenticate(body.email, body.password)
    tokens = sessions.login(user.id, user.verify_status)
    set_session_cookie(response, tokens.access_token, settings)
    return LoginResponse(message=Messages.LOGIN_SUCCESS, user=UserOut.model_validate(user), tokens=tokens)


@router.post("/logout", response_model=MessageResponse, summary="Revoke a refresh token")
def logout(
    body: LogoutBody,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    result = sessions.logout(body.refresh_token)
    clear_session_cookie(response, settings)
    return result


@router.post("/refresh-token", response_model=TokenPair, summary="Swap a refresh token for a new pair")
def refresh_token(
    body: RefreshBody,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    tokens = sessions.refresh(body.refresh_token)
    set_session_cookie(response, tokens.access_token, settings)
    return tokens


# ---------- VERIFY EMAIL ----------
@router.post(
    "/verify-email",
    response_model=VerifyResponse,
    summary="Verify email using the token sent to the user",
    description="Re-presenting a consumed token answers `ALREADY_VERIFIED` without side effects.",
)
def verify_email(
    body: EmailVerifyBody,
    response: Response,
    verification: VerificationService = Depends(get_verification),
    settings: Settings = Depends(get_settings),
):
    result = verification.confirm_email_verification(body.email_verify_token)
    if result.tokens is not None:
        set_session_cookie(response, result.tokens.access_token, settings)
    return result


@router.post("/send-verify-email", response_model=MessageResponse,
             summary="Email the outstanding verification link again")
def send_verify_email(
    me: TokenPayload = Depends(current_user),
    verification: VerificationService = Depends(get_verification),
):
    return verification.send_email_verification(me.user_id)


@router.post("/resend-verify-email", response_model=MessageResponse,
             summary="Issue a new verification link, invalidating the previous one")
def resend_verify_email(
    me: TokenPayload = Depends(current_user),
    verification: VerificationService = Depends(get_verification),
):
    return verification.request_email_verification(me.user_id)


# ---------- PASSWORD ----------
@router.post("/forgot-password", response_model=MessageResponse, summary="Send password reset email")
def forgot_password(body: ForgotPasswordBody, verification: VerificationService = Depends(get_verification)):
    return verification.request_password_reset(body.email)


@router.post("/verify-forgot-password", response_model=MessageResponse,
             summary="Check a reset token before showing the new-password form")
def verify_forgot_password(
    body: ForgotPasswordTokenBody,
    verification: VerificationService = Depends(get_verification),
):
    verification.check_password_reset_token(body.forgot_password_token)
    return MessageResponse(message=Messages.VERIFY_FORGOT_PASSWORD_SUCCESS)


@router.post("/reset-password", response_model=MessageResponse, summary="Reset password using token")
def reset_password(body: ResetPasswordBody, verification: VerificationService = Depends(get_verification)):
    return verification.confirm_password_reset(body.forgot_password_token, body.password)


@router.put("/change-password", response_model=MessageResponse, summary="Change password for logged-in user")
def change_password(
    body: ChangePasswordBody,
    me: TokenPayload = Depends(verified_user),
    sessions: SessionManager = Depends(get_session_manager),
):
    sessions.check_password(me.user_id, body.old_password)
    return sessions.change_password(me.user_id, body.password)


# ---------- PROFILE ----------
@router.get("/me", response_model=UserResponse, summary="Return the current authenticated user")
def get_me(me: TokenPayload = Depends(current_user), profiles: ProfileManager = Depends(get_profiles)):
    return UserResponse(message=Messages.GET_PROFILE_SUCCESS, user=profiles.get_profile(me.user_id))


@router.patch("/me", response_model=UserResponse, summary="Update profile fields")
def update_me(
    body: UpdateMeBody,
    me: TokenPayload = Depends(verified_user),
    profiles: ProfileManager = Depends(get_profiles),
):
    user = profiles.update_profile(me.user_id, body.model_dump(exclude_unset=True))
    return UserResponse(message=Messages.UPDATE_PROFILE_SUCCESS, user=user)


@router.get("/search", response_model=SearchResponse, summary="Search users by display name")
def search_users(
    name: str = Query("", description="Case-insensitive substring of the display name"),
    profiles: ProfileManager = Depends(get_profiles),
):
    return SearchResponse(message=Messages.SEARCH_SUCCESS, users=profiles.search_by_name(name))


@router.get("/{user_id}", response_model=UserResponse, summary="Return a user's public profile")
def get_user(user_id: UUID, profiles: ProfileManager = Depends(get_profiles)):
    return UserResponse(message=Messages.GET_PROFILE_SUCCESS, user=profiles.get_profile(user_id))


# ---------- FOLLOW ----------
@router.post("/follow", response_model=MessageResponse, summary="Follow a user")
def follow(
    body: FollowBody,
    me: TokenPayload = Depends(verified_user),
    profiles: ProfileManager = Depends(get_profiles),
):
    return profiles.follow(me.user_id, body.followed_user_id)


@router.delete("/follow/{followed_user_id}", response_model=MessageResponse, summary="Unfollow a user")
def unfollow(
    followed_user_id: UUID,
    me: TokenPayload = Depends(verified_user),
    profiles: ProfileManager = Depends(get_profiles),
):
    return profiles.unfollow(me.user_id, followed_user_id)
