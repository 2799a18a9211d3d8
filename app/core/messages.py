"""User-facing messages and machine-readable outcome codes."""


class Messages:
    REGISTER_SUCCESS = "Register success"
    LOGIN_SUCCESS = "Login success"
    LOGOUT_SUCCESS = "Logout success"
    REFRESH_TOKEN_SUCCESS = "Refresh token success"
    EMAIL_VERIFY_SUCCESS = "Email verify success"
    EMAIL_ALREADY_VERIFIED_BEFORE = "Email already verified before"
    CHECK_EMAIL_TO_VERIFY = "Check your email to verify your account"
    VERIFY_EMAIL_SENT = "Verification email sent"
    CHECK_EMAIL_TO_RESET_PASSWORD = "Check your email to reset your password"
    ALREADY_SEND_FORGOT_PASSWORD_EMAIL = "Reset password email already sent, please check your inbox"
    VERIFY_FORGOT_PASSWORD_SUCCESS = "Verify forgot password token success"
    RESET_PASSWORD_SUCCESS = "Reset password success"
    CHANGE_PASSWORD_SUCCESS = "Change password success"
    GET_PROFILE_SUCCESS = "Get profile success"
    UPDATE_PROFILE_SUCCESS = "Update profile success"
    SEARCH_SUCCESS = "Search success"
    FOLLOW_SUCCESS = "Follow success"
    ALREADY_FOLLOWED = "Already followed this user"
    UNFOLLOW_SUCCESS = "Unfollow success"
    ALREADY_UNFOLLOWED = "Already unfollowed this user"


class ResultCode:
    """Codes attached to benign outcomes that are answered with 200."""

    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    ALREADY_REQUESTED = "ALREADY_REQUESTED"
    ALREADY_FOLLOWING = "ALREADY_FOLLOWING"
    NOT_FOLLOWING = "NOT_FOLLOWING"
