"""Exceptions raised by the identity services.

Each error carries the HTTP status the API layer answers with, so route
handlers never translate them one by one.
"""


class ServiceError(RuntimeError):
    """Base class for failures surfaced to the caller."""

    status_code = 400
    code = "ERROR"
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# --- NotFound ---

class NotFound(ServiceError):
    status_code = 404
    code = "NOT_FOUND"
    default_detail = "Not found"


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    default_detail = "User not found"


# --- Conflict ---

class Conflict(ServiceError):
    status_code = 409
    code = "CONFLICT"
    default_detail = "Conflict"


class EmailAlreadyExists(Conflict):
    code = "EMAIL_ALREADY_EXISTS"
    default_detail = "Email already exists"


class UsernameTaken(Conflict):
    code = "USERNAME_TAKEN"
    default_detail = "Username already exists"


# --- InvalidInput ---

class InvalidInput(ServiceError):
    status_code = 422
    code = "INVALID_INPUT"
    default_detail = "Invalid input"


class InvalidUsernameFormat(InvalidInput):
    code = "INVALID_USERNAME_FORMAT"
    default_detail = (
        "Username must be 5-15 characters of letters, digits, '_' or '.', "
        "must not start with '.', end with '.' or contain '..'"
    )


class CannotFollowSelf(InvalidInput):
    code = "CANNOT_FOLLOW_SELF"
    default_detail = "You cannot follow yourself"


# --- Authentication ---

class AuthenticationFailed(ServiceError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_detail = "Authentication failed"


class InvalidCredentials(AuthenticationFailed):
    code = "INVALID_CREDENTIALS"
    default_detail = "Email or password is incorrect"


class TokenInvalid(AuthenticationFailed):
    code = "TOKEN_INVALID"
    default_detail = "Token is invalid"


class TokenExpired(AuthenticationFailed):
    code = "TOKEN_EXPIRED"
    default_detail = "Token has expired"


class TokenKindMismatch(AuthenticationFailed):
    code = "TOKEN_KIND_MISMATCH"
    default_detail = "Token cannot be used here"


# --- Authorization ---

class Forbidden(ServiceError):
    status_code = 403
    code = "FORBIDDEN"
    default_detail = "Forbidden"


class AccountBanned(Forbidden):
    code = "ACCOUNT_BANNED"
    default_detail = "This account has been banned"


class UserNotVerified(Forbidden):
    code = "USER_NOT_VERIFIED"
    default_detail = "Verify your email before doing this"


# --- Infrastructure ---

class SigningError(ServiceError):
    """Token signing key unavailable or unusable."""

    status_code = 500
    code = "SIGNING_ERROR"
    default_detail = "Could not sign token"
