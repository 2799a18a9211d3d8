from typing import Optional, Annotated
from datetime import date
from pydantic import BaseModel, EmailStr, Field, StringConstraints, model_validator
from uuid import UUID

from app.schemas.users import UserOut

NameStr = Annotated[str, StringConstraints(min_length=1, max_length=100, strip_whitespace=True)]
PasswordStr = Annotated[str, StringConstraints(min_length=6, max_length=128)]

class RegisterBody(BaseModel):
    email: EmailStr
    password: PasswordStr
    name: NameStr
    date_of_birth: Optional[date] = None

class LoginBody(BaseModel):
    email: EmailStr
    password: str

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class RegisterResponse(TokenPair):
    message: str
    user: UserOut

class LoginResponse(BaseModel):
    message: str
    user: UserOut
    tokens: TokenPair

class RefreshBody(BaseModel):
    refresh_token: str

class LogoutBody(BaseModel):
    refresh_token: str

class EmailVerifyBody(BaseModel):
    email_verify_token: str = Field(..., description="Token from the verification link.")

class ForgotPasswordBody(BaseModel):
    email: EmailStr = Field(..., description="Account email.")

class ForgotPasswordTokenBody(BaseModel):
    forgot_password_token: str = Field(..., description="Token from the reset link.")

class ResetPasswordBody(BaseModel):
    forgot_password_token: str = Field(..., description="Token from the reset link.")
    password: PasswordStr
    confirm_password: PasswordStr

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self

class ChangePasswordBody(BaseModel):
    old_password: str = Field(..., min_length=1, description="Current password")
    password: PasswordStr
    confirm_password: PasswordStr

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self

class MessageResponse(BaseModel):
    ok: bool = True
    message: str
    # machine-readable outcome, e.g. ALREADY_VERIFIED
    code: Optional[str] = None

class VerifyResponse(MessageResponse):
    verified: bool = True
    tokens: Optional[TokenPair] = None

class TokenPayload(BaseModel):
    """Decoded claims of any token kind."""
    user_id: UUID
    kind: str
    verify_status: str
    iat: int
    exp: int
    jti: str
