from typing import Annotated
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, ConfigDict, StringConstraints
from uuid import UUID
from enum import Enum

class AccountTypeEnum(str, Enum):
    INDIVIDUAL = "individual"
    ORGANIZATION = "organization"

NameStr = Annotated[str, StringConstraints(min_length=1, max_length=255, strip_whitespace=True)]
OtpStr = Annotated[str, StringConstraints(pattern=r"^\d{6}$", strip_whitespace=True)]

class SendOtpBody(BaseModel):
    email: EmailStr = Field(..., description="Email address to send the signup code to.")

class SignupBody(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: NameStr
    account_type: AccountTypeEnum = AccountTypeEnum.INDIVIDUAL
    otp: OtpStr = Field(..., description="6-digit code from the signup email.")

class VerifyOtpBody(BaseModel):
    email: EmailStr
    otp: OtpStr

class LoginBody(BaseModel):
    email: EmailStr
    password: str

class ResendBody(BaseModel):
    email: EmailStr = Field(..., description="Account email.")

class PasswordForgotBody(BaseModel):
    email: EmailStr = Field(..., description="Account email.")

class PasswordResetBody(BaseModel):
    email: EmailStr
    otp: OtpStr = Field(..., description="6-digit recovery code from email.")
    new_password: str = Field(..., min_length=6, description="New password (min 6 chars).")

class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    email: EmailStr
    name: str
    account_type: AccountTypeEnum

class Me(AccountOut):
    is_verified: bool
    created_at: datetime

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: AccountOut

class GoogleStartOut(BaseModel):
    auth_url: str

class MessageResponse(BaseModel):
    ok: bool = True
    message: str
