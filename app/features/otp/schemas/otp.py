from typing import Annotated

from pydantic import BaseModel, EmailStr, StringConstraints

OtpCode = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^\d{6}$")]


class SendOTPRequest(BaseModel):
    email: EmailStr


class VerifyOTPRequest(BaseModel):
    email: EmailStr
    otp: OtpCode


class SendOTPResponse(BaseModel):
    email: str


class VerifyOTPResponse(BaseModel):
    email: str
    is_verified: bool = True
