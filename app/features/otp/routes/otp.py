from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.services.auth_service import AuthService
from app.features.auth.services.email_service import send_welcome_email
from app.features.otp.dependencies.otp import get_otp_service
from app.features.otp.schemas.otp import (
    SendOTPRequest,
    SendOTPResponse,
    VerifyOTPRequest,
    VerifyOTPResponse,
)
from app.features.otp.services.otp_service import OtpService
from app.platform.config import settings
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/send-otp",
    response_model=dict,
    status_code=status.HTTP_200_OK,
    summary="Send a verification code",
    description="Email a 6-digit code to the address. Limited to one request per minute.",
)
async def send_otp(
    payload: SendOTPRequest,
    otp_service: OtpService = Depends(get_otp_service),
):
    await otp_service.issue(payload.email, ttl_minutes=settings.OTP_VERIFY_TTL_MINUTES)

    return api_response(
        data=SendOTPResponse(email=payload.email),
        message="OTP sent successfully",
        status_code=status.HTTP_200_OK,
    )


@router.post(
    "/verify-otp",
    response_model=dict,
    status_code=status.HTTP_200_OK,
    summary="Verify a code",
    description="Consume the emailed code and mark the matching account as verified",
)
async def verify_otp(
    payload: VerifyOTPRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    otp_service: OtpService = Depends(get_otp_service),
):
    await otp_service.verify(payload.email, payload.otp)

    user = await AuthService(db).mark_verified(payload.email)
    if user is not None:
        background_tasks.add_task(send_welcome_email, to_email=user.email, name=user.name)

    return api_response(
        data=VerifyOTPResponse(email=payload.email, is_verified=True),
        message="OTP verified successfully",
        status_code=status.HTTP_200_OK,
    )
