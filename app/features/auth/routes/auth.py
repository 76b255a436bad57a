from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.schemas.auth import SignupRequest, SignupResponse, UserResponse
from app.features.auth.services.auth_service import AuthService
from app.features.otp.dependencies.otp import get_otp_service
from app.features.otp.exceptions import OtpError
from app.features.otp.services.otp_service import OtpService
from app.platform.config import settings
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/signup",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="Create an unverified account and email a signup verification code",
)
async def signup(
    request: SignupRequest,
    db: AsyncSession = Depends(get_db),
    otp_service: OtpService = Depends(get_otp_service),
):
    """
    Register a new user account.
    - **password**: Minimum 8 characters with at least one letter and one digit
    The account stays unverified until the emailed code is confirmed via /auth/verify-otp.
    """
    auth_service = AuthService(db)
    user = await auth_service.register_user(request)

    try:
        await otp_service.issue(
            user.email, ttl_minutes=settings.OTP_SIGNUP_TTL_MINUTES, purpose="signup"
        )
    except OtpError:
        # Keep the email free for a retry once a code can be sent
        await auth_service.remove_user(user)
        raise

    return api_response(
        data=SignupResponse(user=UserResponse.model_validate(user)),
        message="User created successfully. Please verify your email.",
        status_code=status.HTTP_201_CREATED,
    )
