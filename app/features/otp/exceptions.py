from fastapi import status

from app.platform.exceptions import AppError


class OtpError(AppError):
    """Base class for OTP lifecycle failures the caller can act on."""


class ThrottledError(OtpError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Please wait {retry_after} seconds before requesting another OTP")

    def to_data(self):
        return {"retry_after": self.retry_after}

    def to_headers(self):
        return {"Retry-After": str(self.retry_after)}


class DeliveryError(OtpError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Failed to send OTP email. Please try again."


class NotFoundOrExpiredError(OtpError):
    message = "Invalid or expired OTP. Please request a new one."


class AttemptsExhaustedError(OtpError):
    message = "Too many failed attempts. Please request a new OTP."


class InvalidCodeError(OtpError):
    def __init__(self, remaining_attempts: int):
        self.remaining_attempts = remaining_attempts
        super().__init__(f"Invalid OTP. {remaining_attempts} attempts remaining.")

    def to_data(self):
        return {"remaining_attempts": self.remaining_attempts}


class RecordStoreError(AppError):
    """The OTP store could not be reached or rejected the operation."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Verification service is temporarily unavailable"
