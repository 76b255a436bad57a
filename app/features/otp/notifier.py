from typing import Protocol

from starlette.concurrency import run_in_threadpool

from app.platform.config import settings
from app.platform.logger import get_logger
from app.platform.services.email import EmailDeliveryError, render_template, send_email

logger = get_logger("otp_notifier")


class Notifier(Protocol):
    async def send(self, address: str, code: str, *, ttl_minutes: int) -> bool: ...


class EmailOtpNotifier:
    """Delivers codes by email. Reports failure as False, never raises."""

    subject = f"Your {settings.APP_NAME} verification code"

    async def send(self, address: str, code: str, *, ttl_minutes: int) -> bool:
        if settings.ENVIRONMENT == "local" and settings.OTP_ECHO_CODES:
            logger.info(f"OTP for {address}: {code}")

        try:
            body = render_template("otp_code.html", otp_code=code, expiration_minutes=ttl_minutes)
            await run_in_threadpool(send_email, address, self.subject, body)
        except EmailDeliveryError as e:
            logger.error(f"OTP email delivery failed for {address}: {e}")
            return False
        except Exception:
            logger.exception(f"Unexpected error while sending OTP email to {address}")
            return False

        logger.info(f"OTP email sent to {address}")
        return True
