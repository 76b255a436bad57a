from app.platform.config import settings
from app.platform.logger import get_logger
from app.platform.services.email import EmailDeliveryError, render_template, send_email

logger = get_logger("email_service")


def send_welcome_email(to_email: str, name: str):
    """Used for: Welcome message after the signup OTP is verified.

    Runs as a background task; failures are logged and never reach the user.
    """
    html_content = render_template("welcome.html", name=name, action_url=settings.LANDING_PAGE_URL)
    try:
        send_email(to_email, f"Welcome to {settings.APP_NAME}", html_content)
    except EmailDeliveryError as e:
        logger.error(f"Failed to send welcome email to {to_email}: {e}")
