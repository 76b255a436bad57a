from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.otp.notifier import EmailOtpNotifier, Notifier
from app.features.otp.repository import SqlAlchemyOtpStore
from app.features.otp.services.otp_service import OtpService
from app.platform.db.session import get_db


def get_otp_notifier() -> Notifier:
    return EmailOtpNotifier()


async def get_otp_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_otp_notifier),
) -> OtpService:
    """
    Builds an OtpService bound to the request's session.
    Override ``get_otp_notifier`` to swap the delivery channel.
    """
    return OtpService(SqlAlchemyOtpStore(db), notifier)
