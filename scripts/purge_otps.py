import asyncio

from app.features.otp.repository import SqlAlchemyOtpStore
from app.platform.config import settings
from app.platform.db.session import Database
from app.platform.utils.time import now_utc


async def purge_otps() -> int:
    database = Database.from_settings(settings)
    try:
        async with database.session() as db:
            removed = await SqlAlchemyOtpStore(db).purge_stale(now_utc())
    finally:
        await database.dispose()

    print(f"✅ Removed {removed} consumed or expired OTP records")
    return removed


if __name__ == "__main__":
    asyncio.run(purge_otps())
