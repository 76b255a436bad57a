from datetime import datetime
from functools import wraps
from typing import Optional, Protocol

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.otp.exceptions import RecordStoreError
from app.features.otp.models.otp import OtpRecord
from app.platform.logger import get_logger

logger = get_logger("otp_store")


class OtpRecordStore(Protocol):
    """Storage the OTP service depends on. Any keyed store with a filtered
    lookup and single-record atomic updates can implement it."""

    async def find_live_by_address(self, email: str, now: datetime) -> Optional[OtpRecord]: ...

    async def insert(self, record: OtpRecord) -> str: ...

    async def consume(self, record_id: str) -> bool: ...

    async def increment_attempts(self, record_id: str) -> Optional[OtpRecord]: ...

    async def delete_by_id(self, record_id: str) -> bool: ...

    async def delete_superseded(self, email: str, keep_id: str, now: datetime) -> int: ...

    async def purge_stale(self, now: datetime) -> int: ...


def _store_operation(func):
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"OTP store operation {func.__name__} failed: {e}")
            await self.db.rollback()
            raise RecordStoreError() from e

    return wrapper


class SqlAlchemyOtpStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    @_store_operation
    async def find_live_by_address(self, email: str, now: datetime) -> Optional[OtpRecord]:
        result = await self.db.execute(
            select(OtpRecord)
            .where(
                OtpRecord.email == email,
                OtpRecord.consumed.is_(False),
                OtpRecord.expires_at > now,
            )
            .order_by(OtpRecord.issued_at.desc(), OtpRecord.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    @_store_operation
    async def insert(self, record: OtpRecord) -> str:
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        return record.id

    @_store_operation
    async def consume(self, record_id: str) -> bool:
        """Flip the record to consumed. False when it was already consumed or is gone."""
        result = await self.db.execute(
            update(OtpRecord)
            .where(OtpRecord.id == record_id, OtpRecord.consumed.is_(False))
            .values(consumed=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount > 0

    @_store_operation
    async def increment_attempts(self, record_id: str) -> Optional[OtpRecord]:
        result = await self.db.execute(
            update(OtpRecord)
            .where(OtpRecord.id == record_id)
            .values(attempts=OtpRecord.attempts + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount == 0:
            return None
        return await self._reload(record_id)

    @_store_operation
    async def delete_by_id(self, record_id: str) -> bool:
        result = await self.db.execute(
            delete(OtpRecord)
            .where(OtpRecord.id == record_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount > 0

    @_store_operation
    async def delete_superseded(self, email: str, keep_id: str, now: datetime) -> int:
        result = await self.db.execute(
            delete(OtpRecord).where(
                OtpRecord.email == email,
                OtpRecord.id != keep_id,
                OtpRecord.consumed.is_(False),
                OtpRecord.expires_at > now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    @_store_operation
    async def purge_stale(self, now: datetime) -> int:
        result = await self.db.execute(
            delete(OtpRecord).where(
                or_(OtpRecord.consumed.is_(True), OtpRecord.expires_at <= now)
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    async def _reload(self, record_id: str) -> Optional[OtpRecord]:
        result = await self.db.execute(
            select(OtpRecord)
            .where(OtpRecord.id == record_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()
