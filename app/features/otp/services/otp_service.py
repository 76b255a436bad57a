import math
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

import bcrypt

from app.features.otp.exceptions import (
    AttemptsExhaustedError,
    DeliveryError,
    InvalidCodeError,
    NotFoundOrExpiredError,
    ThrottledError,
)
from app.features.otp.models.otp import OtpRecord
from app.features.otp.notifier import Notifier
from app.features.otp.repository import OtpRecordStore
from app.platform.config import settings
from app.platform.logger import get_logger
from app.platform.utils.time import now_utc

logger = get_logger("otp_service")

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp() -> str:
    """Generate a 6-digit code, uniform over [100000, 999999]"""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def hash_otp(code: str, rounds: int) -> str:
    return bcrypt.hashpw(code.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_otp_hash(code: str, code_hash: str) -> bool:
    try:
        return bcrypt.checkpw(code.encode("utf-8"), code_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def normalize_address(address: str) -> str:
    return address.strip().lower()


class OtpService:
    """
    Issues and consumes one-time passcodes keyed by email address.

    A record is authoritative while it is *live*: not consumed and not yet
    expired. Only the newest live record for an address is ever matched
    against. Expiry is evaluated lazily at lookup time; the store's
    ``purge_stale`` is housekeeping only.

    Failures surface as the typed errors in ``app.features.otp.exceptions``.
    Store failures surface as ``RecordStoreError``.
    """

    def __init__(
        self,
        store: OtpRecordStore,
        notifier: Notifier,
        *,
        clock: Callable[[], datetime] = now_utc,
        resend_cooldown_seconds: Optional[int] = None,
        max_attempts: Optional[int] = None,
        bcrypt_rounds: Optional[int] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.resend_cooldown = timedelta(
            seconds=resend_cooldown_seconds
            if resend_cooldown_seconds is not None
            else settings.OTP_RESEND_COOLDOWN_SECONDS
        )
        self.max_attempts = max_attempts if max_attempts is not None else settings.OTP_MAX_ATTEMPTS
        self.bcrypt_rounds = bcrypt_rounds if bcrypt_rounds is not None else settings.OTP_BCRYPT_ROUNDS

    async def issue(
        self,
        address: str,
        ttl_minutes: Optional[int] = None,
        purpose: str = "verification",
    ) -> None:
        """Create a code for ``address`` and deliver it through the notifier.

        Raises ThrottledError while the previous live code is younger than the
        resend cooldown, and DeliveryError (leaving no record behind) when the
        notifier reports failure. A failed delivery leaves any older live code
        untouched, so a code already in the user's inbox keeps working.
        """
        email = normalize_address(address)
        if ttl_minutes is None:
            ttl_minutes = settings.OTP_VERIFY_TTL_MINUTES
        if ttl_minutes <= 0:
            raise ValueError(f"ttl_minutes must be positive, got {ttl_minutes}")
        now = self.clock()

        existing = await self.store.find_live_by_address(email, now)
        if existing is not None:
            elapsed = now - existing.issued_at
            if elapsed < self.resend_cooldown:
                retry_after = math.ceil((self.resend_cooldown - elapsed).total_seconds())
                logger.warning(
                    f"OTP issue throttled - email: {email}, retry_after: {retry_after}s"
                )
                raise ThrottledError(retry_after)

        code = generate_otp()
        record = OtpRecord(
            email=email,
            code_hash=hash_otp(code, self.bcrypt_rounds),
            purpose=purpose,
            issued_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
            consumed=False,
            attempts=0,
        )
        record_id = await self.store.insert(record)

        delivered = await self.notifier.send(email, code, ttl_minutes=ttl_minutes)
        if not delivered:
            await self.store.delete_by_id(record_id)
            logger.error(f"OTP delivery failed, record discarded - email: {email}")
            raise DeliveryError()

        superseded = await self.store.delete_superseded(email, record_id, now)
        logger.info(
            f"OTP issued - email: {email}, purpose: {purpose}, ttl: {ttl_minutes}m, "
            f"superseded: {superseded}"
        )

    async def verify(self, address: str, code: str) -> None:
        """Consume the live code for ``address`` if ``code`` matches it."""
        email = normalize_address(address)
        now = self.clock()

        record = await self.store.find_live_by_address(email, now)
        if record is None:
            logger.info(f"OTP verify failed - no live code - email: {email}")
            raise NotFoundOrExpiredError()

        if record.attempts >= self.max_attempts:
            logger.warning(f"OTP verify refused - attempts exhausted - email: {email}")
            raise AttemptsExhaustedError()

        if not verify_otp_hash(code, record.code_hash):
            updated = await self.store.increment_attempts(record.id)
            attempts = updated.attempts if updated is not None else record.attempts + 1
            remaining = max(self.max_attempts - attempts, 0)
            logger.warning(
                f"OTP verify failed - invalid code - email: {email}, remaining: {remaining}"
            )
            raise InvalidCodeError(remaining)

        if not await self.store.consume(record.id):
            # Consumed or superseded by a concurrent request since the lookup
            logger.warning(f"OTP verify lost race - code no longer live - email: {email}")
            raise NotFoundOrExpiredError()

        logger.info(f"OTP verified - email: {email}")
