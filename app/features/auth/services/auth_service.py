from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.user import User
from app.features.auth.schemas.auth import SignupRequest
from app.features.auth.utils.security import hash_password
from app.platform.logger import get_logger
from app.platform.utils.time import now_utc

logger = get_logger("auth_service")


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def register_user(self, request: SignupRequest) -> User:
        """Create an unverified account. Verification happens through the OTP flow."""
        if await self.get_user_by_email(request.email):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="Email already registered"
            )

        new_user = User(
            name=request.name,
            email=request.email.lower(),
            password_hash=hash_password(request.password),
            role=request.role,
            is_verified=False,
        )

        try:
            self.db.add(new_user)
            await self.db.commit()
            await self.db.refresh(new_user)
        except IntegrityError:
            await self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="Email already registered"
            )

        logger.info(f"User registered - user: {new_user.id}, email: {new_user.email}")
        return new_user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def mark_verified(self, email: str) -> Optional[User]:
        """Flag the account behind ``email`` as verified. Returns None when no account exists."""
        user = await self.get_user_by_email(email)
        if user is None:
            return None

        if not user.is_verified:
            user.is_verified = True
            user.verified_at = now_utc()
            await self.db.commit()
            await self.db.refresh(user)
            logger.info(f"Email verified - user: {user.id}, email: {user.email}")

        return user

    async def remove_user(self, user: User) -> None:
        """Drop an account whose signup could not be completed."""
        await self.db.delete(user)
        await self.db.commit()
        logger.info(f"Signup rolled back - user: {user.id}, email: {user.email}")
