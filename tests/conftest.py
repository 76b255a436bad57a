"""
Test configuration and fixtures for the QuickCourt OTP API.

The database URL is pointed at a throwaway SQLite file before anything from
``app`` is imported, because settings are read at import time.
"""

import os
import tempfile
from datetime import datetime, timedelta
from typing import Dict, Generator, List

fd, test_db_path = tempfile.mkstemp(suffix=".db")
os.close(fd)
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{test_db_path}"
os.environ["OTP_ECHO_CODES"] = "false"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.features.otp.dependencies.otp import get_otp_notifier
from app.features.otp.repository import SqlAlchemyOtpStore
from app.features.otp.services.otp_service import OtpService
from app.platform.db.session import Database


class FakeNotifier:
    """Captures codes instead of emailing them."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: List[Dict] = []

    async def send(self, address: str, code: str, *, ttl_minutes: int) -> bool:
        self.sent.append({"address": address, "code": code, "ttl_minutes": ttl_minutes})
        return self.succeed

    def last_code(self, address: str) -> str:
        codes = [item["code"] for item in self.sent if item["address"] == address]
        assert codes, f"no code was sent to {address}"
        return codes[-1]


class FakeClock:
    def __init__(self, start: datetime = datetime(2025, 8, 12, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'otp.db'}")
    await db.create_tables()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(db_session) -> SqlAlchemyOtpStore:
    return SqlAlchemyOtpStore(db_session)


@pytest.fixture
def otp_service(store, notifier, clock) -> OtpService:
    return OtpService(store, notifier, clock=clock)


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app, notifier) -> Generator[TestClient, None, None]:
    """
    Test client whose OTP notifier is replaced by a FakeNotifier, so tests can
    read the code that would have been emailed.
    """
    test_app.dependency_overrides[get_otp_notifier] = lambda: notifier
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.pop(get_otp_notifier, None)
