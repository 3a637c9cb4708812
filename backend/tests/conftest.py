"""
Pytest fixtures for test database, client, and authentication.

Tests run against a file-backed SQLite database. Every transaction starts with
BEGIN IMMEDIATE, so concurrent sessions queue on the database write lock the
way PostgreSQL sessions queue on row locks. Tables are created and dropped
per test for isolation.

Fixture objects are inserted through short-lived sessions that commit and
close right away: an open transaction would hold the write lock and stall
every request the test makes afterwards.
"""

import os
import tempfile

_TEST_DB_PATH = os.path.join(tempfile.gettempdir(), f"booking_api_test_{os.getpid()}.sqlite3")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB_PATH}"
os.environ["REDIS_ENABLED"] = "false"
os.environ["PAYMENT_LATENCY_SECONDS"] = "0"
os.environ["REFUND_RETRY_DELAY_SECONDS"] = "0"
os.environ["ENVIRONMENT"] = "test"

import itertools
import uuid
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event as sa_event, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from booking_api.main import app
from booking_api.db.base import Base
from booking_api.db.session import get_db
from booking_api.core.security import create_access_token, hash_password
from booking_api.models.booking import Booking, BookingStatus, PaymentStatus
from booking_api.models.event import Event
from booking_api.models.user import User
from booking_api.services.payment_service import MockPaymentGateway, get_payment_gateway
from booking_api.services.refund_queue import RefundQueue, get_refund_queue

TEST_DATABASE_URL = os.environ["DATABASE_URL"]
TEST_PASSWORD = "testpassword123"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)

BOOKING_DETAILS = {
    "full_name": "Jane Doe",
    "email": "jane@example.com",
    "phone": "+1 555 123 4567",
    "emergency_contact": "John Doe",
    "emergency_phone": "+1 555 765 4321",
    "special_requests": "",
}

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


@sa_event.listens_for(test_engine.sync_engine, "connect")
def _disable_driver_transactions(dbapi_connection, connection_record):
    # Let SQLAlchemy emit BEGIN itself
    dbapi_connection.isolation_level = None


@sa_event.listens_for(test_engine.sync_engine, "begin")
def _begin_immediate(conn):
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def starts_in(delta: timedelta) -> dict:
    """date/time columns for an event starting `delta` from now (UTC, minute precision)."""
    starts_at = datetime.now(timezone.utc) + delta
    return {"date": starts_at.date(), "time": starts_at.strftime("%H:%M")}


@pytest_asyncio.fixture(scope="function")
async def database() -> AsyncGenerator[None, None]:
    """Create tables, run the test, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory(database):
    return TestSessionLocal


@pytest.fixture
def payment_gateway() -> MockPaymentGateway:
    return MockPaymentGateway(latency_seconds=0)


@pytest.fixture
def refund_queue(session_factory, payment_gateway) -> RefundQueue:
    """A queue with no worker running; tests call drain() to process it."""
    return RefundQueue(session_factory=session_factory, gateway=payment_gateway, retry_delay=0)


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, payment_gateway, refund_queue) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the DB, payment gateway and refund queue dependencies overridden."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            finally:
                if session.in_transaction():
                    await session.rollback()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway
    app.dependency_overrides[get_refund_queue] = lambda: refund_queue

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_user(session_factory):
    counter = itertools.count(1)

    async def factory(role: str = "user", email: Optional[str] = None, is_active: bool = True) -> User:
        n = next(counter)
        user = User(
            name=f"{role.title()} {n}",
            email=email or f"{role}{n}@example.com",
            hashed_password=TEST_PASSWORD_HASH,
            role=role,
            is_active=is_active,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return factory


@pytest_asyncio.fixture
async def make_event(session_factory, make_user):
    async def factory(organizer: Optional[User] = None, **overrides) -> Event:
        if organizer is None:
            organizer = await make_user(role="organizer")
        values = {
            "title": "Test Concert",
            "description": "A test event",
            "category": "concert",
            "location": "Test City",
            "venue": "Test Hall",
            "price": Decimal("50.00"),
            "total_seats": 100,
            **starts_in(timedelta(days=30)),
        }
        values.update(overrides)
        values.setdefault("available_seats", values["total_seats"])
        event = Event(created_by=organizer.id, **values)
        async with session_factory() as session:
            session.add(event)
            await session.commit()
        return event

    return factory


@pytest_asyncio.fixture
async def make_booking(session_factory):
    """Insert a booking row directly, bypassing the lifecycle checks and seat counter."""

    async def factory(
        user: User,
        event: Optional[Event],
        seats: int = 1,
        status: str = BookingStatus.CONFIRMED.value,
        created_at: Optional[datetime] = None,
        total_amount: Optional[Decimal] = None,
    ) -> Booking:
        if total_amount is None:
            total_amount = Decimal(event.price) * seats if event else Decimal("0")
        booking = Booking(
            user_id=user.id,
            event_id=event.id if event else None,
            seats_booked=seats,
            total_amount=total_amount,
            status=status,
            payment_id=f"txn_{uuid.uuid4().hex}",
            booking_reference=str(uuid.uuid4()),
            booking_details=BOOKING_DETAILS,
            payment_status=PaymentStatus.COMPLETED.value,
            amount_paid=total_amount,
            paid_at=datetime.now(timezone.utc),
        )
        if created_at is not None:
            booking.created_at = created_at
        async with session_factory() as session:
            session.add(booking)
            await session.commit()
        return booking

    return factory


@pytest_asyncio.fixture
async def load_event(session_factory):
    async def loader(event_id: int) -> Optional[Event]:
        async with session_factory() as session:
            return (await session.execute(select(Event).where(Event.id == event_id))).scalar_one_or_none()

    return loader


@pytest_asyncio.fixture
async def load_booking(session_factory):
    async def loader(booking_id: int) -> Optional[Booking]:
        async with session_factory() as session:
            return (
                await session.execute(select(Booking).where(Booking.id == booking_id))
            ).scalar_one_or_none()

    return loader


def bearer(user: User) -> dict:
    """Authorization headers with a Bearer token for `user`."""
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest_asyncio.fixture
async def test_user(make_user) -> User:
    return await make_user(role="user", email="test@example.com")


@pytest_asyncio.fixture
async def organizer(make_user) -> User:
    return await make_user(role="organizer", email="organizer@example.com")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user(role="admin", email="admin@example.com")


@pytest.fixture
def auth_headers(test_user) -> dict:
    return bearer(test_user)


@pytest.fixture
def organizer_headers(organizer) -> dict:
    return bearer(organizer)


@pytest.fixture
def admin_headers(admin) -> dict:
    return bearer(admin)


@pytest_asyncio.fixture
async def test_event(make_event, organizer) -> Event:
    """An event 30 days out with 100 seats at 50.00."""
    return await make_event(organizer=organizer)


@pytest_asyncio.fixture
async def sold_out_event(make_event, organizer) -> Event:
    return await make_event(organizer=organizer, title="Sold Out Show", total_seats=50, available_seats=0)


@pytest.fixture
def headers_for():
    return bearer


@pytest.fixture
def event_start():
    return starts_in


@pytest.fixture
def booking_request():
    def build(event_id: int, seats: int = 1, **extra) -> dict:
        return {"event_id": event_id, "seats_booked": seats, "booking_details": BOOKING_DETAILS, **extra}

    return build


def pytest_sessionfinish(session, exitstatus):
    if os.path.exists(_TEST_DB_PATH):
        os.remove(_TEST_DB_PATH)
