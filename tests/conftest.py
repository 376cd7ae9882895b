"""
Pytest fixtures for test database, client, and authentication.

Every test gets its own SQLite file so that concurrent sessions behave like
separate connections to one store.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Awaitable, Callable, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from event_management_platform.database import create_database_engine, create_session_factory, create_tables, get_db
from event_management_platform.main import app
from event_management_platform.messaging import RecordingEventPublisher, get_event_publisher
from event_management_platform.models import Event, EventStatus, User, UserRole
from event_management_platform.utils.auth import create_access_token
from event_management_platform.utils.clock import FrozenClock, get_clock

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_database_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest_asyncio.fixture
async def client(session_factory, clock, publisher) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the DB session, clock and publisher overridden."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_event_publisher] = lambda: publisher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    counter = {"n": 0}

    async def _make_user(
        role: UserRole = UserRole.ATTENDEE,
        loyalty_points: int = 0,
        is_suspended: bool = False,
        full_name: str = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            email=f"user{counter['n']}@example.com",
            full_name=full_name or f"User {counter['n']}",
            role=role,
            loyalty_points=loyalty_points,
            is_suspended=is_suspended,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_event(db_session: AsyncSession, clock: FrozenClock) -> Callable[..., Awaitable[Event]]:
    async def _make_event(
        organizer: User,
        capacity: int = 10,
        price: Decimal = Decimal("100.00"),
        status: EventStatus = EventStatus.PUBLISHED,
        starts_in: timedelta = timedelta(days=30),
        is_suspended: bool = False,
        title: str = "Spring Concert",
    ) -> Event:
        start = clock.now() + starts_in
        event = Event(
            organizer_id=organizer.id,
            title=title,
            location="Main Hall",
            start_date=start,
            end_date=start + timedelta(hours=3),
            capacity=capacity,
            price=price,
            status=status,
            is_suspended=is_suspended,
        )
        db_session.add(event)
        await db_session.commit()
        return event

    return _make_event


@pytest_asyncio.fixture
async def organizer(make_user) -> User:
    return await make_user(role=UserRole.ORGANIZER, full_name="Olivia Organizer")


@pytest_asyncio.fixture
async def attendee(make_user) -> User:
    return await make_user(full_name="Alex Attendee")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user(role=UserRole.ADMIN, full_name="Ada Admin")


@pytest_asyncio.fixture
async def super_admin(make_user) -> User:
    return await make_user(role=UserRole.SUPER_ADMIN, full_name="Sam Super")


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    """Authorization headers with a Bearer token for a user."""

    def _auth_headers(user: User) -> Dict[str, str]:
        token = create_access_token(data={"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
