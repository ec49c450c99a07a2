import os

# Settings are read at import time; point everything at throwaway state first.
os.environ["DB_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.db import Base
from app.core.db.engine import create_engine_for, create_session_factory, get_db_util
from app.modules.transactions.side_effects import (
    SideEffectDispatcher,
    get_side_effect_dispatcher,
)
from app.modules.users.models import Role, User
from tests.factories import FakeEmailService, make_user


@pytest.fixture()
async def engine():
    test_engine = create_engine_for("sqlite+aiosqlite:///:memory:")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture()
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def fake_email() -> FakeEmailService:
    return FakeEmailService()


@pytest.fixture()
def dispatcher(session_factory, fake_email) -> SideEffectDispatcher:
    return SideEffectDispatcher(
        session_factory=session_factory,
        email=fake_email,
        max_attempts=2,
        retry_delay=0,
    )


@pytest.fixture()
async def borrower(db) -> User:
    return await make_user(db, "alice")


@pytest.fixture()
async def approver(db) -> User:
    return await make_user(db, "sam", Role.STAFF)


@pytest.fixture()
async def client(session_factory, dispatcher):
    from app.main import app

    async def override_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_util] = override_db
    app.dependency_overrides[get_side_effect_dispatcher] = lambda: dispatcher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()
