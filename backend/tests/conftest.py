import os
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Default DATABASE_URL (not used by tests that use the per-session engine)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
from partstock.main import app
from partstock.db.database import Base, get_db
from partstock.core.security import create_access_token
from partstock.services.inventory import create_item


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
async def test_engine(tmp_path_factory):
    # On-disk SQLite so the app's request sessions and the test session share one database
    db_path = tmp_path_factory.mktemp("db") / "partstock_test.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_session(test_engine):
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(test_session):
    # Refresh objects held by the test session after each response so assertions
    # see the rows the request-handling sessions committed.
    async def _on_response(response):
        for inst in list(test_session.identity_map.values()):
            try:
                await test_session.refresh(inst)
            except Exception:
                # Deleted or detached instances cannot be refreshed
                pass

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        event_hooks={"response": [_on_response]},
    ) as ac:
        yield ac


@pytest.fixture(scope="session", autouse=True)
async def override_get_db_for_app(test_engine):
    """Route the app's get_db dependency to the session-scoped test engine."""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
async def clean_tables(test_engine):
    """Ensure DB is empty before each test by deleting from all tables (keep schema intact)."""
    async with test_engine.begin() as conn:
        # delete in reverse order to respect FK constraints
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())
    yield


@pytest.fixture
def auth_headers():
    token = create_access_token({"sub": "Jane Mechanic"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_item(test_session):
    """Create a part through the service layer (so the initial procurement is booked)."""
    async def _make_item(item_id="BRK-PAD-001", **overrides):
        data = {
            "item_id": item_id,
            "item_name": "Brake Pads - Front Set",
            "category": "Brakes",
            "stock": 25,
            "reorder_level": 10,
            "unit_price": 45.99,
            "supplier": "AutoParts Plus",
            "location": "A1-01",
        }
        data.update(overrides)
        return await create_item(test_session, data, "Test Setup")

    return _make_item
