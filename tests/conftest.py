"""Test fixtures — a throwaway SQLite database per test.

1. ALERA_* env vars are set before anything imports alera.config, so the
   settings singleton sees the test values (no geo lookups, no Stripe).
2. Each test gets a fresh SQLite file under tmp_path with every table
   created from the models.
3. The app's get_db is overridden so every request opens its own session
   on that file, just like production. Tests seed and inspect through
   `db_session`, a separate session on the same file.

Rate limiting is skipped because Redis is never initialized (ASGITransport
doesn't run the lifespan).
"""

import os

os.environ.setdefault("ALERA_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ALERA_JWT_SECRET", "test-secret-key-with-enough-bytes-for-hs256")
os.environ.setdefault("ALERA_GEOIP_LOOKUP_ENABLED", "false")
os.environ.setdefault("ALERA_STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("ALERA_STRIPE_WEBHOOK_SECRET", "whsec_test_dummy")
os.environ.setdefault("ALERA_STRIPE_PLUS_PRICE_ID", "price_plus_monthly")
os.environ.setdefault("ALERA_STRIPE_PLUS_YEARLY_PRICE_ID", "price_plus_yearly")
os.environ.setdefault("ALERA_STRIPE_PRO_PRICE_ID", "price_pro_monthly")
os.environ.setdefault("ALERA_STRIPE_PRO_YEARLY_PRICE_ID", "price_pro_yearly")
os.environ.setdefault("ALERA_STRIPE_PLUS_INDIA_MONTHLY_PRICE_ID", "price_plus_in_monthly")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool  # noqa: E402

from alera.auth.password import hash_password  # noqa: E402
from alera.auth.tokens import create_access_token  # noqa: E402
from alera.db.engine import get_db  # noqa: E402
from alera.db.models import Base, Subscription, User  # noqa: E402
from alera.main import app  # noqa: E402

DEFAULT_PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture()
async def session_factory(tmp_path):
    """Fresh database file with the full schema."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'alera-test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """Session for seeding and inspecting rows outside of requests.

    Rows written by a request are only visible through a query with
    populate_existing, since this session may hold stale copies. Avoid
    `expire_all()`: a later attribute read would lazy load outside the
    async context.
    """
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with the app's get_db pointed at the test database.

    Auth is not overridden: protected routes need a real bearer token,
    see the `auth_headers` helper.
    """

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ─── Users ──────────────────────────────────────────────


def auth_headers(user: User) -> dict:
    """Bearer header for a seeded user."""
    token = create_access_token(user.id, is_admin=user.is_admin)
    return {"Authorization": f"Bearer {token}"}


async def make_user(
    db: AsyncSession,
    email: str,
    *,
    artist_name: str = "Test Artist",
    is_admin: bool = False,
    is_verified: bool = True,
    tier: str = "trial",
    password: str = DEFAULT_PASSWORD,
) -> User:
    """Insert a user with a subscription row and commit."""
    user = User(
        email=email,
        password_hash=hash_password(password),
        artist_name=artist_name,
        is_admin=is_admin,
        is_verified=is_verified,
    )
    db.add(user)
    await db.flush()
    db.add(Subscription(user_id=user.id, tier=tier, status="active"))
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture()
async def artist(db_session):
    return await make_user(db_session, "artist@example.com", artist_name="Nova")


@pytest_asyncio.fixture()
async def other_artist(db_session):
    return await make_user(db_session, "other@example.com", artist_name="Echo")


@pytest_asyncio.fixture()
async def admin(db_session):
    return await make_user(
        db_session, "admin@example.com", artist_name="Ops", is_admin=True
    )
