"""Fixtures de test / Test fixtures.

Base SQLite en mémoire par test, get_db surchargé, rate limiting coupé.
In-memory SQLite database per test, get_db overridden, rate limiting off.
"""

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="circulapp-uploads-")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import circulapp.models  # noqa: E402,F401
from circulapp.database import Base, get_db  # noqa: E402
from circulapp.main import app  # noqa: E402
from circulapp.models.user import User, UserType  # noqa: E402
from circulapp.utils.auth import create_access_token, hash_password  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def create_user(session_factory, email: str, user_type: UserType = UserType.INDIVIDUAL, **kwargs) -> User:
    async with session_factory() as session:
        user = User(
            name=kwargs.pop("name", email.split("@")[0].title()),
            email=email,
            hashed_password=hash_password(PASSWORD),
            user_type=user_type,
            **kwargs,
        )
        session.add(user)
        await session.commit()
        return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
async def admin(session_factory):
    return await create_user(session_factory, "admin@comuna.gob.ar", UserType.COMUNA, is_verified=True)


@pytest.fixture
async def alice(session_factory):
    return await create_user(session_factory, "alice@example.com", lat=-34.60, lng=-58.38)


@pytest.fixture
async def bob(session_factory):
    return await create_user(session_factory, "bob@example.com", lat=-34.61, lng=-58.40)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def alice_headers(alice):
    return auth_headers(alice)


@pytest.fixture
def bob_headers(bob):
    return auth_headers(bob)


def product_payload(**overrides) -> dict:
    payload = {
        "title": "Silla de madera",
        "description": "Silla de madera en buen estado, solo retirar",
        "category": "furniture",
        "condition": "good",
        "weight": 4.5,
        "address": "Av. Corrientes 1234",
        "lat": -34.6037,
        "lng": -58.3816,
        "city": "Buenos Aires",
        "zone": "Centro",
    }
    payload.update(overrides)
    return payload
