import os

import bcrypt

# Configure the app for tests before any portfolio module reads settings
ADMIN_PASSWORD = "test-admin-password"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ADMIN_PASSWORD_HASH"] = bcrypt.hashpw(ADMIN_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["AWS_S3_BUCKET"] = "test-bucket"
os.environ["CDN_DOMAIN"] = "cdn.test"

import io  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient  # noqa: E402
from httpx._transports.asgi import ASGITransport  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from portfolio.database import Base, get_db  # noqa: E402
from portfolio.main import app  # noqa: E402
from portfolio.services import storage_service  # noqa: E402
from portfolio.utils.jwt_auth import create_access_token  # noqa: E402
import portfolio.models  # noqa: E402,F401


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    yield factory

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


class FakeStorage:
    """In-memory stand-in for the S3 bucket."""

    def __init__(self):
        self.objects = {}
        self.deleted = []

    async def upload_bytes(self, data, key, content_type, max_retries=3):
        self.objects[key] = (data, content_type)
        return {"key": key, "url": storage_service.public_url(key), "bytes": len(data)}

    async def delete_object(self, key):
        self.deleted.append(key)
        self.objects.pop(key, None)


@pytest.fixture(autouse=True)
def storage(monkeypatch):
    fake = FakeStorage()
    monkeypatch.setattr(storage_service, "upload_bytes", fake.upload_bytes)
    monkeypatch.setattr(storage_service, "delete_object", fake.delete_object)
    return fake


@pytest.fixture
def app_db(session_factory):
    """Route the app's sessions to the per-test database."""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def no_auth_client(app_db):
    transport = ASGITransport(app=app_db)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def async_client(app_db):
    token = create_access_token({"role": "admin", "sub": "cms_admin"})
    transport = ASGITransport(app=app_db)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        ac.headers.update({"Authorization": f"Bearer {token}"})
        yield ac


def make_image_bytes(size=(64, 48), color=(200, 30, 30), fmt="JPEG", exif=None) -> bytes:
    image = Image.new("RGB", size, color)
    buffer = io.BytesIO()
    if exif is not None:
        image.save(buffer, format=fmt, exif=exif)
    else:
        image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_gif_bytes(size=(32, 32)) -> bytes:
    frames = [Image.new("P", size, index) for index in (1, 2)]
    buffer = io.BytesIO()
    frames[0].save(buffer, format="GIF", save_all=True, append_images=frames[1:], duration=100, loop=0)
    return buffer.getvalue()


@pytest.fixture
def image_bytes():
    return make_image_bytes()


@pytest.fixture
def gif_bytes():
    return make_gif_bytes()
