from pathlib import Path
from typing import List, Optional, Set

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config import settings
from database import Base, get_db
from main import app
from models.user import User
from routers import rate_limit
from services.errors import DeleteFailed, UploadFailed
from services.media_store import RemoteAsset, get_media_store
from services.session_token import hash_password
from services.uploads import release_buffer

DEFAULT_PASSWORD = "secret-pass1"


class FakeMediaStore:
    """In-memory stand-in for the Cloudinary-backed store."""

    def __init__(self):
        self.uploaded: List[str] = []
        self.removed: List[str] = []
        self.fail_transfer_at: Optional[int] = None
        self.fail_remove_urls: Set[str] = set()
        self._transfers = 0

    async def transfer(self, local_path: Path, resource_type: str = "image") -> RemoteAsset:
        self._transfers += 1
        if self.fail_transfer_at is not None and self._transfers == self.fail_transfer_at:
            raise UploadFailed("Media upload failed: simulated outage")
        path = Path(local_path)
        url = f"https://res.cloudinary.com/demo/{resource_type}/upload/v1712/{path.name}"
        release_buffer(path)
        self.uploaded.append(url)
        return RemoteAsset(
            url=url,
            public_id=path.stem,
            resource_type=resource_type,
            duration=42 if resource_type == "video" else None,
        )

    async def remove(self, url: Optional[str]) -> None:
        if not url:
            return
        if url in self.fail_remove_urls:
            raise DeleteFailed("Media delete failed: simulated outage")
        self.removed.append(url)


@pytest.fixture(autouse=True)
def reset_local_rate_limit_counters():
    """Keep in-memory rate-limit state isolated between tests."""
    previous = getattr(app.state, "disable_rate_limits", False)
    app.state.disable_rate_limits = True
    rate_limit._local_counters.clear()
    yield
    rate_limit._local_counters.clear()
    app.state.disable_rate_limits = previous


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    target = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_TEMP_DIR", str(target))
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)
    return target


@pytest.fixture
def media_store():
    return FakeMediaStore()


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "vidshare.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker
    await engine.dispose()


@pytest_asyncio.fixture
async def client(session_maker, media_store):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_store] = lambda: media_store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_media_store, None)


async def create_user(session_maker, username: str, role: str = "user", password: str = DEFAULT_PASSWORD) -> User:
    async with session_maker() as session:
        user = User(
            username=username,
            email=f"{username}@example.com",
            full_name=username.title(),
            password=hash_password(password),
            role=role,
            watch_history=[],
        )
        session.add(user)
        await session.commit()
        return user


async def login(client: AsyncClient, username: str, password: str = DEFAULT_PASSWORD) -> dict:
    """Log in and return the token pair; the cookie jar is cleared so headers decide identity."""
    response = await client.post("/api/v1/user/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return response.json()["data"]


def bearer(tokens: dict) -> dict:
    return {"Authorization": f"Bearer {tokens['accessToken']}"}
