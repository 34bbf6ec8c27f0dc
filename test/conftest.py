"""
Pytest configuration and fixtures for the engagement service tests
"""

import os
import sys
import tempfile
from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120

# Point the app at a throwaway SQLite file BEFORE importing it. A file (not
# :memory:) so background recomputes opening their own sessions see the same data.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="engagement-test-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"  # noqa: PTH118
os.environ.setdefault("STATS_RECONCILE_INTERVAL_MINUTES", "0")
os.environ.setdefault("LOG_JSON", "false")

import fakeredis  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from engagement import database  # noqa: E402
from engagement.auth import create_access_token  # noqa: E402
from engagement.database import Base  # noqa: E402
from engagement.main import app  # noqa: E402
from engagement.middleware.rate_limit import limiter  # noqa: E402
from engagement.models import BlogPost, CommunityPost, User  # noqa: E402
from engagement.services.post_resolver import PostRef, PostType  # noqa: E402
from engagement.utils.background import drain_background_tasks  # noqa: E402
from engagement.utils.cache import cache_manager  # noqa: E402

BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
GOOGLEBOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


@pytest.fixture(scope="function", autouse=True)
async def setup_database():
    """Create a fresh schema for each test function"""
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield

    # Background recomputes must finish before their tables disappear
    await drain_background_tasks(timeout=5)
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled connections belong to this test's event loop
    await database.engine.dispose()


@pytest.fixture(scope="function", autouse=True)
async def fake_redis():
    """In-memory Redis behind the global cache manager"""
    redis = fakeredis.FakeAsyncRedis(decode_responses=True)
    cache_manager._redis = redis
    cache_manager._enabled = True
    limiter.reset()

    yield redis

    await redis.flushall()
    cache_manager._redis = None
    cache_manager._pool = None


@pytest.fixture
async def test_db() -> AsyncGenerator[AsyncSession, None]:
    async with database.session_factory()() as session:
        yield session


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _create_user(db: AsyncSession, username: str, role: str = "user") -> User:
    user = User(username=username, email=f"{username}@example.com", role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def viewer(test_db: AsyncSession) -> User:
    return await _create_user(test_db, "viewer")


@pytest.fixture
async def other_viewer(test_db: AsyncSession) -> User:
    return await _create_user(test_db, "otherviewer")


@pytest.fixture
async def admin_user(test_db: AsyncSession) -> User:
    return await _create_user(test_db, "admin", role="admin")


@pytest.fixture
async def editorial_post(test_db: AsyncSession) -> BlogPost:
    post = BlogPost(title="Sabbath Reflections", slug="sabbath-reflections", excerpt="A short reflection")
    test_db.add(post)
    await test_db.commit()
    await test_db.refresh(post)
    return post


@pytest.fixture
async def community_post(test_db: AsyncSession, viewer: User) -> CommunityPost:
    post = CommunityPost(title="My Testimony", slug="my-testimony", author_id=viewer.id)
    test_db.add(post)
    await test_db.commit()
    await test_db.refresh(post)
    return post


@pytest.fixture
def editorial_ref(editorial_post: BlogPost) -> PostRef:
    return PostRef(PostType.EDITORIAL, editorial_post.id)


@pytest.fixture
def community_ref(community_post: CommunityPost) -> PostRef:
    return PostRef(PostType.COMMUNITY, community_post.id)


def auth_cookies(user: User) -> dict:
    """Cookie jar contents of a signed-in user"""
    token = create_access_token(data={"sub": user.email}, expires_delta=timedelta(minutes=30))
    return {"access_token": token}
