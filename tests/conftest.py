"""Shared fixtures. The environment is set before any `ecolens` module is imported."""

import io
import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="ecolens-tests-")
os.environ.setdefault("DATABASE_URL_OVERRIDE", f"sqlite+aiosqlite:///{_TEST_DIR}/app.db")
os.environ.setdefault("MAIL_SUPPRESS_SEND", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("MEDIA_ROOT", os.path.join(_TEST_DIR, "media"))

import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ecolens.core.security import get_password_hash
from ecolens.models.base import Base
from ecolens.models.user import User


@pytest.fixture
def jpeg_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (16, 16), color=(120, 80, 40)).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (16, 16), color=(20, 160, 60)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/reports.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    session_factory = async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def reporter(db_session) -> User:
    user = User(
        name="Asha",
        email="asha@mail.com",
        password_hash=get_password_hash("secret123"),
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user
