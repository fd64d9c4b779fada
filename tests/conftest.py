from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_travelblog.db")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("DEEPSEEK_API_KEY", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import AsyncIterator  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.errors import StoreError  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.models import Post, Profile  # noqa: E402
from app.services.posts import PostRepository  # noqa: E402
from app.services.session import Identity, SessionContext  # noqa: E402
from app.store.remote import RemoteStore  # noqa: E402

ALICE = "00000000-0000-0000-0000-00000000a11c"
BOB = "00000000-0000-0000-0000-000000000b0b"


class RecordingStore(RemoteStore):
    """RemoteStore that logs every call and can be told to reject inserts per table."""

    def __init__(self, db: AsyncSession, calls: list[tuple[str, str]]) -> None:
        super().__init__(db)
        self.calls = calls
        self.reject_inserts: set[str] = set()

    async def select(self, model, **kwargs):
        self.calls.append(("select", model.__tablename__))
        return await super().select(model, **kwargs)

    async def insert(self, model, values):
        self.calls.append(("insert", model.__tablename__))
        if model.__tablename__ in self.reject_inserts:
            raise StoreError(f"insert into {model.__tablename__} rejected")
        return await super().insert(model, values)

    async def update(self, model, values, *, eq):
        self.calls.append(("update", model.__tablename__))
        return await super().update(model, values, eq=eq)

    async def delete(self, model, *, eq):
        self.calls.append(("delete", model.__tablename__))
        return await super().delete(model, eq=eq)

    def mutations(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] in {"insert", "update", "delete"}]


class MemoryBlobStore:
    def __init__(self, calls: list[tuple[str, str]]) -> None:
        self.calls = calls
        self.objects: dict[str, bytes] = {}
        self.fail_uploads = False

    async def upload(self, object_key: str, data: bytes, media_type: str) -> None:
        self.calls.append(("upload", object_key))
        if self.fail_uploads:
            raise StoreError("The resource already exists")
        self.objects[object_key] = data

    def public_url(self, object_key: str) -> str:
        return f"https://cdn.example.test/post-images/{object_key}"

    async def remove(self, object_key: str) -> None:
        self.calls.append(("remove", object_key))
        self.objects.pop(object_key, None)


@pytest.fixture
async def engine() -> AsyncIterator:
    eng = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def db(engine) -> AsyncIterator[AsyncSession]:
    maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with maker() as session:
        yield session


@pytest.fixture
def calls() -> list[tuple[str, str]]:
    return []


@pytest.fixture
def store(db, calls) -> RecordingStore:
    return RecordingStore(db, calls)


@pytest.fixture
def blobs(calls) -> MemoryBlobStore:
    return MemoryBlobStore(calls)


@pytest.fixture
def session() -> SessionContext:
    return SessionContext(Identity(user_id=ALICE, email="alice@example.com"))


@pytest.fixture
def repository(store, blobs, session) -> PostRepository:
    return PostRepository(store, blobs, session)


async def add_post(
    store: RemoteStore,
    *,
    user_id: str = ALICE,
    title: str = "Phuket",
    content: str = "Beaches",
    minutes_ago: int = 0,
    **extra,
) -> Post:
    created = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago)
    return await RemoteStore.insert(
        store,
        Post,
        {"user_id": user_id, "title": title, "content": content, "created_at": created, **extra},
    )


async def add_profile(store: RemoteStore, user_id: str, **fields) -> Profile:
    return await RemoteStore.insert(store, Profile, {"user_id": user_id, **fields})
