from __future__ import annotations

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.services.auth import AuthService, get_session
from app.services.chat_relay import ChatRelay
from app.services.interactions import InteractionTracker
from app.services.posts import PostRepository
from app.services.profiles import ProfileService
from app.services.session import SessionContext
from app.services.storage import BlobStore, S3BlobStore
from app.store.remote import RemoteStore


@lru_cache(maxsize=1)
def _s3_blob_store() -> S3BlobStore:
    return S3BlobStore()


def get_blob_store() -> BlobStore:
    return _s3_blob_store()


def get_chat_relay() -> ChatRelay:
    return ChatRelay()


async def get_store(db: AsyncSession = Depends(get_db)) -> RemoteStore:
    return RemoteStore(db)


async def get_post_repository(
    store: RemoteStore = Depends(get_store),
    blobs: BlobStore = Depends(get_blob_store),
    session: SessionContext = Depends(get_session),
) -> PostRepository:
    return PostRepository(store, blobs, session)


async def get_interaction_tracker(store: RemoteStore = Depends(get_store)) -> InteractionTracker:
    return InteractionTracker(store)


async def get_profile_service(
    store: RemoteStore = Depends(get_store),
    posts: PostRepository = Depends(get_post_repository),
    session: SessionContext = Depends(get_session),
) -> ProfileService:
    return ProfileService(store, posts, session)


async def get_auth_service(
    store: RemoteStore = Depends(get_store),
    session: SessionContext = Depends(get_session),
) -> AuthService:
    return AuthService(store, session)
