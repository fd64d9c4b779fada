from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass

from app.core.errors import AuthRequired, StoreError
from app.models.social import PostLike, SavedPost
from app.store.remote import RemoteStore

logger = logging.getLogger(__name__)

# One lock per (kind, post, viewer), shared by all trackers.
_toggle_locks: weakref.WeakValueDictionary[tuple[str, str, str], asyncio.Lock] = weakref.WeakValueDictionary()


@dataclass(frozen=True, slots=True)
class LikeState:
    liked: bool
    count: int


@dataclass(frozen=True, slots=True)
class SaveState:
    saved: bool


class InteractionTracker:
    """Like/save state for one viewer session.

    State fetched or produced by a toggle is kept per (post, viewer) for the
    lifetime of the tracker. Toggles on the same pair run one at a time
    across all trackers in the process; a rejected toggle re-reads the store
    before the error is re-raised, so the local state never drifts from what
    is stored.
    """

    def __init__(self, store: RemoteStore) -> None:
        self.store = store
        self._likes: dict[tuple[str, str | None], LikeState] = {}
        self._saves: dict[tuple[str, str | None], SaveState] = {}

    @staticmethod
    def _lock(kind: str, post_id: str, viewer_id: str) -> asyncio.Lock:
        key = (kind, post_id, viewer_id)
        lock = _toggle_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            _toggle_locks[key] = lock
        return lock

    def like_state(self, post_id: str, viewer_id: str | None = None) -> LikeState | None:
        return self._likes.get((post_id, viewer_id))

    def save_state(self, post_id: str, viewer_id: str | None = None) -> SaveState | None:
        return self._saves.get((post_id, viewer_id))

    async def get_like_state(self, post_id: str, viewer_id: str | None = None) -> LikeState:
        count = await self.store.count(PostLike, eq={"post_id": post_id})
        liked = False
        if viewer_id:
            liked = await self.store.select_one(PostLike, eq={"post_id": post_id, "user_id": viewer_id}) is not None
        state = LikeState(liked=liked, count=count)
        self._likes[(post_id, viewer_id)] = state
        return state

    async def get_save_state(self, post_id: str, viewer_id: str | None = None) -> SaveState:
        saved = False
        if viewer_id:
            saved = await self.store.select_one(SavedPost, eq={"post_id": post_id, "user_id": viewer_id}) is not None
        state = SaveState(saved=saved)
        self._saves[(post_id, viewer_id)] = state
        return state

    async def toggle_like(self, post_id: str, viewer_id: str | None) -> LikeState:
        if not viewer_id:
            raise AuthRequired("You must be logged in to like posts.")

        async with self._lock("like", post_id, viewer_id):
            current = self.like_state(post_id, viewer_id) or await self.get_like_state(post_id, viewer_id)
            key = {"post_id": post_id, "user_id": viewer_id}
            try:
                if current.liked:
                    await self.store.delete(PostLike, eq=key)
                else:
                    await self.store.insert(PostLike, key)
            except StoreError:
                logger.warning("Like toggle rejected for post=%s viewer=%s; reloading state", post_id, viewer_id)
                await self.get_like_state(post_id, viewer_id)
                raise

            count = await self.store.count(PostLike, eq={"post_id": post_id})
            state = LikeState(liked=not current.liked, count=count)
            self._likes[(post_id, viewer_id)] = state
            return state

    async def toggle_save(self, post_id: str, viewer_id: str | None) -> SaveState:
        if not viewer_id:
            raise AuthRequired("You must be logged in to save posts.")

        async with self._lock("save", post_id, viewer_id):
            current = self.save_state(post_id, viewer_id) or await self.get_save_state(post_id, viewer_id)
            key = {"post_id": post_id, "user_id": viewer_id}
            try:
                if current.saved:
                    await self.store.delete(SavedPost, eq=key)
                else:
                    await self.store.insert(SavedPost, key)
            except StoreError:
                logger.warning("Save toggle rejected for post=%s viewer=%s; reloading state", post_id, viewer_id)
                await self.get_save_state(post_id, viewer_id)
                raise

            state = SaveState(saved=not current.saved)
            self._saves[(post_id, viewer_id)] = state
            return state
