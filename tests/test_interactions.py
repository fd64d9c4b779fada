from __future__ import annotations

import asyncio

import pytest
from conftest import ALICE, BOB, add_post

from app.core.errors import AuthRequired, StoreError
from app.models import PostLike
from app.services.interactions import InteractionTracker, LikeState, SaveState


@pytest.fixture
def tracker(store) -> InteractionTracker:
    return InteractionTracker(store)


async def test_anonymous_viewer_sees_count_but_not_liked(tracker, store) -> None:
    post = await add_post(store)
    await store.insert(PostLike, {"post_id": post.id, "user_id": BOB})

    assert await tracker.get_like_state(post.id) == LikeState(liked=False, count=1)
    assert await tracker.get_save_state(post.id) == SaveState(saved=False)


async def test_viewer_like_state(tracker, store) -> None:
    post = await add_post(store)
    await store.insert(PostLike, {"post_id": post.id, "user_id": ALICE})
    await store.insert(PostLike, {"post_id": post.id, "user_id": BOB})

    assert await tracker.get_like_state(post.id, ALICE) == LikeState(liked=True, count=2)


async def test_toggle_like_twice_restores_state(tracker, store) -> None:
    post = await add_post(store)
    await store.insert(PostLike, {"post_id": post.id, "user_id": BOB})
    before = await tracker.get_like_state(post.id, ALICE)

    liked = await tracker.toggle_like(post.id, ALICE)
    assert liked == LikeState(liked=True, count=2)

    after = await tracker.toggle_like(post.id, ALICE)
    assert after == before
    assert await store.count(PostLike, eq={"post_id": post.id}) == 1


async def test_toggle_save_twice_restores_state(tracker, store) -> None:
    post = await add_post(store)

    assert await tracker.toggle_save(post.id, ALICE) == SaveState(saved=True)
    assert await tracker.toggle_save(post.id, ALICE) == SaveState(saved=False)


@pytest.mark.parametrize("viewer", [None, ""])
async def test_toggles_need_a_viewer(tracker, store, calls, viewer) -> None:
    post = await add_post(store)
    calls.clear()

    with pytest.raises(AuthRequired):
        await tracker.toggle_save(post.id, viewer)
    with pytest.raises(AuthRequired):
        await tracker.toggle_like(post.id, viewer)

    assert calls == []


async def test_duplicate_like_is_rejected_by_store(store) -> None:
    post = await add_post(store)
    await store.insert(PostLike, {"post_id": post.id, "user_id": ALICE})

    with pytest.raises(StoreError):
        await store.insert(PostLike, {"post_id": post.id, "user_id": ALICE})


async def test_rejected_toggle_reloads_state(tracker, store) -> None:
    post_id = (await add_post(store)).id
    await tracker.get_like_state(post_id, ALICE)
    # Liked from another window; this tracker still believes "not liked".
    await InteractionTracker(store).toggle_like(post_id, ALICE)

    with pytest.raises(StoreError):
        await tracker.toggle_like(post_id, ALICE)

    assert tracker.like_state(post_id, ALICE) == LikeState(liked=True, count=1)
    assert await tracker.toggle_like(post_id, ALICE) == LikeState(liked=False, count=0)


async def test_concurrent_toggles_are_serialized(tracker, store) -> None:
    post = await add_post(store)

    first, second = await asyncio.gather(
        tracker.toggle_like(post.id, ALICE),
        tracker.toggle_like(post.id, ALICE),
    )

    assert first == LikeState(liked=True, count=1)
    assert second == LikeState(liked=False, count=0)


async def test_concurrent_toggles_from_separate_trackers_are_serialized(store) -> None:
    post_id = (await add_post(store)).id
    await store.insert(PostLike, {"post_id": post_id, "user_id": BOB})

    first, second = await asyncio.gather(
        InteractionTracker(store).toggle_like(post_id, ALICE),
        InteractionTracker(store).toggle_like(post_id, ALICE),
    )

    assert first == LikeState(liked=True, count=2)
    assert second == LikeState(liked=False, count=1)
    assert await store.count(PostLike, eq={"post_id": post_id}) == 1
