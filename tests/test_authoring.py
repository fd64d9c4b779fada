from __future__ import annotations

import pytest
from conftest import ALICE, add_post

from app.models import Post
from app.services.authoring import AuthoringState, PostAuthoringFlow, PostDraft
from app.services.media import ImageFile, ImageUrl

JPEG = ImageFile(filename="sunset.jpg", media_type="image/jpeg", data=b"\xff\xd8sunset")


@pytest.fixture
def completed() -> list:
    return []


@pytest.fixture
def flow(repository, completed) -> PostAuthoringFlow:
    async def on_complete(post) -> None:
        completed.append(post)

    return PostAuthoringFlow(repository, on_complete=on_complete)


async def test_empty_fields_stay_in_validation(flow, store, completed) -> None:
    flow.draft.content = "Only content"

    result = await flow.submit()

    assert result is None
    assert flow.state is AuthoringState.VALIDATING
    assert set(flow.status.field_errors) == {"title"}
    assert flow.draft.content == "Only content"
    assert store.mutations() == []
    assert completed == []


async def test_successful_submit_resets_draft_and_notifies(flow, store, completed) -> None:
    flow.draft = PostDraft(title="Cinque Terre", content="Five villages", location="Italy")

    post = await flow.submit()

    assert flow.state is AuthoringState.SUCCESS
    assert post is not None and post.location == "Italy"
    assert flow.draft == PostDraft()
    assert completed == [post]
    assert await store.count(Post, eq={"user_id": ALICE}) == 1


async def test_sync_completion_callback_is_supported(repository) -> None:
    seen: list[str] = []
    flow = PostAuthoringFlow(repository, on_complete=lambda post: seen.append(post.id))
    flow.draft = PostDraft(title="Oslo", content="Fjords")

    post = await flow.submit()

    assert seen == [post.id]


async def test_upload_happens_in_uploading_state(flow, blobs, calls) -> None:
    states: list[AuthoringState] = []
    original_upload = blobs.upload

    async def watching_upload(key, data, media_type):
        states.append(flow.state)
        await original_upload(key, data, media_type)

    blobs.upload = watching_upload
    flow.draft = PostDraft(title="Sunset", content="Over the bay", image=JPEG)

    post = await flow.submit()

    assert states == [AuthoringState.UPLOADING]
    assert [c[0] for c in calls if c[0] in {"upload", "insert"}] == ["upload", "insert"]
    assert post.image_url.startswith("https://cdn.example.test/post-images/")


async def test_upload_failure_fails_without_submitting(flow, store, blobs, completed) -> None:
    blobs.fail_uploads = True
    flow.draft = PostDraft(title="Sunset", content="Over the bay", image=JPEG)

    result = await flow.submit()

    assert result is None
    assert flow.state is AuthoringState.FAILED
    assert flow.status.error == "The resource already exists"
    assert flow.draft.title == "Sunset"
    assert flow.draft.image is JPEG
    assert store.mutations() == []
    assert completed == []


async def test_submit_failure_discards_upload_and_keeps_draft(flow, store, blobs, calls) -> None:
    store.reject_inserts.add("posts")
    flow.draft = PostDraft(title="Sunset", content="Over the bay", image=JPEG)

    result = await flow.submit()

    assert result is None
    assert flow.state is AuthoringState.FAILED
    assert [c[0] for c in calls] == ["upload", "insert", "remove"]
    assert blobs.objects == {}
    assert flow.draft.title == "Sunset"


async def test_edit_session_updates_existing_post(repository, store) -> None:
    row = await add_post(store, location="Phuket", image_url="https://example.com/old.jpg")
    flow = PostAuthoringFlow(repository)
    flow.load(await repository.get_post(row.id))
    assert flow.draft.image == ImageUrl("https://example.com/old.jpg")

    flow.draft.location = ""
    flow.draft.image = None
    post = await flow.submit()

    assert flow.state is AuthoringState.SUCCESS
    assert post.id == row.id
    assert post.location is None
    assert post.image_url is None
    assert await store.count(Post) == 1


async def test_edit_session_with_new_image(repository, store, calls) -> None:
    row = await add_post(store)
    flow = PostAuthoringFlow(repository)
    flow.load(await repository.get_post(row.id))
    flow.draft.image = JPEG

    post = await flow.submit()

    kinds = [c[0] for c in calls]
    assert kinds.index("upload") < kinds.index("update")
    assert post.image_url.endswith(".jpg")
    assert flow.draft.image == ImageUrl(post.image_url)
