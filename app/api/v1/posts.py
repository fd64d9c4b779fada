from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from app.api.v1.deps import get_interaction_tracker, get_post_repository
from app.core.errors import AppError, ValidationFailed
from app.schemas.common import MessageResponse
from app.schemas.post import LikeStateOut, PostOut, PostPatch, SaveStateOut, ShareOut
from app.services.auth import get_session
from app.services.authoring import PostAuthoringFlow
from app.services.interactions import InteractionTracker
from app.services.media import ImageFile, ImageSource, ImageUrl
from app.services.posts import PostRepository, share_payload
from app.services.session import SessionContext

router = APIRouter(prefix="/posts", tags=["posts"])


async def _image_source(image: UploadFile | None, image_url: str | None) -> ImageSource | None:
    if image is not None and image.filename:
        return ImageFile(
            filename=image.filename,
            media_type=str(image.content_type or "application/octet-stream"),
            data=await image.read(),
        )
    if image_url:
        return ImageUrl(image_url)
    return None


def _raise_failure(flow: PostAuthoringFlow) -> None:
    failure: AppError | None = flow.status.failure
    if failure is None:
        failure = ValidationFailed(flow.status.error or "Post could not be saved", flow.status.field_errors)
    raise failure


@router.get("", response_model=list[PostOut])
async def list_posts(
    user_id: str | None = Query(default=None),
    posts: PostRepository = Depends(get_post_repository),
) -> list[PostOut]:
    return await posts.list_posts(user_id=user_id)


@router.post("", response_model=PostOut, status_code=201)
async def create_post(
    title: str = Form(default=""),
    content: str = Form(default=""),
    location: str | None = Form(default=None),
    image_url: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    posts: PostRepository = Depends(get_post_repository),
) -> PostOut:
    posts.session.require()
    flow = PostAuthoringFlow(posts)
    flow.draft.title = title
    flow.draft.content = content
    flow.draft.location = location or ""
    flow.draft.image = await _image_source(image, image_url)

    created = await flow.submit()
    if created is None:
        _raise_failure(flow)
    return created


@router.get("/{post_id}", response_model=PostOut)
async def get_post(post_id: str, posts: PostRepository = Depends(get_post_repository)) -> PostOut:
    return await posts.get_post(post_id)


@router.patch("/{post_id}", response_model=PostOut)
async def edit_post(
    post_id: str,
    payload: PostPatch,
    posts: PostRepository = Depends(get_post_repository),
) -> PostOut:
    await posts.update_post(post_id, payload)
    return await posts.get_post(post_id)


@router.post("/{post_id}/image", response_model=PostOut)
async def replace_post_image(
    post_id: str,
    image: UploadFile = File(...),
    posts: PostRepository = Depends(get_post_repository),
) -> PostOut:
    posts.session.require()
    flow = PostAuthoringFlow(posts)
    flow.load(await posts.get_post(post_id))
    flow.draft.image = await _image_source(image, None)

    updated = await flow.submit()
    if updated is None:
        _raise_failure(flow)
    return updated


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    confirm: bool = Query(default=False),
    posts: PostRepository = Depends(get_post_repository),
) -> MessageResponse:
    await posts.delete_post(post_id, confirmed=confirm)
    return MessageResponse(message="Post deleted")


@router.get("/{post_id}/likes", response_model=LikeStateOut)
async def get_likes(
    post_id: str,
    session: SessionContext = Depends(get_session),
    tracker: InteractionTracker = Depends(get_interaction_tracker),
) -> LikeStateOut:
    state = await tracker.get_like_state(post_id, session.user_id)
    return LikeStateOut(liked=state.liked, count=state.count)


@router.post("/{post_id}/likes/toggle", response_model=LikeStateOut)
async def toggle_like(
    post_id: str,
    session: SessionContext = Depends(get_session),
    tracker: InteractionTracker = Depends(get_interaction_tracker),
) -> LikeStateOut:
    state = await tracker.toggle_like(post_id, session.user_id)
    return LikeStateOut(liked=state.liked, count=state.count)


@router.get("/{post_id}/saves", response_model=SaveStateOut)
async def get_saves(
    post_id: str,
    session: SessionContext = Depends(get_session),
    tracker: InteractionTracker = Depends(get_interaction_tracker),
) -> SaveStateOut:
    state = await tracker.get_save_state(post_id, session.user_id)
    return SaveStateOut(saved=state.saved)


@router.post("/{post_id}/saves/toggle", response_model=SaveStateOut)
async def toggle_save(
    post_id: str,
    session: SessionContext = Depends(get_session),
    tracker: InteractionTracker = Depends(get_interaction_tracker),
) -> SaveStateOut:
    state = await tracker.toggle_save(post_id, session.user_id)
    return SaveStateOut(saved=state.saved)


@router.get("/{post_id}/share", response_model=ShareOut)
async def share_post(
    post_id: str,
    request: Request,
    url: str | None = Query(default=None),
    posts: PostRepository = Depends(get_post_repository),
) -> ShareOut:
    post = await posts.get_post(post_id)
    link = url or str(request.url_for("get_post", post_id=post_id))
    return share_payload(post, link)
