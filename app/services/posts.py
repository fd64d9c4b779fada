from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from app.core.errors import PostNotFound, StoreError, ValidationFailed
from app.models.social import Post
from app.models.user import Profile
from app.schemas.post import KnownAuthor, PostOut, PostPatch, ShareOut, UnknownAuthor
from app.services.media import (
    ImageFile,
    ImageSource,
    ImageUrl,
    UploadedImage,
    clean_image_url,
    image_object_key,
    validate_image_file,
)
from app.services.session import SessionContext
from app.services.storage import BlobStore
from app.store.remote import RemoteStore

logger = logging.getLogger(__name__)

_NULLABLE_ON_EMPTY = ("location", "image_url")


def as_iso(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.isoformat()


def _author_from_profile(profile: Profile | None) -> KnownAuthor | UnknownAuthor:
    if profile is None:
        return UnknownAuthor()
    return KnownAuthor(
        username=profile.username or "",
        full_name=profile.full_name or "",
        avatar_url=profile.avatar_url or None,
    )


def post_out(post: Post, profile: Profile | None) -> PostOut:
    return PostOut(
        id=post.id,
        user_id=post.user_id,
        title=post.title,
        content=post.content,
        location=post.location,
        image_url=post.image_url,
        created_at=as_iso(post.created_at),
        author=_author_from_profile(profile),
    )


def require_text(fields: dict[str, str | None]) -> dict[str, str]:
    errors = {name: "required" for name, value in fields.items() if not (value or "").strip()}
    if errors:
        names = " and ".join(sorted(errors))
        raise ValidationFailed(f"Post {names} must not be empty", errors)
    return {name: str(value) for name, value in fields.items()}


class PostRepository:
    def __init__(self, store: RemoteStore, blobs: BlobStore, session: SessionContext) -> None:
        self.store = store
        self.blobs = blobs
        self.session = session

    async def attach_authors(self, posts: Sequence[Post]) -> list[PostOut]:
        user_ids = sorted({p.user_id for p in posts})
        profiles = await self.store.select(Profile, in_={"user_id": user_ids}) if user_ids else []
        by_user = {p.user_id: p for p in profiles}
        return [post_out(p, by_user.get(p.user_id)) for p in posts]

    async def list_posts(self, *, user_id: str | None = None) -> list[PostOut]:
        rows = await self.store.select(
            Post,
            eq={"user_id": user_id} if user_id else None,
            order_by="created_at",
            descending=True,
        )
        return await self.attach_authors(rows)

    async def get_post(self, post_id: str) -> PostOut:
        row = await self.store.select_one(Post, eq={"id": post_id})
        if row is None:
            raise PostNotFound()
        return (await self.attach_authors([row]))[0]

    async def upload_image(self, image: ImageFile) -> UploadedImage:
        identity = self.session.require()
        validate_image_file(image)
        key = image_object_key(identity.user_id, image)
        await self.blobs.upload(key, image.data, image.media_type)
        return UploadedImage(object_key=key, public_url=self.blobs.public_url(key))

    async def discard_image(self, uploaded: UploadedImage) -> None:
        try:
            await self.blobs.remove(uploaded.object_key)
        except StoreError:
            logger.exception("Could not remove orphaned upload %s", uploaded.object_key)

    async def create_post(
        self,
        title: str,
        content: str,
        location: str | None = None,
        image: ImageSource | None = None,
    ) -> PostOut:
        identity = self.session.require()
        text = require_text({"title": title, "content": content})
        image_url: str | None = None
        if isinstance(image, ImageUrl):
            image_url = clean_image_url(image)

        uploaded: UploadedImage | None = None
        if isinstance(image, ImageFile):
            uploaded = await self.upload_image(image)
            image_url = uploaded.public_url

        try:
            row = await self.store.insert(
                Post,
                {
                    "user_id": identity.user_id,
                    "title": text["title"],
                    "content": text["content"],
                    "location": location or None,
                    "image_url": image_url,
                },
            )
        except StoreError:
            if uploaded is not None:
                await self.discard_image(uploaded)
            raise

        logger.info("Post %s created by %s", row.id, identity.user_id)
        return (await self.attach_authors([row]))[0]

    async def update_post(self, post_id: str, patch: PostPatch) -> None:
        identity = self.session.require()
        values = patch.model_dump(exclude_unset=True)
        text_fields = {k: values[k] for k in ("title", "content") if k in values}
        if text_fields:
            require_text(text_fields)
        for name in _NULLABLE_ON_EMPTY:
            if name in values and not values[name]:
                values[name] = None
        if not values:
            return

        affected = await self.store.update(Post, values, eq={"id": post_id, "user_id": identity.user_id})
        if affected == 0:
            raise PostNotFound("Post not found or not yours to edit")

    async def delete_post(self, post_id: str, *, confirmed: bool = False) -> None:
        identity = self.session.require()
        if not confirmed:
            raise ValidationFailed("Deleting a post must be confirmed", {"confirm": "required"})
        affected = await self.store.delete(Post, eq={"id": post_id, "user_id": identity.user_id})
        if affected == 0:
            raise PostNotFound("Post not found or not yours to delete")
        logger.info("Post %s deleted by %s", post_id, identity.user_id)


def share_payload(post: PostOut, url: str) -> ShareOut:
    text = f"Schau dir diesen Post an: {post.title}"
    return ShareOut(title=post.title, text=text, url=url, clipboard_text=f"{text} - {url}")
