from __future__ import annotations

import enum
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from app.core.errors import AppError, ValidationFailed
from app.schemas.post import PostOut, PostPatch
from app.services.media import ImageFile, ImageSource, ImageUrl, UploadedImage
from app.services.posts import PostRepository

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[PostOut], "Awaitable[None] | None"]


class AuthoringState(str, enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class PostDraft:
    title: str = ""
    content: str = ""
    location: str = ""
    image: ImageSource | None = None

    @classmethod
    def from_post(cls, post: PostOut) -> PostDraft:
        return cls(
            title=post.title,
            content=post.content,
            location=post.location or "",
            image=ImageUrl(post.image_url) if post.image_url else None,
        )


@dataclass
class AuthoringSession:
    state: AuthoringState = AuthoringState.IDLE
    field_errors: dict[str, str] = field(default_factory=dict)
    error: str | None = None
    failure: AppError | None = None


class PostAuthoringFlow:
    """One create-or-edit form session.

    ``submit`` walks IDLE -> VALIDATING -> (UPLOADING) -> SUBMITTING and ends
    in SUCCESS (draft reset, callback fired) or FAILED (draft kept, error
    set). Empty title or content leaves the flow in VALIDATING with field
    errors. An upload that ends up unreferenced is removed again.
    """

    def __init__(
        self,
        repository: PostRepository,
        *,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        self.repository = repository
        self.on_complete = on_complete
        self.draft = PostDraft()
        self.post_id: str | None = None
        self.status = AuthoringSession()

    @property
    def state(self) -> AuthoringState:
        return self.status.state

    @property
    def editing(self) -> bool:
        return self.post_id is not None

    def load(self, post: PostOut) -> None:
        self.post_id = post.id
        self.draft = PostDraft.from_post(post)
        self.status = AuthoringSession()

    def reset(self) -> None:
        self.draft = PostDraft()
        self.post_id = None
        self.status = AuthoringSession()

    def _validate(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        if not self.draft.title.strip():
            errors["title"] = "Title is required"
        if not self.draft.content.strip():
            errors["content"] = "Content is required"
        return errors

    def _fail(self, exc: AppError) -> None:
        self.status.state = AuthoringState.FAILED
        self.status.error = exc.message
        self.status.failure = exc
        logger.info("Post submission failed: %s", exc.message)

    async def submit(self) -> PostOut | None:
        self.status = AuthoringSession(state=AuthoringState.VALIDATING)
        errors = self._validate()
        if errors:
            self.status.field_errors = errors
            self.status.error = "Please fill in the required fields"
            self.status.failure = ValidationFailed(self.status.error, errors)
            return None

        image = self.draft.image
        uploaded: UploadedImage | None = None
        if isinstance(image, ImageFile):
            self.status.state = AuthoringState.UPLOADING
            try:
                uploaded = await self.repository.upload_image(image)
            except AppError as exc:
                self._fail(exc)
                return None
            image = ImageUrl(uploaded.public_url)

        self.status.state = AuthoringState.SUBMITTING
        try:
            post = await self._persist(image)
        except AppError as exc:
            if uploaded is not None:
                await self.repository.discard_image(uploaded)
            self._fail(exc)
            return None

        self.status.state = AuthoringState.SUCCESS
        self.draft = PostDraft.from_post(post) if self.editing else PostDraft()
        if self.on_complete is not None:
            result = self.on_complete(post)
            if inspect.isawaitable(result):
                await result
        return post

    async def _persist(self, image: ImageSource | None) -> PostOut:
        image_url = image.url if isinstance(image, ImageUrl) else None
        if self.post_id is None:
            return await self.repository.create_post(
                self.draft.title,
                self.draft.content,
                location=self.draft.location or None,
                image=ImageUrl(image_url) if image_url else None,
            )

        await self.repository.update_post(
            self.post_id,
            PostPatch(
                title=self.draft.title,
                content=self.draft.content,
                location=self.draft.location,
                image_url=image_url or "",
            ),
        )
        return await self.repository.get_post(self.post_id)
