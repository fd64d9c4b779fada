from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

ANONYMOUS_NAME = "Anonymous User"


class KnownAuthor(BaseModel):
    kind: Literal["known"] = "known"
    username: str = ""
    full_name: str = ""
    avatar_url: str | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or ANONYMOUS_NAME


class UnknownAuthor(BaseModel):
    kind: Literal["unknown"] = "unknown"
    username: str = ""
    full_name: str = ""
    avatar_url: None = None

    @property
    def display_name(self) -> str:
        return ANONYMOUS_NAME


AuthorInfo = Annotated[KnownAuthor | UnknownAuthor, Field(discriminator="kind")]


class PostOut(BaseModel):
    id: str
    user_id: str
    title: str
    content: str
    location: str | None = None
    image_url: str | None = None
    created_at: str
    author: AuthorInfo = Field(default_factory=UnknownAuthor)


class PostPatch(BaseModel):
    """Partial edit; only fields that were explicitly set are written."""

    title: str | None = None
    content: str | None = None
    location: str | None = None
    image_url: str | None = None


class LikeStateOut(BaseModel):
    liked: bool
    count: int


class SaveStateOut(BaseModel):
    saved: bool


class ShareOut(BaseModel):
    title: str
    text: str
    url: str
    clipboard_text: str
