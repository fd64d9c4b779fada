from __future__ import annotations

from pydantic import BaseModel


class ProfileOut(BaseModel):
    user_id: str
    username: str | None = None
    full_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None


class ProfilePatch(BaseModel):
    username: str | None = None
    full_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
