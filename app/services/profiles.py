from __future__ import annotations

from app.models.social import Post, PostLike, SavedPost
from app.models.user import Profile
from app.schemas.post import PostOut
from app.schemas.profile import ProfileOut, ProfilePatch
from app.services.posts import PostRepository
from app.services.session import SessionContext
from app.store.remote import RemoteStore


def profile_out(user_id: str, row: Profile | None) -> ProfileOut:
    if row is None:
        return ProfileOut(user_id=user_id)
    return ProfileOut(
        user_id=row.user_id,
        username=row.username,
        full_name=row.full_name,
        bio=row.bio,
        avatar_url=row.avatar_url,
    )


class ProfileService:
    def __init__(self, store: RemoteStore, posts: PostRepository, session: SessionContext) -> None:
        self.store = store
        self.posts = posts
        self.session = session

    async def get_profile(self, user_id: str) -> ProfileOut:
        row = await self.store.select_one(Profile, eq={"user_id": user_id})
        return profile_out(user_id, row)

    async def update_my_profile(self, patch: ProfilePatch) -> ProfileOut:
        identity = self.session.require()
        values: dict[str, str | None] = {}
        for name, value in patch.model_dump(exclude_unset=True).items():
            values[name] = (value or "").strip() or None
        row = await self.store.upsert(Profile, {"user_id": identity.user_id, **values}, conflict=("user_id",))
        return profile_out(identity.user_id, row)

    async def my_posts(self) -> list[PostOut]:
        identity = self.session.require()
        return await self.posts.list_posts(user_id=identity.user_id)

    async def liked_posts(self) -> list[PostOut]:
        return await self._interacted_posts(PostLike)

    async def saved_posts(self) -> list[PostOut]:
        return await self._interacted_posts(SavedPost)

    async def _interacted_posts(self, model: type[PostLike] | type[SavedPost]) -> list[PostOut]:
        identity = self.session.require()
        marks = await self.store.select(
            model,
            eq={"user_id": identity.user_id},
            order_by="created_at",
            descending=True,
        )
        post_ids = [m.post_id for m in marks]
        rows = await self.store.select(Post, in_={"id": post_ids})
        by_id = {p.id: p for p in rows}
        # Marks whose post is gone are dropped.
        ordered = [by_id[pid] for pid in post_ids if pid in by_id]
        return await self.posts.attach_authors(ordered)
