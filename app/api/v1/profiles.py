from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_profile_service
from app.schemas.post import PostOut
from app.schemas.profile import ProfileOut, ProfilePatch
from app.services.auth import get_current_identity
from app.services.profiles import ProfileService
from app.services.session import Identity

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileOut)
async def get_my_profile(
    identity: Identity = Depends(get_current_identity),
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileOut:
    return await profiles.get_profile(identity.user_id)


@router.patch("/me", response_model=ProfileOut)
async def patch_my_profile(
    payload: ProfilePatch,
    profiles: ProfileService = Depends(get_profile_service),
) -> ProfileOut:
    return await profiles.update_my_profile(payload)


@router.get("/me/posts", response_model=list[PostOut])
async def my_posts(profiles: ProfileService = Depends(get_profile_service)) -> list[PostOut]:
    return await profiles.my_posts()


@router.get("/me/liked", response_model=list[PostOut])
async def my_liked_posts(profiles: ProfileService = Depends(get_profile_service)) -> list[PostOut]:
    return await profiles.liked_posts()


@router.get("/me/saved", response_model=list[PostOut])
async def my_saved_posts(profiles: ProfileService = Depends(get_profile_service)) -> list[PostOut]:
    return await profiles.saved_posts()


@router.get("/{user_id}", response_model=ProfileOut)
async def get_profile(user_id: str, profiles: ProfileService = Depends(get_profile_service)) -> ProfileOut:
    return await profiles.get_profile(user_id)
