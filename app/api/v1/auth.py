from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_auth_service
from app.core.errors import AuthRequired
from app.schemas.auth import AuthUserOut, SignInIn, SignUpIn, TokenOut
from app.schemas.common import MessageResponse
from app.services.auth import AuthService, get_current_identity
from app.services.session import Identity

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-up", response_model=AuthUserOut, status_code=201)
async def sign_up(payload: SignUpIn, auth: AuthService = Depends(get_auth_service)) -> AuthUserOut:
    identity = await auth.sign_up(payload.email, payload.password, payload.full_name)
    return AuthUserOut(user_id=identity.user_id, email=identity.email)


@router.post("/sign-in", response_model=TokenOut)
async def sign_in(payload: SignInIn, auth: AuthService = Depends(get_auth_service)) -> TokenOut:
    identity = await auth.sign_in(payload.email, payload.password)
    return TokenOut(access_token=identity.access_token, user_id=identity.user_id)


@router.post("/sign-out", response_model=MessageResponse)
async def sign_out(auth: AuthService = Depends(get_auth_service)) -> MessageResponse:
    if auth.session.identity is None:
        raise AuthRequired()
    auth.sign_out()
    return MessageResponse(message="Signed out")


@router.get("/me", response_model=AuthUserOut)
async def me(identity: Identity = Depends(get_current_identity)) -> AuthUserOut:
    return AuthUserOut(user_id=identity.user_id, email=identity.email)
