from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from app.core.config import settings
from app.core.errors import AuthRequired, StoreError, ValidationFailed
from app.models.user import Account, Profile
from app.services.session import Identity, SessionContext
from app.store.remote import RemoteStore

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)
_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, stored: str) -> bool:
    try:
        return _pwd_context.verify(password, stored)
    except ValueError:
        return False


def issue_token(account: Account) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": account.id,
        "email": account.email,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expires_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            leeway=settings.jwt_exp_leeway_seconds,
        )
    except jwt.PyJWTError as exc:
        raise AuthRequired("Invalid or expired session") from exc


def identity_from_token(token: str) -> Identity:
    payload = decode_token(token)
    user_id = str(payload.get("sub") or "").strip()
    if not user_id:
        raise AuthRequired("Invalid session subject")
    return Identity(
        user_id=user_id,
        email=str(payload.get("email") or "").strip().lower(),
        access_token=token,
    )


class AuthService:
    def __init__(self, store: RemoteStore, session: SessionContext) -> None:
        self.store = store
        self.session = session

    async def sign_up(self, email: str, password: str, full_name: str = "") -> Identity:
        clean_email = (email or "").strip().lower()
        if not clean_email or "@" not in clean_email:
            raise ValidationFailed("A valid email address is required", {"email": "invalid"})
        if len(password or "") < _MIN_PASSWORD_LENGTH:
            raise ValidationFailed(
                f"Password must be at least {_MIN_PASSWORD_LENGTH} characters",
                {"password": "too_short"},
            )

        if await self.store.select_one(Account, eq={"email": clean_email}) is not None:
            raise ValidationFailed("This email address is already registered", {"email": "taken"})

        try:
            account = await self.store.insert(
                Account,
                {"email": clean_email, "password_hash": hash_password(password)},
            )
        except StoreError as exc:
            # Lost a race against a concurrent sign-up with the same address.
            raise ValidationFailed("This email address is already registered", {"email": "taken"}) from exc

        await self.store.insert(
            Profile,
            {"user_id": account.id, "full_name": (full_name or "").strip() or None},
        )
        logger.info("Registered account %s", account.id)
        return Identity(user_id=account.id, email=account.email)

    async def sign_in(self, email: str, password: str) -> Identity:
        clean_email = (email or "").strip().lower()
        account = await self.store.select_one(Account, eq={"email": clean_email})
        if account is None or not verify_password(password or "", account.password_hash):
            raise AuthRequired("Invalid email address or password")

        identity = Identity(user_id=account.id, email=account.email, access_token=issue_token(account))
        self.session.sign_in(identity)
        return identity

    def sign_out(self) -> None:
        self.session.sign_out()


async def get_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> SessionContext:
    if credentials is None:
        return SessionContext()
    return SessionContext(identity_from_token(credentials.credentials))


async def get_current_identity(session: SessionContext = Depends(get_session)) -> Identity:
    return session.require()
