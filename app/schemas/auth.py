from __future__ import annotations

from pydantic import BaseModel


class SignUpIn(BaseModel):
    email: str
    password: str
    full_name: str = ""


class SignInIn(BaseModel):
    email: str
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str


class AuthUserOut(BaseModel):
    user_id: str
    email: str
