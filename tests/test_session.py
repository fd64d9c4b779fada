from __future__ import annotations

import pytest

from app.core.errors import AuthRequired
from app.services.session import Identity, SessionContext


def test_require_without_identity() -> None:
    ctx = SessionContext()

    assert ctx.user_id is None
    with pytest.raises(AuthRequired):
        ctx.require()


def test_listeners_follow_sign_in_and_out() -> None:
    ctx = SessionContext()
    seen: list[Identity | None] = []
    unsubscribe = ctx.subscribe(seen.append)
    me = Identity(user_id="u-1", email="u@example.com")

    ctx.sign_in(me)
    ctx.sign_out()
    ctx.sign_out()
    unsubscribe()
    ctx.sign_in(me)

    assert seen == [me, None]
    assert ctx.require() == me


def test_failing_listener_does_not_block_others() -> None:
    ctx = SessionContext()
    seen: list[Identity | None] = []

    def broken(_: Identity | None) -> None:
        raise RuntimeError("boom")

    ctx.subscribe(broken)
    ctx.subscribe(seen.append)
    ctx.sign_in(Identity(user_id="u-2"))

    assert seen == [Identity(user_id="u-2")]
