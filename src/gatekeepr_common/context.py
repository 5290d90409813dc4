from __future__ import annotations

import uuid
from contextvars import ContextVar, Token

# Correlation id of the inbound request; forwarded to upstream calls as X-Request-Id.
_request_id_ctx: ContextVar[str | None] = ContextVar("gatekeepr_request_id", default=None)


def new_request_id() -> str:
    return uuid.uuid4().hex


def current_request_id() -> str | None:
    return _request_id_ctx.get()


def bind_request_id(rid: str | None = None) -> Token:
    """Bind `rid` (or a fresh id) for the current request; pass the token to release_request_id()."""
    return _request_id_ctx.set(rid or new_request_id())


def release_request_id(token: Token) -> None:
    _request_id_ctx.reset(token)
