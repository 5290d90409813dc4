from __future__ import annotations

from typing import Any, Mapping, Optional

from flask import jsonify
from pydantic import BaseModel

from gatekeepr_common.context import current_request_id
from gatekeepr_common.errors import typed_error


def dump(model: BaseModel) -> Any:
    """Wire form of a response model (camelCase keys, JSON-safe values)."""
    return model.model_dump(mode="json", by_alias=True)


def json_with_headers(
    payload: Any,
    *,
    status: int = 200,
    redactions: Optional[int] = None,
    extra_headers: Optional[Mapping[str, str]] = None,
):
    """Return JSON with the correlation id and, for filtered data, the redaction count."""
    resp = jsonify(payload)
    resp.status_code = status
    if redactions is not None:
        resp.headers["X-Policy-Redactions"] = str(int(redactions))
    rid = current_request_id()
    if rid is not None:
        resp.headers["X-Request-Id"] = rid
    for k, v in (extra_headers or {}).items():
        resp.headers[k] = v
    return resp


def api_error(code: str, message: str, *, status: int = 500, details: Optional[Mapping[str, Any]] = None):
    return json_with_headers(typed_error(code, message, details=dict(details) if details else None), status=status)
