from __future__ import annotations

from typing import Any

from ..domain.models import AccessRequest


class ValidationError(ValueError):
    pass


def _present(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def validate_access_request(req: AccessRequest) -> AccessRequest:
    """Reject requests the core cannot route; returns the request unchanged."""
    if not req.object_ids and not _present(req.object_id) and not _present(req.object_entity_class):
        raise ValidationError("Either objectId, objectIds or objectEntityClass must be provided.")
    if _present(req.object_id) and not req.object_ids and not _present(req.identity_id):
        raise ValidationError("identityId is required when accessing a single object.")
    return req
