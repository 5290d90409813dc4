from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple, Union

import pydantic
from flask import Blueprint, request

from ..domain.models import AccessRequest, AccessResponse, FilteredAccessResponse
from ..policy.catalog import RuleCatalog
from ..policy.engine import PolicyEngine
from ..policy.usage import RuleSummary, total_applications
from ..service.handler import ObjectRequestHandler
from .http import dump, json_with_headers
from .validation import ValidationError, validate_access_request

logger = logging.getLogger(__name__)

ErrorFactory = Callable[[str], Union[AccessResponse, FilteredAccessResponse]]


def _parse_request(on_error: ErrorFactory) -> Tuple[AccessRequest | None, object]:
    """Parse and validate the JSON body; on failure return (None, 400 response)."""
    body = request.get_json(silent=True)
    try:
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object.")
        req = validate_access_request(AccessRequest.model_validate(body))
    except pydantic.ValidationError as e:
        logger.info("Rejected malformed access request: %s", e)
        first = e.errors()[0] if e.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()))
        msg = f"Invalid request field '{where}': {first.get('msg', 'invalid value')}"
        return None, json_with_headers(dump(on_error(msg)), status=400)
    except ValidationError as e:
        logger.info("Rejected access request: %s", e)
        return None, json_with_headers(dump(on_error(str(e))), status=400)
    return req, None


def make_access_blueprint(
    *,
    handler: ObjectRequestHandler,
    catalog: RuleCatalog,
    policy_engine: Optional[PolicyEngine] = None,
) -> Blueprint:
    bp = Blueprint("gatekeepr", __name__)
    engine = policy_engine or PolicyEngine(catalog)

    @bp.post("/gatekeepr/request")
    def access_request():
        req, error = _parse_request(AccessResponse.error)
        if req is None:
            return error
        return json_with_headers(dump(handler.handle(req)))

    @bp.post("/gatekeepr/filtered")
    def filtered_request():
        req, error = _parse_request(FilteredAccessResponse.error)
        if req is None:
            return error
        summary: RuleSummary = {}
        resp = handler.handle_filtered(req, summary)
        return json_with_headers(dump(resp), redactions=total_applications(summary))

    @bp.get("/gatekeepr/rules/explain")
    def explain_rules():
        # query parameters stand in for the request context, e.g. ?accessCount=6&role=admin
        return json_with_headers(engine.explain(request.args.to_dict()))

    @bp.get("/healthz")
    def healthz():
        return json_with_headers({"status": "ok", "rules": len(catalog)})

    return bp
