from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError

from gatekeepr_common.errors import UpstreamUnavailable

from ..domain.models import AccessRights
from ..domain.ports import RightsProviderPort
from ..http.client import HttpClient, api_url

logger = logging.getLogger(__name__)


class TransitAccessClient(RightsProviderPort):
    """
    Rights provider backed by the TRANSIT policy machine REST API.

    404 means "no grant" and yields AccessRights.empty(); any other failure
    (transport, non-2xx, unreadable body) raises UpstreamUnavailable.
    """

    def __init__(self, base_url: str, api_key: str = "", *, http: Optional[HttpClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.http = http or HttpClient()

    def _headers(self) -> Dict[str, str]:
        return {"X-API-KEY": self.api_key} if self.api_key else {}

    def _get(self, url: str, params: Dict[str, Any]) -> Any:
        try:
            return self.http.get_json(url, headers=self._headers(), params=params)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise UpstreamUnavailable(f"TRANSIT returned {status} for {url}", status=status) from e
        except (requests.RequestException, ValueError) as e:
            raise UpstreamUnavailable(f"TRANSIT call failed for {url}: {e}") from e

    def get_access_rights(
        self,
        object_id: str,
        identity_id: Optional[str],
        requested_by_id: Optional[str],
    ) -> AccessRights:
        url = api_url(self.base_url, f"access/{quote(object_id, safe='')}")
        params = {"identityId": identity_id, "requestedById": requested_by_id}
        logger.info("TRANSIT access lookup: %s", url)

        try:
            payload = self._get(url, params)
        except UpstreamUnavailable as e:
            if e.status == 404:
                logger.info(
                    "No access rights in TRANSIT (404) for objectId=%r, identityId=%r",
                    object_id,
                    identity_id,
                )
                return AccessRights.empty(object_id)
            raise

        if not payload:
            return AccessRights.empty(object_id)
        try:
            return AccessRights.model_validate(payload)
        except ValidationError as e:
            raise UpstreamUnavailable(f"Malformed access rights for {object_id}: {e}") from e

    def search_accessible_objects(
        self,
        identity_id: Optional[str],
        requested_by_id: Optional[str],
        entity_class: str,
        owned_only: Optional[bool] = None,
        page_size: Optional[int] = None,
    ) -> List[AccessRights]:
        params: Dict[str, Any] = {}
        if identity_id and identity_id.strip():
            params["identityId"] = identity_id
        params["requestedById"] = requested_by_id
        params["objectEntityClass"] = entity_class
        params["createdByMyOwn"] = "false" if owned_only is False else "true"
        if page_size is not None:
            params["pagesize"] = page_size

        url = api_url(self.base_url, "access/search/")
        logger.info("TRANSIT object search: %s %s", url, params)

        payload = self._get(url, params) or {}
        objects = payload.get("objects") if isinstance(payload, dict) else None
        try:
            return [AccessRights.model_validate(o) for o in objects or []]
        except ValidationError as e:
            raise UpstreamUnavailable(f"Malformed search response for {entity_class}: {e}") from e
