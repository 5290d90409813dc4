from __future__ import annotations

import logging
from typing import Any, Dict, List, MutableMapping, Optional

from gatekeepr_common.errors import UpstreamUnavailable

from ..domain.models import (
    AccessibleObject,
    AccessRequest,
    AccessResponse,
    FilteredAccessResponse,
    ObjectProperties,
)
from ..domain.ports import RawDataSourcePort, RightsProviderPort
from ..policy.counter import AccessCounter
from ..policy.engine import ACCESS_COUNT_KEY, OBJECT_COUNT_KEY
from ..policy.usage import RuleSummary
from ..response.builder import AccessResponseBuilder

logger = logging.getLogger(__name__)


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


class ObjectRequestHandler:
    """
    Application service for access requests.

    Resolves the request to (object, rights) pairs, keeps the access counter
    current, fetches raw data and hands each object to the response builder.
    A failing upstream call costs only the object it was made for.
    """

    def __init__(
        self,
        rights_provider: RightsProviderPort,
        data_source: RawDataSourcePort,
        builder: AccessResponseBuilder,
        counter: AccessCounter,
    ) -> None:
        self.rights_provider = rights_provider
        self.data_source = data_source
        self.builder = builder
        self.counter = counter

    # ---- primary use cases ------------------------------------------------
    def handle(self, req: AccessRequest, rule_summary: Optional[RuleSummary] = None) -> AccessResponse:
        """Full response: every accessible object with its rights and filtered data."""
        identity_id = req.identity_id
        requested_by = req.effective_requested_by()
        objects: List[AccessibleObject] = []

        if req.object_ids:
            for object_id in req.object_ids:
                obj = self._handle_direct(object_id, identity_id, requested_by, req, rule_summary)
                if obj is not None:
                    objects.append(obj)
        elif _present(req.object_id):
            obj = self._handle_direct(req.object_id, identity_id, requested_by, req, rule_summary)
            if obj is not None:
                objects.append(obj)
        elif _present(req.object_entity_class):
            objects.extend(self._handle_search(identity_id, requested_by, req, rule_summary))

        if logger.isEnabledFor(logging.DEBUG):
            for key, count in self.counter.snapshot().items():
                logger.debug("access counter %s -> %d", key, count)

        return AccessResponse(objects=objects, status="success")

    def handle_filtered(self, req: AccessRequest, rule_summary: Optional[RuleSummary] = None) -> FilteredAccessResponse:
        """Filtered data only: one mapping for a single object, otherwise a list."""
        summary: RuleSummary = {} if rule_summary is None else rule_summary
        full = self.handle(req, summary)

        filtered = [obj.filtered_data for obj in full.objects or []]
        data: Any = filtered[0] if len(filtered) == 1 else filtered

        if summary:
            logger.info("Applied rules (%d):", len(summary))
            for usage in summary.values():
                logger.info(
                    "field=%r action=%r condition=%s count=%d",
                    usage.field,
                    usage.action,
                    usage.condition,
                    usage.count,
                )

        return FilteredAccessResponse(
            data=data,
            status=full.status,
            message=full.message,
            timestamp=full.timestamp,
        )

    # ---- internal helpers -------------------------------------------------
    def _record_access(
        self,
        identity_id: Optional[str],
        requested_by: Optional[str],
        object_id: str,
        context: MutableMapping[str, Any],
    ) -> None:
        context[ACCESS_COUNT_KEY] = self.counter.touch(identity_id, requested_by, object_id)

    def _handle_direct(
        self,
        object_id: str,
        identity_id: Optional[str],
        requested_by: Optional[str],
        req: AccessRequest,
        rule_summary: Optional[RuleSummary],
    ) -> Optional[AccessibleObject]:
        self._record_access(identity_id, requested_by, object_id, req.context)

        try:
            rights = self.rights_provider.get_access_rights(object_id, identity_id, requested_by)
        except UpstreamUnavailable as e:
            logger.warning("Skipping object %s: rights lookup failed: %s", object_id, e)
            return None

        if rights is None or rights.is_empty():
            logger.info("No access rights for object '%s', identity '%s'", object_id, identity_id)
            return None

        entity_class = req.object_entity_class or rights.object_entity_class
        return self._assemble(object_id, entity_class, identity_id, rights.object_properties, req, rule_summary)

    def _handle_search(
        self,
        identity_id: Optional[str],
        requested_by: Optional[str],
        req: AccessRequest,
        rule_summary: Optional[RuleSummary],
    ) -> List[AccessibleObject]:
        try:
            accessible = self.rights_provider.search_accessible_objects(
                identity_id,
                requested_by,
                req.object_entity_class,
                req.owned_only,
                req.page_size,
            )
        except UpstreamUnavailable as e:
            logger.error("Search for accessible '%s' objects failed: %s", req.object_entity_class, e)
            return []

        # shared by every object of this search
        req.context[OBJECT_COUNT_KEY] = len(accessible)

        results: List[AccessibleObject] = []
        for entry in accessible:
            if not entry.object_id:
                logger.warning("Search result without objectId ignored")
                continue
            self._record_access(identity_id, requested_by, entry.object_id, req.context)
            if entry.is_empty():
                logger.info("No readable fields for object '%s', identity '%s'", entry.object_id, identity_id)
                continue
            obj = self._assemble(
                entry.object_id,
                req.object_entity_class,
                identity_id,
                entry.object_properties,
                req,
                rule_summary,
            )
            if obj is not None:
                results.append(obj)
        return results

    def _assemble(
        self,
        object_id: str,
        entity_class: Optional[str],
        identity_id: Optional[str],
        rights: ObjectProperties,
        req: AccessRequest,
        rule_summary: Optional[RuleSummary],
    ) -> Optional[AccessibleObject]:
        try:
            raw: Dict[str, Any] = self.data_source.load_object_data(object_id, entity_class)
        except UpstreamUnavailable as e:
            logger.warning("Skipping object %s: raw data fetch failed: %s", object_id, e)
            return None

        return self.builder.build(
            object_id,
            entity_class,
            identity_id,
            rights,
            raw,
            req.context,
            rule_summary,
        )
