from __future__ import annotations

import datetime as dt
import random
from typing import Any, Dict, Iterable, List, Optional

from gatekeepr.domain.models import AccessRights, ObjectProperties, RuleDefinition
from gatekeepr.policy import AccessCounter, PolicyEngine, RuleCatalog
from gatekeepr.response import AccessResponseBuilder, ResponseEngine
from gatekeepr.service import ObjectRequestHandler
from gatekeepr_common.errors import UpstreamUnavailable

NOON = dt.time(12, 0)


def rights_for(object_id: str, read: Iterable[str], *, entity_class: str = "vehicle", digits=None) -> AccessRights:
    return AccessRights(
        object_id=object_id,
        object_entity_class=entity_class,
        identity_id="U1",
        object_properties=ObjectProperties(read_properties=list(read), digits_access=digits or []),
    )


def rules(*defs: Dict[str, Any]) -> List[RuleDefinition]:
    return [RuleDefinition.model_validate(d) for d in defs]


class FakeRightsProvider:
    def __init__(self, rights: Optional[Dict[str, AccessRights]] = None, search: Optional[List[AccessRights]] = None):
        self.rights = dict(rights or {})
        self.search = list(search or [])
        self.failing: set = set()
        self.search_fails = False
        self.calls: List[tuple] = []

    def get_access_rights(self, object_id, identity_id, requested_by_id):
        self.calls.append(("get", object_id, identity_id, requested_by_id))
        if object_id in self.failing:
            raise UpstreamUnavailable(f"rights lookup failed for {object_id}")
        return self.rights.get(object_id) or AccessRights.empty(object_id)

    def search_accessible_objects(self, identity_id, requested_by_id, entity_class, owned_only=None, page_size=None):
        self.calls.append(("search", identity_id, requested_by_id, entity_class, owned_only, page_size))
        if self.search_fails:
            raise UpstreamUnavailable("search failed")
        return list(self.search)


class FakeDataSource:
    def __init__(self, records: Optional[Dict[str, Dict[str, Any]]] = None):
        self.records = dict(records or {})
        self.failing: set = set()
        self.calls: List[tuple] = []

    def load_object_data(self, object_id, entity_class):
        self.calls.append((object_id, entity_class))
        if object_id in self.failing:
            raise UpstreamUnavailable(f"source unavailable for {object_id}")
        data = dict(self.records.get(object_id, {}))
        data.setdefault("objectId", object_id)
        data.setdefault("objectEntityClass", entity_class)
        return data


def build_handler(
    rights_provider: FakeRightsProvider,
    data_source: FakeDataSource,
    rule_defs: Iterable[RuleDefinition] = (),
    *,
    counter: Optional[AccessCounter] = None,
    clock=lambda: NOON,
    seed: int = 7,
) -> ObjectRequestHandler:
    catalog = RuleCatalog(rule_defs)
    engine = ResponseEngine(PolicyEngine(catalog, clock=clock), rng=random.Random(seed))
    return ObjectRequestHandler(
        rights_provider,
        data_source,
        AccessResponseBuilder(engine),
        counter if counter is not None else AccessCounter(),
    )
