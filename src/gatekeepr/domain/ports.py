from __future__ import annotations

from typing import Any, Dict, Hashable, List, Optional, Protocol, runtime_checkable

from .models import AccessRights, RuleDefinition


@runtime_checkable
class RightsProviderPort(Protocol):
    """
    The upstream policy machine that knows which fields an identity may see.
    """
    def get_access_rights(
        self,
        object_id: str,
        identity_id: Optional[str],
        requested_by_id: Optional[str],
    ) -> AccessRights:
        ...
        # Implementations must return AccessRights.empty() when no grant exists
        # and raise UpstreamUnavailable when the provider cannot be used.

    def search_accessible_objects(
        self,
        identity_id: Optional[str],
        requested_by_id: Optional[str],
        entity_class: str,
        owned_only: Optional[bool] = None,
        page_size: Optional[int] = None,
    ) -> List[AccessRights]:
        ...


@runtime_checkable
class RawDataSourcePort(Protocol):
    """
    The system of record holding the unredacted object attributes.
    """
    def load_object_data(self, object_id: str, entity_class: Optional[str]) -> Dict[str, Any]:
        ...
        # The mapping should include "objectEntityClass"; insertion order is kept in the output.


@runtime_checkable
class RuleSourcePort(Protocol):
    """
    Supplies the full rule list; called at startup and on every refresh.
    """
    def load(self) -> List[RuleDefinition]:
        ...


@runtime_checkable
class WatchedRuleSourcePort(RuleSourcePort, Protocol):
    """
    A rule source that can report cheaply whether its content changed.
    """
    def signature(self) -> Optional[Hashable]:
        ...
        # None means the source does not exist (yet); any other change triggers a reload.
