from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping, Optional

from ..domain.models import AccessibleObject, ObjectProperties
from ..policy.usage import RuleSummary
from .engine import ResponseEngine

logger = logging.getLogger(__name__)


class AccessResponseBuilder:
    """Wraps one object's redacted data together with the rights it was cut to."""

    def __init__(self, response_engine: ResponseEngine) -> None:
        self.response_engine = response_engine

    def build(
        self,
        object_id: str,
        entity_class: Optional[str],
        identity_id: Optional[str],
        rights: ObjectProperties,
        raw_data: Mapping[str, Any],
        context: Optional[MutableMapping[str, Any]],
        rule_summary: Optional[RuleSummary] = None,
    ) -> AccessibleObject:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Rights for object %s: read=%s write=%s shareRead=%s shareWrite=%s digits=%s",
                object_id,
                rights.read_properties,
                rights.write_properties,
                rights.share_read_properties,
                rights.share_write_properties,
                rights.digits_access,
            )

        filtered = self.response_engine.filter_and_transform(
            raw_data,
            rights.read_properties,
            rights.digits_access,
            context,
            rule_summary,
        )

        return AccessibleObject(
            object_id=object_id,
            object_entity_class=entity_class,
            identity_id=identity_id,
            object_properties=rights,
            filtered_data=filtered,
        )
