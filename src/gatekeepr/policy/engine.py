from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..domain.models import NumericBounds, RuleCondition, RuleDefinition, TimeWindow, parse_int, stringify
from .catalog import RuleCatalog

logger = logging.getLogger(__name__)

ACCESS_COUNT_KEY = "accessCount"
OBJECT_COUNT_KEY = "objectCount"


def _local_time_of_day() -> _dt.time:
    return _dt.datetime.now().time()


def _within_time_window(window: Optional[TimeWindow], now: _dt.time) -> bool:
    if window is None:
        return True
    after_ok = window.after is None or now > window.after
    before_ok = window.before is None or now < window.before
    return after_ok and before_ok


def _context_satisfied(required: Optional[Dict[str, str]], context: Optional[Mapping[str, Any]]) -> bool:
    if context is None:
        return False
    for key, expected in (required or {}).items():
        actual = context.get(key)
        if actual is None or stringify(actual) != expected:
            return False
    return True


def _bounds_satisfied(bounds: Optional[NumericBounds], context: Optional[Mapping[str, Any]], key: str) -> bool:
    if bounds is None or bounds.malformed:
        return False
    if not context or key not in context:
        return False

    actual = parse_int(context[key])
    if actual is None:
        logger.warning("Invalid numeric value for %r: %r", key, context[key])
        return False

    if bounds.greater_than is not None and actual <= bounds.greater_than:
        return False
    if bounds.less_than is not None and actual >= bounds.less_than:
        return False
    if bounds.equals is not None and actual != bounds.equals:
        return False
    return True


def matches_condition(
    condition: Optional[RuleCondition],
    context: Optional[Mapping[str, Any]],
    now: _dt.time,
) -> bool:
    """
    Evaluate one rule condition against a request context.

    time and always are AND-ed into a running flag; context, accessCount and
    objectCount reject the rule outright when they fail. A condition without
    any recognized trigger never matches.
    """
    if condition is None or condition.is_empty():
        return False

    triggers = condition.triggers()
    matched = True

    if "time" in triggers:
        matched &= _within_time_window(condition.time, now)

    if "context" in triggers and not _context_satisfied(condition.context, context):
        return False

    if ACCESS_COUNT_KEY in triggers and not _bounds_satisfied(condition.access_count, context, ACCESS_COUNT_KEY):
        return False

    if OBJECT_COUNT_KEY in triggers and not _bounds_satisfied(condition.object_count, context, OBJECT_COUNT_KEY):
        return False

    if "always" in triggers:
        matched &= condition.always is True

    return matched


class PolicyEngine:
    """Selects the catalog rules whose conditions hold for a request context."""

    def __init__(self, catalog: RuleCatalog, *, clock: Callable[[], _dt.time] = _local_time_of_day) -> None:
        self.catalog = catalog
        self._clock = clock

    def matches(self, condition: Optional[RuleCondition], context: Optional[Mapping[str, Any]]) -> bool:
        return matches_condition(condition, context, self._clock())

    def matching_rules(self, context: Optional[Mapping[str, Any]]) -> List[RuleDefinition]:
        """Matching rules in catalog order, evaluated against one snapshot and one instant."""
        rules = self.catalog.current()
        now = self._clock()
        out = []
        for rule in rules:
            if matches_condition(rule.condition, context, now):
                out.append(rule)
            else:
                logger.debug("Rule for %r not matched (condition=%s)", rule.field, rule.condition)
        return out

    def explain(self, context: Optional[Mapping[str, Any]]) -> dict:
        """Per-rule match verdicts for diagnostics (no side effects)."""
        rules = self.catalog.current()
        now = self._clock()
        return {
            "generation": self.catalog.generation,
            "evaluated_at": now.isoformat(),
            "rules": [
                {
                    "field": rule.field,
                    "action": rule.action,
                    "triggers": list(rule.condition.triggers()) if rule.condition else [],
                    "matched": matches_condition(rule.condition, context, now),
                }
                for rule in rules
            ],
        }
