from __future__ import annotations

import logging
import math
import numbers
import random
from typing import Any, Callable, Collection, Dict, Iterable, List, Mapping, Optional

from ..domain.models import MANDATORY_FIELD, DigitAccess, RuleDefinition, parse_int
from ..policy.digits import MASK_CHAR, apply_digit_slicing, merge_digit_ranges
from ..policy.engine import PolicyEngine
from ..policy.usage import RuleSummary, track_rule

logger = logging.getLogger(__name__)

MASK_TOKEN = MASK_CHAR * 3
DEFAULT_PSEUDONYM_PREFIX = "pseu"
DEFAULT_ROUND_TO = 1000


def mask_value(value: Any) -> str:
    """Keep two leading characters and star out up to six more; short or non-string values become ***."""
    if isinstance(value, str) and len(value) > 3:
        return value[:2] + MASK_CHAR * min(6, len(value) - 2)
    return MASK_TOKEN


def pseudonymize_value(value: Any, params: Mapping[str, Any], rng: random.Random) -> str:
    prefix = params.get("prefix")
    suffix = params.get("suffix")
    prefix = DEFAULT_PSEUDONYM_PREFIX if prefix is None else str(prefix)
    suffix = "" if suffix is None else str(suffix)
    return f"{prefix}{rng.randint(0, 9999)}{suffix}"


def _round_to(params: Mapping[str, Any]) -> int:
    raw = params.get("roundTo")
    if raw is None:
        return DEFAULT_ROUND_TO
    parsed = parse_int(raw)
    if parsed is None or parsed <= 0:
        logger.warning("Invalid roundTo parameter %r, using %d", raw, DEFAULT_ROUND_TO)
        return DEFAULT_ROUND_TO
    return parsed


def generalize_value(value: Any, params: Mapping[str, Any]) -> str:
    """57432 with roundTo=1000 -> "57000+". Truncates toward zero; non-numbers become ***."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return MASK_TOKEN
    if isinstance(value, float) and not math.isfinite(value):
        return MASK_TOKEN

    step = _round_to(params)
    whole = int(value)
    magnitude = (abs(whole) // step) * step
    rounded = magnitude if whole >= 0 else -magnitude
    return f"{rounded}+"


_Transform = Callable[[Any, Mapping[str, Any], random.Random], Any]

_TRANSFORMS: Dict[str, _Transform] = {
    "mask": lambda value, params, rng: mask_value(value),
    "pseudonymize": pseudonymize_value,
    "generalize": lambda value, params, rng: generalize_value(value, params),
}


def _group_by_field(rules: Iterable[RuleDefinition]) -> Dict[str, List[RuleDefinition]]:
    grouped: Dict[str, List[RuleDefinition]] = {}
    for rule in rules:
        grouped.setdefault(rule.field, []).append(rule)
    return grouped


class ResponseEngine:
    """
    Applies read rights, digit ranges and matching rules to one object's raw data.
    """

    def __init__(self, policy_engine: PolicyEngine, *, rng: Optional[random.Random] = None) -> None:
        self.policy_engine = policy_engine
        self._rng = rng or random.Random()

    def filter_and_transform(
        self,
        raw_data: Mapping[str, Any],
        allowed_properties: Collection[str],
        digits_access: Iterable[DigitAccess],
        context: Optional[Mapping[str, Any]],
        rule_summary: Optional[RuleSummary] = None,
    ) -> Dict[str, Any]:
        """
        Returns a new mapping in raw-data order holding only what the caller may see.

        Per field: drop unless readable (objectId always passes), apply digit
        slicing, then the matching rules for "<class>.<field>" or, failing
        that, "<field>". A "none" rule overrides every other rule on the field.
        """
        object_class = str(raw_data.get("objectEntityClass") or "").lower()
        rules_per_field = _group_by_field(self.policy_engine.matching_rules(context))
        merged_ranges = merge_digit_ranges((d.field_name, [r.span() for r in d.readable_digits]) for d in digits_access)
        allowed = set(allowed_properties)

        result: Dict[str, Any] = {}
        for key, value in raw_data.items():
            if key != MANDATORY_FIELD and key not in allowed:
                continue

            qualified_key = f"{object_class}.{key}"

            ranges = merged_ranges.get(key)
            if ranges and isinstance(value, str) and value:
                value = apply_digit_slicing(value, ranges)
                track_rule(rule_summary, qualified_key, "digitSlice", {"source": "PM"})

            field_rules = rules_per_field.get(qualified_key) or rules_per_field.get(key) or []

            if any(rule.action == "none" for rule in field_rules):
                track_rule(rule_summary, qualified_key, "none", {"override": True})
                result[key] = value
                continue

            removed = False
            for rule in field_rules:
                track_rule(rule_summary, qualified_key, rule.action, rule.condition.describe() if rule.condition else {})
                if rule.action == "remove":
                    removed = True
                    break
                transform = _TRANSFORMS.get(rule.action or "")
                if transform is not None:
                    value = transform(value, rule.parameters, self._rng)

            if not removed:
                result[key] = value

        return result
