from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, MutableMapping, Optional, Tuple

UsageKey = Tuple[str, Optional[str]]


@dataclass
class RuleUsage:
    """How often one action was applied to one qualified field during a request."""

    field: str
    action: Optional[str]
    condition: Dict[str, Any] = field(default_factory=dict)
    count: int = 0

    def increment(self) -> None:
        self.count += 1


RuleSummary = MutableMapping[UsageKey, RuleUsage]


def track_rule(
    summary: Optional[RuleSummary],
    qualified_field: str,
    action: Optional[str],
    condition: Optional[Dict[str, Any]] = None,
) -> None:
    if summary is None:
        return
    key = (qualified_field, action)
    usage = summary.get(key)
    if usage is None:
        usage = summary[key] = RuleUsage(qualified_field, action, dict(condition or {}))
    usage.increment()


def total_applications(summary: RuleSummary) -> int:
    return sum(u.count for u in summary.values())
