from .catalog import RuleCatalog
from .counter import AccessCounter
from .digits import apply_digit_slicing, merge_digit_ranges, merge_ranges
from .engine import PolicyEngine, matches_condition
from .loader import RuleFileSource, RuleReloadService
from .usage import RuleUsage, track_rule

__all__ = [
    "AccessCounter",
    "PolicyEngine",
    "RuleCatalog",
    "RuleFileSource",
    "RuleReloadService",
    "RuleUsage",
    "apply_digit_slicing",
    "matches_condition",
    "merge_digit_ranges",
    "merge_ranges",
    "track_rule",
]
