from .models import (
    AccessibleObject,
    AccessRequest,
    AccessResponse,
    AccessRights,
    DigitAccess,
    FilteredAccessResponse,
    ObjectProperties,
    ReadableDigitsRange,
    RuleCondition,
    RuleDefinition,
)
from .ports import RawDataSourcePort, RightsProviderPort, RuleSourcePort, WatchedRuleSourcePort

__all__ = [
    "AccessibleObject",
    "AccessRequest",
    "AccessResponse",
    "AccessRights",
    "DigitAccess",
    "FilteredAccessResponse",
    "ObjectProperties",
    "ReadableDigitsRange",
    "RuleCondition",
    "RuleDefinition",
    "RawDataSourcePort",
    "RightsProviderPort",
    "RuleSourcePort",
    "WatchedRuleSourcePort",
]
