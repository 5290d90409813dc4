from __future__ import annotations

import datetime as _dt
import logging
import re
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

# Always emitted when present in the raw data, independent of read rights.
MANDATORY_FIELD = "objectId"

KNOWN_ACTIONS: FrozenSet[str] = frozenset({"remove", "mask", "pseudonymize", "generalize", "none"})
CONDITION_KEYS: Tuple[str, ...] = ("time", "context", "accessCount", "objectCount", "always")

_INT_RE = re.compile(r"[+-]?\d+")
_TIME_OF_DAY_RE = re.compile(r"([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?")


def parse_int(value: Any) -> Optional[int]:
    """Integer view of a context or rule value; None when it does not parse."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT_RE.fullmatch(value):
        return int(value)
    return None


def stringify(value: Any) -> str:
    """Render a scalar the way it travels in JSON (booleans lowercase)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _utc_now_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z")


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- rule catalog -----------------------------------------------------------


class TimeWindow(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    after: Optional[_dt.time] = None
    before: Optional[_dt.time] = None

    @field_validator("after", "before", mode="before")
    @classmethod
    def _parse_time_of_day(cls, v: Any) -> Any:
        # local wall-clock "HH:MM" or "HH:MM:SS"; offsets and numbers are rejected
        if v is None:
            return None
        if isinstance(v, _dt.time) and v.tzinfo is None:
            return v
        if isinstance(v, str) and _TIME_OF_DAY_RE.fullmatch(v.strip()):
            return _dt.time.fromisoformat(v.strip())
        raise ValueError(f"time of day must be HH:MM or HH:MM:SS, got {v!r}")


class NumericBounds(BaseModel):
    """greaterThan / lessThan / equals against an integer context value.

    A bound that does not parse as an integer marks the whole comparator as
    malformed; a malformed comparator never matches.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    greater_than: Optional[int] = Field(default=None, alias="greaterThan")
    less_than: Optional[int] = Field(default=None, alias="lessThan")
    equals: Optional[int] = None
    malformed: bool = False

    @model_validator(mode="before")
    @classmethod
    def _parse_bounds(cls, data: Any) -> Any:
        if isinstance(data, NumericBounds):
            return data
        if not isinstance(data, dict):
            return {"malformed": True}
        out: Dict[str, Any] = {}
        for key in ("greaterThan", "lessThan", "equals"):
            if data.get(key) is None:
                continue
            parsed = parse_int(data[key])
            if parsed is None:
                logger.warning("Rule bound %s=%r is not an integer; condition will never match", key, data[key])
                return {"malformed": True}
            out[key] = parsed
        return out


class RuleCondition(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    time: Optional[TimeWindow] = None
    context: Optional[Dict[str, str]] = None
    access_count: Optional[NumericBounds] = Field(default=None, alias="accessCount")
    object_count: Optional[NumericBounds] = Field(default=None, alias="objectCount")
    always: Any = None

    @model_validator(mode="before")
    @classmethod
    def _check_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError("condition must be an object")
        unknown = sorted(k for k in data if k not in CONDITION_KEYS)
        if unknown:
            logger.warning("Ignoring unknown condition keys: %s", unknown)
        return data

    @field_validator("context", mode="before")
    @classmethod
    def _stringify_context(cls, v: Any) -> Any:
        if v is None:
            return None
        if not isinstance(v, dict):
            raise ValueError("context condition must be an object")
        return {str(k): stringify(val) for k, val in v.items()}

    def triggers(self) -> Tuple[str, ...]:
        """Recognized condition keys this condition declares, in evaluation order."""
        fields = type(self).model_fields
        declared = {fields[name].alias or name for name in self.model_fields_set}
        return tuple(k for k in CONDITION_KEYS if k in declared)

    def is_empty(self) -> bool:
        return not self.triggers()

    def describe(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class RuleDefinition(BaseModel):
    """One condition-guarded action on a (qualified or bare) field name."""

    model_config = ConfigDict(frozen=True)

    field: str
    action: Optional[str] = None
    condition: Optional[RuleCondition] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("parameters", mode="before")
    @classmethod
    def _none_params(cls, v: Any) -> Any:
        return {} if v is None else v


# ---- rights -----------------------------------------------------------------


class ReadableDigitsRange(_WireModel):
    readable_digits_from: int
    readable_digits_to: int

    def span(self) -> Tuple[int, int]:
        lo, hi = sorted((self.readable_digits_from, self.readable_digits_to))
        return lo, hi


class DigitAccess(_WireModel):
    field_name: Optional[str] = Field(default=None, alias="property")
    readable_digits: List[ReadableDigitsRange] = Field(default_factory=list)

    @field_validator("readable_digits", mode="before")
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v


class ObjectProperties(_WireModel):
    read_properties: List[str] = Field(default_factory=list)
    write_properties: List[str] = Field(default_factory=list)
    share_read_properties: List[str] = Field(default_factory=list)
    share_write_properties: List[str] = Field(default_factory=list)
    digits_access: List[DigitAccess] = Field(default_factory=list)

    @field_validator(
        "read_properties",
        "write_properties",
        "share_read_properties",
        "share_write_properties",
        "digits_access",
        mode="before",
    )
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v

    def readable(self) -> FrozenSet[str]:
        return frozenset(self.read_properties)


class AccessRights(_WireModel):
    """Grant returned by the rights provider for one object and identity."""

    object_id: Optional[str] = None
    object_entity_class: Optional[str] = None
    identity_id: Optional[str] = None
    object_properties: Optional[ObjectProperties] = None

    @classmethod
    def empty(cls, object_id: Optional[str] = None) -> "AccessRights":
        return cls(object_id=object_id, object_properties=ObjectProperties())

    def is_empty(self) -> bool:
        return self.object_properties is None or not self.object_properties.read_properties


# ---- request / response -----------------------------------------------------


class AccessRequest(_WireModel):
    identity_id: Optional[str] = None
    requested_by_id: Optional[str] = None
    object_id: Optional[str] = None
    object_ids: List[str] = Field(default_factory=list)
    object_entity_class: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    owned_only: Optional[bool] = Field(default=None, alias="createdByMyOwn")
    page_size: Optional[int] = None

    @field_validator("object_ids", "context", mode="before")
    @classmethod
    def _none_container(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return {} if info.field_name == "context" else []
        return v

    def effective_requested_by(self) -> Optional[str]:
        if self.requested_by_id and self.requested_by_id.strip():
            return self.requested_by_id
        return self.identity_id


class AccessibleObject(_WireModel):
    object_id: str
    object_entity_class: Optional[str] = None
    identity_id: Optional[str] = None
    object_properties: ObjectProperties
    filtered_data: Dict[str, Any] = Field(default_factory=dict)


class AccessResponse(_WireModel):
    objects: Optional[List[AccessibleObject]] = None
    status: str = "success"
    message: Optional[str] = None
    timestamp: str = Field(default_factory=_utc_now_iso)

    @classmethod
    def error(cls, message: str) -> "AccessResponse":
        return cls(objects=None, status="error", message=message)


class FilteredAccessResponse(_WireModel):
    data: Any = None
    status: str = "success"
    message: Optional[str] = None
    timestamp: str = Field(default_factory=_utc_now_iso)

    @classmethod
    def error(cls, message: str) -> "FilteredAccessResponse":
        return cls(data=None, status="error", message=message)
