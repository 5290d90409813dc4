import random

import pytest

from gatekeepr.domain.models import DigitAccess, ReadableDigitsRange
from gatekeepr.policy import PolicyEngine, RuleCatalog
from gatekeepr.policy.usage import total_applications
from gatekeepr.response import ResponseEngine, generalize_value, mask_value, pseudonymize_value
from tests.helpers.fakes import NOON, rules

ALWAYS = {"always": True}


def engine_with(*rule_defs, seed=1):
    catalog = RuleCatalog(rules(*rule_defs))
    return ResponseEngine(PolicyEngine(catalog, clock=lambda: NOON), rng=random.Random(seed))


@pytest.mark.parametrize("value,expected", [
    ("AB-123", "AB****"),
    ("AB", "***"),
    ("ABC", "***"),
    ("ABCD", "AB**"),
    ("WVWZZZ1JZXW000001", "WV******"),
    (12345, "***"),
    (None, "***"),
])
def test_mask_value(value, expected):
    assert mask_value(value) == expected


@pytest.mark.parametrize("value,params,expected", [
    (57432, {}, "57000+"),
    (57432, {"roundTo": 10000}, "50000+"),
    (57432, {"roundTo": "100"}, "57400+"),
    (999, {"roundTo": 1000}, "0+"),
    (1234.9, {"roundTo": 0}, "1000+"),
    (57432, {"roundTo": "abc"}, "57000+"),
    (-1500, {}, "-1000+"),
    ("57432", {}, "***"),
    (True, {}, "***"),
    (float("nan"), {}, "***"),
])
def test_generalize_value(value, params, expected):
    assert generalize_value(value, params) == expected


def test_pseudonymize_value_uses_prefix_and_suffix():
    out = pseudonymize_value("Mueller", {"prefix": "p-", "suffix": "-x"}, random.Random(3))
    assert out.startswith("p-") and out.endswith("-x")
    assert 0 <= int(out[2:-2]) <= 9999

    default = pseudonymize_value("Mueller", {}, random.Random(3))
    assert default.startswith("pseu")
    assert default[4:].isdigit()


def test_allow_list_and_mandatory_object_id():
    eng = engine_with()
    raw = {"objectId": "X1", "objectEntityClass": "vehicle", "brand": "VW", "vin": "WVW1"}
    out = eng.filter_and_transform(raw, ["brand"], [], {})
    assert out == {"objectId": "X1", "brand": "VW"}


def test_none_override_cannot_expose_a_field_outside_the_allow_list():
    eng = engine_with({"field": "vehicle.vin", "action": "none", "condition": ALWAYS})
    raw = {"objectId": "X1", "objectEntityClass": "vehicle", "brand": "VW", "vin": "WVW1"}
    summary = {}

    out = eng.filter_and_transform(raw, ["brand"], [], {}, summary)

    assert out == {"objectId": "X1", "brand": "VW"}
    assert ("vehicle.vin", "none") not in summary
    assert summary == {}


def test_output_keeps_raw_order():
    eng = engine_with()
    raw = {"objectId": "X1", "c": 3, "a": 1, "b": 2}
    assert list(eng.filter_and_transform(raw, ["a", "b", "c"], [], {})) == ["objectId", "c", "a", "b"]


def test_qualified_rule_beats_bare_field_rule():
    eng = engine_with(
        {"field": "brand", "action": "remove", "condition": ALWAYS},
        {"field": "vehicle.brand", "action": "mask", "condition": ALWAYS},
    )
    raw = {"objectId": "X1", "objectEntityClass": "Vehicle", "brand": "Mercedes"}
    assert eng.filter_and_transform(raw, ["brand"], [], {}) == {"objectId": "X1", "brand": "Me******"}


def test_bare_field_rule_applies_without_qualified_rule():
    eng = engine_with({"field": "brand", "action": "remove", "condition": ALWAYS})
    raw = {"objectId": "X1", "objectEntityClass": "vehicle", "brand": "VW"}
    assert eng.filter_and_transform(raw, ["brand"], [], {}) == {"objectId": "X1"}


def test_none_overrides_mask_and_remove():
    eng = engine_with(
        {"field": "vehicle.licensePlate", "action": "mask", "condition": ALWAYS},
        {"field": "vehicle.licensePlate", "action": "remove", "condition": ALWAYS},
        {"field": "vehicle.licensePlate", "action": "none", "condition": ALWAYS},
    )
    summary = {}
    raw = {"objectId": "X1", "objectEntityClass": "vehicle", "licensePlate": "AB-123"}

    out = eng.filter_and_transform(raw, ["licensePlate"], [], {}, summary)

    assert out["licensePlate"] == "AB-123"
    assert list(summary) == [("vehicle.licensePlate", "none")]
    assert summary[("vehicle.licensePlate", "none")].condition == {"override": True}


def test_remove_stops_later_rules():
    eng = engine_with(
        {"field": "vehicle.brand", "action": "remove", "condition": ALWAYS},
        {"field": "vehicle.brand", "action": "mask", "condition": ALWAYS},
    )
    summary = {}
    raw = {"objectId": "X1", "objectEntityClass": "vehicle", "brand": "Opel"}

    out = eng.filter_and_transform(raw, ["brand"], [], {}, summary)

    assert "brand" not in out
    assert list(summary) == [("vehicle.brand", "remove")]


def test_rules_chain_in_catalog_order():
    eng = engine_with(
        {"field": "vehicle.mileage", "action": "generalize", "condition": ALWAYS},
        {"field": "vehicle.mileage", "action": "mask", "condition": ALWAYS},
    )
    raw = {"objectId": "X1", "objectEntityClass": "vehicle", "mileage": 57432}
    # generalize first, then mask its string output
    assert eng.filter_and_transform(raw, ["mileage"], [], {})["mileage"] == "57****"


def test_unknown_action_is_noop_but_recorded():
    eng = engine_with({"field": "vehicle.brand", "action": "encrypt", "condition": ALWAYS})
    summary = {}
    raw = {"objectId": "X1", "objectEntityClass": "vehicle", "brand": "Ford"}
    assert eng.filter_and_transform(raw, ["brand"], [], {}, summary)["brand"] == "Ford"
    assert summary[("vehicle.brand", "encrypt")].count == 1


def test_digit_slicing_runs_before_rules_and_is_recorded():
    eng = engine_with()
    digits = [
        DigitAccess(field_name="vin", readable_digits=[ReadableDigitsRange(readable_digits_from=1, readable_digits_to=3)]),
        DigitAccess(field_name="vin", readable_digits=[ReadableDigitsRange(readable_digits_from=4, readable_digits_to=6)]),
    ]
    summary = {}
    raw = {"objectId": "X1", "objectEntityClass": "vehicle", "vin": "WVWZZZ1JZ"}

    out = eng.filter_and_transform(raw, ["vin"], digits, {}, summary)

    assert out["vin"] == "WVWZZZ***"
    usage = summary[("vehicle.vin", "digitSlice")]
    assert usage.condition == {"source": "PM"}
    assert usage.count == 1


def test_digit_slicing_skips_non_strings():
    eng = engine_with()
    digits = [DigitAccess(field_name="mileage", readable_digits=[ReadableDigitsRange(readable_digits_from=1, readable_digits_to=1)])]
    raw = {"objectId": "X1", "objectEntityClass": "vehicle", "mileage": 57432}
    assert eng.filter_and_transform(raw, ["mileage"], digits, {})["mileage"] == 57432


def test_usage_counts_accumulate_across_objects():
    eng = engine_with({"field": "vehicle.mileage", "action": "generalize", "condition": ALWAYS})
    summary = {}
    for oid in ("X1", "X2", "X3"):
        eng.filter_and_transform({"objectId": oid, "objectEntityClass": "vehicle", "mileage": 1}, ["mileage"], [], {}, summary)
    assert summary[("vehicle.mileage", "generalize")].count == 3
    assert summary[("vehicle.mileage", "generalize")].condition == {"always": True}
    assert total_applications(summary) == 3
