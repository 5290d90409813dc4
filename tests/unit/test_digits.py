import pytest

from gatekeepr.policy.digits import apply_digit_slicing, merge_digit_ranges, merge_ranges


@pytest.mark.parametrize("ranges,expected", [
    ([(1, 3), (4, 6)], [(1, 6)]),
    ([(1, 2), (5, 6)], [(1, 2), (5, 6)]),
    ([(3, 1), (2, 5)], [(1, 5)]),
    ([(5, 8), (1, 2), (2, 4)], [(1, 8)]),
    ([], []),
])
def test_merge_ranges(ranges, expected):
    assert merge_ranges(ranges) == expected


def test_merge_ranges_is_idempotent():
    once = merge_ranges([(1, 2), (4, 7), (6, 9), (12, 12)])
    assert merge_ranges(once) == once


def test_merge_digit_ranges_groups_by_field_and_drops_empty():
    merged = merge_digit_ranges([
        ("vin", [(1, 3)]),
        ("vin", [(4, 6)]),
        ("plate", []),
        (None, [(1, 2)]),
    ])
    assert merged == {"vin": [(1, 6)]}


def test_apply_digit_slicing_masks_outside_ranges():
    assert apply_digit_slicing("WVW123456", [(1, 3)]) == "WVW******"
    assert apply_digit_slicing("ABCDEF", [(1, 2), (5, 6)]) == "AB**EF"


def test_apply_digit_slicing_clamps_out_of_bounds():
    assert apply_digit_slicing("ABC", [(2, 10)]) == "*BC"
    assert apply_digit_slicing("ABC", [(7, 9)]) == "***"


def test_apply_digit_slicing_passthrough():
    assert apply_digit_slicing(None, [(1, 2)]) is None
    assert apply_digit_slicing("", [(1, 2)]) == ""
    assert apply_digit_slicing("ABC", []) == "ABC"
