from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

Span = Tuple[int, int]

MASK_CHAR = "*"


def merge_ranges(ranges: Iterable[Span]) -> List[Span]:
    """Merge 1-based inclusive spans into a sorted, minimal list.

    Spans may be given high-to-low. Overlapping spans and spans that merely
    touch (gap of zero positions, e.g. (1, 3) and (4, 6)) are coalesced.
    """
    spans = sorted(tuple(sorted(r)) for r in ranges)
    merged: List[Span] = []
    for lo, hi in spans:
        if merged and lo <= merged[-1][1] + 1:
            last_lo, last_hi = merged[-1]
            merged[-1] = (last_lo, max(last_hi, hi))
        else:
            merged.append((lo, hi))
    return merged


def merge_digit_ranges(entries: Iterable[Tuple[Optional[str], Iterable[Span]]]) -> Dict[str, List[Span]]:
    """Collect spans per field and merge them; fields without spans are dropped."""
    collected: Dict[str, List[Span]] = {}
    for field_name, spans in entries:
        spans = list(spans or [])
        if not field_name or not spans:
            continue
        collected.setdefault(field_name, []).extend(spans)
    return {name: merge_ranges(spans) for name, spans in collected.items()}


def apply_digit_slicing(value: Optional[str], ranges: Sequence[Span]) -> Optional[str]:
    """Mask every character outside the visible spans. None passes through."""
    if value is None:
        return None
    if not value or not ranges:
        return value

    chars = [MASK_CHAR] * len(value)
    for lo, hi in ranges:
        start = max(0, min(lo, hi) - 1)
        end = min(len(value), max(lo, hi))
        for i in range(start, end):
            chars[i] = value[i]
    return "".join(chars)
