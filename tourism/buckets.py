from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

import pandas as pd


# Number of leading reporting months excluded from every tourism view.
# The first month is treated as an incomplete baseline; kept as a policy
# constant until product confirms the reason.
DROPPED_BASELINE_BUCKETS = 1

_BUCKET_RE = re.compile(r"^\s*(\d{4})\s*[Mm\-/.]?\s*(\d{1,2})")


def make_bucket(year: int, month: int) -> str:
    """Build a bucket key like ``2021M02`` (year-major, zero-padded month)."""
    return f"{int(year):04d}M{int(month):02d}"


def parse_bucket(value: object) -> Tuple[Optional[int], Optional[int]]:
    """Parse ``2021M02``, ``2021-02`` or ``2021-02-15`` -> (2021, 2)."""
    if value is None or pd.isna(value):
        return None, None
    match = _BUCKET_RE.match(str(value))
    if not match:
        return None, None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None, None
    return year, month


def normalize_bucket(value: object) -> Optional[str]:
    year, month = parse_bucket(value)
    if year is None or month is None:
        return None
    return make_bucket(year, month)


def bucket_year(bucket: str) -> Optional[int]:
    year, _ = parse_bucket(bucket)
    return year


def bucket_domain(buckets: Iterable[object], *, drop_baseline: int = DROPPED_BASELINE_BUCKETS) -> List[str]:
    """Sorted distinct buckets with the leading baseline bucket(s) removed."""
    keys = {b for b in (normalize_bucket(v) for v in buckets) if b is not None}
    ordered = sorted(keys)
    return ordered[drop_baseline:]
