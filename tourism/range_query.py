from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from tourism.aggregation import SeriesGroup
from tourism.buckets import bucket_year, normalize_bucket


@dataclass(frozen=True)
class RangeSummary:
    label: str
    key: str
    color: str
    start: str
    end: str
    arrivals: float
    overnights: float
    average_stay: float
    beds: Dict[int, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def describe(self) -> str:
        return (
            f"{self.label}\n"
            f"Period: {self.start} - {self.end}\n"
            f"Arrivals: {self.arrivals:,.0f}\n"
            f"Overnights: {self.overnights:,.0f}\n"
            f"Avg stay: {self.average_stay:.2f} nights"
        )


def buckets_in_range(domain: Sequence[str], start: Optional[str], end: Optional[str]) -> List[str]:
    """Contiguous slice of ``domain`` between two brush edges (inclusive, either order)."""
    if not domain or start is None or end is None:
        return []
    edges = [normalize_bucket(start), normalize_bucket(end)]
    if None in edges:
        return []
    lo, hi = sorted(edges)
    return [b for b in domain if lo <= b <= hi]


def summarize_range(
    buckets: Sequence[str],
    tourism_groups: Sequence[SeriesGroup],
    bed_groups: Optional[Sequence[SeriesGroup]] = None,
) -> Optional[List[RangeSummary]]:
    """Per-group totals over the brushed buckets.

    Returns None for an empty range so callers can hide the summary. Bed
    totals are reported for every year spanned by the buckets, 0 when the
    matching bed group has no row for that year.
    """
    selected = sorted(dict.fromkeys(str(b) for b in buckets))
    if not selected:
        return None
    bucket_set = set(selected)
    years = sorted({y for y in (bucket_year(b) for b in selected) if y is not None})
    beds_by_key = {g.key: g.points for g in (bed_groups or [])}

    summaries: List[RangeSummary] = []
    for group in tourism_groups:
        pts = group.points[group.points["bucket"].isin(bucket_set)]
        arrivals = float(pd.to_numeric(pts["arrivals"], errors="coerce").sum())
        overnights = float(pd.to_numeric(pts["overnights"], errors="coerce").sum())
        stay = overnights / arrivals if arrivals > 0 else 0.0

        bed_totals: Dict[int, float] = {}
        bed_points = beds_by_key.get(group.key)
        for year in years:
            if bed_points is None or bed_points.empty:
                bed_totals[year] = 0.0
                continue
            bed_totals[year] = float(bed_points.loc[bed_points["year"] == year, "beds"].sum())

        summaries.append(
            RangeSummary(
                label=group.label,
                key=group.key,
                color=group.color,
                start=selected[0],
                end=selected[-1],
                arrivals=arrivals,
                overnights=overnights,
                average_stay=stay,
                beds=bed_totals,
            )
        )
    return summaries
