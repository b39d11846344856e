"""
Indicator computation functions — pure functions with no side effects.

Provides trend direction, growth rate, target progress, polarity-aware trend
assessment and the statistics block shown next to every indicator chart.
"""

import logging
import math

import pandas as pd

from .config import POLARITY_REGISTRY, ROUND_DIGITS, Polarity
from .models import DataSlice

logger = logging.getLogger(__name__)

TREND_UP = "up"
TREND_DOWN = "down"
TREND_STABLE = "stable"


def _round(value: float | None) -> float | None:
    if value is None:
        return None
    return round(float(value), ROUND_DIGITS)


def calc_change(latest: float, previous: float) -> tuple[float, float | None]:
    """Return (absolute_change, pct_change).

    pct_change is None if previous == 0.
    """
    absolute = latest - previous
    if previous == 0:
        return absolute, None
    return absolute, (absolute / previous) * 100


def trend_direction(values: list[float]) -> str:
    """Compare the two most recent values of a chronologically ordered series.

    Returns 'up', 'down' or 'stable'; fewer than two points is 'stable'.
    """
    if len(values) < 2:
        return TREND_STABLE
    previous, latest = values[-2], values[-1]
    if latest > previous:
        return TREND_UP
    if latest < previous:
        return TREND_DOWN
    return TREND_STABLE


def growth_rate(earliest: float, latest: float, year_span: int) -> float:
    """Average yearly growth as a percentage of the earliest value.

    (latest - earliest) / earliest / year_span * 100, and 0 whenever the
    year span or the earliest value is 0.
    """
    if year_span == 0 or earliest == 0:
        return 0.0
    return (latest - earliest) / earliest / year_span * 100


def target_progress(
    latest: float | None,
    ref_value: float | None,
    target_value: float | None,
) -> float | None:
    """Share of the reference-to-target distance covered, in percent.

    Not clamped: overshooting gives more than 100, moving away from the
    target gives a negative value. None when a bound is missing or the
    target equals the reference.
    """
    if latest is None or ref_value is None or target_value is None:
        return None
    if target_value == ref_value:
        return None
    return (latest - ref_value) / (target_value - ref_value) * 100


def clamp_progress(progress: float | None) -> float | None:
    """Clamp a progress percentage to [0, 100] for display."""
    if progress is None:
        return None
    return min(max(progress, 0.0), 100.0)


def assess_trend(trend: str, polarity: Polarity) -> str:
    """Return 'favourable', 'unfavourable' or 'neutral'.

    Logic
    -----
    - polarity positive (higher_is_better): up is favourable
    - polarity negative (lower_is_better):  down is favourable
    - stable is always neutral
    """
    if trend == TREND_STABLE:
        return "neutral"
    direction = POLARITY_REGISTRY[polarity]["direction"]
    improving = TREND_UP if direction == "higher_is_better" else TREND_DOWN
    return "favourable" if trend == improving else "unfavourable"


def _empty_statistics() -> dict:
    return {
        "total_data_points": 0,
        "latest_value": None,
        "earliest_value": None,
        "min_value": None,
        "max_value": None,
        "average_value": None,
        "variance": None,
        "standard_deviation": None,
        "year_range": None,
        "trend_direction": TREND_STABLE,
        "trend_assessment": "neutral",
        "yearly_growth_rate": 0.0,
        "change_from_previous": 0.0,
        "percent_change_from_previous": None,
        "reference_value": None,
        "reference_year": None,
        "target_value": None,
        "target_year": None,
        "gap_to_target": None,
        "percent_gap_to_target": None,
        "target_progress": [],
    }


def slice_progress(observations: pd.DataFrame) -> list[dict]:
    """Target progress of every slice that has reference and target values.

    Parameters
    ----------
    observations : joined followup/slice frame (see transforms.join_observations).

    Returns
    -------
    List of dicts, one per slice, ordered by data_index:
        data_index, latest_year, latest_value, progress, progress_display
    """
    rows = []
    if observations.empty:
        return rows

    ordered = observations.sort_values(["data_index", "year"])
    for data_index, group in ordered.groupby("data_index", sort=True):
        latest = group.iloc[-1]
        ref_value = latest["ref_value"]
        target_value = latest["target_value"]
        if pd.isna(ref_value) or pd.isna(target_value):
            continue

        progress = target_progress(float(latest["value"]), float(ref_value), float(target_value))
        rows.append({
            "data_index": int(data_index),
            "latest_year": int(latest["year"]),
            "latest_value": float(latest["value"]),
            "progress": _round(progress),
            "progress_display": _round(clamp_progress(progress)),
        })
    return rows


def calculate_statistics(
    series: pd.DataFrame,
    observations: pd.DataFrame,
    polarity: Polarity = Polarity.POSITIVE,
    reference: DataSlice | None = None,
) -> dict:
    """Statistics block for one filtered view of an indicator.

    Parameters
    ----------
    series : yearly series with columns year, value (one row per year,
             ascending), as built by transforms.summarise_by_year.
    observations : joined followup/slice frame the series was built from.
    polarity : indicator polarity, used for the trend assessment.
    reference : slice supplying reference and target values, normally the
                first matching slice whether or not it has followups. When
                omitted, the lowest-positioned slice in ``observations``.

    Returns
    -------
    Dict of derived values. Missing quantities are None rather than 0.
    """
    if series.empty:
        logger.warning("Empty series — returning empty statistics")
        return _empty_statistics()

    values = [float(v) for v in series["value"]]
    years = [int(y) for y in series["year"]]

    latest, earliest = values[-1], values[0]
    trend = trend_direction(values)

    change, pct_change = (0.0, None)
    if len(values) >= 2:
        change, pct_change = calc_change(values[-1], values[-2])

    # population variance over the yearly series
    variance = float(pd.Series(values).var(ddof=0))

    stats = {
        "total_data_points": int(len(observations)),
        "latest_value": _round(latest),
        "earliest_value": _round(earliest),
        "min_value": _round(min(values)),
        "max_value": _round(max(values)),
        "average_value": _round(sum(values) / len(values)),
        "variance": _round(variance),
        "standard_deviation": _round(math.sqrt(variance)),
        "year_range": f"{years[0]} - {years[-1]}",
        "trend_direction": trend,
        "trend_assessment": assess_trend(trend, polarity),
        "yearly_growth_rate": _round(growth_rate(earliest, latest, years[-1] - years[0])),
        "change_from_previous": _round(change),
        "percent_change_from_previous": _round(pct_change),
    }

    if reference is None:
        first = observations.sort_values("data_index").iloc[0]
        ref_year, ref_value, target_year, target_value = (
            None if pd.isna(first[c]) else first[c]
            for c in ("ref_year", "ref_value", "target_year", "target_value")
        )
    else:
        ref_year, ref_value = reference.ref_year, reference.ref_value
        target_year, target_value = reference.target_year, reference.target_value

    reference_value = None if ref_value is None else float(ref_value)
    target_value = None if target_value is None else float(target_value)

    gap, pct_gap = (None, None)
    if target_value is not None:
        gap, pct_gap = calc_change(latest, target_value)

    stats.update({
        "reference_value": reference_value,
        "reference_year": None if ref_year is None else int(ref_year),
        "target_value": target_value,
        "target_year": None if target_year is None else int(target_year),
        "gap_to_target": _round(gap),
        "percent_gap_to_target": _round(pct_gap),
        "target_progress": slice_progress(observations),
    })
    return stats
