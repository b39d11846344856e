"""
Data transforms: turn an indicator and its followups into fact and dimension
tables, join them, and reshape them into chart series and yearly summaries.
"""

import logging
from typing import Iterable

import pandas as pd

from .models import Followup, Indicator

logger = logging.getLogger(__name__)

FACT_COLUMNS = ["followup_id", "data_index", "year", "value"]

DIM_COLUMNS = [
    "data_index",
    "geo_type",
    "reference_id",
    "age_range",
    "gender",
    "residential_area",
    "social_category",
    "ref_year",
    "ref_value",
    "target_year",
    "target_value",
]


def build_dim_slice(indicator: Indicator) -> pd.DataFrame:
    """Build the data slice dimension table of one indicator.

    Returns
    -------
    dim_slice DataFrame, one row per slice in position order, with columns:
        data_index, geo_type, reference_id, age_range, gender,
        residential_area, social_category, ref_year, ref_value,
        target_year, target_value
    """
    rows = []
    for position, data_slice in enumerate(indicator.data):
        record = data_slice.to_dict()
        rows.append({
            "data_index": position,
            "geo_type": record["geo_location"]["type"],
            "reference_id": record["geo_location"]["reference_id"],
            "age_range": record["age_range"],
            "gender": record["gender"],
            "residential_area": record["residential_area"],
            "social_category": record["social_category"],
            "ref_year": record["ref_year"],
            "ref_value": record["ref_value"],
            "target_year": record["target_year"],
            "target_value": record["target_value"],
        })

    df = pd.DataFrame(rows, columns=DIM_COLUMNS)
    # nullable ints so that missing years stay missing instead of becoming floats
    return df.astype({"data_index": "int64", "ref_year": "Int64", "target_year": "Int64"})


def build_fact_followup(indicator: Indicator, followups: Iterable[Followup]) -> pd.DataFrame:
    """Build the followup fact table, addressing each row by slice position.

    Followups whose slice is no longer part of the indicator are dropped.

    Returns
    -------
    fact_followup DataFrame sorted by year then data_index, with columns:
        followup_id, data_index, year, value
    """
    rows = []
    orphans = 0
    for followup in followups:
        position = indicator.position_of(followup.slice_id)
        if position is None:
            orphans += 1
            continue
        rows.append({
            "followup_id": followup.id,
            "data_index": position,
            "year": followup.year,
            "value": followup.value,
        })

    if orphans:
        logger.warning(
            "Dropped %d followups of indicator %s with no matching data slice",
            orphans,
            indicator.code,
        )

    df = pd.DataFrame(rows, columns=FACT_COLUMNS)
    if not df.empty:
        df = df.astype({"data_index": "int64", "year": "int64", "value": "float64"})
        df = df.sort_values(["year", "data_index"], kind="stable").reset_index(drop=True)
    return df


def join_observations(fact: pd.DataFrame, dim: pd.DataFrame) -> pd.DataFrame:
    """Attach slice demographic, reference and target fields to each followup."""
    if fact.empty:
        return pd.DataFrame(columns=FACT_COLUMNS + DIM_COLUMNS[1:])

    merged = fact.merge(dim, on="data_index", how="left")
    return merged.sort_values(["year", "data_index"], kind="stable").reset_index(drop=True)


def pivot_chart_series(fact: pd.DataFrame) -> pd.DataFrame:
    """Pivot the fact table to one column per data_index and one row per year.

    Years are the union over all slices; a slice without a value for a year
    gets NaN there.
    """
    if fact.empty:
        return pd.DataFrame()

    wide = fact.pivot_table(
        index="year",
        columns="data_index",
        values="value",
        aggfunc="mean",
    )
    return wide.sort_index().sort_index(axis=1)


def summarise_by_year(fact: pd.DataFrame) -> pd.DataFrame:
    """Aggregate the fact table to one row per year.

    Rules
    -----
    - value: arithmetic mean of every value reported that year, all slices
      weighted equally
    - count: number of values averaged

    Returns
    -------
    DataFrame with columns year, value, count, years ascending.
    """
    if fact.empty:
        return pd.DataFrame(columns=["year", "value", "count"])

    result = (
        fact.groupby("year")
        .agg(value=("value", "mean"), count=("value", "size"))
        .reset_index()
        .sort_values("year")
        .reset_index(drop=True)
    )
    logger.info("Summarised %d followups to %d yearly rows", len(fact), len(result))
    return result


def frame_to_records(df: pd.DataFrame) -> list[dict]:
    """Convert a frame to JSON-ready dicts: native Python scalars, None for NaN."""
    if df.empty:
        return []
    clean = df.astype(object).where(pd.notna(df), None)
    return clean.to_dict("records")
