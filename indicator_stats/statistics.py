"""
Statistics aggregation engine.

These are the entry points the reporting front end calls. Each one resolves
which data slice positions of an indicator match a geographic filter, pulls
the followups of those positions (optionally bounded to a year range), and
shapes them into plain dicts and lists ready for JSON: raw observation
records, chart series, a national yearly summary, a multi-entity comparison,
or the list of available years.

All reads are pure functions of the stored state. A filter matching nothing
gives an empty result; only an unknown indicator id raises.
"""

import dataclasses
import logging
from typing import Iterable

import pandas as pd

from .config import (
    ALL_VALUE_LABELS,
    CHART_COLORS,
    GEO_PARENT_LEVELS,
    NATIONAL_ENTITY,
    GeoLevel,
)
from .exceptions import NotFoundError, ValidationError
from .geography import GeographicHierarchy
from .kpis import calculate_statistics
from .models import DataSlice, Indicator
from .store import FollowupStore, IndicatorStore
from .transforms import (
    build_dim_slice,
    build_fact_followup,
    frame_to_records,
    join_observations,
    pivot_chart_series,
    summarise_by_year,
)
from .validation import coerce_enum

logger = logging.getLogger(__name__)


def match_positions(
    data: list[DataSlice],
    geo_level: GeoLevel,
    entity_ids: Iterable[str] | None = None,
) -> list[int]:
    """Positions of the slices matching a geographic filter.

    - Global matches every slice located at Global; the entity filter is
      ignored.
    - Any other level matches slices at that level whose reference id is in
      ``entity_ids``, or every slice at that level when no entity is given.
    """
    wanted = {str(e) for e in entity_ids} if entity_ids else None
    positions = []
    for position, data_slice in enumerate(data):
        location = data_slice.geo_location
        if location.type != geo_level:
            continue
        if geo_level == GeoLevel.GLOBAL or wanted is None or location.reference_id in wanted:
            positions.append(position)
    return positions


def _year_bound(value, field: str) -> int | None:
    """Year filter bound; whole numbers or digit strings only."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(field, f"must be a year, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(field, f"must be a whole year, got {value!r}")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(field, f"must be a year, got {value!r}") from None


def _entity_list(entity_ids) -> list[str]:
    if entity_ids is None or entity_ids == "":
        return []
    if isinstance(entity_ids, str):
        return [e for e in entity_ids.split(",") if e]
    return [str(e) for e in entity_ids]


class StatisticsEngine:
    def __init__(
        self,
        indicators: IndicatorStore,
        followups: FollowupStore,
        hierarchy: GeographicHierarchy,
    ) -> None:
        self.indicators = indicators
        self.followups = followups
        self.hierarchy = hierarchy

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _indicator(self, indicator_id: str) -> Indicator:
        """Copy of the indicator with its own slice list.

        Taken under the indicator lock so that positions resolved from it stay
        valid for the whole read even if a slice is removed meanwhile.
        """
        indicator = self.indicators.get(indicator_id)
        if indicator is None:
            raise NotFoundError("Indicator", indicator_id)
        with self.indicators.lock(indicator.id):
            return dataclasses.replace(indicator, data=list(indicator.data))

    @staticmethod
    def _reference(indicator: Indicator, positions: list[int]) -> DataSlice | None:
        return indicator.data[positions[0]] if positions else None

    def _observations(
        self,
        indicator: Indicator,
        positions: list[int],
        start_year: int | None,
        end_year: int | None,
    ) -> pd.DataFrame:
        """Joined followup/slice frame for ``positions`` within the year range."""
        slice_ids = [indicator.data[p].slice_id for p in positions]
        followups = self.followups.select(indicator.id, slice_ids, start_year, end_year)
        fact = build_fact_followup(indicator, followups)
        return join_observations(fact, build_dim_slice(indicator))

    def describe_slice(self, data_slice: DataSlice) -> str:
        """Chart label: place name plus any real demographic breakdown."""
        location = data_slice.geo_location
        if location.type == GeoLevel.GLOBAL:
            place = NATIONAL_ENTITY["name"]
        else:
            entity = self.hierarchy.lookup_entity(location.type, location.reference_id)
            if entity is None:
                place = f"{location.type.value}: ({location.reference_id})"
            else:
                place = entity.name

        details = [
            member.value
            for member in (
                data_slice.age_range,
                data_slice.gender,
                data_slice.residential_area,
                data_slice.social_category,
            )
            if member is not None and member.value.strip().lower() not in ALL_VALUE_LABELS
        ]
        if details:
            return f"{place} ({' - '.join(details)})"
        return place

    def get_geographic_entity_details(self, geo_level, geo_entity_id=None) -> dict | None:
        """Name, code and parent of the entity a filter points at.

        Global always resolves to the National pseudo-entity; an unknown
        entity resolves to None.
        """
        level = coerce_enum(GeoLevel, geo_level, "geo_level", required=True)
        if level == GeoLevel.GLOBAL:
            return dict(NATIONAL_ENTITY)
        if not geo_entity_id:
            return None

        entity = self.hierarchy.lookup_entity(level, str(geo_entity_id))
        if entity is None:
            return None

        parent = None
        if entity.parent_id is not None:
            for parent_level in GEO_PARENT_LEVELS.get(level, ()):
                found = self.hierarchy.lookup_entity(parent_level, entity.parent_id)
                if found is not None:
                    parent = found.to_dict()
                    break

        return {
            "id": entity.id,
            "name": entity.name,
            "code": entity.code,
            "type": level.value,
            "parent": parent,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def get_filtered_statistics(
        self,
        indicator_id: str,
        geo_level="Global",
        geo_entity_id: str | None = None,
        start_year: int | None = None,
        end_year: int | None = None,
    ) -> dict:
        """Observation records and derived statistics for one geographic filter.

        Returns
        -------
        Dict with structure:
        {
            "indicator": {...summary...},
            "geo_filter": {"level": "Province", "entity": {...} | None},
            "time_filter": {"start_year": ..., "end_year": ...},
            "data_indices": [1, 4],
            "records": [{"followup_id", "data_index", "year", "value",
                         "geo_type", "reference_id", "age_range", ...}],
            "statistics": {...see kpis.calculate_statistics...},
        }
        Records are ordered by year, then data_index.
        """
        indicator = self._indicator(indicator_id)
        level = coerce_enum(GeoLevel, geo_level, "geo_level", required=True)
        start = _year_bound(start_year, "start_year")
        end = _year_bound(end_year, "end_year")

        entity_ids = [str(geo_entity_id)] if geo_entity_id else None
        positions = match_positions(indicator.data, level, entity_ids)
        observations = self._observations(indicator, positions, start, end)
        series = summarise_by_year(observations[["year", "value"]])

        return {
            "indicator": indicator.summary(),
            "geo_filter": {
                "level": level.value,
                "entity": self.get_geographic_entity_details(level, geo_entity_id),
            },
            "time_filter": {"start_year": start, "end_year": end},
            "data_indices": positions,
            "records": frame_to_records(observations),
            "statistics": calculate_statistics(
                series,
                observations,
                indicator.polarity_direction,
                self._reference(indicator, positions),
            ),
        }

    def get_filtered_chart_data(
        self,
        indicator_id: str,
        geo_level="Global",
        entity_ids=None,
        start_year: int | None = None,
        end_year: int | None = None,
    ) -> dict:
        """Chart-ready series, one dataset per matching slice.

        Returns
        -------
        {
            "labels": [2019, 2020, 2021],
            "datasets": [
                {"label": "Logone Occidental (Femme)", "data_index": 3,
                 "data": [12.5, None, 14.0], "border_color": "#3B82F6",
                 "background_color": "#3B82F620", "span_gaps": True},
            ],
        }
        Slices without any followup in the year range get no dataset. Gaps
        are None, never interpolated.
        """
        indicator = self._indicator(indicator_id)
        level = coerce_enum(GeoLevel, geo_level, "geo_level", required=True)
        start = _year_bound(start_year, "start_year")
        end = _year_bound(end_year, "end_year")

        positions = match_positions(indicator.data, level, _entity_list(entity_ids))
        observations = self._observations(indicator, positions, start, end)
        wide = pivot_chart_series(observations)

        if wide.empty:
            logger.warning(
                "No chart data for indicator %s at level %s", indicator.code, level.value
            )
            return {"labels": [], "datasets": []}

        datasets = []
        for data_index in wide.columns:
            position = int(data_index)
            color = CHART_COLORS[position % len(CHART_COLORS)]
            column = wide[data_index]
            datasets.append({
                "label": self.describe_slice(indicator.data[position]),
                "data_index": position,
                "data": [None if pd.isna(v) else float(v) for v in column],
                "border_color": color,
                "background_color": color + "20",
                "span_gaps": True,
            })

        return {
            "labels": [int(y) for y in wide.index],
            "datasets": datasets,
        }

    def get_global_summary(
        self,
        indicator_id: str,
        geo_level="Global",
        entity_ids=None,
        start_year: int | None = None,
        end_year: int | None = None,
    ) -> list[dict]:
        """Yearly mean over every matching slice, years ascending.

        Each row is {"year", "value", "count"}; value is the plain arithmetic
        mean of all values reported that year.
        """
        indicator = self._indicator(indicator_id)
        level = coerce_enum(GeoLevel, geo_level, "geo_level", required=True)
        start = _year_bound(start_year, "start_year")
        end = _year_bound(end_year, "end_year")

        positions = match_positions(indicator.data, level, _entity_list(entity_ids))
        observations = self._observations(indicator, positions, start, end)
        return frame_to_records(summarise_by_year(observations[["year", "value"]]))

    def get_comparison_statistics(self, indicator_id: str, comparisons: list[dict]) -> dict:
        """Run one filter per comparison and key the results side by side.

        Each comparison is a dict with geo_level and optionally geo_entity_id,
        start_year, end_year and label. Keys are "<level>:<entity id>" (or
        "<level>:all"); a repeated key gets a "#2", "#3"... suffix.

        Returns
        -------
        Ordered dict: key -> {"label", "geo_filter", "series", "statistics"}
        """
        if not isinstance(comparisons, list):
            raise ValidationError("comparisons", "a list of comparisons is required")

        indicator = self._indicator(indicator_id)
        results: dict = {}

        for number, comparison in enumerate(comparisons):
            if not isinstance(comparison, dict):
                raise ValidationError(f"comparisons[{number}]", "must be a mapping")
            level = coerce_enum(
                GeoLevel, comparison.get("geo_level"), f"comparisons[{number}].geo_level",
                required=True,
            )
            entity_id = comparison.get("geo_entity_id")
            start = _year_bound(comparison.get("start_year"), f"comparisons[{number}].start_year")
            end = _year_bound(comparison.get("end_year"), f"comparisons[{number}].end_year")

            entity_ids = [str(entity_id)] if entity_id else None
            positions = match_positions(indicator.data, level, entity_ids)
            observations = self._observations(indicator, positions, start, end)
            series = summarise_by_year(observations[["year", "value"]])
            entity = self.get_geographic_entity_details(level, entity_id)

            key = f"{level.value}:{entity_id or 'all'}"
            if key in results:
                suffix = 2
                while f"{key}#{suffix}" in results:
                    suffix += 1
                key = f"{key}#{suffix}"

            results[key] = {
                "label": comparison.get("label") or (entity or {}).get("name") or "Sans nom",
                "geo_filter": {"level": level.value, "entity": entity},
                "data_indices": positions,
                "series": frame_to_records(series),
                "statistics": calculate_statistics(
                    series,
                    observations,
                    indicator.polarity_direction,
                    self._reference(indicator, positions),
                ),
            }

        logger.info(
            "Built %d comparisons for indicator %s", len(results), indicator.code
        )
        return results

    def get_available_years(
        self,
        indicator_id: str,
        geo_level=None,
        geo_entity_id: str | None = None,
    ) -> dict:
        """Distinct years with at least one followup, for UI dropdowns.

        Without a geo_level every slice counts. With a geo_level only the
        matching slices count, so a filter matching nothing yields no years.
        """
        indicator = self._indicator(indicator_id)

        if geo_level is None or geo_level == "":
            positions = list(range(len(indicator.data)))
        else:
            level = coerce_enum(GeoLevel, geo_level, "geo_level")
            entity_ids = [str(geo_entity_id)] if geo_entity_id else None
            positions = match_positions(indicator.data, level, entity_ids)

        slice_ids = [indicator.data[p].slice_id for p in positions]
        years = sorted({f.year for f in self.followups.select(indicator.id, slice_ids)})

        return {
            "years": years,
            "min_year": years[0] if years else None,
            "max_year": years[-1] if years else None,
            "total_years": len(years),
        }
