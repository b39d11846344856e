"""
Followup management: yearly observed values for one data slice.

Callers address the slice by its position in ``Indicator.data``; the followup
keeps the slice identity, and its position is resolved again on every read.
"""

import logging

from . import config
from .exceptions import ConflictError, NotFoundError
from .indicators import check_position
from .models import Followup, Indicator, utcnow
from .store import FollowupStore, IndicatorStore
from .validation import validate_number, validate_year

logger = logging.getLogger(__name__)


class FollowupManager:
    def __init__(
        self,
        indicators: IndicatorStore,
        followups: FollowupStore,
        unique_per_year: bool = config.UNIQUE_FOLLOWUP_PER_YEAR,
    ) -> None:
        self.indicators = indicators
        self.followups = followups
        self.unique_per_year = unique_per_year

    def _indicator(self, indicator_id: str) -> Indicator:
        indicator = self.indicators.get(indicator_id)
        if indicator is None:
            raise NotFoundError("Indicator", indicator_id)
        return indicator

    def _check_unique(
        self, indicator: Indicator, slice_id: str, year: int, exclude_id: str | None = None
    ) -> None:
        if not self.unique_per_year:
            return
        existing = self.followups.find(indicator.id, slice_id, year)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(
                "year",
                f"a followup for data slice {indicator.position_of(slice_id)} "
                f"of {indicator.code!r} already exists for {year}",
            )

    def data_index_of(self, followup: Followup) -> int | None:
        """Current position of the followup's slice, None if the indicator is gone."""
        indicator = self.indicators.get(followup.indicator_id)
        if indicator is None:
            return None
        return indicator.position_of(followup.slice_id)

    def to_record(self, followup: Followup) -> dict:
        return {
            "id": followup.id,
            "indicator": followup.indicator_id,
            "data_index": self.data_index_of(followup),
            "year": followup.year,
            "value": followup.value,
        }

    def create_followup(self, indicator_id: str, data_index: int, year, value) -> Followup:
        year = validate_year(year, "year", required=True)
        value = validate_number(value, "value", required=True)

        with self.indicators.lock(indicator_id):
            indicator = self._indicator(indicator_id)
            check_position(indicator, data_index)
            slice_id = indicator.data[data_index].slice_id
            self._check_unique(indicator, slice_id, year)

            followup = Followup(
                indicator_id=indicator.id,
                slice_id=slice_id,
                year=year,
                value=value,
            )
            self.followups.add(followup)

        logger.info(
            "Created followup %s for indicator %s slice %d year %d",
            followup.id,
            indicator.code,
            data_index,
            year,
        )
        return followup

    def get_followup(self, followup_id: str) -> Followup:
        followup = self.followups.get(followup_id)
        if followup is None:
            raise NotFoundError("Followup", followup_id)
        return followup

    def list_followups(
        self,
        indicator_id: str | None = None,
        data_index: int | None = None,
    ) -> list[Followup]:
        """Followups sorted by indicator, slice position, then year."""
        slice_ids = None
        if data_index is not None:
            indicator = self._indicator(indicator_id)
            check_position(indicator, data_index)
            slice_ids = [indicator.data[data_index].slice_id]

        rows = self.followups.select(indicator_id, slice_ids)
        return sorted(
            rows,
            key=lambda f: (f.indicator_id, self.data_index_of(f) or 0, f.year),
        )

    def update_followup(
        self,
        followup_id: str,
        year=None,
        value=None,
        data_index: int | None = None,
    ) -> Followup:
        """Replace year, value and/or slice position of one followup."""
        followup = self.get_followup(followup_id)
        new_year = validate_year(year, "year") if year is not None else followup.year
        new_value = validate_number(value, "value") if value is not None else followup.value

        with self.indicators.lock(followup.indicator_id):
            indicator = self._indicator(followup.indicator_id)
            slice_id = followup.slice_id
            if data_index is not None:
                check_position(indicator, data_index)
                slice_id = indicator.data[data_index].slice_id
            elif indicator.position_of(slice_id) is None:
                raise NotFoundError("Followup", followup_id)

            self._check_unique(indicator, slice_id, new_year, exclude_id=followup.id)

            followup.slice_id = slice_id
            followup.year = new_year
            followup.value = new_value
            followup.updated_at = utcnow()

        logger.info("Updated followup %s", followup.id)
        return followup

    def delete_followup(self, followup_id: str) -> Followup:
        followup = self.followups.delete(followup_id)
        if followup is None:
            raise NotFoundError("Followup", followup_id)
        logger.info("Deleted followup %s", followup_id)
        return followup
