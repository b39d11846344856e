"""
Indicator and data slice management.

Slices are addressed by position. Each slice also carries a ``slice_id`` that
followups are stored against, so removing a slice only has to delete that
slice's followups: the followups of later slices move down one position on
their own.
"""

import logging
from collections import Counter

from . import config
from .exceptions import (
    ConcurrentModificationError,
    ConflictError,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from .geography import GeographicHierarchy
from .models import DataSlice, Indicator
from .store import FollowupStore, IndicatorStore
from .validation import validate_indicator_fields, validate_slice

logger = logging.getLogger(__name__)


def check_position(indicator: Indicator, position, field: str = "data_index") -> int:
    """Return ``position`` if it addresses an existing slice of ``indicator``."""
    if isinstance(position, bool) or not isinstance(position, int):
        raise ValidationError(field, f"must be an integer, got {position!r}")
    if not 0 <= position < len(indicator.data):
        raise ReferentialIntegrityError(
            field,
            f"{position} is out of bounds for indicator {indicator.code!r} "
            f"with {len(indicator.data)} data slices",
        )
    return position


def _check_version(indicator: Indicator, expected_version: int | None) -> None:
    if expected_version is not None and expected_version != indicator.version:
        raise ConcurrentModificationError(indicator.id, expected_version, indicator.version)


class IndicatorManager:
    def __init__(
        self,
        indicators: IndicatorStore,
        followups: FollowupStore,
        hierarchy: GeographicHierarchy,
        allow_duplicate_slices: bool = config.ALLOW_DUPLICATE_SLICES,
    ) -> None:
        self.indicators = indicators
        self.followups = followups
        self.hierarchy = hierarchy
        self.allow_duplicate_slices = allow_duplicate_slices

    # ------------------------------------------------------------------
    # Indicators
    # ------------------------------------------------------------------

    def get_indicator(self, indicator_id: str) -> Indicator:
        indicator = self.indicators.get(indicator_id)
        if indicator is None:
            raise NotFoundError("Indicator", indicator_id)
        return indicator

    def list_indicators(
        self,
        search: str | None = None,
        programme: str | None = None,
        source: str | None = None,
    ) -> list[Indicator]:
        """Newest first; ``search`` matches code or name, case-insensitively."""
        rows = self.indicators.all()
        if search:
            needle = search.lower()
            rows = [i for i in rows if needle in i.code.lower() or needle in i.name.lower()]
        if programme is not None:
            rows = [i for i in rows if i.programme == programme]
        if source is not None:
            rows = [i for i in rows if source in i.source]
        return sorted(rows, key=lambda i: i.created_at, reverse=True)

    def _check_unique(self, clean: dict, exclude_id: str | None = None) -> None:
        if "code" in clean:
            other = self.indicators.find_by_code(clean["code"])
            if other is not None and other.id != exclude_id:
                raise ConflictError("code", f"an indicator with code {clean['code']!r} already exists")
        if "name" in clean:
            other = self.indicators.find_by_name(clean["name"])
            if other is not None and other.id != exclude_id:
                raise ConflictError("name", f"an indicator named {clean['name']!r} already exists")

    def create_indicator(self, fields: dict) -> Indicator:
        clean = validate_indicator_fields(fields)
        indicator = Indicator(**clean)

        with self.indicators.registry_lock():
            self._check_unique(clean)
            self.indicators.add(indicator)

        logger.info("Created indicator %s (%s)", indicator.code, indicator.id)
        return indicator

    def update_indicator(self, indicator_id: str, fields: dict) -> Indicator:
        """Replace indicator attributes; ``data`` is left untouched."""
        with self.indicators.lock(indicator_id):
            indicator = self.get_indicator(indicator_id)
            clean = validate_indicator_fields(fields, partial=True)

            with self.indicators.registry_lock():
                self._check_unique(clean, exclude_id=indicator.id)
                for key, value in clean.items():
                    setattr(indicator, key, value)
                indicator.touch()

        logger.info("Updated indicator %s fields %s", indicator.code, sorted(clean))
        return indicator

    def delete_indicator(self, indicator_id: str) -> int:
        """Delete the indicator, its slices and its followups.

        Returns the number of followups removed.
        """
        with self.indicators.lock(indicator_id):
            indicator = self.get_indicator(indicator_id)
            removed = self.followups.delete_where(indicator.id)
            self.indicators.delete(indicator.id)

        logger.info(
            "Deleted indicator %s with %d data slices and %d followups",
            indicator.code,
            len(indicator.data),
            removed,
        )
        return removed

    def get_indicator_overview(self) -> dict:
        """Counts for the indicator registry landing page."""
        rows = self.indicators.all()
        by_programme = Counter(i.programme for i in rows)
        return {
            "total": len(rows),
            "by_programme": [
                {"programme": programme, "count": count}
                for programme, count in sorted(by_programme.items())
            ],
            "with_meta_data": sum(1 for i in rows if i.meta_data),
            "with_data": sum(1 for i in rows if i.data),
        }

    # ------------------------------------------------------------------
    # Data slices
    # ------------------------------------------------------------------

    def _check_duplicate(self, indicator: Indicator, candidate: DataSlice, skip: int | None = None) -> None:
        if self.allow_duplicate_slices:
            return
        key = candidate.dimension_key()
        for position, existing in enumerate(indicator.data):
            if position != skip and existing.dimension_key() == key:
                raise ConflictError(
                    "data",
                    f"slice duplicates the breakdown of data slice {position}",
                )

    def append_data_slice(self, indicator_id: str, raw_slice) -> int:
        """Validate and append a slice; return its position."""
        with self.indicators.lock(indicator_id):
            indicator = self.get_indicator(indicator_id)
            data_slice = validate_slice(raw_slice, self.hierarchy)
            self._check_duplicate(indicator, data_slice)

            indicator.data.append(data_slice)
            indicator.touch()
            position = len(indicator.data) - 1

        logger.info("Appended data slice %d to indicator %s", position, indicator.code)
        return position

    def update_data_slice(
        self,
        indicator_id: str,
        position: int,
        raw_slice,
        expected_version: int | None = None,
    ) -> DataSlice:
        """Replace the slice at ``position`` in place, keeping its followups."""
        with self.indicators.lock(indicator_id):
            indicator = self.get_indicator(indicator_id)
            _check_version(indicator, expected_version)
            check_position(indicator, position, "position")

            data_slice = validate_slice(raw_slice, self.hierarchy)
            self._check_duplicate(indicator, data_slice, skip=position)
            data_slice.slice_id = indicator.data[position].slice_id

            indicator.data[position] = data_slice
            indicator.touch()

        logger.info("Updated data slice %d of indicator %s", position, indicator.code)
        return data_slice

    def remove_data_slice(
        self,
        indicator_id: str,
        position: int,
        expected_version: int | None = None,
    ) -> int:
        """Remove the slice at ``position`` and delete its followups.

        Followups of the slices after it keep their slice and are addressed
        one position lower from now on. Returns the number of followups
        deleted.
        """
        with self.indicators.lock(indicator_id):
            indicator = self.get_indicator(indicator_id)
            _check_version(indicator, expected_version)
            check_position(indicator, position, "position")

            removed_slice = indicator.data.pop(position)
            removed = self.followups.delete_where(indicator.id, removed_slice.slice_id)
            indicator.touch()

        logger.info(
            "Removed data slice %d from indicator %s (%d followups deleted)",
            position,
            indicator.code,
            removed,
        )
        return removed
