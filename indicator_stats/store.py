"""
In-memory indicator and followup stores.

Plain persistence: no validation happens here. The indicator store also hands
out one re-entrant lock per indicator so that slice removal and the
``data_index`` bounds check of followup writes run one at a time for a given
indicator, and a registry lock under which code/name uniqueness is checked
and applied.
"""

import logging
import threading
from typing import Iterable

from .models import Followup, Indicator

logger = logging.getLogger(__name__)


class IndicatorStore:
    def __init__(self) -> None:
        self._indicators: dict[str, Indicator] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.RLock()

    def lock(self, indicator_id: str) -> threading.RLock:
        """Return the lock serializing writes against ``indicator_id``.

        Unknown ids get a throwaway lock that is not kept: ids are generated
        on insert, so nobody else can be writing against them yet.
        """
        with self._guard:
            if indicator_id not in self._indicators:
                return threading.RLock()
            lock = self._locks.get(indicator_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[indicator_id] = lock
            return lock

    def registry_lock(self) -> threading.RLock:
        """Lock held while checking and applying code/name uniqueness."""
        return self._guard

    def add(self, indicator: Indicator) -> None:
        with self._guard:
            self._indicators[indicator.id] = indicator

    def get(self, indicator_id: str) -> Indicator | None:
        return self._indicators.get(indicator_id)

    def find_by_code(self, code: str) -> Indicator | None:
        for indicator in self._indicators.values():
            if indicator.code == code:
                return indicator
        return None

    def find_by_name(self, name: str) -> Indicator | None:
        for indicator in self._indicators.values():
            if indicator.name == name:
                return indicator
        return None

    def all(self) -> list[Indicator]:
        return list(self._indicators.values())

    def delete(self, indicator_id: str) -> Indicator | None:
        with self._guard:
            self._locks.pop(indicator_id, None)
            return self._indicators.pop(indicator_id, None)

    def __len__(self) -> int:
        return len(self._indicators)


class FollowupStore:
    def __init__(self) -> None:
        self._followups: dict[str, Followup] = {}
        self._guard = threading.Lock()

    def add(self, followup: Followup) -> None:
        with self._guard:
            self._followups[followup.id] = followup

    def get(self, followup_id: str) -> Followup | None:
        return self._followups.get(followup_id)

    def select(
        self,
        indicator_id: str | None = None,
        slice_ids: Iterable[str] | None = None,
        start_year: int | None = None,
        end_year: int | None = None,
    ) -> list[Followup]:
        """Return followups matching every given filter, in insertion order."""
        wanted = set(slice_ids) if slice_ids is not None else None
        rows = []
        for followup in list(self._followups.values()):
            if indicator_id is not None and followup.indicator_id != indicator_id:
                continue
            if wanted is not None and followup.slice_id not in wanted:
                continue
            if start_year is not None and followup.year < start_year:
                continue
            if end_year is not None and followup.year > end_year:
                continue
            rows.append(followup)
        return rows

    def find(self, indicator_id: str, slice_id: str, year: int) -> Followup | None:
        for followup in self.select(indicator_id, [slice_id]):
            if followup.year == year:
                return followup
        return None

    def delete(self, followup_id: str) -> Followup | None:
        with self._guard:
            return self._followups.pop(followup_id, None)

    def delete_where(self, indicator_id: str, slice_id: str | None = None) -> int:
        """Delete an indicator's followups, or only those of one slice."""
        with self._guard:
            doomed = [
                f.id for f in self._followups.values()
                if f.indicator_id == indicator_id
                and (slice_id is None or f.slice_id == slice_id)
            ]
            for followup_id in doomed:
                del self._followups[followup_id]
        logger.info(
            "Deleted %d followups for indicator %s%s",
            len(doomed),
            indicator_id,
            f" slice {slice_id}" if slice_id else "",
        )
        return len(doomed)

    def __len__(self) -> int:
        return len(self._followups)
