"""
Geographic hierarchy: the read-only interface the engine consumes, and an
in-memory implementation backed by a pandas entity table.

The administrative tree itself is maintained elsewhere. Here it is only a
lookup table keyed by (level, id) plus the fixed level ordering from
``config``.
"""

import logging
from typing import Iterable, Protocol

import pandas as pd

from .config import GEO_PARENT_LEVELS, GeoLevel
from .models import GeoEntity

logger = logging.getLogger(__name__)

ENTITY_COLUMNS = ["id", "code", "name", "level", "parent_id"]


class GeographicHierarchy(Protocol):
    def lookup_entity(self, level: GeoLevel, entity_id: str) -> GeoEntity | None:
        ...

    def list_entities(
        self, level: GeoLevel, parent_id: str | None = None
    ) -> list[GeoEntity]:
        ...


def parse_level(value) -> GeoLevel:
    """Accept a ``GeoLevel`` or its label ('Province', 'Sous-prefecture', ...)."""
    if isinstance(value, GeoLevel):
        return value
    return GeoLevel(str(value).strip())


class InMemoryGeographicHierarchy:
    """Hierarchy provider over a DataFrame with columns id, code, name, level, parent_id."""

    def __init__(self, entities: pd.DataFrame | None = None) -> None:
        if entities is None:
            entities = pd.DataFrame(columns=ENTITY_COLUMNS)

        missing = [c for c in ENTITY_COLUMNS if c not in entities.columns]
        if missing:
            raise ValueError(f"Entity table is missing columns: {missing}")

        self._by_key: dict[tuple[GeoLevel, str], GeoEntity] = {}
        skipped = 0
        for row in entities[ENTITY_COLUMNS].itertuples(index=False):
            try:
                level = parse_level(row.level)
            except ValueError:
                logger.warning("Skipping entity %s with unknown level %r", row.id, row.level)
                skipped += 1
                continue
            if level == GeoLevel.GLOBAL:
                logger.warning("Skipping entity %s declared at Global level", row.id)
                skipped += 1
                continue

            parent_id = row.parent_id
            if parent_id is None or pd.isna(parent_id) or str(parent_id).strip() == "":
                parent_id = None
            else:
                parent_id = str(parent_id).strip()

            entity = GeoEntity(
                id=str(row.id).strip(),
                code=str(row.code).strip() if pd.notna(row.code) else "",
                name=str(row.name).strip(),
                level=level,
                parent_id=parent_id,
            )
            self._by_key[(level, entity.id)] = entity

        logger.info(
            "Loaded geographic hierarchy with %d entities (%d skipped)",
            len(self._by_key),
            skipped,
        )

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "InMemoryGeographicHierarchy":
        return cls(pd.DataFrame(list(records), columns=ENTITY_COLUMNS))

    def lookup_entity(self, level: GeoLevel, entity_id: str) -> GeoEntity | None:
        if entity_id is None:
            return None
        return self._by_key.get((parse_level(level), str(entity_id)))

    def list_entities(
        self, level: GeoLevel, parent_id: str | None = None
    ) -> list[GeoEntity]:
        """Entities of one level, optionally under one parent, sorted by name."""
        level = parse_level(level)
        entities = [
            e for (lvl, _), e in self._by_key.items()
            if lvl == level and (parent_id is None or e.parent_id == str(parent_id))
        ]
        return sorted(entities, key=lambda e: e.name)

    def parent_of(self, entity: GeoEntity) -> GeoEntity | None:
        if entity.parent_id is None:
            return None
        for parent_level in GEO_PARENT_LEVELS.get(entity.level, ()):
            parent = self._by_key.get((parent_level, entity.parent_id))
            if parent is not None:
                return parent
        return None

    def check_integrity(self) -> list[str]:
        """Return a message for every entity whose parent is missing or at the wrong level."""
        problems = []
        for entity in self._by_key.values():
            allowed = GEO_PARENT_LEVELS.get(entity.level, ())
            if not allowed:
                continue
            if entity.parent_id is None:
                problems.append(f"{entity.level.value} {entity.id} has no parent")
            elif self.parent_of(entity) is None:
                problems.append(
                    f"{entity.level.value} {entity.id} has unknown parent {entity.parent_id}"
                )
        if problems:
            logger.warning("Geographic hierarchy has %d integrity problems", len(problems))
        return problems

    def __len__(self) -> int:
        return len(self._by_key)
