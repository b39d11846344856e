"""
Loader for the administrative division workbook (découpage administratif).

Layout
------
One worksheet per level, named after the level ("Province", "Departement",
"Sous-prefecture", "Canton", "Commune", "Village"). Each sheet has a header
row somewhere in its first 20 rows with at least an id and a name column.
The parent column may be called parent_id / parent, or after the parent level
itself (a Departement sheet may carry a "Province" column).

Sheets with any other name are ignored.
"""

import logging

import openpyxl
import pandas as pd

from ..config import GEO_PARENT_LEVELS, GeoLevel
from ..geography import ENTITY_COLUMNS, InMemoryGeographicHierarchy
from .utils import find_header_row, normalise_id, to_snake_case

logger = logging.getLogger(__name__)

_ID_ALIASES = {"id", "identifiant"}
_CODE_ALIASES = {"code"}
_NAME_ALIASES = {"name", "nom", "libelle"}
_PARENT_ALIASES = {"parent_id", "parent", "id_parent", "code_parent"}

_HEADER_SIGNATURE = _ID_ALIASES | _CODE_ALIASES | _NAME_ALIASES | _PARENT_ALIASES


def _sheet_level(sheet_name: str) -> GeoLevel | None:
    key = to_snake_case(sheet_name)
    for level in GeoLevel:
        if level != GeoLevel.GLOBAL and to_snake_case(level.value) == key:
            return level
    return None


def _column_map(header: list, level: GeoLevel) -> dict[str, int]:
    """Map canonical field name -> 0-based column index for one sheet."""
    parent_aliases = set(_PARENT_ALIASES)
    for parent_level in GEO_PARENT_LEVELS.get(level, ()):
        parent_aliases.add(to_snake_case(parent_level.value))

    mapping: dict[str, int] = {}
    for idx, raw in enumerate(header):
        if raw is None:
            continue
        name = to_snake_case(raw)
        if name in _ID_ALIASES:
            mapping.setdefault("id", idx)
        elif name in _CODE_ALIASES:
            mapping.setdefault("code", idx)
        elif name in _NAME_ALIASES:
            mapping.setdefault("name", idx)
        elif name in parent_aliases:
            mapping.setdefault("parent_id", idx)
    return mapping


def load_geo_entities(path: str) -> pd.DataFrame:
    """Load every administrative level from the workbook into one entity table.

    Assumptions
    -----------
    - When a sheet has no id column, the code doubles as the id.
    - Rows without an id (or code) or without a name are skipped.
    - Numeric ids stored as floats are normalised ("12.0" -> "12").

    Returns
    -------
    DataFrame with columns:
        id, code, name, level, parent_id
    """
    try:
        wb = openpyxl.load_workbook(path, data_only=True)
    except Exception:
        logger.exception("Failed to open geographic hierarchy workbook: %s", path)
        raise

    rows = []
    for sheet_name in wb.sheetnames:
        level = _sheet_level(sheet_name)
        if level is None:
            logger.warning("Ignoring sheet '%s': not an administrative level", sheet_name)
            continue

        ws = wb[sheet_name]
        header_idx = find_header_row(ws, _HEADER_SIGNATURE)
        if header_idx is None:
            logger.warning("No header row found in sheet '%s'", sheet_name)
            continue

        values = list(ws.iter_rows(min_row=header_idx, values_only=True))
        columns = _column_map(list(values[0]), level)
        if "name" not in columns or not ({"id", "code"} & columns.keys()):
            logger.warning("Sheet '%s' lacks id/code or name columns", sheet_name)
            continue

        def cell(row, field):
            idx = columns.get(field)
            if idx is None or idx >= len(row):
                return None
            return row[idx]

        skipped = 0
        for row in values[1:]:
            code = normalise_id(cell(row, "code"))
            entity_id = normalise_id(cell(row, "id")) or code
            name = cell(row, "name")
            if entity_id is None or name is None or not str(name).strip():
                skipped += 1
                continue
            rows.append({
                "id": entity_id,
                "code": code or entity_id,
                "name": str(name).strip(),
                "level": level.value,
                "parent_id": normalise_id(cell(row, "parent_id")),
            })

        if skipped:
            logger.warning("Skipped %d incomplete rows in sheet '%s'", skipped, sheet_name)

    wb.close()

    df = pd.DataFrame(rows, columns=ENTITY_COLUMNS)
    logger.info("Loaded %d geographic entities from %s", len(df), path)
    return df


def load_geo_hierarchy(path: str) -> InMemoryGeographicHierarchy:
    """Load the workbook and wrap it in a hierarchy provider."""
    hierarchy = InMemoryGeographicHierarchy(load_geo_entities(path))
    for problem in hierarchy.check_integrity():
        logger.warning("Hierarchy: %s", problem)
    return hierarchy
