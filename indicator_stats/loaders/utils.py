"""
Shared utilities for reference data ingestion: header detection, column
renaming, identifier normalisation.
"""

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)


def to_snake_case(name: str) -> str:
    """Convert a column name to snake_case.

    Handles spaces, accents on common French headers, hyphens and
    CamelCase ("Code Parent" -> "code_parent", "ParentId" -> "parent_id").
    """
    s = str(name).strip()
    s = s.replace("é", "e").replace("è", "e").replace("-", "_").replace(".", "_")
    # CamelCase to snake_case
    s = re.sub(r"([a-z])([A-Z])", r"\1_\2", s)
    # Collapse whitespace and special chars to underscores
    s = re.sub(r"[^a-zA-Z0-9]+", "_", s)
    s = s.lower().strip("_")
    s = re.sub(r"_+", "_", s)
    return s


def find_header_row(
    sheet,
    signature: set[str],
    max_rows: int = 20,
) -> int | None:
    """Scan an openpyxl sheet for the row containing signature strings.

    Cell values are compared after to_snake_case. Returns the 1-based row
    index where at least two cells match values in `signature`, or None if
    not found within `max_rows`.
    """
    for row_idx in range(1, max_rows + 1):
        matches = 0
        for cell in sheet[row_idx]:
            if cell.value is not None and to_snake_case(cell.value) in signature:
                matches += 1
        if matches >= 2:
            return row_idx
    return None


def normalise_id(val: Any) -> str | None:
    """Coerce an identifier cell to a string.

    Integral floats lose their ".0" (Excel stores numeric ids as floats);
    blanks become None.
    """
    if val is None:
        return None
    if isinstance(val, float):
        if val != val:  # NaN
            return None
        if val.is_integer():
            return str(int(val))
    s = str(val).strip()
    return s or None
