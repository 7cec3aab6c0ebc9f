# WORKFLOW: Spreadsheet reader producing the raw grid for the tabular parser.
# Used by: ingestion.processor
# Functions:
# 1. read_grid() - XLSX bytes -> rows of nullable strings (first worksheet)
# 2. cell_to_text() - Render one cell value as text (dates as YYYY-MM-DD)
#
# Reading flow: Bytes -> pandas (openpyxl engine, no header) -> Cell rendering -> Drop blank rows

"""
XLSX to string-grid reader.
"""

import io
import logging
from datetime import date, datetime
from typing import Any, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"


def cell_to_text(value: Any) -> Optional[str]:
    """
    Render a spreadsheet cell as text.

    Args:
        value: Raw cell value as loaded by pandas

    Returns:
        Text value, or None for empty cells
    """
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        if pd.isna(value):
            return None
        return value.strftime(DATE_FORMAT)
    if isinstance(value, float):
        if pd.isna(value):
            return None
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, str):
        return value
    if pd.isna(value):
        return None
    return str(value)


def read_grid(content: bytes) -> List[List[Optional[str]]]:
    """
    Read the first worksheet of an XLSX file into a grid.

    Args:
        content: Raw XLSX bytes

    Returns:
        Rows of nullable strings; rows without any value are skipped
    """
    frame = pd.read_excel(io.BytesIO(content), sheet_name=0, header=None, dtype=object, engine="openpyxl")

    grid = []
    for row in frame.itertuples(index=False, name=None):
        cells = [cell_to_text(value) for value in row]
        if any(cell is not None and cell != "" for cell in cells):
            grid.append(cells)

    logger.info(f"Read {len(grid)} non-empty rows from worksheet")
    return grid
