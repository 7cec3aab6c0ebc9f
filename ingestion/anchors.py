# WORKFLOW: Declarative anchor-label rules for the tabular packing-list parser.
# Used by: ingestion.tabular
# Contents:
# 1. AnchorRule - label pattern + match mode + scan direction + read offset
# 2. Rule table - where each header field of a parcel segment is found
# 3. find_anchor_row() - Locate the nearest row matching a rule
# 4. read_anchor_value() - Read the cell a rule points at
#
# Segmentation and item extraction only see rule names; every label, offset and
# regex specific to the packing-list layout lives in this module.

"""
Anchor-label rule table for tabular packing lists.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Pattern

from ingestion.canonical import trim_or_null

Row = List[Optional[str]]
Grid = List[Row]


class MatchMode(str, Enum):
    FIRST_CELL_PREFIX = "first_cell_prefix"
    ANY_CELL = "any_cell"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class AnchorRule:
    name: str
    pattern: Pattern[str]
    mode: MatchMode
    direction: Direction
    row_offset: int = 0
    column: Optional[int] = None

    def matches(self, row: Row) -> bool:
        if self.mode is MatchMode.FIRST_CELL_PREFIX:
            first = row[0] if row else None
            return isinstance(first, str) and self.pattern.match(first) is not None
        return any(isinstance(cell, str) and self.pattern.search(cell) for cell in row)


def _prefix(label: str) -> Pattern[str]:
    return re.compile(re.escape(label))


PARCEL_MARKER = "Parcel No:"
OUR_REF_MARKER = "Our Ref.:"
PACKING_LIST_MARKER = "PACKING LIST"

# Anchor labels that must appear somewhere in the grid
REQUIRED_ANCHORS = (PARCEL_MARKER, OUR_REF_MARKER, PACKING_LIST_MARKER)
REQUIRED_ITEM_COLUMNS = ("Code", "Description", "Total Qty.")

PURCHASE_ORDER = AnchorRule(
    name="purchase_order_number",
    pattern=_prefix(OUR_REF_MARKER),
    mode=MatchMode.FIRST_CELL_PREFIX,
    direction=Direction.UP,
    column=2,
)
PACKING_LIST = AnchorRule(
    name="packing_list_number",
    pattern=_prefix(PACKING_LIST_MARKER),
    mode=MatchMode.FIRST_CELL_PREFIX,
    direction=Direction.UP,
    row_offset=1,
    column=0,
)
SHIPPER_HEADER = AnchorRule(
    name="shipper_header",
    pattern=re.compile(r'shipper', re.IGNORECASE),
    mode=MatchMode.ANY_CELL,
    direction=Direction.UP,
)
CONTAINING_BLOCK = AnchorRule(
    name="containing_block",
    pattern=re.compile(r'Containing:?', re.IGNORECASE),
    mode=MatchMode.ANY_CELL,
    direction=Direction.DOWN,
)

HEADER_VALUE_RULES = (PURCHASE_ORDER, PACKING_LIST)

# Column headers of the shipper/dispatch block
PARCEL_FROM_HEADER = re.compile(r'^shipper:', re.IGNORECASE)
PARCEL_TO_HEADER = re.compile(r'^dispatch:', re.IGNORECASE)

# Dangerous-goods style flags below a "Containing:" row
ITEM_TYPE_LABELS = ("cc", "dg", "cs")
ITEM_TYPE_MARK = "x"

# Free-text totals on the parcel start row
TOTAL_WEIGHT_PATTERN = re.compile(r'Total weight\s*([\d.]+)', re.IGNORECASE)
TOTAL_VOLUME_PATTERN = re.compile(r'Total volume\s*([\d.]+)', re.IGNORECASE)

# Canonical item field -> column header in the item header row
ITEM_COLUMNS = {
    "product_code": "Code",
    "product_description": "Description",
    "product_quantity": "Total Qty.",
    "batch_number": "Batch",
    "expiry_date": "Exp. Date",
}


def find_anchor_row(grid: Grid, rule: AnchorRule, start: int, end: Optional[int] = None) -> Optional[int]:
    """
    Find the nearest row matching ``rule`` starting at ``start``.

    Args:
        grid: Rows of nullable strings
        rule: Anchor rule to match
        start: Row index the scan begins at (inclusive)
        end: Exclusive upper bound for downward scans (defaults to grid length)

    Returns:
        Matching row index, or None
    """
    if rule.direction is Direction.UP:
        candidates = range(min(start, len(grid) - 1), -1, -1)
    else:
        stop = len(grid) if end is None else min(end, len(grid))
        candidates = range(start, stop)

    for index in candidates:
        if rule.matches(grid[index]):
            return index
    return None


def cell_at(grid: Grid, row: int, column: int) -> Optional[str]:
    """Trimmed cell value, None when the position is outside the grid."""
    if row < 0 or row >= len(grid) or column < 0:
        return None
    cells = grid[row]
    return trim_or_null(cells[column]) if column < len(cells) else None


def read_anchor_value(grid: Grid, rule: AnchorRule, start: int) -> Optional[str]:
    """Locate the anchor for ``rule`` and read the cell it points at."""
    anchor = find_anchor_row(grid, rule, start)
    if anchor is None or rule.column is None:
        return None
    return cell_at(grid, anchor + rule.row_offset, rule.column)
