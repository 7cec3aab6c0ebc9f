# WORKFLOW: Tabular packing-list parser (free-form spreadsheet grid).
# Used by: ingestion.processor for XLSX uploads
# Functions:
# 1. validate_grid() - Require anchor labels and the item header columns
# 2. find_parcel_starts() - Rows whose first cell starts with "Parcel No:"
# 3. segment_bounds() - Split the grid into [start, end) parcel segments
# 4. build_parcel_header() - Header fields located via the anchor rule table
# 5. build_parcel_items() - Item lines resolved through the local header row
# 6. parse_grid() - Grid -> list of canonical ParcelPayload records
#
# Parsing flow: Grid -> Validate anchors -> Find segment starts -> Per segment header + items
# Field positions are discovered by scanning for anchor labels, never by fixed rows.

"""
Parser for free-form tabular packing lists.
"""

import logging
from typing import Dict, List, Optional, Tuple

from ingestion import anchors
from ingestion.anchors import Grid, Row, cell_at
from ingestion.canonical import (
    compose_quantity,
    normalize_date,
    parse_parcel_count,
    trim_or_null,
)
from ingestion.errors import FormatValidationError
from ingestion.models import ItemType, Parcel, ParcelItem, ParcelPayload, Product, empty_payload

logger = logging.getLogger(__name__)


def _has_anchor(grid: Grid, marker: str) -> bool:
    return any(
        isinstance(cell, str) and cell.lstrip().startswith(marker)
        for row in grid
        for cell in row
    )


def _is_item_header(row: Row) -> bool:
    labels = {trim_or_null(cell) for cell in row}
    return all(column in labels for column in anchors.REQUIRED_ITEM_COLUMNS)


def validate_grid(grid: Grid) -> None:
    """
    Validate that the grid looks like a packing list.

    Args:
        grid: Rows of nullable strings

    Raises:
        FormatValidationError: If an anchor label or an item column is missing
    """
    missing = [marker for marker in anchors.REQUIRED_ANCHORS if not _has_anchor(grid, marker)]
    if missing:
        raise FormatValidationError(
            f"Invalid XLSX format: expected Parcel No, Our Ref.: and PACKING LIST headers (missing: {missing})"
        )

    if not any(_is_item_header(row) for row in grid):
        raise FormatValidationError(
            "Invalid XLSX format: missing item columns Code, Description, Total Qty."
        )


def find_parcel_starts(grid: Grid) -> List[int]:
    """Indices of rows whose first cell starts with the parcel marker."""
    return [
        index for index, row in enumerate(grid)
        if row and isinstance(row[0], str) and row[0].startswith(anchors.PARCEL_MARKER)
    ]


def segment_bounds(starts: List[int], total_rows: int) -> List[Tuple[int, int]]:
    """Pair every segment start with the next start (or the end of the grid)."""
    ends = starts[1:] + [total_rows]
    return list(zip(starts, ends))


def extract_parcel_no(row: Row) -> Optional[str]:
    """Text after the first colon of the parcel marker cell ("Parcel No: 1 to 2" -> "1 to 2")."""
    raw = row[0] if row else None
    if not isinstance(raw, str) or ":" not in raw:
        return None
    return trim_or_null(raw.split(":", 1)[1])


def _find_column(header: Row, pattern) -> Optional[int]:
    for index, cell in enumerate(header):
        text = trim_or_null(cell)
        if text and pattern.match(text):
            return index
    return None


def extract_parcel_route(grid: Grid, start: int) -> Tuple[Optional[str], Optional[str]]:
    """
    Read shipper ("from") and dispatch ("to") from the nearest shipper block.

    Args:
        grid: Rows of nullable strings
        start: Segment start row

    Returns:
        Tuple of (parcel_from, parcel_to)
    """
    header_row = anchors.find_anchor_row(grid, anchors.SHIPPER_HEADER, start)
    if header_row is None:
        return None, None

    header = grid[header_row]
    from_column = _find_column(header, anchors.PARCEL_FROM_HEADER)
    to_column = _find_column(header, anchors.PARCEL_TO_HEADER)

    parcel_from = cell_at(grid, header_row + 1, from_column) if from_column is not None else None
    parcel_to = cell_at(grid, header_row + 1, to_column) if to_column is not None else None
    return parcel_from, parcel_to


def detect_item_type(grid: Grid, start: int, end: int) -> ItemType:
    """
    Detect the item type from the "Containing:" block of a segment.

    The block is a label row ("cc", "dg", "cs") followed by a value row where the
    applicable label is marked with "x". The first marked label wins.
    """
    block = anchors.find_anchor_row(grid, anchors.CONTAINING_BLOCK, start, end)
    if block is None:
        return ItemType.REGULAR

    labels = grid[block + 1] if block + 1 < len(grid) else []
    for column, cell in enumerate(labels):
        label = (trim_or_null(cell) or "").lower()
        value = (cell_at(grid, block + 2, column) or "").lower()
        if value == anchors.ITEM_TYPE_MARK and label in anchors.ITEM_TYPE_LABELS:
            return ItemType(label)
    return ItemType.REGULAR


def build_parcel_header(grid: Grid, start: int, end: int, parcel_no: Optional[str]) -> Parcel:
    """Assemble the Parcel of one segment from the anchor rules."""
    values = {
        rule.name: anchors.read_anchor_value(grid, rule, start)
        for rule in anchors.HEADER_VALUE_RULES
    }
    parcel_from, parcel_to = extract_parcel_route(grid, start)

    return Parcel(
        purchase_order_number=values["purchase_order_number"],
        parcel_from=parcel_from,
        parcel_to=parcel_to,
        packing_list_number=values["packing_list_number"],
        total_number_of_parcels=parse_parcel_count(parcel_no),
        item_type=detect_item_type(grid, start, end),
    )


def extract_totals(row: Row) -> Tuple[Optional[str], Optional[str]]:
    """Find "Total weight <n>" / "Total volume <n>" in the free-text cells of a row."""
    weight = volume = None
    for cell in row:
        text = trim_or_null(cell)
        if not text:
            continue
        if weight is None:
            match = anchors.TOTAL_WEIGHT_PATTERN.search(text)
            weight = match.group(1) if match else None
        if volume is None:
            match = anchors.TOTAL_VOLUME_PATTERN.search(text)
            volume = match.group(1) if match else None
    return weight, volume


def resolve_item_columns(header: Row) -> Dict[str, Optional[int]]:
    """Map canonical item fields to column indices of a local header row."""
    positions = {trim_or_null(cell): index for index, cell in reversed(list(enumerate(header)))}
    return {field: positions.get(label) for field, label in anchors.ITEM_COLUMNS.items()}


def build_parcel_items(grid: Grid, start: int, end: int, parcel_no: Optional[str]) -> List[ParcelItem]:
    """
    Extract item lines of a segment.

    Args:
        grid: Rows of nullable strings
        start: Segment start row (the "Parcel No:" row)
        end: Exclusive segment end
        parcel_no: Parcel range label copied onto every item

    Returns:
        Items with a product code; rows without one are skipped
    """
    weight, volume = extract_totals(grid[start])
    header = grid[start + 1] if start + 1 < end else []
    columns = resolve_item_columns(header)

    def value(row_index: int, field: str) -> Optional[str]:
        column = columns[field]
        return cell_at(grid, row_index, column) if column is not None else None

    items = []
    for row_index in range(start + 2, end):
        row = grid[row_index]
        if not row or trim_or_null(row[0]) is None:
            break

        product_code = value(row_index, "product_code")
        if not product_code:
            logger.debug(f"Skipping row {row_index}: no product code")
            continue

        items.append(ParcelItem(
            parcel_no=parcel_no,
            product_quantity=compose_quantity(value(row_index, "product_quantity")),
            batch_number=value(row_index, "batch_number"),
            expiry_date=normalize_date(value(row_index, "expiry_date")),
            weight=weight,
            volume=volume,
            product=Product(
                product_code=product_code,
                product_description=value(row_index, "product_description"),
            ),
        ))
    return items


def parse_grid(grid: Grid) -> List[ParcelPayload]:
    """
    Parse a packing-list grid into canonical records.

    Args:
        grid: Rows of nullable strings (first worksheet, blank rows removed)

    Returns:
        One ParcelPayload per "Parcel No:" segment, or a single empty record

    Raises:
        FormatValidationError: If the grid lacks the required anchors or columns
    """
    validate_grid(grid)

    starts = find_parcel_starts(grid)
    if not starts:
        logger.info("No parcel segments found in packing list, returning empty record")
        return [empty_payload()]

    payloads = []
    for start, end in segment_bounds(starts, len(grid)):
        parcel_no = extract_parcel_no(grid[start])
        payloads.append(ParcelPayload(
            parcel=build_parcel_header(grid, start, end, parcel_no),
            parcel_items=build_parcel_items(grid, start, end, parcel_no),
        ))

    logger.info(f"Parsed {len(payloads)} parcels from packing list")
    return payloads
