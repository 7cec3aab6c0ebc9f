# WORKFLOW: Spreadsheet-XML parser (Workbook -> Worksheet -> Table -> Row -> Cell).
# Used by: ingestion.processor when the detector reports SPREADSHEET_XML
# Functions:
# 1. table_rows() - Validate the workbook structure and return its rows
# 2. row_cells() - Row -> positional cell texts (honours ss:Index)
# 3. classify_row() - "#" rows start a parcel, numeric rows are items
# 4. ParcelRowMachine - OUTSIDE/INSIDE state machine with an explicit flush action
# 5. parse_spreadsheet_document() - Tree -> list of canonical ParcelPayload records
#
# Parsing flow: Rows -> Header purchase order (row 2, cell 1) -> Row classifier -> Flush per parcel
# Column positions are fixed by the export layout (see PARCEL_COLUMNS / ITEM_COLUMNS).

"""
Parser for spreadsheet-as-XML packing exports.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from core.config import settings
from ingestion.canonical import compose_quantity, normalize_date, parse_positive_int, trim_or_null
from ingestion.errors import FormatValidationError
from ingestion.models import (
    ItemType,
    Parcel,
    ParcelItem,
    ParcelPayload,
    Product,
    empty_payload,
)
from ingestion.xml_tree import TreeNode

logger = logging.getLogger(__name__)

PARCEL_MARKER = "#"
ITEM_ROW_PATTERN = re.compile(r"[0-9]+")
HEADER_ROW = 2
HEADER_CELL = 1

PARCEL_COLUMNS = {
    "quantity": 1,
    "parcel_from": 2,
    "parcel_to": 3,
    "weight": 4,
    "volume": 5,
    "packing_list_number": 9,
}
ITEM_COLUMNS = {
    "product_code": 2,
    "product_description": 3,
    "quantity": 4,
    "unit": 5,
    "batch_number": 8,
    "expiry_date": 9,
}

Cells = List[Optional[str]]


class RowState(str, Enum):
    OUTSIDE = "outside"
    INSIDE = "inside"


class RowKind(str, Enum):
    PARCEL_START = "parcel_start"
    ITEM = "item"
    OTHER = "other"


def table_rows(document: Dict[str, Any], min_rows: Optional[int] = None) -> List[TreeNode]:
    """
    Validate the workbook structure and return the rows of its first table.

    Raises:
        FormatValidationError: If a level of the Workbook/Worksheet/Table/Row chain is
            missing or the table is too short to hold the header block
    """
    min_rows = settings.spreadsheet_xml_min_rows if min_rows is None else min_rows

    worksheet = TreeNode(document.get("Workbook")).child("Worksheet")
    if worksheet is None:
        raise FormatValidationError("Invalid spreadsheet XML format: missing Worksheet element")

    table = worksheet.child("Table")
    rows = table.children("Row") if table else []
    if not rows:
        raise FormatValidationError("Invalid spreadsheet XML format: missing Table or Row elements")

    if len(rows) < min_rows:
        raise FormatValidationError(
            f"Invalid spreadsheet XML format: insufficient rows for required data ({len(rows)} < {min_rows})"
        )
    return rows


def row_cells(row: TreeNode) -> Cells:
    """Positional cell texts of a row; a cell's ss:Index (1-based) skips ahead."""
    values: Cells = []
    for cell in row.children("Cell"):
        index = cell.attr("Index")
        if index and index.isdigit():
            while len(values) < int(index) - 1:
                values.append(None)
        data = cell.child("Data")
        values.append(data.text if data else None)
    return values


def _at(cells: Cells, position: int) -> Optional[str]:
    return cells[position] if position < len(cells) else None


def header_purchase_order(rows: List[TreeNode]) -> Optional[str]:
    """Purchase order number from the fixed header cell, trailing colon removed."""
    if len(rows) <= HEADER_ROW:
        return None
    value = _at(row_cells(rows[HEADER_ROW]), HEADER_CELL)
    if value and value.endswith(":"):
        value = trim_or_null(value[:-1])
    return value


def classify_row(cells: Cells) -> RowKind:
    first = _at(cells, 0) or ""
    if first == PARCEL_MARKER:
        return RowKind.PARCEL_START
    if ITEM_ROW_PATTERN.fullmatch(first):
        return RowKind.ITEM
    return RowKind.OTHER


@dataclass
class ParcelAccumulator:
    parcel: Parcel
    weight: Optional[str] = None
    volume: Optional[str] = None
    items: List[ParcelItem] = field(default_factory=list)

    @property
    def parcel_no(self) -> str:
        return f"{self.parcel.parcel_from} to {self.parcel.parcel_to}"

    def to_payload(self) -> ParcelPayload:
        return ParcelPayload(parcel=self.parcel, parcel_items=list(self.items))


def start_parcel(cells: Cells, purchase_order_number: Optional[str]) -> ParcelAccumulator:
    """Open a parcel from a "#" row."""
    parcel = Parcel(
        purchase_order_number=purchase_order_number,
        parcel_from=_at(cells, PARCEL_COLUMNS["parcel_from"]) or "1",
        parcel_to=_at(cells, PARCEL_COLUMNS["parcel_to"]) or "1",
        packing_list_number=_at(cells, PARCEL_COLUMNS["packing_list_number"]),
        total_number_of_parcels=parse_positive_int(_at(cells, PARCEL_COLUMNS["quantity"])),
        item_type=ItemType.REGULAR,
    )
    return ParcelAccumulator(
        parcel=parcel,
        weight=_at(cells, PARCEL_COLUMNS["weight"]),
        volume=_at(cells, PARCEL_COLUMNS["volume"]),
    )


def build_item(cells: Cells, current: ParcelAccumulator) -> Optional[ParcelItem]:
    """Item of a numeric row, None when the row has no product code."""
    product_code = _at(cells, ITEM_COLUMNS["product_code"])
    if not product_code:
        return None

    return ParcelItem(
        parcel_no=current.parcel_no,
        product_quantity=compose_quantity(
            _at(cells, ITEM_COLUMNS["quantity"]), _at(cells, ITEM_COLUMNS["unit"])
        ),
        batch_number=_at(cells, ITEM_COLUMNS["batch_number"]),
        expiry_date=normalize_date(_at(cells, ITEM_COLUMNS["expiry_date"])),
        weight=current.weight,
        volume=current.volume,
        product=Product(
            product_code=product_code,
            product_description=_at(cells, ITEM_COLUMNS["product_description"]),
        ),
    )


class ParcelRowMachine:
    """
    Two-state row classifier.

    OUTSIDE: only a "#" row matters; it opens a parcel and moves to INSIDE.
    INSIDE: numeric rows add items, a "#" row flushes and reopens, other rows are ignored.
    """

    def __init__(self, purchase_order_number: Optional[str]):
        self.purchase_order_number = purchase_order_number
        self.state = RowState.OUTSIDE
        self.current: Optional[ParcelAccumulator] = None
        self.results: List[ParcelPayload] = []

    def feed(self, cells: Cells) -> None:
        kind = classify_row(cells)
        if kind is RowKind.PARCEL_START:
            self.flush()
            self.current = start_parcel(cells, self.purchase_order_number)
            self.state = RowState.INSIDE
        elif kind is RowKind.ITEM and self.state is RowState.INSIDE:
            item = build_item(cells, self.current)
            if item is None:
                logger.debug(f"Skipping item row {cells[0]}: no product code")
            else:
                self.current.items.append(item)

    def flush(self) -> None:
        """Emit the open parcel (when it has a purchase order number) and leave the parcel."""
        if self.current is not None:
            if self.current.parcel.purchase_order_number:
                self.results.append(self.current.to_payload())
            else:
                logger.warning("Dropping parcel without purchase order number")
        self.current = None
        self.state = RowState.OUTSIDE

    def finish(self) -> List[ParcelPayload]:
        self.flush()
        return self.results


def parse_spreadsheet_document(document: Dict[str, Any],
                               min_rows: Optional[int] = None) -> List[ParcelPayload]:
    """
    Parse a spreadsheet-XML tree into canonical records.

    Args:
        document: Tree returned by ingestion.xml_tree.parse_xml
        min_rows: Minimum table length (defaults to settings.spreadsheet_xml_min_rows)

    Returns:
        One ParcelPayload per "#" parcel row, or a single header-only record

    Raises:
        FormatValidationError: If the workbook structure is incomplete
    """
    rows = table_rows(document, min_rows)
    purchase_order_number = header_purchase_order(rows)

    machine = ParcelRowMachine(purchase_order_number)
    for row in rows:
        cells = row_cells(row)
        if cells:
            machine.feed(cells)

    payloads = machine.finish()
    if not payloads:
        logger.info("No parcel rows found in spreadsheet XML, returning empty record")
        return [empty_payload(purchase_order_number)]

    logger.info(f"Parsed {len(payloads)} parcels from spreadsheet XML {purchase_order_number}")
    return payloads
