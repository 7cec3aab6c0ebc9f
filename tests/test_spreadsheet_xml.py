"""Tests for the spreadsheet-XML packing export parser."""

import pytest

from ingestion.errors import FormatValidationError
from ingestion.spreadsheet_xml import (
    ParcelRowMachine,
    RowKind,
    RowState,
    classify_row,
    parse_spreadsheet_document,
    row_cells,
)
from ingestion.xml_tree import TreeNode, parse_xml

NAMESPACES = (
    'xmlns="urn:schemas-microsoft-com:office:spreadsheet" '
    'xmlns:ss="urn:schemas-microsoft-com:office:spreadsheet"'
)


def row(*values):
    cells = "".join(
        f'<Cell><Data ss:Type="String">{value}</Data></Cell>' if value is not None else "<Cell/>"
        for value in values
    )
    return f"<Row>{cells}</Row>"


def workbook(*rows) -> bytes:
    return (
        f'<?xml version="1.0"?><Workbook {NAMESPACES}>'
        f'<Worksheet ss:Name="Packing"><Table>{"".join(rows)}</Table></Worksheet>'
        f"</Workbook>"
    ).encode("utf-8")


HEADER_ROWS = (
    row("Incoming shipment"),
    row(),
    row("Order:", "24/MBE/LB107/00010:"),
    row(),
)


def packing_export() -> bytes:
    return workbook(
        *HEADER_ROWS,
        row("#", "2", "1", "2", "15.5", "0.3", None, None, None, "PL-77"),
        row("Line", "Qty", "Code", "Description", "Quantity", "UoM"),
        row("1", None, "ABC", "Widget", "7.000", "PCE", None, None, "LOT1", "2026-05-01"),
        row("2", None, None, "row without a code", "1"),
        row("#", None, "3", "3"),
        row("1", None, "XYZ", "Gadget", "2"),
    )


def parse(content: bytes, **kwargs):
    return parse_spreadsheet_document(parse_xml(content), **kwargs)


def test_parse_spreadsheet_document_emits_one_record_per_parcel_row():
    payloads = parse(packing_export())

    assert len(payloads) == 2
    assert all(p.parcel.purchase_order_number == "24/MBE/LB107/00010" for p in payloads)


def test_parse_spreadsheet_document_parcel_fields():
    first, second = parse(packing_export())

    assert first.parcel.parcel_from == "1"
    assert first.parcel.parcel_to == "2"
    assert first.parcel.total_number_of_parcels == 2
    assert first.parcel.packing_list_number == "PL-77"

    assert second.parcel.parcel_from == "3"
    assert second.parcel.parcel_to == "3"
    assert second.parcel.total_number_of_parcels == 1
    assert second.parcel.packing_list_number is None


def test_parse_spreadsheet_document_items():
    first, second = parse(packing_export())

    (widget,) = first.parcel_items
    assert widget.product.product_code == "ABC"
    assert widget.product.product_description == "Widget"
    assert widget.product_quantity == "7 PCE"
    assert widget.batch_number == "LOT1"
    assert widget.expiry_date == "2026-05-01"
    assert widget.parcel_no == "1 to 2"
    assert widget.weight == "15.5"
    assert widget.volume == "0.3"

    (gadget,) = second.parcel_items
    assert gadget.product_quantity == "2"
    assert gadget.parcel_no == "3 to 3"
    assert gadget.weight is None


def test_parse_spreadsheet_document_without_parcel_rows():
    content = workbook(*HEADER_ROWS, *(row("note") for _ in range(4)))

    payloads = parse(content)

    assert len(payloads) == 1
    assert payloads[0].parcel.purchase_order_number == "24/MBE/LB107/00010"
    assert payloads[0].parcel_items == []


def test_parse_spreadsheet_document_requires_minimum_rows():
    content = workbook(*HEADER_ROWS, row("#", "1"))

    with pytest.raises(FormatValidationError, match="insufficient rows"):
        parse(content)

    # The threshold is configurable
    assert len(parse(content, min_rows=5)) == 1


@pytest.mark.parametrize(
    "content, message",
    [
        (b"<Workbook/>", "missing Worksheet element"),
        (b"<Workbook><Worksheet/></Workbook>", "missing Table or Row elements"),
        (b"<Workbook><Worksheet><Table/></Worksheet></Workbook>", "missing Table or Row elements"),
    ],
)
def test_parse_spreadsheet_document_validates_structure(content, message):
    with pytest.raises(FormatValidationError, match=message):
        parse(content)


def test_row_cells_honours_index_attribute():
    content = (
        f'<Row {NAMESPACES}><Cell><Data ss:Type="String">1</Data></Cell>'
        f'<Cell ss:Index="3"><Data ss:Type="String">ABC</Data></Cell></Row>'
    ).encode("utf-8")

    cells = row_cells(TreeNode(parse_xml(content)["Row"]))

    assert cells == ["1", None, "ABC"]


@pytest.mark.parametrize(
    "cells, expected",
    [
        (["#", "1"], RowKind.PARCEL_START),
        (["12", "x"], RowKind.ITEM),
        (["1a"], RowKind.OTHER),
        (["Line"], RowKind.OTHER),
        ([None, "12"], RowKind.OTHER),
        ([], RowKind.OTHER),
    ],
)
def test_classify_row(cells, expected):
    assert classify_row(cells) == expected


def test_machine_ignores_items_outside_a_parcel():
    machine = ParcelRowMachine("PO-1")

    machine.feed(["1", None, "ABC", "Widget", "1"])
    assert machine.state is RowState.OUTSIDE

    machine.feed(["#", "1", "1", "1"])
    assert machine.state is RowState.INSIDE
    machine.feed(["1", None, "XYZ", "Gadget", "1"])

    (payload,) = machine.finish()
    assert [item.product.product_code for item in payload.parcel_items] == ["XYZ"]
    assert machine.state is RowState.OUTSIDE


def test_machine_drops_parcels_without_purchase_order():
    machine = ParcelRowMachine(None)
    machine.feed(["#", "1", "1", "1"])
    machine.feed(["1", None, "XYZ", "Gadget", "1"])

    assert machine.finish() == []
