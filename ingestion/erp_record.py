# WORKFLOW: ERP-export XML parser (<data><record><field name="..."> trees).
# Used by: ingestion.processor when the detector reports ERP_RECORD
# Functions:
# 1. validate_record() - Require a record with a field list holding origin and partner_id
# 2. extract_partner_name() - partner_id -> nested "name" field
# 3. resolve_product() - product_id (flat list, single or doubly nested) -> Product
# 4. build_move_line() - One move_lines record -> one ParcelPayload
# 5. parse_erp_document() - Tree -> list of canonical ParcelPayload records
#
# Parsing flow: data.record -> Validate -> origin/partner -> move_lines records -> Parcel + nested items
# Every field lookup goes through TreeNode so single/array/nested shapes never leak here.

"""
Parser for ERP-record XML exports.
"""

import logging
from typing import Any, Dict, List, Optional

from ingestion.canonical import compose_quantity, normalize_date, parse_positive_int
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

REQUIRED_FIELDS = ("origin", "partner_id")


def _root_record(document: Dict[str, Any]) -> Optional[TreeNode]:
    records = TreeNode(document.get("data")).children("record")
    if len(records) > 1:
        logger.warning(f"ERP XML contains {len(records)} top-level records, using the first")
    return records[0] if records else None


def validate_record(record: Optional[TreeNode]) -> TreeNode:
    """
    Validate the top-level ERP record.

    Args:
        record: First data.record node, if any

    Returns:
        The validated record

    Raises:
        FormatValidationError: If the record, its field list or a required field is missing
    """
    if record is None:
        raise FormatValidationError("Invalid ERP XML format: missing data.record element")

    fields = record.fields()
    if not fields:
        raise FormatValidationError("Invalid ERP XML format: missing or invalid field array")

    names = {field.name for field in fields}
    for required in REQUIRED_FIELDS:
        if required not in names:
            raise FormatValidationError(f"Missing required field in ERP XML: {required}")
    return record


def _named_or_single_text(node: Optional[TreeNode], key: str = "name") -> Optional[str]:
    """Text of the nested field ``key``, or of the only nested field."""
    if node is None:
        return None
    named = node.field(key)
    if named is not None:
        return named.text
    nested = node.fields()
    return nested[0].text if len(nested) == 1 else None


def _field_value(node: TreeNode, name: str) -> Optional[str]:
    """Text of a field; many2one style fields fall back to their nested name."""
    field = node.field(name)
    if field is None:
        return None
    return field.text or _named_or_single_text(field)


def extract_partner_name(record: TreeNode) -> Optional[str]:
    return _named_or_single_text(record.field("partner_id"))


def resolve_nested_value(node: Optional[TreeNode], key: str) -> Optional[str]:
    """
    Resolve ``key`` below a relational field.

    Handles the three shapes product_id appears in: a list of named fields, a
    single field wrapping that list, and a single field carrying ``key`` as an
    attribute.
    """
    if node is None:
        return None

    nested = node.fields()
    for field in nested:
        if field.name == key:
            return field.text

    if len(nested) == 1:
        inner = nested[0]
        if inner.fields():
            return resolve_nested_value(inner, key)
        return inner.attr(key)
    return None


def resolve_product(item: TreeNode) -> Product:
    product_field = item.field("product_id")
    return Product(
        product_code=resolve_nested_value(product_field, "product_code"),
        product_description=resolve_nested_value(product_field, "product_name"),
    )


def _parcel_range(parcel_from: Optional[str], parcel_to: Optional[str]) -> Optional[str]:
    if parcel_from and parcel_to:
        return f"{parcel_from} to {parcel_to}"
    return parcel_from or parcel_to


def build_items(move_line: TreeNode, parcel_no: Optional[str],
                weight: Optional[str], volume: Optional[str]) -> List[ParcelItem]:
    """
    Build the items nested under a move line.

    Args:
        move_line: move_lines record node
        parcel_no: Range label copied onto every item
        weight: Move line total weight
        volume: Move line total volume

    Returns:
        Items with a resolvable product code
    """
    items = []
    for item in move_line.children("record"):
        if not item.fields():
            continue

        product = resolve_product(item)
        if not product.product_code:
            logger.debug("Skipping ERP item without product code")
            continue

        unit = _named_or_single_text(item.field("product_uom"))
        items.append(ParcelItem(
            parcel_no=parcel_no,
            product_quantity=compose_quantity(_field_value(item, "product_qty"), unit),
            batch_number=_field_value(item, "prodlot_id"),
            expiry_date=normalize_date(_field_value(item, "expired_date")),
            weight=weight,
            volume=volume,
            product=product,
        ))
    return items


def build_move_line(move_line: TreeNode, purchase_order_number: Optional[str]) -> ParcelPayload:
    """Convert one move_lines record into a canonical record."""
    parcel_from = _field_value(move_line, "parcel_from")
    parcel_to = _field_value(move_line, "parcel_to")
    weight = _field_value(move_line, "total_weight")
    volume = _field_value(move_line, "total_volume")

    parcel = Parcel(
        purchase_order_number=purchase_order_number,
        parcel_from=parcel_from,
        parcel_to=parcel_to,
        packing_list_number=_field_value(move_line, "packing_list"),
        total_number_of_parcels=parse_positive_int(_field_value(move_line, "parcel_qty")),
        item_type=ItemType.REGULAR,
    )
    items = build_items(move_line, _parcel_range(parcel_from, parcel_to), weight, volume)
    return ParcelPayload(parcel=parcel, parcel_items=items)


def parse_erp_document(document: Dict[str, Any]) -> List[ParcelPayload]:
    """
    Parse an ERP-record XML tree into canonical records.

    Args:
        document: Tree returned by ingestion.xml_tree.parse_xml

    Returns:
        One ParcelPayload per move line, or one header-only record when there are none

    Raises:
        FormatValidationError: If the record structure or required fields are missing
    """
    record = validate_record(_root_record(document))

    purchase_order_number = _field_value(record, "origin")
    partner_name = extract_partner_name(record)

    move_lines = record.field("move_lines")
    move_records = move_lines.children("record") if move_lines else []
    if not move_records:
        logger.info(f"No move lines in ERP XML for {purchase_order_number}, returning header-only record")
        return [empty_payload(purchase_order_number, partner_name)]

    payloads = [build_move_line(move_line, purchase_order_number) for move_line in move_records]
    logger.info(f"Parsed {len(payloads)} parcels from ERP XML {purchase_order_number}")
    return payloads
