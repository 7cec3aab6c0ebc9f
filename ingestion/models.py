# WORKFLOW: Canonical parcel model shared by every dialect parser.
# Used by: Tabular, ERP-record and spreadsheet-XML parsers, storage service, upload router
# Models:
# 1. ItemType - Parcel content category (Regular, cc, dg, cs)
# 2. Product - Catalog reference embedded in a parcel item
# 3. ParcelItem - One product line within a parcel
# 4. Parcel - One physical/logical shipment unit
# 5. ParcelPayload - The canonical {parcel, parcelItems[]} record
#
# Serialisation: field names are snake_case in Python and camelCase in JSON
# (model_dump(by_alias=True)), matching the upload API contract.

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ItemType(str, Enum):
    REGULAR = "Regular"
    CC = "cc"
    DG = "dg"
    CS = "cs"


class CanonicalModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Product(CanonicalModel):
    product_code: Optional[str] = None
    product_description: Optional[str] = None


class ParcelItem(CanonicalModel):
    parcel_no: Optional[str] = None
    product_quantity: Optional[str] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[str] = None
    weight: Optional[str] = None
    volume: Optional[str] = None
    product: Product


class Parcel(CanonicalModel):
    purchase_order_number: Optional[str] = None
    parcel_from: Optional[str] = None
    parcel_to: Optional[str] = None
    packing_list_number: Optional[str] = None
    total_number_of_parcels: int = Field(default=1, ge=1)
    item_type: ItemType = ItemType.REGULAR


class ParcelPayload(CanonicalModel):
    parcel: Parcel
    parcel_items: List[ParcelItem] = Field(default_factory=list)


def empty_payload(purchase_order_number: Optional[str] = None,
                  parcel_from: Optional[str] = None) -> ParcelPayload:
    """Default record emitted when a document contains no parcel segments."""
    return ParcelPayload(
        parcel=Parcel(purchase_order_number=purchase_order_number, parcel_from=parcel_from),
        parcel_items=[],
    )


def to_json(payloads: List[ParcelPayload]) -> List[dict]:
    """Serialise canonical records to the camelCase JSON contract."""
    return [payload.model_dump(mode="json", by_alias=True) for payload in payloads]
