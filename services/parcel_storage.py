# WORKFLOW: Storage of canonical parcel records and the file processing workflow.
# Used by: Upload router, tests
# Functions:
# 1. store_payload() - One canonical record -> parcel + products + items, one transaction
# 2. _get_or_create_product() - Deduplicate products by product code
# 3. _create_parcel_item() - Split quantity/unit, parse expiry, insert the item
# 4. process_file_and_store() - Ingest a file on disk, store every record, delete the file
#
# Storage flow: ParcelPayload -> Parcel row -> Product lookup/insert -> ParcelItem rows -> Commit
# A failing record is rolled back on its own; records stored before it stay committed.

from decimal import Decimal
from pathlib import Path
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from api.schemas.response import ParcelProcessingResult, StoredParcel
from core.config import settings
from db import models
from ingestion.canonical import parse_date, parse_quantity
from ingestion.models import ParcelItem, ParcelPayload, Product
from ingestion.processor import process_file

logger = logging.getLogger(__name__)


def _to_decimal(value: Optional[str]) -> Optional[Decimal]:
    parts = parse_quantity(value)
    return parts.value if parts else None


class ParcelStorageService:
    """Persists canonical parcel records."""

    def __init__(self, db: Session):
        self.db = db

    def store_payload(self, payload: ParcelPayload) -> str:
        """
        Store one canonical record in a single transaction.

        Args:
            payload: Canonical parcel record

        Returns:
            Id of the created parcel
        """
        try:
            parcel = self._create_parcel(payload)
            for item in payload.parcel_items:
                if not item.product.product_code:
                    continue
                product = self._get_or_create_product(item.product)
                self._create_parcel_item(item, parcel, product)

            self.db.commit()
            logger.info(f"Stored parcel {parcel.id} with {len(payload.parcel_items)} items")
            return parcel.id

        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to store parcel {payload.parcel.purchase_order_number}: {e}")
            raise

    def store_all(self, payloads: List[ParcelPayload]) -> List[str]:
        return [self.store_payload(payload) for payload in payloads]

    def _create_parcel(self, payload: ParcelPayload) -> models.Parcel:
        header = payload.parcel
        first_item = payload.parcel_items[0] if payload.parcel_items else None

        parcel = models.Parcel(
            purchase_order_number=header.purchase_order_number,
            parcel_from=header.parcel_from,
            parcel_to=header.parcel_to,
            packing_list_number=header.packing_list_number,
            total_number_of_parcels=header.total_number_of_parcels,
            item_type=header.item_type.value,
            total_weight=_to_decimal(first_item.weight) if first_item else None,
            total_volume=_to_decimal(first_item.volume) if first_item else None,
            source_system=settings.source_system,
        )
        self.db.add(parcel)
        self.db.flush()
        return parcel

    def _get_or_create_product(self, product: Product) -> models.Product:
        """Return the stored product with this code, creating it on first sight."""
        existing = (
            self.db.query(models.Product)
            .filter(models.Product.product_code == product.product_code)
            .first()
        )
        if existing is not None:
            return existing

        created = models.Product(
            product_code=product.product_code,
            product_description=product.product_description,
            source_system=settings.source_system,
        )
        self.db.add(created)
        self.db.flush()
        return created

    def _create_parcel_item(self, item: ParcelItem, parcel: models.Parcel,
                            product: models.Product) -> models.ParcelItem:
        quantity = parse_quantity(item.product_quantity)

        row = models.ParcelItem(
            parcel_id=parcel.id,
            product_id=product.id,
            product_code=item.product.product_code,
            parcel_no=item.parcel_no,
            product_quantity=quantity.value if quantity else None,
            unit_of_measure=quantity.unit if quantity else None,
            batch_number=item.batch_number,
            expiry_date=parse_date(item.expiry_date),
            weight=_to_decimal(item.weight),
            volume=_to_decimal(item.volume),
            source_system=settings.source_system,
        )
        self.db.add(row)
        return row


def create_parcel_storage_service(db: Session) -> ParcelStorageService:
    """Factory function to create parcel storage service."""
    return ParcelStorageService(db)


def process_file_and_store(db: Session, file_path: Path, content_type: str) -> ParcelProcessingResult:
    """
    Ingest an uploaded file and store every extracted parcel.

    Args:
        db: Database session
        file_path: Temporary upload on disk; deleted on every exit path
        content_type: Declared MIME type of the upload

    Returns:
        Parsed canonical records and the ids of the stored parcels
    """
    try:
        payloads = process_file(file_path, content_type)
        parcel_ids = create_parcel_storage_service(db).store_all(payloads)

        return ParcelProcessingResult(
            parsed_data=payloads,
            stored_parcels=[StoredParcel(parcel_id=parcel_id) for parcel_id in parcel_ids],
        )
    finally:
        try:
            Path(file_path).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete uploaded file {file_path}: {e}")
