# WORKFLOW: Ingestion package for uploaded packing-list documents.
# Used by: Upload API, parcel storage service
# Modules include:
# 1. processor.py - Entry point: bytes + content type -> canonical parcel records
# 2. grid.py / tabular.py / anchors.py - XLSX packing lists (anchor-label scanning)
# 3. xml_tree.py / detector.py - XML tree building and dialect detection
# 4. erp_record.py - ERP-export XML (<data><record><field>)
# 5. spreadsheet_xml.py - Spreadsheet-as-XML (Workbook/Worksheet/Table/Row/Cell)
# 6. canonical.py / models.py - Shared canonicalization helpers and output model
# 7. errors.py - Typed file-level errors
#
# Ingestion flow: Upload -> Code path -> Dialect parser -> Canonical records -> Storage
# Every dialect converges on the same list of {parcel, parcelItems[]} records.

"""
Parcel ingestion engine for packing-list uploads.
"""

from ingestion.errors import (
    DocumentProcessingError,
    FormatValidationError,
    IngestionError,
    UnknownFormatError,
    UnsupportedContentTypeError,
)
from ingestion.models import ItemType, Parcel, ParcelItem, ParcelPayload, Product
from ingestion.processor import process_document, process_file

__all__ = [
    "DocumentProcessingError",
    "FormatValidationError",
    "IngestionError",
    "UnknownFormatError",
    "UnsupportedContentTypeError",
    "ItemType",
    "Parcel",
    "ParcelItem",
    "ParcelPayload",
    "Product",
    "process_document",
    "process_file",
]
