# WORKFLOW: Entry point of the parcel ingestion engine.
# Used by: services.parcel_storage, api.routers.upload
# Functions:
# 1. select_code_path() - Declared content type -> tabular or XML path
# 2. parse_tabular() - XLSX bytes -> grid -> tabular parser
# 3. parse_xml_document() - XML bytes -> tree -> dialect detection -> dialect parser
# 4. process_document() - Bytes + content type -> canonical ParcelPayload list
# 5. process_file() - Same, reading the bytes from disk
#
# Processing flow: Bytes + content type -> Code path -> Format detection -> Dialect parser -> Canonical list
# Typed IngestionErrors propagate unchanged; any other failure is wrapped in
# DocumentProcessingError naming the stage, with the original as __cause__.

"""
Parcel document processing entry point.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import List

from ingestion.detector import XmlDialect, detect_format
from ingestion.erp_record import parse_erp_document
from ingestion.errors import DocumentProcessingError, IngestionError, UnsupportedContentTypeError
from ingestion.grid import read_grid
from ingestion.models import ParcelPayload
from ingestion.spreadsheet_xml import parse_spreadsheet_document
from ingestion.tabular import parse_grid
from ingestion.xml_tree import parse_xml

logger = logging.getLogger(__name__)


class CodePath(str, Enum):
    TABULAR = "XLSX file"
    XML = "XML file"


DIALECT_PARSERS = {
    XmlDialect.ERP_RECORD: parse_erp_document,
    XmlDialect.SPREADSHEET_XML: parse_spreadsheet_document,
}


def select_code_path(content_type: str) -> CodePath:
    """
    Select the parsing path from the declared content type.

    Args:
        content_type: MIME type declared by the uploader

    Returns:
        CodePath.TABULAR for spreadsheet content, CodePath.XML for XML content

    Raises:
        UnsupportedContentTypeError: For any other content type
    """
    normalized = (content_type or "").split(";", 1)[0].strip().lower()
    if "spreadsheetml" in normalized:
        return CodePath.TABULAR
    if normalized.endswith("/xml") or normalized.endswith("+xml"):
        return CodePath.XML
    raise UnsupportedContentTypeError(f"Unsupported file type: {content_type}")


def parse_tabular(content: bytes) -> List[ParcelPayload]:
    return parse_grid(read_grid(content))


def parse_xml_document(content: bytes) -> List[ParcelPayload]:
    document = parse_xml(content)
    dialect = detect_format(document)
    return DIALECT_PARSERS[dialect](document)


def process_document(content: bytes, content_type: str) -> List[ParcelPayload]:
    """
    Parse an uploaded document into canonical parcel records.

    Args:
        content: Raw document bytes
        content_type: Declared MIME type (selects the tabular or XML path only)

    Returns:
        Ordered list of ParcelPayload records, never empty

    Raises:
        IngestionError: Format-level failure (validation, unknown dialect, content type)
        DocumentProcessingError: Any unexpected failure, wrapping the original exception
    """
    path = select_code_path(content_type)
    logger.info(f"Processing {len(content)} bytes as {path.value}")

    try:
        if path is CodePath.TABULAR:
            payloads = parse_tabular(content)
        else:
            payloads = parse_xml_document(content)
    except IngestionError as e:
        logger.warning(f"Rejected {path.value}: {e}")
        raise
    except Exception as e:
        logger.error(f"Failed to process {path.value}: {e}")
        raise DocumentProcessingError(path.value, str(e) or type(e).__name__) from e

    logger.info(f"Extracted {len(payloads)} parcels with {sum(len(p.parcel_items) for p in payloads)} items")
    return payloads


def process_file(file_path: Path, content_type: str) -> List[ParcelPayload]:
    """Read ``file_path`` and process its contents; the caller owns file cleanup."""
    content = Path(file_path).read_bytes()
    return process_document(content, content_type)
