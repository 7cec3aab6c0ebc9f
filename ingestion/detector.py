# WORKFLOW: XML dialect detection for uploaded packing documents.
# Used by: ingestion.processor
# Functions:
# 1. detect_format() - Root structure -> ERP_RECORD or SPREADSHEET_XML
#
# Detection is a single structural check on the document root, run before any
# field extraction: <data><record> for ERP exports, <Workbook> for spreadsheet XML.

"""
Format detection for parsed XML documents.
"""

import logging
from enum import Enum
from typing import Any, Dict

from ingestion.errors import UnknownFormatError
from ingestion.xml_tree import TreeNode

logger = logging.getLogger(__name__)


class XmlDialect(str, Enum):
    ERP_RECORD = "erp_record"
    SPREADSHEET_XML = "spreadsheet_xml"


def detect_format(document: Dict[str, Any]) -> XmlDialect:
    """
    Detect which XML dialect a parsed document uses.

    Args:
        document: Tree returned by ingestion.xml_tree.parse_xml

    Returns:
        The matching XmlDialect

    Raises:
        UnknownFormatError: If neither a data/record root nor a Workbook root is present
    """
    if "data" in document and TreeNode(document["data"]).has("record"):
        dialect = XmlDialect.ERP_RECORD
    elif "Workbook" in document:
        dialect = XmlDialect.SPREADSHEET_XML
    else:
        raise UnknownFormatError("Unknown XML format: unable to detect format type")

    logger.info(f"Detected XML dialect: {dialect.value}")
    return dialect
