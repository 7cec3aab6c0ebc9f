# WORKFLOW: Canonical model builder helpers shared by all dialect parsers.
# Used by: Tabular parser, ERP-record parser, spreadsheet-XML parser, storage service
# Functions:
# 1. trim_or_null() - Coerce a cell/field value to a trimmed string or None
# 2. parse_quantity() - Split "7.000 PCE" into Decimal("7") and "PCE"
# 3. compose_quantity() - Build "<number> <unit>" (or the bare number)
# 4. parse_date() / normalize_date() - Parse a date string, None when invalid
# 5. parse_parcel_count() - "1 to 5" -> 5, anything else -> 1
# 6. parse_positive_int() - Leading integer of a string, default when absent
#
# All helpers are pure and never raise on bad input: field-level failures are
# logged and degrade to None (or the documented default).

"""
Canonicalization helpers for parcel ingestion.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import pandas as pd

logger = logging.getLogger(__name__)

QUANTITY_PATTERN = re.compile(r'^(\d+(?:\.\d+)?)\s*(.*)$')
PARCEL_RANGE_PATTERN = re.compile(r'^\d+[ \t]{1,3}to[ \t]{1,3}(\d+)$', re.IGNORECASE)
LEADING_INT_PATTERN = re.compile(r'^[+]?(\d+)')


@dataclass(frozen=True)
class QuantityParts:
    value: Decimal
    unit: Optional[str]


def trim_or_null(value: Any) -> Optional[str]:
    """
    Coerce a raw value to a trimmed string.

    Args:
        value: Cell or field value (string, number or anything else)

    Returns:
        Trimmed string, or None for empty/blank/unsupported values
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value)
    if not isinstance(value, str):
        logger.debug(f"Ignoring non-text value of type {type(value).__name__}")
        return None
    return value.strip() or None


def format_number(value: Decimal) -> str:
    """Render a Decimal without trailing zeros or exponent ("7.000" -> "7")."""
    return format(value.normalize(), 'f')


def parse_quantity(raw: Any) -> Optional[QuantityParts]:
    """
    Decompose a quantity string into its numeric value and unit.

    Args:
        raw: Quantity text (e.g., "7.000 PCE", "12.500 KG", "10")

    Returns:
        QuantityParts, or None when the text does not start with a number
    """
    text = trim_or_null(raw)
    if text is None:
        return None

    match = QUANTITY_PATTERN.match(text)
    if not match:
        return None

    try:
        value = Decimal(match.group(1))
    except InvalidOperation:
        return None

    unit = match.group(2).strip() or None
    return QuantityParts(value=value, unit=unit)


def compose_quantity(raw: Any, unit: Any = None) -> Optional[str]:
    """
    Compose the canonical product quantity string.

    Args:
        raw: Quantity text, optionally already carrying a unit
        unit: Explicit unit of measure; takes precedence over a unit found in ``raw``

    Returns:
        "<number> <unit>" when a unit resolves, the bare number otherwise,
        None when the quantity is missing or not numeric
    """
    parts = parse_quantity(raw)
    if parts is None:
        if trim_or_null(raw) is not None:
            logger.warning(f"Unparseable quantity '{raw}', leaving it empty")
        return None

    number = format_number(parts.value)
    resolved_unit = trim_or_null(unit) or parts.unit
    return f"{number} {resolved_unit}" if resolved_unit else number


def parse_date(raw: Any) -> Optional[date]:
    """
    Parse a date string.

    Args:
        raw: Date text (ISO dates, "2025-12-31 00:00:00", "Dec 31 2025", ...)

    Returns:
        date, or None when the value is empty or cannot be parsed
    """
    text = trim_or_null(raw)
    if text is None:
        return None

    try:
        parsed = pd.to_datetime(text, errors='coerce')
    except (ValueError, TypeError, OverflowError) as e:
        logger.warning(f"Invalid date '{text}': {e}")
        return None

    if pd.isna(parsed):
        logger.warning(f"Invalid date format: {text}")
        return None

    return parsed.date()


def normalize_date(raw: Any) -> Optional[str]:
    """Parse a date string and render it as ISO "YYYY-MM-DD"."""
    parsed = parse_date(raw)
    return parsed.isoformat() if parsed else None


def parse_parcel_count(parcel_no: Optional[str]) -> int:
    """
    Derive the total number of parcels from a parcel range label.

    Args:
        parcel_no: Parcel identifier (e.g., "1 to 5", "3")

    Returns:
        Upper bound of an "N to M" range, 1 otherwise
    """
    text = trim_or_null(parcel_no)
    if not text:
        return 1

    match = PARCEL_RANGE_PATTERN.match(text)
    if not match:
        return 1

    try:
        total = int(match.group(1))
    except ValueError:
        return 1
    return total if total >= 1 else 1


def parse_positive_int(raw: Any, default: int = 1) -> int:
    """Leading integer of ``raw`` (like "5 pcs" -> 5), ``default`` when absent or < 1."""
    text = trim_or_null(raw)
    if not text:
        return default

    match = LEADING_INT_PATTERN.match(text)
    if not match:
        return default

    value = int(match.group(1))
    return value if value >= 1 else default
