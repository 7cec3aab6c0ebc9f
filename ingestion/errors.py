# WORKFLOW: Error taxonomy for the parcel ingestion engine.
# Used by: All parsers, the processor entry point and the upload router
# Errors:
# 1. IngestionError - Base class for every typed ingestion failure
# 2. FormatValidationError - Required anchors, columns or fields are missing
# 3. UnknownFormatError - XML document matches no supported dialect
# 4. UnsupportedContentTypeError - Declared content type selects no code path
# 5. DocumentProcessingError - Unexpected failure, wrapped with the processing stage
#
# Field-level problems (bad date, unresolvable unit) are never raised; parsers log
# them and set the affected field to None.

"""
Typed errors raised by the parcel ingestion engine.
"""


class IngestionError(Exception):
    """Base class for file-level ingestion failures."""


class FormatValidationError(IngestionError):
    """Required structural anchors or columns are missing from the document."""


class UnknownFormatError(IngestionError):
    """The XML document matches neither the ERP-record nor the spreadsheet-XML dialect."""


class UnsupportedContentTypeError(IngestionError):
    """The declared content type selects neither the tabular nor the XML path."""


class DocumentProcessingError(IngestionError):
    """Unexpected internal failure; the original exception is kept as ``__cause__``."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"Error processing {stage}: {message}")
