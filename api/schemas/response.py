# WORKFLOW: Pydantic response schemas for the parcel upload API.
# Used by: Upload router, parcel storage service, testing
# Schemas include:
# 1. StoredParcel - Identifier assigned to one stored parcel record
# 2. ParcelProcessingResult - Parsed canonical records plus their stored ids
# 3. ErrorResponse - Error body for rejected uploads
#
# Response flow: Upload -> Ingestion engine -> Storage -> ParcelProcessingResult -> JSON (camelCase)

from typing import List

from pydantic import Field

from ingestion.models import CanonicalModel, ParcelPayload


class StoredParcel(CanonicalModel):
    parcel_id: str = Field(..., description="Database id of the stored parcel")


class ParcelProcessingResult(CanonicalModel):
    parsed_data: List[ParcelPayload] = Field(..., description="Canonical records extracted from the file")
    stored_parcels: List[StoredParcel] = Field(default_factory=list, description="Stored parcel ids, in parsed order")


class ErrorResponse(CanonicalModel):
    detail: str
