# WORKFLOW: Upload endpoint for packing-list documents.
# Used by: Warehouse clients uploading XLSX / XML packing lists
# Endpoints:
# 1. /parcels/upload - Validate upload, store temp file, ingest, persist, return records
#
# Request flow: Multipart upload -> Content type/size checks -> Temp file -> Ingestion engine
#               -> Storage service -> ParcelProcessingResult
# The temporary file is removed by the processing workflow on every exit path.

import logging
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from api.schemas.response import ErrorResponse, ParcelProcessingResult
from core.config import settings
from db.session import get_db
from ingestion.errors import IngestionError, UnsupportedContentTypeError
from services.parcel_storage import process_file_and_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["parcels"])


def save_upload(content: bytes, filename: str) -> Path:
    """Write upload bytes to a uniquely named file under the upload directory."""
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)

    suffix = Path(filename or "").suffix
    target = upload_dir / f"file-{uuid.uuid4().hex}{suffix}"
    target.write_bytes(content)
    return target


@router.post(
    "/parcels/upload",
    response_model=ParcelProcessingResult,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def upload_parcel_file(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """
    Upload a packing list and store the parcels it describes.

    Accepts XLSX packing lists, ERP-record XML exports and spreadsheet XML exports.
    Returns the canonical records extracted from the file and the ids they were stored under.
    """
    if file.content_type not in settings.allowed_content_types:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only XML and XLSX files are allowed",
        )

    content = await file.read(settings.max_upload_size_bytes + 1)
    if len(content) > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {settings.max_upload_size_bytes} byte upload limit",
        )
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    file_path = save_upload(content, file.filename)
    logger.info(f"Upload {file.filename} ({file.content_type}) saved as {file_path.name}")

    try:
        return process_file_and_store(db, file_path, file.content_type)

    except UnsupportedContentTypeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except IngestionError as e:
        logger.warning(f"Upload {file.filename} rejected: {e}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except Exception as e:
        logger.error(f"Upload {file.filename} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process file and store data: {str(e)}",
        )
