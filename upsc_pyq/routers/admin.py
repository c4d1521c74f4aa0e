from fastapi import APIRouter, Depends, HTTPException, File, UploadFile
from fastapi.responses import StreamingResponse
from upsc_pyq.core.auth import check_roles, UserRole
from upsc_pyq.core.exceptions import ImportFailed, ImportValidationError
from upsc_pyq.core.logging_config import logger
from upsc_pyq.schemas.imports import ImportProgress, ImportResult, ImportStatus
from upsc_pyq.services.importer import BulkImporter, get_bulk_importer

router = APIRouter()

CSV_CONTENT_TYPES = {"text/csv", "application/csv", "application/vnd.ms-excel"}


def _require_csv(file: UploadFile) -> None:
    name = (file.filename or "").lower()
    if not name.endswith(".csv") and file.content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Please select a valid CSV file")


@router.post("/questions/import", response_model=ImportResult)
def import_questions(
    file: UploadFile = File(...),
    current_user=Depends(check_roles([UserRole.ADMIN])),
    importer: BulkImporter = Depends(get_bulk_importer),
):
    """Bulk import curated questions from a CSV file"""
    _require_csv(file)
    try:
        return importer.import_csv(file.file, current_user.id)
    except ImportValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ImportFailed as e:
        logger.error(f"Error in bulk import: {str(e)}")
        raise HTTPException(
            status_code=400,
            detail={"message": str(e), "imported": e.imported, "total": e.total},
        )


@router.post("/questions/import/stream")
def import_questions_stream(
    file: UploadFile = File(...),
    current_user=Depends(check_roles([UserRole.ADMIN])),
    importer: BulkImporter = Depends(get_bulk_importer),
):
    """Bulk import with one JSON progress line per inserted batch"""
    _require_csv(file)
    try:
        records = importer.parse_csv(file.file)
    except ImportValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    def progress_lines():
        last = ImportProgress(imported=0, total=len(records))
        try:
            for progress in importer.iter_import(records, current_user.id):
                last = progress
                yield progress.model_dump_json() + "\n"
        except ImportFailed as e:
            failed = ImportProgress(
                imported=e.imported, total=e.total, status=ImportStatus.FAILED, error=str(e)
            )
            yield failed.model_dump_json() + "\n"
            return
        yield last.model_copy(update={"status": ImportStatus.SUCCESS}).model_dump_json() + "\n"

    logger.info("Streaming question import", user_id=current_user.id, total=len(records))
    return StreamingResponse(progress_lines(), media_type="application/x-ndjson")
