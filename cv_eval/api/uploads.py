# =============================================================================
# Upload API — Submit a CV and Project Report
# =============================================================================
#
# ENDPOINTS:
#   POST /upload       — multipart `cv` + `project`, returns an upload_id
#   GET  /upload/{id}  — metadata of a stored upload
#
# Both files must be plain text, PDF or DOCX, non-empty, and no larger
# than `max_upload_bytes`. Files are written to `upload_dir` under a
# unique name; the original filename is kept for display only.
# =============================================================================

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from cv_eval.api.deps import get_upload_repository
from cv_eval.config import settings
from cv_eval.exceptions import NotFoundError
from cv_eval.models.responses import UploadedFileInfo, UploadInfoResponse, UploadResponse
from cv_eval.services.repository import Repository
from cv_eval.services.uploads import StoredFile, Upload, store_file

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Uploads"])


def _file_info(stored: StoredFile) -> UploadedFileInfo:
    return UploadedFileInfo(
        name=stored.original_name,
        size=stored.size_label,
        type=stored.mimetype,
    )


async def _read_validated(file: UploadFile | None, field: str) -> bytes:
    """Read an uploaded file, enforcing presence, type and size."""
    if file is None or not file.filename:
        raise HTTPException(
            status_code=400,
            detail="Both CV and project files are required.",
        )

    if file.content_type not in settings.allowed_mimetypes:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Invalid file type for '{field}': {file.content_type}. "
                "Only PDF, DOCX, and TXT files are allowed."
            ),
        )

    limit = settings.max_upload_bytes
    too_large = HTTPException(
        status_code=400,
        detail=f"File '{file.filename}' exceeds the {limit // (1024 * 1024)}MB limit.",
    )
    if file.size is not None and file.size > limit:
        raise too_large

    # Read at most one byte past the limit
    content = await file.read(limit + 1)
    if not content:
        raise HTTPException(
            status_code=400,
            detail=f"Uploaded file '{file.filename}' is empty.",
        )
    if len(content) > limit:
        raise too_large
    return content


# ---------------------------------------------------------------------------
# POST /upload
# ---------------------------------------------------------------------------


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload a CV and a project report",
    description=(
        "Accepts multipart fields `cv` and `project` (PDF, DOCX or TXT). "
        "Returns an upload_id to pass to POST /evaluate."
    ),
)
async def upload_files(
    cv: UploadFile | None = File(default=None, description="Candidate CV"),
    project: UploadFile | None = File(default=None, description="Project report"),
    uploads: Repository[Upload] = Depends(get_upload_repository),
) -> UploadResponse:
    cv_content = await _read_validated(cv, "cv")
    project_content = await _read_validated(project, "project")

    upload = Upload(
        cv_file=store_file(cv_content, cv.filename, cv.content_type),
        project_file=store_file(project_content, project.filename, project.content_type),
    )
    uploads.set(upload)
    logger.info(
        "Upload %s stored: cv=%s, project=%s",
        upload.id, cv.filename, project.filename,
    )

    return UploadResponse(
        upload_id=upload.id,
        files={
            "cv": _file_info(upload.cv_file),
            "project": _file_info(upload.project_file),
        },
        next_step=f'Use upload_id "{upload.id}" to start evaluation via POST /evaluate',
    )


# ---------------------------------------------------------------------------
# GET /upload/{upload_id}
# ---------------------------------------------------------------------------


@router.get(
    "/upload/{upload_id}",
    response_model=UploadInfoResponse,
    summary="Get upload details",
)
async def get_upload(
    upload_id: str,
    uploads: Repository[Upload] = Depends(get_upload_repository),
) -> UploadInfoResponse:
    upload = uploads.get(upload_id)
    if upload is None:
        raise NotFoundError("Upload", upload_id)

    return UploadInfoResponse(
        upload_id=upload.id,
        files={
            "cv": _file_info(upload.cv_file),
            "project": _file_info(upload.project_file),
        },
        uploaded_at=upload.uploaded_at,
    )
