from typing import Any, List, Optional
from fastapi import APIRouter, Depends, status, UploadFile, File, Form, Path
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import get_current_user
from app.core.config import Settings
from app.core.constants import ALLOWED_FILE_TYPES, MAX_FILE_NAME_LENGTH, clip_file_name
from app.core.database import get_db
from app.core.dependencies import get_app_settings
from app.core.exceptions import APIException, NotFoundException
from app.core.s3 import S3Service, StorageError, get_s3_service
from app.crud import case as case_crud
from app.crud import case_file as file_crud
from app.db.models import User as DBUser
from app.schemas.case_file import CaseFile
from app.schemas.response import ApiResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/upload", response_model=ApiResponse[CaseFile], status_code=status.HTTP_201_CREATED)
async def upload_file(
    *,
    db: AsyncSession = Depends(get_db),
    s3: S3Service = Depends(get_s3_service),
    settings: Settings = Depends(get_app_settings),
    file: UploadFile = File(...),
    case_id: str = Form(..., alias="caseId"),
    name: Optional[str] = Form(None, max_length=MAX_FILE_NAME_LENGTH),
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    """
    Upload a document to one of the caller's cases.

    The bytes go to object storage first; the metadata record is written
    only once the upload succeeded.
    """
    content_type = file.content_type or "application/octet-stream"
    if content_type not in ALLOWED_FILE_TYPES:
        raise APIException(
            status_code=status.HTTP_400_BAD_REQUEST,
            message=f"Invalid file type. Allowed types: {', '.join(sorted(ALLOWED_FILE_TYPES))}"
        )

    body = await file.read()
    if len(body) > settings.MAX_FILE_SIZE:
        raise APIException(
            status_code=status.HTTP_400_BAD_REQUEST,
            message=f"File too large. Maximum size is {settings.MAX_FILE_SIZE // (1024 * 1024)}MB"
        )

    case = await case_crud.get_case(db, case_id, current_user.id)
    if not case:
        logger.warning(f"Upload to unknown case {case_id} by user {current_user.id}")
        raise NotFoundException("Case")

    original_name = clip_file_name(file.filename or "upload")
    file_key = s3.generate_file_key(current_user.id, case.id, original_name)

    try:
        await s3.upload_bytes(body, file_key, content_type)
    except StorageError:
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to upload file to storage"
        )

    url = await s3.get_file_url(file_key)
    if not url:
        # Clean up S3 if URL generation fails
        await s3.delete_file(file_key)
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to generate download URL"
        )

    db_file = await file_crud.create_case_file(db, {
        "name": (name or "").strip() or original_name,
        "original_name": original_name,
        "size": len(body),
        "type": content_type,
        "case_id": case.id,
        "user_id": current_user.id,
        "url": url,
        "key": file_key,
    })
    if not db_file:
        await s3.delete_file(file_key)
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to save file"
        )

    logger.info(f"File {db_file.id} uploaded to case {case.id} ({len(body)} bytes)")
    return ApiResponse(message="File uploaded successfully", data=CaseFile.model_validate(db_file))


@router.get("", response_model=ApiResponse[List[CaseFile]])
async def get_files(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    files = await file_crud.get_files_by_user(db, current_user.id)
    return ApiResponse(
        message="Files retrieved successfully",
        data=[CaseFile.model_validate(f) for f in files],
    )


@router.get("/case/{case_id}", response_model=ApiResponse[List[CaseFile]])
async def get_case_files(
    *,
    db: AsyncSession = Depends(get_db),
    case_id: str = Path(..., description="The case whose files to list"),
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    case = await case_crud.get_case(db, case_id, current_user.id)
    if not case:
        raise NotFoundException("Case")

    files = await file_crud.get_files_by_case(db, case.id)
    return ApiResponse(
        message="Files retrieved successfully",
        data=[CaseFile.model_validate(f) for f in files],
    )


@router.get("/{file_id}", response_model=ApiResponse[CaseFile])
async def read_file(
    *,
    db: AsyncSession = Depends(get_db),
    s3: S3Service = Depends(get_s3_service),
    file_id: str = Path(..., description="The ID of the file"),
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    """
    Get file metadata with a freshly generated download URL.
    """
    db_file = await file_crud.get_case_file(db, file_id, current_user.id)
    if not db_file:
        raise NotFoundException("File")

    result = CaseFile.model_validate(db_file)
    fresh_url = await s3.get_file_url(db_file.key)
    if fresh_url:
        result = result.model_copy(update={"url": fresh_url})

    return ApiResponse(message="File retrieved successfully", data=result)


@router.delete("/{file_id}", response_model=ApiResponse[None])
async def delete_file(
    *,
    db: AsyncSession = Depends(get_db),
    s3: S3Service = Depends(get_s3_service),
    file_id: str = Path(..., description="The ID of the file to delete"),
    current_user: DBUser = Depends(get_current_user)
) -> Any:
    db_file = await file_crud.get_case_file(db, file_id, current_user.id)
    if not db_file:
        raise NotFoundException("File")

    file_key = db_file.key
    if not await s3.delete_file(file_key):
        logger.warning(f"Could not remove {file_key} from storage; deleting record anyway")

    if not await file_crud.delete_case_file(db, db_file):
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to delete file"
        )

    return ApiResponse(message="File deleted successfully")
