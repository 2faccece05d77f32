import io
import logging
import secrets
import time
from typing import Annotated
from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from cemse_backend.api.exceptions import NotFoundException
from cemse_backend.api.utils import get_actor_profile
from cemse_backend.database import get_db
from cemse_backend.interface.profiles import ProfileBrief
from cemse_backend.interface.storage import UploadedFileInfo
from cemse_backend.permissions.auth import get_current_principal
from cemse_backend.permissions.principal import Principal
from cemse_backend.services.storage_service import StorageService, get_storage_service
from cemse_backend.storage_config import (
    MAX_PROFILE_PICTURE_SIZE,
    PROFILE_PICTURE_BUCKET,
    PROFILE_PICTURE_MIME_TYPES,
    format_bytes
)
from cemse_backend.storage_security import file_extension, perform_full_file_validation

logger = logging.getLogger(__name__)

files_router = APIRouter(prefix="/files", tags=["files"])


class ProfilePictureUploaded(BaseModel):
    success: bool = True
    message: str
    file: UploadedFileInfo
    profile: ProfileBrief


class ProfilePictureDeleted(BaseModel):
    success: bool = True
    message: str
    profile: ProfileBrief


@files_router.post("/upload", response_model=ProfilePictureUploaded)
async def upload_profile_picture(
    principal: Annotated[Principal, Depends(get_current_principal)],
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage_service: StorageService = Depends(get_storage_service)
):
    """Upload a new profile picture and point the profile at it"""

    file_content = await file.read()
    file_size = len(file_content)
    file_data = io.BytesIO(file_content)

    perform_full_file_validation(
        filename=file.filename,
        content_type=file.content_type,
        file_size=file_size,
        file_data=file_data,
        allowed_types=PROFILE_PICTURE_MIME_TYPES,
        max_size=MAX_PROFILE_PICTURE_SIZE
    )

    object_key = (
        f"{principal.user_id}_{int(time.time() * 1000)}_{secrets.token_hex(6)}"
        f".{file_extension(file.filename, default='img')}"
    )

    logger.info(f"Uploading profile picture: {object_key} ({format_bytes(file_size)})")
    stored = await storage_service.upload_file(
        file_data=file_data,
        object_key=object_key,
        bucket=PROFILE_PICTURE_BUCKET,
        content_type=file.content_type
    )

    profile = get_actor_profile(db, principal)
    profile.pfp_url = stored.url
    db.commit()
    db.refresh(profile)

    return ProfilePictureUploaded(
        message="File uploaded successfully",
        file=UploadedFileInfo(name=object_key, url=stored.url),
        profile=ProfileBrief.model_validate(profile)
    )


@files_router.delete("/delete", response_model=ProfilePictureDeleted)
async def delete_profile_picture(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
    storage_service: StorageService = Depends(get_storage_service)
):
    profile = get_actor_profile(db, principal)

    if not profile.pfp_url:
        raise NotFoundException("No profile picture to delete")

    object_key = storage_service.object_key_from_url(PROFILE_PICTURE_BUCKET, profile.pfp_url)

    if object_key is not None:
        await storage_service.delete_file(object_key, PROFILE_PICTURE_BUCKET)
    else:
        logger.warning(f"Profile picture of {profile.id} is not stored in {PROFILE_PICTURE_BUCKET}, clearing reference only")

    profile.pfp_url = None
    db.commit()
    db.refresh(profile)

    return ProfilePictureDeleted(
        message="File deleted successfully",
        profile=ProfileBrief.model_validate(profile)
    )
