import io
import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from cemse_backend.api.exceptions import BadRequestException, ForbiddenException, NotFoundException
from cemse_backend.api.utils import apply_changes
from cemse_backend.database import get_db
from cemse_backend.interface.auth import MessageResponse
from cemse_backend.interface.base import Pagination, paginate
from cemse_backend.interface.library import (
    LibraryItemCreate,
    LibraryItemGet,
    LibraryItemResponse,
    LibraryItemUpdate,
    LibraryList,
    LibraryQuery,
    LibraryVisibility,
)
from cemse_backend.interface.storage import StoredObject
from cemse_backend.model.library import LibraryItem
from cemse_backend.permissions.auth import get_current_principal, require_admin
from cemse_backend.permissions.principal import Principal
from cemse_backend.permissions.roles import (
    Role,
    can_edit_library_item,
    can_upload_library,
    can_view_library_item,
    is_school_staff,
)
from cemse_backend.services.audit import log_create, log_delete, log_library_approval, log_update
from cemse_backend.services.storage_service import StorageService, get_storage_service
from cemse_backend.storage_config import LIBRARY_BUCKET, MAX_LIBRARY_FILE_SIZE, format_bytes
from cemse_backend.storage_security import (
    check_file_content_security,
    file_extension,
    sanitize_filename,
    validate_file_size,
)

logger = logging.getLogger(__name__)

library_router = APIRouter(prefix="/library", tags=["library"])

PUBLIC = LibraryVisibility.PUBLIC.value
PRIVATE = LibraryVisibility.PRIVATE.value


def _visible_items(db: Session, principal: Principal):
    """Query over the items the principal may see, None if there are none."""

    query = db.query(LibraryItem).filter(LibraryItem.is_deleted == False)

    if principal.is_admin:
        return query

    if not is_school_staff(principal.role) or principal.school_id is None:
        return None

    shared = and_(LibraryItem.visibility == PUBLIC, LibraryItem.is_approved == True)
    own_school = LibraryItem.school_id == principal.school_id

    if principal.role == Role.DIRECTOR:
        return query.filter(or_(own_school, shared))

    return query.filter(or_(and_(own_school, LibraryItem.visibility == PRIVATE), shared))


def _get_item_or_404(db: Session, item_id: str) -> LibraryItem:
    item = db.query(LibraryItem).filter(LibraryItem.id == item_id, LibraryItem.is_deleted == False).first()
    if item is None:
        raise NotFoundException("Library item not found")
    return item


def _check_edit(principal: Principal, item: LibraryItem, action: str):
    if not can_edit_library_item(principal.role, principal.profile_id, principal.school_id,
                                 item.created_by, item.school_id):
        raise ForbiddenException(f"You cannot {action} this library item")


def _create_item(db: Session, principal: Principal, data: LibraryItemCreate, file_name: str,
                 stored: StoredObject, request: Request) -> LibraryItemGet:

    is_approved = principal.is_admin or data.visibility == LibraryVisibility.PRIVATE
    now = datetime.now(timezone.utc)

    item = LibraryItem(
        title=data.title,
        description=data.description,
        file_name=file_name,
        file_url=stored.url,
        object_key=stored.object_key,
        file_size=stored.size,
        mime_type=stored.content_type,
        visibility=data.visibility.value,
        is_approved=is_approved,
        approved_at=now if is_approved else None,
        approved_by=principal.profile_id if is_approved else None,
        created_by=principal.profile_id,
        school_id=principal.school_id
    )
    db.add(item)
    db.commit()
    db.refresh(item)

    log_create("Library", item.id, item.title, principal.profile_id,
               metadata={"visibility": item.visibility, "is_approved": item.is_approved}, request=request)

    return LibraryItemGet.model_validate(item)


@library_router.get("", response_model=LibraryList)
def list_library_items(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: LibraryQuery = Depends(),
    db: Session = Depends(get_db)
):
    query = _visible_items(db, principal)

    if query is None:
        return LibraryList(items=[], pagination=Pagination(page=params.page, limit=params.limit, total=0, total_pages=0))

    if params.search:
        pattern = f"%{params.search}%"
        query = query.filter(or_(
            LibraryItem.title.ilike(pattern),
            LibraryItem.description.ilike(pattern),
            LibraryItem.file_name.ilike(pattern)
        ))

    if params.visibility is not None and principal.is_admin:
        query = query.filter(LibraryItem.visibility == params.visibility.value)

    items, pagination = paginate(query.order_by(LibraryItem.created_at.desc(), LibraryItem.id), params.page, params.limit)
    return LibraryList(items=[LibraryItemGet.model_validate(item) for item in items], pagination=pagination)


@library_router.post("", response_model=LibraryItemResponse, status_code=status.HTTP_201_CREATED)
async def upload_library_item(
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    file: UploadFile = File(...),
    title: str = Form(...),
    description: Optional[str] = Form(None),
    visibility: LibraryVisibility = Form(LibraryVisibility.PRIVATE),
    db: Session = Depends(get_db),
    storage_service: StorageService = Depends(get_storage_service)
):
    """
    Upload a document to the library.

    Uploads by admins and PRIVATE uploads are approved right away, PUBLIC
    uploads by directors wait for an admin.
    """
    if not can_upload_library(principal.role):
        raise ForbiddenException("You cannot upload library files")

    if not principal.is_admin and principal.school_id is None:
        raise BadRequestException("You must be assigned to a school to upload library files")

    data = LibraryItemCreate(title=title, description=description, visibility=visibility)

    content = await file.read()
    file_data = io.BytesIO(content)

    valid, error = validate_file_size(len(content), MAX_LIBRARY_FILE_SIZE)
    if valid:
        valid, error = check_file_content_security(file_data)
    if not valid:
        raise BadRequestException(error)

    object_key = (
        f"library/{principal.profile_id}/"
        f"{int(time.time() * 1000)}_{secrets.token_hex(6)}.{file_extension(file.filename)}"
    )

    logger.info(f"Uploading library file: {object_key} ({format_bytes(len(content))})")
    stored = await storage_service.upload_file(
        file_data=file_data,
        object_key=object_key,
        bucket=LIBRARY_BUCKET,
        content_type=file.content_type
    )

    item = await run_in_threadpool(
        _create_item, db, principal, data, sanitize_filename(file.filename), stored, request
    )

    return LibraryItemResponse(message="File uploaded successfully", item=item)


@library_router.get("/{item_id}", response_model=LibraryItemGet)
def get_library_item(
    item_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    item = _get_item_or_404(db, item_id)

    if not can_view_library_item(principal.role, principal.school_id,
                                 item.school_id, item.visibility, item.is_approved):
        raise ForbiddenException("You cannot view this library item")

    return item


@library_router.patch("/{item_id}", response_model=LibraryItemResponse)
def update_library_item(
    item_id: str,
    payload: LibraryItemUpdate,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    item = _get_item_or_404(db, item_id)
    _check_edit(principal, item, "modify")

    data = payload.model_dump(mode="json", exclude_unset=True)

    if data.get("visibility") is None:
        data.pop("visibility", None)
    elif data["visibility"] != item.visibility and data["visibility"] == PUBLIC:
        if principal.is_admin:
            data.update(is_approved=True, approved_at=datetime.now(timezone.utc), approved_by=principal.profile_id)
        else:
            # going public needs a fresh approval
            data.update(is_approved=False, approved_at=None, approved_by=None)

    if data.get("title", "") is None:
        data.pop("title")

    changes = apply_changes(item, data)

    if changes:
        db.commit()
        db.refresh(item)
        log_update("Library", item.id, item.title, principal.profile_id, changes, request=request)

    return LibraryItemResponse(message="Library item updated", item=LibraryItemGet.model_validate(item))


@library_router.delete("/{item_id}", response_model=MessageResponse)
def delete_library_item(
    item_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    item = _get_item_or_404(db, item_id)
    _check_edit(principal, item, "delete")

    item.is_deleted = True
    item.deleted_at = datetime.now(timezone.utc)
    item.deleted_by = principal.profile_id
    db.commit()

    log_delete("Library", item.id, item.title, principal.profile_id, request=request)

    return MessageResponse(message="Library item deleted successfully")


@library_router.post("/{item_id}/approve", response_model=LibraryItemResponse)
def approve_library_item(
    item_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Session = Depends(get_db)
):
    """Approve a director's PUBLIC upload so every school can see it"""
    item = _get_item_or_404(db, item_id)

    creator_role = item.creator.role if item.creator is not None else None
    if creator_role != Role.DIRECTOR.value or item.visibility != PUBLIC or item.is_approved:
        raise BadRequestException("Only pending PUBLIC items uploaded by directors can be approved")

    item.is_approved = True
    item.approved_at = datetime.now(timezone.utc)
    item.approved_by = principal.profile_id
    db.commit()
    db.refresh(item)

    log_library_approval(item.id, item.title, principal.profile_id, request=request)

    return LibraryItemResponse(message="Library item approved", item=LibraryItemGet.model_validate(item))
