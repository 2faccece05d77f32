import io
import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Annotated, List
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy import or_
from sqlalchemy.orm import Session

from cemse_backend.api.exceptions import BadRequestException, ForbiddenException, NotFoundException
from cemse_backend.api.utils import apply_changes
from cemse_backend.database import get_db
from cemse_backend.interface.auth import MessageResponse
from cemse_backend.interface.base import paginate
from cemse_backend.interface.cases import CaseCreate, CaseGet, CaseList, CaseQuery, CaseUpdate
from cemse_backend.interface.metrics import GlobalCaseMetrics, MetricsQuery
from cemse_backend.interface.storage import EvidenceFile, EvidenceUploadResponse, SkippedFile
from cemse_backend.model.case import Case
from cemse_backend.model.school import School
from cemse_backend.permissions.auth import get_current_principal, require_admin
from cemse_backend.permissions.principal import Principal
from cemse_backend.permissions.roles import (
    can_create_cases,
    can_upload_evidence,
    can_view_cases,
    is_school_staff,
)
from cemse_backend.services.audit import log_case_status_change, log_create, log_delete, log_update
from cemse_backend.services.metrics import case_metrics
from cemse_backend.services.storage_service import StorageService, get_storage_service
from cemse_backend.storage_config import CASE_EVIDENCE_BUCKET, EVIDENCE_MIME_TYPES, MAX_EVIDENCE_SIZE
from cemse_backend.storage_security import sanitize_filename, validate_upload

logger = logging.getLogger(__name__)

cases_router = APIRouter(prefix="/cases", tags=["cases"])

CASE_NUMBER_PREFIX = "CASE"


def next_case_number(db: Session, year: int = None) -> str:
    """Next number of the CASE-YYYY-NNNN sequence for the given (default current) year."""
    year = year or datetime.now(timezone.utc).year
    prefix = f"{CASE_NUMBER_PREFIX}-{year}-"

    last = (
        db.query(Case.case_number)
        .filter(Case.case_number.like(f"{prefix}%"))
        .order_by(Case.case_number.desc())
        .first()
    )

    sequence = 1
    if last is not None:
        try:
            sequence = int(last[0].rsplit("-", 1)[1]) + 1
        except (IndexError, ValueError):
            logger.warning(f"Unexpected case number format: {last[0]}")

    return f"{prefix}{sequence:04d}"


def _require_staff_school(principal: Principal):
    if is_school_staff(principal.role) and principal.school_id is None:
        raise ForbiddenException("You are not assigned to a school")


def _get_accessible_case(db: Session, principal: Principal, case_id: str) -> Case:
    """A non-deleted case the principal may see, else 404/403."""

    if not can_view_cases(principal.role):
        raise ForbiddenException("You cannot access cases")

    case = db.query(Case).filter(Case.id == case_id, Case.is_deleted == False).first()
    if case is None:
        raise NotFoundException("Case not found")

    if is_school_staff(principal.role) and case.school_id != principal.school_id:
        raise ForbiddenException("You cannot access this case")

    return case


@cases_router.get("", response_model=CaseList)
def list_cases(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: CaseQuery = Depends(),
    db: Session = Depends(get_db)
):
    if not can_view_cases(principal.role):
        raise ForbiddenException("You cannot view cases")

    _require_staff_school(principal)

    query = db.query(Case).filter(Case.is_deleted == False)

    if is_school_staff(principal.role):
        query = query.filter(Case.school_id == principal.school_id)
    elif params.school_id:
        query = query.filter(Case.school_id == params.school_id)

    if params.search:
        pattern = f"%{params.search}%"
        query = query.filter(or_(
            Case.case_number.ilike(pattern),
            Case.victim_name.ilike(pattern),
            Case.aggressor_name.ilike(pattern),
            Case.description.ilike(pattern)
        ))

    if params.violence_type is not None:
        query = query.filter(Case.violence_type == params.violence_type.value)

    if params.status is not None:
        query = query.filter(Case.status == params.status.value)

    if params.priority is not None:
        query = query.filter(Case.priority == params.priority.value)

    cases, pagination = paginate(query.order_by(Case.created_at.desc(), Case.case_number.desc()), params.page, params.limit)
    return CaseList(cases=[CaseGet.model_validate(case) for case in cases], pagination=pagination)


@cases_router.post("", response_model=CaseGet, status_code=status.HTTP_201_CREATED)
def create_case(
    payload: CaseCreate,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    if not can_create_cases(principal.role):
        raise ForbiddenException("You cannot create cases")

    _require_staff_school(principal)

    if is_school_staff(principal.role):
        school_id = principal.school_id
    else:
        if not payload.school_id:
            raise BadRequestException("A school must be specified")
        school_id = payload.school_id

    school = db.query(School.id).filter(School.id == school_id, School.is_deleted == False).first()
    if school is None:
        raise BadRequestException("School not found")

    data = payload.model_dump(mode="json", exclude={"school_id", "evidence_files"})
    data["incident_date"] = payload.incident_date
    case = Case(
        **data,
        evidence_files=jsonable_encoder(payload.evidence_files),
        case_number=next_case_number(db),
        school_id=school_id,
        created_by=principal.profile_id
    )
    db.add(case)
    db.commit()
    db.refresh(case)

    log_create("Case", case.id, case.case_number, principal.profile_id,
               metadata={"violence_type": case.violence_type, "school_id": case.school_id, "priority": case.priority},
               request=request)

    return case


@cases_router.get("/metrics", response_model=GlobalCaseMetrics)
def get_case_metrics(
    principal: Annotated[Principal, Depends(require_admin)],
    params: MetricsQuery = Depends(),
    db: Session = Depends(get_db)
):
    """Case statistics across all schools"""
    return GlobalCaseMetrics(**case_metrics(db, params, school_id=params.school_id, include_schools=True))


@cases_router.get("/{case_id}", response_model=CaseGet)
def get_case(
    case_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    return _get_accessible_case(db, principal, case_id)


@cases_router.patch("/{case_id}", response_model=CaseGet)
def update_case(
    case_id: str,
    payload: CaseUpdate,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    case = _get_accessible_case(db, principal, case_id)
    old_status = case.status

    data = payload.model_dump(exclude_unset=True)
    if "evidence_files" in data:
        data["evidence_files"] = jsonable_encoder(payload.evidence_files or [])
    for key in ("violence_type", "status", "priority"):
        if data.get(key) is not None:
            data[key] = data[key].value

    changes = apply_changes(case, data)

    if changes:
        db.commit()
        db.refresh(case)

        log_update("Case", case.id, case.case_number, principal.profile_id, changes, request=request)

        if "status" in changes:
            log_case_status_change(case.id, case.case_number, principal.profile_id,
                                   old_status, case.status, request=request)

    return case


@cases_router.delete("/{case_id}", response_model=MessageResponse)
def delete_case(
    case_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Session = Depends(get_db)
):
    case = db.query(Case).filter(Case.id == case_id, Case.is_deleted == False).first()
    if case is None:
        raise NotFoundException("Case not found")

    case.is_deleted = True
    db.commit()

    log_delete("Case", case.id, case.case_number, principal.profile_id, request=request)

    return MessageResponse(message="Case deleted successfully")


@cases_router.post("/{case_id}/evidence", response_model=EvidenceUploadResponse)
async def upload_case_evidence(
    case_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    storage_service: StorageService = Depends(get_storage_service)
):
    """
    Upload evidence files for a case.

    Files with a disallowed type, an oversized or empty body, or a failed
    upload are skipped with a reason; the rest of the batch continues. The
    request fails with 400 only if no file at all was stored.
    """
    if not can_upload_evidence(principal.role):
        raise ForbiddenException("You cannot upload evidence")

    case = _get_accessible_case(db, principal, case_id)

    uploaded: List[EvidenceFile] = []
    skipped: List[SkippedFile] = []

    for upload in files:
        name = upload.filename or "unnamed_file"
        content = await upload.read()
        file_data = io.BytesIO(content)

        valid, error = validate_upload(upload.content_type, len(content), file_data, EVIDENCE_MIME_TYPES, MAX_EVIDENCE_SIZE)
        if not valid:
            skipped.append(SkippedFile(name=name, reason=error))
            continue

        object_key = (
            f"{case.id}/{principal.profile_id}/"
            f"{int(time.time() * 1000)}_{secrets.token_hex(4)}_{sanitize_filename(name)}"
        )

        try:
            stored = await storage_service.upload_file(
                file_data=file_data,
                object_key=object_key,
                bucket=CASE_EVIDENCE_BUCKET,
                content_type=upload.content_type
            )
        except HTTPException as e:
            logger.error(f"Evidence upload failed for {name} on case {case.case_number}: {e.detail}")
            skipped.append(SkippedFile(name=name, reason="Upload failed"))
            continue

        uploaded.append(EvidenceFile(
            name=name,
            url=stored.url,
            type=stored.content_type,
            size=stored.size,
            uploaded_at=datetime.now(timezone.utc),
            object_key=stored.object_key
        ))

    if not uploaded:
        reasons = "; ".join(f"{s.name}: {s.reason}" for s in skipped)
        raise BadRequestException(f"No files could be uploaded. Check file types and sizes. {reasons}".strip())

    # reassign so the JSON column is flagged dirty
    case.evidence_files = list(case.evidence_files or []) + jsonable_encoder(uploaded)
    db.commit()

    log_update("Case", case.id, case.case_number, principal.profile_id,
               {"evidence_files": {"added": [f.name for f in uploaded]}}, request=request)

    return EvidenceUploadResponse(
        message=f"{len(uploaded)} file(s) uploaded, {len(skipped)} skipped",
        files=uploaded,
        skipped=skipped
    )
