from typing import Annotated, List
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from cemse_backend.api.exceptions import BadRequestException, ForbiddenException, NotFoundException
from cemse_backend.api.utils import apply_changes
from cemse_backend.database import get_db
from cemse_backend.interface.auth import MessageResponse
from cemse_backend.interface.base import Pagination, paginate
from cemse_backend.interface.metrics import MetricsQuery, SchoolCaseMetrics
from cemse_backend.interface.schools import (
    SchoolCreate,
    SchoolGet,
    SchoolList,
    SchoolOption,
    SchoolQuery,
    SchoolUpdate,
)
from cemse_backend.model.auth import Profile
from cemse_backend.model.case import Case
from cemse_backend.model.school import School
from cemse_backend.permissions.auth import get_current_principal, require_admin
from cemse_backend.permissions.principal import Principal
from cemse_backend.permissions.roles import can_manage_school, is_school_staff
from cemse_backend.services.audit import log_create, log_delete, log_update
from cemse_backend.services.metrics import case_metrics

schools_router = APIRouter(prefix="/schools", tags=["schools"])


def _visible_schools(db: Session, principal: Principal):
    """Admins see every school, school staff only their own."""

    query = db.query(School).filter(School.is_deleted == False)

    if principal.is_admin:
        return query

    if is_school_staff(principal.role):
        if principal.school_id is None:
            return None
        return query.filter(School.id == principal.school_id)

    raise ForbiddenException("You cannot view schools")


def _school_get(db: Session, school: School) -> SchoolGet:
    user_count = db.query(func.count(Profile.id)).filter(Profile.school_id == school.id, Profile.is_deleted == False).scalar()
    case_count = (
        db.query(func.count(Case.id))
        .filter(Case.school_id == school.id, Case.is_deleted == False)
        .scalar()
    )
    result = SchoolGet.model_validate(school)
    result.user_count = user_count or 0
    result.case_count = case_count or 0
    return result


def _get_school_or_404(db: Session, school_id: str) -> School:
    school = db.query(School).filter(School.id == school_id, School.is_deleted == False).first()
    if school is None:
        raise NotFoundException("School not found")
    return school


def _ensure_code_available(db: Session, code: str, exclude_id: str = None):
    query = db.query(School.id).filter(School.code == code)
    if exclude_id is not None:
        query = query.filter(School.id != exclude_id)
    if query.first() is not None:
        raise BadRequestException("A school with this code already exists")


@schools_router.get("", response_model=SchoolList)
def list_schools(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: SchoolQuery = Depends(),
    db: Session = Depends(get_db)
):
    query = _visible_schools(db, principal)

    if query is None:
        return SchoolList(schools=[], pagination=Pagination(page=params.page, limit=params.limit, total=0, total_pages=0))

    if params.search:
        pattern = f"%{params.search}%"
        query = query.filter(or_(School.name.ilike(pattern), School.code.ilike(pattern), School.district.ilike(pattern)))

    if params.type is not None:
        query = query.filter(School.type == params.type.value)

    schools, pagination = paginate(query.order_by(School.created_at.desc(), School.id), params.page, params.limit)
    return SchoolList(schools=[_school_get(db, school) for school in schools], pagination=pagination)


@schools_router.get("/list", response_model=List[SchoolOption])
def list_school_options(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    """Compact school list for selectors"""
    query = _visible_schools(db, principal)
    if query is None:
        return []
    return query.order_by(School.name).all()


@schools_router.post("", response_model=SchoolGet, status_code=status.HTTP_201_CREATED)
def create_school(
    payload: SchoolCreate,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Session = Depends(get_db)
):
    _ensure_code_available(db, payload.code)

    school = School(**payload.model_dump(mode="json"))
    db.add(school)
    db.commit()
    db.refresh(school)

    log_create("School", school.id, school.name, principal.profile_id,
               metadata={"code": school.code, "type": school.type}, request=request)

    return _school_get(db, school)


@schools_router.get("/{school_id}", response_model=SchoolGet)
def get_school(
    school_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    if not can_manage_school(principal.role, principal.school_id, school_id):
        raise ForbiddenException("You cannot view this school")

    return _school_get(db, _get_school_or_404(db, school_id))


@schools_router.get("/{school_id}/metrics", response_model=SchoolCaseMetrics)
def get_school_metrics(
    school_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: MetricsQuery = Depends(),
    db: Session = Depends(get_db)
):
    if not can_manage_school(principal.role, principal.school_id, school_id):
        raise ForbiddenException("You cannot view metrics of this school")

    school = _get_school_or_404(db, school_id)

    return SchoolCaseMetrics(
        school_id=school.id,
        school_name=school.name,
        **case_metrics(db, params, school_id=school.id)
    )


@schools_router.patch("/{school_id}", response_model=SchoolGet)
def update_school(
    school_id: str,
    payload: SchoolUpdate,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    if not can_manage_school(principal.role, principal.school_id, school_id):
        raise ForbiddenException("You cannot modify this school")

    school = _get_school_or_404(db, school_id)
    data = payload.model_dump(mode="json", exclude_unset=True)

    if data.get("code") and data["code"] != school.code:
        _ensure_code_available(db, data["code"], exclude_id=school.id)

    changes = apply_changes(school, data)

    if changes:
        db.commit()
        db.refresh(school)
        log_update("School", school.id, school.name, principal.profile_id, changes, request=request)

    return _school_get(db, school)


@schools_router.delete("/{school_id}", response_model=MessageResponse)
def delete_school(
    school_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Session = Depends(get_db)
):
    school = _get_school_or_404(db, school_id)

    assigned = db.query(func.count(Profile.id)).filter(Profile.school_id == school.id, Profile.is_deleted == False).scalar()
    if assigned:
        raise BadRequestException(
            f"Cannot delete the school while {assigned} user(s) are assigned to it. Reassign or remove them first."
        )

    school.is_deleted = True
    db.commit()

    log_delete("School", school.id, school.name, principal.profile_id, request=request)

    return MessageResponse(message="School deleted successfully")
