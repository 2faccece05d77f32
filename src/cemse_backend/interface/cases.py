import re
from datetime import date
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from cemse_backend.interface.base import BaseEntityGet, ListQuery, Pagination
from cemse_backend.interface.profiles import ProfileBrief, SchoolSummary
from cemse_backend.interface.storage import EvidenceFile

_time_re = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


class ViolenceType(str, Enum):
    PHYSICAL = "PHYSICAL"
    VERBAL = "VERBAL"
    PSYCHOLOGICAL = "PSYCHOLOGICAL"
    SEXUAL = "SEXUAL"
    CYBERBULLYING = "CYBERBULLYING"
    DISCRIMINATION = "DISCRIMINATION"
    PROPERTY_DAMAGE = "PROPERTY_DAMAGE"
    OTHER = "OTHER"


class CaseStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    UNDER_REVIEW = "UNDER_REVIEW"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    ARCHIVED = "ARCHIVED"


class CasePriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


def _check_time(v: Optional[str]) -> Optional[str]:
    if v is not None and not _time_re.match(v):
        raise ValueError('Invalid time format (HH:MM)')
    return v


class CaseCreate(BaseModel):
    incident_date: date
    incident_time: str
    violence_type: ViolenceType
    description: str = Field(min_length=10)
    location: str = Field(min_length=1)
    custom_location: Optional[str] = None
    victim_is_anonymous: bool = False
    victim_name: str = Field(min_length=1)
    victim_age: Optional[int] = Field(None, gt=0)
    victim_grade: Optional[str] = None
    aggressor_name: str = Field(min_length=1)
    aggressor_description: Optional[str] = None
    relationship_to_victim: Optional[str] = None
    witnesses: Optional[str] = None
    evidence_files: List[EvidenceFile] = Field(default_factory=list)
    status: CaseStatus = CaseStatus.OPEN
    priority: CasePriority = CasePriority.MEDIUM
    school_id: Optional[str] = Field(None, description="Required for admins, ignored for school staff")

    @field_validator('incident_time')
    @classmethod
    def validate_incident_time(cls, v):
        return _check_time(v)


class CaseUpdate(BaseModel):
    incident_date: Optional[date] = None
    incident_time: Optional[str] = None
    violence_type: Optional[ViolenceType] = None
    description: Optional[str] = Field(None, min_length=10)
    location: Optional[str] = Field(None, min_length=1)
    custom_location: Optional[str] = None
    victim_is_anonymous: Optional[bool] = None
    victim_name: Optional[str] = Field(None, min_length=1)
    victim_age: Optional[int] = Field(None, gt=0)
    victim_grade: Optional[str] = None
    aggressor_name: Optional[str] = Field(None, min_length=1)
    aggressor_description: Optional[str] = None
    relationship_to_victim: Optional[str] = None
    witnesses: Optional[str] = None
    evidence_files: Optional[List[EvidenceFile]] = None
    status: Optional[CaseStatus] = None
    priority: Optional[CasePriority] = None

    @field_validator('incident_time')
    @classmethod
    def validate_incident_time(cls, v):
        return _check_time(v)


class CaseGet(BaseEntityGet):
    id: str
    case_number: str
    incident_date: date
    incident_time: str
    violence_type: ViolenceType
    description: str
    location: str
    custom_location: Optional[str] = None
    victim_is_anonymous: bool
    victim_name: str
    victim_age: Optional[int] = None
    victim_grade: Optional[str] = None
    aggressor_name: str
    aggressor_description: Optional[str] = None
    relationship_to_victim: Optional[str] = None
    witnesses: Optional[str] = None
    evidence_files: List[EvidenceFile] = Field(default_factory=list)
    status: CaseStatus
    priority: CasePriority
    school_id: str
    school: Optional[SchoolSummary] = None
    created_by: Optional[str] = None
    creator: Optional[ProfileBrief] = None

    model_config = ConfigDict(from_attributes=True)


class CaseQuery(ListQuery):
    search: Optional[str] = Field(None, description="Match on case number, names or description")
    violence_type: Optional[ViolenceType] = None
    status: Optional[CaseStatus] = None
    priority: Optional[CasePriority] = None
    school_id: Optional[str] = Field(None, description="Only honored for admins")


class CaseList(BaseModel):
    cases: List[CaseGet]
    pagination: Pagination
