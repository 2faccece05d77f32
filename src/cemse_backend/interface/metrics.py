from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from cemse_backend.interface.cases import CasePriority, CaseStatus, ViolenceType


class MetricsQuery(BaseModel):
    school_id: Optional[str] = Field(None, description="Only honored on the global metrics")
    violence_type: Optional[ViolenceType] = None
    status: Optional[CaseStatus] = None
    priority: Optional[CasePriority] = None
    start_date: Optional[date] = Field(None, description="Earliest incident date, inclusive")
    end_date: Optional[date] = Field(None, description="Latest incident date, inclusive")

    @model_validator(mode='after')
    def check_date_range(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError('start_date must not be after end_date')
        return self


class ViolenceTypeCount(BaseModel):
    type: ViolenceType
    count: int


class PriorityCount(BaseModel):
    priority: CasePriority
    count: int


class StatusCount(BaseModel):
    status: CaseStatus
    count: int


class SchoolCount(BaseModel):
    school_id: str
    school_name: str
    school_code: str
    count: int


class MonthlyCount(BaseModel):
    month: str = Field(description="YYYY-MM")
    count: int


class CaseMetrics(BaseModel):
    total_cases: int = 0
    open_cases: int = 0
    in_progress_cases: int = 0
    resolved_cases: int = 0
    closed_cases: int = 0
    archived_cases: int = 0
    recent_cases: int = Field(0, description="Created within the last 30 days")
    cases_by_violence_type: List[ViolenceTypeCount] = Field(default_factory=list)
    cases_by_priority: List[PriorityCount] = Field(default_factory=list)
    cases_by_status: List[StatusCount] = Field(default_factory=list)
    cases_over_time: List[MonthlyCount] = Field(default_factory=list)


class GlobalCaseMetrics(CaseMetrics):
    cases_by_school: List[SchoolCount] = Field(default_factory=list)


class SchoolCaseMetrics(CaseMetrics):
    school_id: str
    school_name: str
