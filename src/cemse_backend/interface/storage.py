from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class StoredObject(BaseModel):
    """Result of a successful object upload."""
    bucket: str
    object_key: str
    url: str
    content_type: str
    size: int = Field(ge=0)


class UploadedFileInfo(BaseModel):
    name: str
    url: str


class EvidenceFile(BaseModel):
    """Entry of a case's evidence list."""
    name: str
    url: str
    type: str
    size: int
    uploaded_at: datetime
    object_key: Optional[str] = None


class SkippedFile(BaseModel):
    name: str
    reason: str


class EvidenceUploadResponse(BaseModel):
    success: bool = True
    message: str
    files: List[EvidenceFile] = Field(default_factory=list)
    skipped: List[SkippedFile] = Field(default_factory=list)
