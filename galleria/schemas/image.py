from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageRecord(CamelModel):
    """One uploaded image as stored in the index under its `id`."""

    id: str
    url: str
    pathname: str = ""
    filename: str = ""
    mime_type: str = "image/jpeg"
    size: int = 0
    uploaded_by: str = ""
    uploaded_at: Optional[datetime] = None


class Pagination(CamelModel):
    has_more: bool
    total: int
    skip: int
    limit: int


class ImagePage(CamelModel):
    images: List[ImageRecord]
    total: int
    pagination: Pagination


class CalendarEntry(CamelModel):
    id: str
    url: str
    filename: str
    uploaded_by: str
    uploaded_at: Optional[datetime] = None


CalendarMonth = Dict[str, List[CalendarEntry]]


# --- reconciliation reports ---

class MissingImage(BaseModel):
    id: str
    url: str


class CheckReport(CamelModel):
    total: int = 0
    found: int = 0
    missing: int = 0
    missing_images: List[MissingImage] = []


class FixReport(BaseModel):
    total: int = 0
    fixed: int = 0
    skipped: int = 0


ReuploadStatus = Literal["skipped", "re-uploaded", "failed"]


class ReuploadResult(CamelModel):
    id: str
    old_url: Optional[str] = None
    new_url: Optional[str] = None
    status: ReuploadStatus
    reason: Optional[str] = None


class ReuploadReport(BaseModel):
    total: int = 0
    reuploaded: int = 0
    skipped: int = 0
    failed: int = 0
    results: List[ReuploadResult] = []


class DeleteResult(BaseModel):
    id: str
    status: Literal["deleted", "failed"]
    reason: Optional[str] = None
    url: Optional[str] = None


class DeleteReport(BaseModel):
    total: int = 0
    deleted: int = 0
    failed: int = 0
    results: List[DeleteResult] = []
