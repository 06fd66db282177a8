"""
Certificate schemas. Snapshot fields stay empty until the renderer fills them.
"""

from pydantic import BaseModel
from typing import Optional


class CertificateResponse(BaseModel):
    id: str
    user_id: int
    course_id: str
    status: str
    recipient_name: Optional[str] = None
    course_title: Optional[str] = None
    instructor_name: Optional[str] = None
    issued_at: Optional[str] = None
    total_hours: int = 0
    certificate_url: Optional[str] = None
    created_at: str


class CertificateListResponse(BaseModel):
    certificates: list[CertificateResponse]


class MarkGeneratedRequest(BaseModel):
    certificate_url: str
    recipient_name: Optional[str] = None
    course_title: Optional[str] = None
    instructor_name: Optional[str] = None
