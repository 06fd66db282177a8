"""
Certificate endpoints: learner list, renderer hand-off (pending queue, mark generated).
"""

from fastapi import APIRouter, Depends, Query

from lms.bootstrap import LearningServices, get_services
from lms.models.models import Certificate
from lms.models.status import CertificateStatus
from lms.schemas.certificate_schemas import (
    CertificateListResponse,
    CertificateResponse,
    MarkGeneratedRequest,
)
from lms.schemas.user_schemas import User
from lms.utils.auth import get_current_user, require_admin
from lms.utils.common import iso_format

certificate_routes = APIRouter()


def certificate_response(c: Certificate) -> CertificateResponse:
    return CertificateResponse(
        id=c.id,
        user_id=c.user_id,
        course_id=c.course_id,
        status=CertificateStatus(c.status).value,
        recipient_name=c.recipient_name,
        course_title=c.course_title,
        instructor_name=c.instructor_name,
        issued_at=iso_format(c.issued_at),
        total_hours=int(c.total_hours or 0),
        certificate_url=c.certificate_url,
        created_at=iso_format(c.created_at),
    )


@certificate_routes.get("/learn/certificates", response_model=CertificateListResponse)
async def my_certificates(
    current_user: User = Depends(get_current_user),
    services: LearningServices = Depends(get_services),
) -> CertificateListResponse:
    certs = services.certificates.list_for_user(current_user.id)
    return CertificateListResponse(certificates=[certificate_response(c) for c in certs])


@certificate_routes.get("/admin/certificates/pending", response_model=CertificateListResponse)
async def pending_certificates(
    limit: int = Query(100, ge=1, le=500),
    admin: User = Depends(require_admin),
    services: LearningServices = Depends(get_services),
) -> CertificateListResponse:
    certs = services.certificates.list_pending(limit=limit)
    return CertificateListResponse(certificates=[certificate_response(c) for c in certs])


@certificate_routes.post("/admin/certificates/{certificate_id}/generated", response_model=CertificateResponse)
async def mark_certificate_generated(
    certificate_id: str,
    req: MarkGeneratedRequest,
    admin: User = Depends(require_admin),
    services: LearningServices = Depends(get_services),
) -> CertificateResponse:
    """Called by the renderer once the artifact is uploaded."""
    cert = services.certificates.mark_generated(
        certificate_id,
        req.certificate_url,
        recipient_name=req.recipient_name,
        course_title=req.course_title,
        instructor_name=req.instructor_name,
    )
    return certificate_response(cert)
