"""
Certificate eligibility.

On a new module completion, checks whether the course is now 100% complete
and, if so, creates the single `pending` Certificate for (user, course).
Rendering is done elsewhere; the renderer reports back via `mark_generated`.
"""

from __future__ import annotations

from sqlalchemy.orm import Session as DBSession

from lms.errors import AlreadyCompleted, NotFound, ValidationError
from lms.models.models import Certificate, Course, User
from lms.models.status import CertificateStatus
from lms.services.progress_service import ProgressTracker
from lms.utils.common import insert_unique, new_id, utcnow
from lms.utils.logger import configure_logging

logger = configure_logging()


class CertificateEligibilityMonitor:
    def __init__(self, db: DBSession, progress: ProgressTracker):
        self.db = db
        self.progress = progress

    def get(self, user_id: int, course_id: str) -> Certificate | None:
        return (
            self.db.query(Certificate)
            .filter(Certificate.user_id == user_id, Certificate.course_id == course_id)
            .first()
        )

    def on_module_completed(self, user_id: int, course_id: str) -> Certificate | None:
        """
        Create the pending certificate if the course just reached 100%.

        Returns the new certificate, or None when nothing was created (course
        incomplete, course without modules, or a certificate already exists).
        """
        if self.get(user_id, course_id) is not None:
            logger.info("certificate check no-op user_id=%s course_id=%s already exists", user_id, course_id)
            return None

        ratio = self.progress.completion_ratio(user_id, course_id)
        if ratio < 1.0:
            logger.info("certificate check user_id=%s course_id=%s ratio=%.2f", user_id, course_id, ratio)
            return None

        cert = Certificate(
            id=new_id("CERT"),
            user_id=user_id,
            course_id=course_id,
            status=CertificateStatus.PENDING,
            total_hours=0,
        )
        if not insert_unique(self.db, cert):
            logger.warning("certificate insert conflict user_id=%s course_id=%s; already exists", user_id, course_id)
            return None
        logger.info("certificate pending id=%s user_id=%s course_id=%s", cert.id, user_id, course_id)
        return cert

    def list_for_user(self, user_id: int) -> list[Certificate]:
        return (
            self.db.query(Certificate)
            .filter(Certificate.user_id == user_id)
            .order_by(Certificate.created_at.desc())
            .all()
        )

    def list_pending(self, limit: int = 100) -> list[Certificate]:
        """Oldest pending certificates first, for the renderer to pick up."""
        return (
            self.db.query(Certificate)
            .filter(Certificate.status == CertificateStatus.PENDING)
            .order_by(Certificate.created_at.asc())
            .limit(limit)
            .all()
        )

    def mark_generated(
        self,
        certificate_id: str,
        certificate_url: str,
        recipient_name: str | None = None,
        course_title: str | None = None,
        instructor_name: str | None = None,
    ) -> Certificate:
        """Record the rendered artifact. Only a pending certificate can be generated."""
        if not (certificate_url or "").strip():
            raise ValidationError("certificate_url is required")
        cert = self.db.query(Certificate).filter(Certificate.id == certificate_id).first()
        if cert is None:
            raise NotFound("Certificate not found")
        if cert.status != CertificateStatus.PENDING:
            raise AlreadyCompleted("Certificate already generated")

        user = self.db.query(User).filter(User.id == cert.user_id).first()
        course = self.db.query(Course).filter(Course.id == cert.course_id).first()
        values = {
            Certificate.status: CertificateStatus.GENERATED,
            Certificate.certificate_url: certificate_url.strip(),
            Certificate.recipient_name: recipient_name or _display_name(user),
            Certificate.course_title: course_title or (course.title if course else None),
            Certificate.instructor_name: instructor_name or (course.mentor_name if course else None),
            Certificate.issued_at: utcnow(),
        }
        updated = (
            self.db.query(Certificate)
            .filter(Certificate.id == cert.id, Certificate.status == CertificateStatus.PENDING)
            .update(values, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(cert)
        if updated != 1:
            raise AlreadyCompleted("Certificate already generated")
        logger.info("certificate generated id=%s user_id=%s course_id=%s", cert.id, cert.user_id, cert.course_id)
        return cert


def _display_name(user: User | None) -> str | None:
    if user is None:
        return None
    if user.full_name and user.full_name.strip():
        return user.full_name.strip()
    return user.email.split("@", 1)[0]
