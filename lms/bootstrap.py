from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session as DBSession

from lms.config import get_db, settings
from lms.services.certificate_service import CertificateEligibilityMonitor
from lms.services.enrollment_service import EnrollmentLedger
from lms.services.payment_gateway import PaymentGateway, build_payment_gateway
from lms.services.progress_service import ProgressTracker
from lms.services.quiz_session_service import QuizSessionEngine


@dataclass
class LearningServices:
    ledger: EnrollmentLedger
    progress: ProgressTracker
    certificates: CertificateEligibilityMonitor
    quizzes: QuizSessionEngine

    def complete_module(self, user_id: int, module_id: str) -> dict:
        """Mark a module complete and run the certificate check on first completion."""
        completion = self.progress.mark_module_complete(user_id, module_id)
        certificate = None
        if completion.newly_completed:
            certificate = self.certificates.on_module_completed(user_id, completion.course_id)
        return {
            "module_id": completion.module_id,
            "course_id": completion.course_id,
            "is_completed": True,
            "newly_completed": completion.newly_completed,
            "certificate_id": certificate.id if certificate is not None else None,
        }


def build_services(db: DBSession) -> LearningServices:
    ledger = EnrollmentLedger(db)
    progress = ProgressTracker(db, ledger)
    certificates = CertificateEligibilityMonitor(db, progress)
    quizzes = QuizSessionEngine(db, ledger, progress, certificates)
    return LearningServices(ledger=ledger, progress=progress, certificates=certificates, quizzes=quizzes)


def get_services(db: DBSession = Depends(get_db)) -> LearningServices:
    return build_services(db)


@lru_cache(maxsize=1)
def get_payment_gateway() -> PaymentGateway:
    return build_payment_gateway(settings.payment_gateway)
