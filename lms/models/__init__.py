"""
Data models. Single import surface for DB entities and lifecycle states.

DB entities (lms.models.models):
- User, Course, Module, Quiz, Question, Option (read-only to the learning core)
- Enrollment, ModuleProgress, QuizAttempt, QuizAnswer, Certificate

States (lms.models.status):
- EnrollmentStatus, AttemptStatus, CertificateStatus, PaymentStatus
"""

from lms.models.models import (
    User,
    Course,
    Module,
    Quiz,
    Question,
    Option,
    Enrollment,
    ModuleProgress,
    QuizAttempt,
    QuizAnswer,
    Certificate,
)
from lms.models.status import (
    EnrollmentStatus,
    AttemptStatus,
    CertificateStatus,
    PaymentStatus,
)

__all__ = [
    "User",
    "Course",
    "Module",
    "Quiz",
    "Question",
    "Option",
    "Enrollment",
    "ModuleProgress",
    "QuizAttempt",
    "QuizAnswer",
    "Certificate",
    "EnrollmentStatus",
    "AttemptStatus",
    "CertificateStatus",
    "PaymentStatus",
]
