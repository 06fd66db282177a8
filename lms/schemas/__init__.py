"""
API schemas package. Import from submodules or from this package.

Example:
    from lms.schemas import StartQuizResponse, CourseProgressResponse
    from lms.schemas.quiz_schemas import StartQuizResponse
"""

from lms.schemas.auth_schemas import AuthTokenPayload
from lms.schemas.user_schemas import User
from lms.schemas.enrollment_schemas import (
    CheckoutRequest,
    CheckoutResponse,
    EnrollmentResponse,
    EnrollmentStatusResponse,
    GrantEnrollmentRequest,
    GrantEnrollmentResponse,
    PaymentMetadata,
    PaymentNotification,
    PaymentNotificationResponse,
)
from lms.schemas.progress_schemas import (
    ModuleProgressItem,
    CourseProgressResponse,
    EnrolledCourse,
    EnrolledCourseListResponse,
    CompleteModuleResponse,
)
from lms.schemas.quiz_schemas import (
    OptionView,
    QuestionView,
    StartQuizResponse,
    SaveAnswerRequest,
    SaveAnswerResponse,
    SubmitQuizResponse,
)
from lms.schemas.certificate_schemas import (
    CertificateResponse,
    CertificateListResponse,
    MarkGeneratedRequest,
)

__all__ = [
    # auth
    "AuthTokenPayload",
    # user
    "User",
    # enrollment
    "CheckoutRequest",
    "CheckoutResponse",
    "EnrollmentResponse",
    "EnrollmentStatusResponse",
    "GrantEnrollmentRequest",
    "GrantEnrollmentResponse",
    "PaymentMetadata",
    "PaymentNotification",
    "PaymentNotificationResponse",
    # progress
    "ModuleProgressItem",
    "CourseProgressResponse",
    "EnrolledCourse",
    "EnrolledCourseListResponse",
    "CompleteModuleResponse",
    # quiz
    "OptionView",
    "QuestionView",
    "StartQuizResponse",
    "SaveAnswerRequest",
    "SaveAnswerResponse",
    "SubmitQuizResponse",
    # certificate
    "CertificateResponse",
    "CertificateListResponse",
    "MarkGeneratedRequest",
]
