"""
Lifecycle states for enrollments, quiz attempts and certificates.
"""

from enum import Enum


class EnrollmentStatus(str, Enum):
    """Payment / access state of an enrollment."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class AttemptStatus(str, Enum):
    """Quiz attempt state. COMPLETED is terminal."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    def can_transition_to(self, target: "AttemptStatus") -> bool:
        return self is AttemptStatus.IN_PROGRESS and target is AttemptStatus.COMPLETED


class CertificateStatus(str, Enum):
    """Certificate state. GENERATED is set by the external renderer."""
    PENDING = "pending"
    GENERATED = "generated"


class PaymentStatus(str, Enum):
    """Transaction statuses reported by a payment provider notification."""
    SETTLEMENT = "settlement"
    CAPTURE = "capture"
    PENDING = "pending"
    EXPIRE = "expire"
    CANCEL = "cancel"
    DENY = "deny"

    @classmethod
    def parse(cls, value: str | None) -> "PaymentStatus | None":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None

    @property
    def is_paid(self) -> bool:
        return self in (PaymentStatus.SETTLEMENT, PaymentStatus.CAPTURE)

    @property
    def is_failed(self) -> bool:
        return self in (PaymentStatus.EXPIRE, PaymentStatus.CANCEL, PaymentStatus.DENY)
