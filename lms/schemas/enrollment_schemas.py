"""
Enrollment, checkout and payment notification schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional


class CheckoutRequest(BaseModel):
    course_id: str


class CheckoutResponse(BaseModel):
    message: str
    order_id: str
    enrollment_id: str
    status: str
    original_price: float
    discount_amount: float
    final_price: float
    token: str
    redirect_url: str


class EnrollmentResponse(BaseModel):
    id: str
    user_id: int
    course_id: str
    status: str
    external_ref: Optional[str] = None
    amount_paid: float
    enrolled_at: Optional[str] = None  # ISO when access was granted


class EnrollmentStatusResponse(BaseModel):
    course_id: str
    is_active: bool
    status: Optional[str] = None  # None when the user never started a checkout
    enrolled_at: Optional[str] = None


class GrantEnrollmentRequest(BaseModel):
    user_id: int
    course_id: str


class GrantEnrollmentResponse(BaseModel):
    enrollment: EnrollmentResponse
    created: bool


class PaymentMetadata(BaseModel):
    user_id: Optional[int] = None
    course_id: Optional[str] = None


class PaymentNotification(BaseModel):
    """Provider-neutral payment notification."""
    order_id: str
    transaction_status: str
    fraud_status: Optional[str] = None
    metadata: PaymentMetadata = Field(default_factory=PaymentMetadata)


class PaymentNotificationResponse(BaseModel):
    message: str
    enrollment_id: Optional[str] = None
    status: Optional[str] = None
