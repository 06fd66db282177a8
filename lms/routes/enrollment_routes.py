"""
Enrollment endpoints: checkout, payment notifications, admin grants, status.
"""

from fastapi import APIRouter, Depends

from lms.bootstrap import LearningServices, get_payment_gateway, get_services
from lms.models.models import Enrollment
from lms.models.status import EnrollmentStatus
from lms.schemas.enrollment_schemas import (
    CheckoutRequest,
    CheckoutResponse,
    EnrollmentResponse,
    EnrollmentStatusResponse,
    GrantEnrollmentRequest,
    GrantEnrollmentResponse,
    PaymentNotification,
    PaymentNotificationResponse,
)
from lms.schemas.user_schemas import User
from lms.services.payment_gateway import PaymentGateway
from lms.utils.auth import get_current_user, require_admin, verify_webhook_secret
from lms.utils.common import iso_format, utcnow

enrollment_routes = APIRouter()


def enrollment_response(e: Enrollment) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=e.id,
        user_id=e.user_id,
        course_id=e.course_id,
        status=EnrollmentStatus(e.status).value,
        external_ref=e.external_ref,
        amount_paid=float(e.amount_paid or 0),
        enrolled_at=iso_format(e.enrolled_at),
    )


@enrollment_routes.post("/learn/checkout", response_model=CheckoutResponse, status_code=201)
async def checkout(
    req: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    services: LearningServices = Depends(get_services),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CheckoutResponse:
    """Open a payment for the course. Retrying reuses the same enrollment row."""
    result = services.ledger.start_checkout(current_user.id, req.course_id, gateway)
    return CheckoutResponse(
        message="Checkout session created",
        order_id=result.session.order_id,
        enrollment_id=result.enrollment.id,
        status=EnrollmentStatus(result.enrollment.status).value,
        original_price=float(result.original_price),
        discount_amount=float(result.discount_amount),
        final_price=float(result.final_price),
        token=result.session.token,
        redirect_url=result.session.redirect_url,
    )


@enrollment_routes.get("/learn/courses/{course_id}/enrollment", response_model=EnrollmentStatusResponse)
async def enrollment_status(
    course_id: str,
    current_user: User = Depends(get_current_user),
    services: LearningServices = Depends(get_services),
) -> EnrollmentStatusResponse:
    e = services.ledger.get(current_user.id, course_id)
    return EnrollmentStatusResponse(
        course_id=course_id,
        is_active=services.ledger.is_active_for(current_user.id, course_id),
        status=EnrollmentStatus(e.status).value if e is not None else None,
        enrolled_at=iso_format(e.enrolled_at) if e is not None else None,
    )


@enrollment_routes.post("/admin/enrollments", response_model=GrantEnrollmentResponse)
async def grant_enrollment(
    req: GrantEnrollmentRequest,
    admin: User = Depends(require_admin),
    services: LearningServices = Depends(get_services),
) -> GrantEnrollmentResponse:
    """Manual enrollment by an administrator."""
    enrollment, created = services.ledger.grant_or_reconcile(
        req.user_id,
        req.course_id,
        status=EnrollmentStatus.SUCCESS,
        enrolled_at=utcnow(),
    )
    return GrantEnrollmentResponse(enrollment=enrollment_response(enrollment), created=created)


@enrollment_routes.post(
    "/webhooks/payments",
    response_model=PaymentNotificationResponse,
    dependencies=[Depends(verify_webhook_secret)],
)
async def payment_notification(
    notification: PaymentNotification,
    services: LearningServices = Depends(get_services),
) -> PaymentNotificationResponse:
    """Payment provider callback. Safe to deliver more than once."""
    enrollment = services.ledger.apply_payment_status(
        notification.order_id,
        notification.transaction_status,
        fraud_status=notification.fraud_status,
        user_id=notification.metadata.user_id,
        course_id=notification.metadata.course_id,
    )
    return PaymentNotificationResponse(
        message="Notification processed",
        enrollment_id=enrollment.id if enrollment is not None else None,
        status=EnrollmentStatus(enrollment.status).value if enrollment is not None else None,
    )
