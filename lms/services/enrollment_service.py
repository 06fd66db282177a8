"""
Enrollment ledger: the access grant per (user, course).

One row per (user, course), enforced by a unique constraint. Rows are created
`pending` at checkout or `success` by an admin grant, move to `success` on
payment confirmation and to `failed` on expiry/cancel/deny. Rows are never
deleted and a `success` row is never downgraded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session as DBSession

from lms.errors import AccessDenied, AlreadyEnrolled, ExternalServiceError, LearningError, NotFound, ValidationError
from lms.models.models import Course, Enrollment, User
from lms.models.status import EnrollmentStatus, PaymentStatus
from lms.services.payment_gateway import CheckoutOrder, CheckoutSession, PaymentGateway
from lms.utils.common import insert_unique, new_id, utcnow
from lms.utils.logger import configure_logging, log_request

logger = configure_logging()


@dataclass
class CheckoutResult:
    enrollment: Enrollment
    session: CheckoutSession
    original_price: Decimal
    discount_amount: Decimal
    final_price: Decimal


class EnrollmentLedger:
    """Creates, reconciles and activates enrollments."""

    def __init__(self, db: DBSession):
        self.db = db

    def get(self, user_id: int, course_id: str) -> Enrollment | None:
        return (
            self.db.query(Enrollment)
            .filter(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
            .first()
        )

    def is_active_for(self, user_id: int, course_id: str) -> bool:
        """Access-control predicate: True only for a `success` enrollment."""
        return (
            self.db.query(Enrollment.id)
            .filter(
                Enrollment.user_id == user_id,
                Enrollment.course_id == course_id,
                Enrollment.status == EnrollmentStatus.SUCCESS,
            )
            .first()
            is not None
        )

    def require_active(self, user_id: int, course_id: str) -> None:
        if not self.is_active_for(user_id, course_id):
            raise AccessDenied("Not enrolled in this course")

    def grant_or_reconcile(
        self,
        user_id: int,
        course_id: str,
        *,
        status: EnrollmentStatus | str = EnrollmentStatus.PENDING,
        external_ref: str | None = None,
        amount_paid: Decimal | float | None = None,
        enrolled_at: datetime | None = None,
    ) -> tuple[Enrollment, bool]:
        """
        Upsert the enrollment for (user, course). Returns (enrollment, created).

        A new row gets `status`. An existing non-success row is reused: its
        status, external ref, enrolled-at (and amount, when given) are updated.
        An existing success row raises AlreadyEnrolled.
        """
        status = EnrollmentStatus(status)
        self._require_user(user_id)
        self._require_course(course_id)

        existing = self.get(user_id, course_id)
        if existing is None:
            row = Enrollment(
                id=new_id("EN"),
                user_id=user_id,
                course_id=course_id,
                status=status,
                external_ref=external_ref,
                amount_paid=amount_paid if amount_paid is not None else 0,
                enrolled_at=enrolled_at,
            )
            if insert_unique(self.db, row):
                logger.info(
                    "enrollment created id=%s user_id=%s course_id=%s status=%s ref=%s",
                    row.id, user_id, course_id, status.value, external_ref,
                )
                return row, True
            logger.warning(
                "enrollment insert conflict user_id=%s course_id=%s; reconciling existing row",
                user_id, course_id,
            )
            existing = self.get(user_id, course_id)
            if existing is None:
                raise LearningError("Enrollment insert rejected by the database")

        return self._reconcile(existing, status, external_ref, amount_paid, enrolled_at), False

    def _reconcile(
        self,
        enrollment: Enrollment,
        status: EnrollmentStatus,
        external_ref: str | None,
        amount_paid: Decimal | float | None,
        enrolled_at: datetime | None,
    ) -> Enrollment:
        if enrollment.status == EnrollmentStatus.SUCCESS:
            raise AlreadyEnrolled()

        values = {Enrollment.status: status, Enrollment.updated_at: utcnow()}
        if external_ref is not None:
            values[Enrollment.external_ref] = external_ref
        if amount_paid is not None:
            values[Enrollment.amount_paid] = amount_paid
        if enrolled_at is not None:
            values[Enrollment.enrolled_at] = enrolled_at

        # Conditional update: a concurrent activation must not be overwritten.
        updated = (
            self.db.query(Enrollment)
            .filter(Enrollment.id == enrollment.id, Enrollment.status != EnrollmentStatus.SUCCESS)
            .update(values, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(enrollment)
        if updated != 1:
            raise AlreadyEnrolled()
        logger.info(
            "enrollment reconciled id=%s user_id=%s course_id=%s status=%s ref=%s",
            enrollment.id, enrollment.user_id, enrollment.course_id, status.value, enrollment.external_ref,
        )
        return enrollment

    def activate_by_external_ref(self, external_ref: str | None, user_id: int, course_id: str) -> Enrollment | None:
        """
        Mark the enrollment paid. Idempotent.

        The external ref is authoritative; when it is unknown locally the most
        recent pending row for (user, course) is activated instead. Returns None
        when nothing matches, so a stray notification is acknowledged and dropped.
        """
        enrollment = None
        if external_ref:
            enrollment = (
                self.db.query(Enrollment)
                .filter(Enrollment.external_ref == external_ref)
                .order_by(Enrollment.created_at.desc())
                .first()
            )
        if enrollment is None:
            logger.warning(
                "activation ref not found ref=%s; falling back to pending enrollment user_id=%s course_id=%s",
                external_ref, user_id, course_id,
            )
            enrollment = (
                self.db.query(Enrollment)
                .filter(
                    Enrollment.user_id == user_id,
                    Enrollment.course_id == course_id,
                    Enrollment.status == EnrollmentStatus.PENDING,
                )
                .order_by(Enrollment.created_at.desc())
                .first()
            )
        if enrollment is None:
            # Replayed notification for an enrollment activated under another ref.
            active = self.get(user_id, course_id)
            if active is not None and active.status == EnrollmentStatus.SUCCESS:
                logger.info("activation no-op id=%s already success", active.id)
                return active
            logger.warning(
                "activation no-op ref=%s user_id=%s course_id=%s: no matching enrollment",
                external_ref, user_id, course_id,
            )
            return None

        if enrollment.status == EnrollmentStatus.SUCCESS:
            logger.info("activation no-op id=%s already success ref=%s", enrollment.id, external_ref)
            return enrollment

        now = utcnow()
        values = {
            Enrollment.status: EnrollmentStatus.SUCCESS,
            Enrollment.enrolled_at: now,
            Enrollment.updated_at: now,
        }
        if external_ref and not enrollment.external_ref:
            values[Enrollment.external_ref] = external_ref
        updated = (
            self.db.query(Enrollment)
            .filter(Enrollment.id == enrollment.id, Enrollment.status != EnrollmentStatus.SUCCESS)
            .update(values, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(enrollment)
        if updated == 1:
            logger.info(
                "enrollment activated id=%s user_id=%s course_id=%s ref=%s",
                enrollment.id, enrollment.user_id, enrollment.course_id, enrollment.external_ref,
            )
        else:
            logger.info("activation no-op id=%s activated concurrently", enrollment.id)
        return enrollment

    def mark_failed(self, external_ref: str) -> Enrollment | None:
        """
        Move a pending enrollment to `failed`. Success rows are left untouched.

        Returns None for an order no enrollment carries any more, e.g. one a
        checkout retry replaced.
        """
        enrollment = (
            self.db.query(Enrollment)
            .filter(Enrollment.external_ref == external_ref)
            .order_by(Enrollment.created_at.desc())
            .first()
        )
        if enrollment is None:
            logger.info("mark failed no-op ref=%s: no enrollment carries this order", external_ref)
            return None
        if enrollment.status != EnrollmentStatus.PENDING:
            logger.info("mark failed no-op id=%s status=%s", enrollment.id, enrollment.status.value)
            return enrollment

        updated = (
            self.db.query(Enrollment)
            .filter(Enrollment.id == enrollment.id, Enrollment.status == EnrollmentStatus.PENDING)
            .update(
                {Enrollment.status: EnrollmentStatus.FAILED, Enrollment.updated_at: utcnow()},
                synchronize_session=False,
            )
        )
        self.db.commit()
        self.db.refresh(enrollment)
        if updated == 1:
            logger.info("enrollment failed id=%s ref=%s", enrollment.id, external_ref)
        return enrollment

    def apply_payment_status(
        self,
        external_ref: str,
        transaction_status: str,
        fraud_status: str | None = None,
        user_id: int | None = None,
        course_id: str | None = None,
    ) -> Enrollment | None:
        """Apply a provider notification. Returns the touched enrollment, or None for a no-op."""
        if not external_ref:
            raise ValidationError("Payment notification has no order id")
        status = PaymentStatus.parse(transaction_status)
        if status is None:
            logger.info("payment status ignored ref=%s status=%s", external_ref, transaction_status)
            return None

        if status.is_paid:
            if fraud_status and fraud_status.strip().lower() != "accept":
                logger.warning("payment not activated ref=%s fraud_status=%s", external_ref, fraud_status)
                return None
            if user_id is None or not course_id:
                raise ValidationError("Payment notification is missing user_id or course_id")
            return self.activate_by_external_ref(external_ref, user_id, course_id)
        if status.is_failed:
            return self.mark_failed(external_ref)

        logger.info("payment still pending ref=%s", external_ref)
        return None

    def start_checkout(self, user_id: int, course_id: str, gateway: PaymentGateway) -> CheckoutResult:
        """
        Open a paid checkout for the course.

        The provider transaction is created before the ledger is touched, so a
        provider failure leaves the enrollment in its prior state.
        """
        user = self._require_user(user_id)
        course = self._require_course(course_id)

        original = Decimal(course.price or 0)
        discount = Decimal(course.discount_amount or 0)
        final = original - discount
        if final < 0:
            raise ValidationError("Discount exceeds the course price")
        if final == 0:
            raise ValidationError("Free courses are granted by an administrator")

        existing = self.get(user_id, course_id)
        if existing is not None and existing.status == EnrollmentStatus.SUCCESS:
            raise AlreadyEnrolled()
        if existing is not None and existing.external_ref:
            self._cancel_quietly(gateway, existing.external_ref)

        order = CheckoutOrder(
            order_id=new_id("TRX"),
            amount=final,
            course_id=course.id,
            course_title=course.title,
            user_id=user.id,
            customer_email=user.email,
            customer_name=user.full_name,
        )
        with log_request(logger, f"gateway.create_transaction order_id={order.order_id}"):
            session = gateway.create_transaction(order)

        try:
            enrollment, _ = self.grant_or_reconcile(
                user_id,
                course_id,
                status=EnrollmentStatus.PENDING,
                external_ref=order.order_id,
                amount_paid=final,
            )
        except AlreadyEnrolled:
            self._cancel_quietly(gateway, order.order_id)
            raise

        return CheckoutResult(
            enrollment=enrollment,
            session=session,
            original_price=original,
            discount_amount=discount,
            final_price=final,
        )

    def _cancel_quietly(self, gateway: PaymentGateway, order_id: str) -> None:
        try:
            gateway.cancel_transaction(order_id)
        except ExternalServiceError as e:
            logger.warning("gateway cancel failed order_id=%s error=%s", order_id, e.detail)

    def _require_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFound("User not found")
        return user

    def _require_course(self, course_id: str) -> Course:
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if course is None:
            raise NotFound("Course not found")
        return course
