"""
Payment gateway contract.

The learning core never talks to a payment provider directly. Checkout goes
through this narrow interface; provider adapters live outside this package.
Implementations must raise `ExternalServiceError` for any provider failure.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal

from lms.errors import ExternalServiceError


@dataclass(frozen=True)
class CheckoutOrder:
    order_id: str
    amount: Decimal
    course_id: str
    course_title: str
    user_id: int
    customer_email: str
    customer_name: str | None = None


@dataclass(frozen=True)
class CheckoutSession:
    order_id: str
    token: str
    redirect_url: str


class PaymentGateway(ABC):
    """Outbound payment provider."""

    @abstractmethod
    def create_transaction(self, order: CheckoutOrder) -> CheckoutSession:
        """Open a provider transaction for `order`."""
        raise NotImplementedError

    @abstractmethod
    def cancel_transaction(self, order_id: str) -> None:
        """Cancel a previously created transaction. Unknown ids are not an error."""
        raise NotImplementedError


@dataclass
class SandboxPaymentGateway(PaymentGateway):
    """
    Offline gateway for local development and tests.

    Issues a deterministic token per order id and records what was created
    and cancelled. `fail_next` makes the next create_transaction raise.
    """

    base_url: str = "https://sandbox.payments.local/checkout"
    created: dict[str, CheckoutOrder] = field(default_factory=dict)
    cancelled: list[str] = field(default_factory=list)
    fail_next: bool = False

    def create_transaction(self, order: CheckoutOrder) -> CheckoutSession:
        if self.fail_next:
            self.fail_next = False
            raise ExternalServiceError("Payment provider unavailable")
        if order.amount <= 0:
            raise ExternalServiceError("Payment provider rejected a non-positive amount")
        token = hashlib.sha256(order.order_id.encode("utf-8")).hexdigest()[:32]
        self.created[order.order_id] = order
        return CheckoutSession(order_id=order.order_id, token=token, redirect_url=f"{self.base_url}/{token}")

    def cancel_transaction(self, order_id: str) -> None:
        self.cancelled.append(order_id)


def build_payment_gateway(name: str) -> PaymentGateway:
    if (name or "").lower() == "sandbox":
        return SandboxPaymentGateway()
    raise ValueError(f"Unknown payment gateway: {name}")
