# cinebook/application/payment.py

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import uuid4


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentProof:
    payment_id: str
    signature: str
    order_ref: str | None = None


@dataclass(frozen=True)
class PaymentVerification:
    verified: bool
    payment_id: str | None = None
    reason: str | None = None


class PaymentGateway(Protocol):
    """What the booking lifecycle needs from a payment provider."""

    key_id: str | None
    currency: str

    def initiate_order(self, booking_id: str, amount_minor: int) -> str:
        ...

    def verify(self, order_ref: str, proof: PaymentProof) -> PaymentVerification:
        ...


def _hmac_signature(secret: str, order_ref: str, payment_id: str) -> str:
    message = f"{order_ref}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class SimulatedPaymentGateway:
    """
    Offline provider for development and tests. Orders are local ids and
    proofs are HMAC-SHA256 signatures of "<order_id>|<payment_id>", the same
    scheme the hosted checkout uses, so clients exercise the real flow.
    """

    def __init__(self, signing_secret: str, currency: str = "INR"):
        if not signing_secret:
            raise ValueError("signing_secret is required")
        self._secret = signing_secret
        self.currency = currency
        self.key_id = None

    def initiate_order(self, booking_id: str, amount_minor: int) -> str:
        if amount_minor <= 0:
            raise ValueError("amount must be positive")
        order_ref = f"order_{uuid4().hex[:14]}"
        logger.info(
            "Simulated order %s created for booking %s (%s %s)",
            order_ref,
            booking_id,
            amount_minor,
            self.currency,
        )
        return order_ref

    def sign(self, order_ref: str, payment_id: str) -> str:
        return _hmac_signature(self._secret, order_ref, payment_id)

    def verify(self, order_ref: str, proof: PaymentProof) -> PaymentVerification:
        expected = self.sign(order_ref, proof.payment_id)
        if not hmac.compare_digest(expected, proof.signature or ""):
            return PaymentVerification(verified=False, reason="invalid signature")
        return PaymentVerification(verified=True, payment_id=proof.payment_id)


class RazorpayGateway:
    """Razorpay orders API plus checkout signature verification."""

    def __init__(self, key_id: str, key_secret: str, currency: str = "INR", client=None):
        import razorpay

        if not key_id or not key_secret:
            raise ValueError(
                "Razorpay keys not configured. Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET."
            )
        self._errors = razorpay.errors
        self.client = client or razorpay.Client(auth=(key_id, key_secret))
        self.key_id = key_id
        self.currency = currency

    def initiate_order(self, booking_id: str, amount_minor: int) -> str:
        order = self.client.order.create(
            {
                "amount": amount_minor,
                "currency": self.currency,
                "receipt": booking_id,
            }
        )
        return order["id"]

    def verify(self, order_ref: str, proof: PaymentProof) -> PaymentVerification:
        try:
            self.client.utility.verify_payment_signature(
                {
                    "razorpay_order_id": order_ref,
                    "razorpay_payment_id": proof.payment_id,
                    "razorpay_signature": proof.signature,
                }
            )
        except self._errors.SignatureVerificationError:
            return PaymentVerification(verified=False, reason="invalid signature")
        return PaymentVerification(verified=True, payment_id=proof.payment_id)


def build_payment_gateway(settings) -> PaymentGateway:
    if settings.payment_provider == "simulated":
        return SimulatedPaymentGateway(
            settings.payment_signing_secret or "",
            currency=settings.payment_currency,
        )
    if settings.payment_provider == "razorpay":
        return RazorpayGateway(
            settings.razorpay_key_id or "",
            settings.razorpay_key_secret or "",
            currency=settings.payment_currency,
        )
    raise ValueError(f"Unknown PAYMENT_PROVIDER: {settings.payment_provider}")
