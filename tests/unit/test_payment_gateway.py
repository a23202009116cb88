from types import SimpleNamespace

import pytest

from cinebook.application.payment import (
    PaymentProof,
    RazorpayGateway,
    SimulatedPaymentGateway,
    build_payment_gateway,
)
from cinebook.config import Settings


def test_simulated_gateway_accepts_its_own_signature():
    gateway = SimulatedPaymentGateway("secret")
    order_ref = gateway.initiate_order("booking-1", 73800)

    verification = gateway.verify(
        order_ref,
        PaymentProof(payment_id="pay_1", signature=gateway.sign(order_ref, "pay_1")),
    )

    assert order_ref.startswith("order_")
    assert verification.verified
    assert verification.payment_id == "pay_1"


def test_simulated_gateway_rejects_tampered_signature():
    gateway = SimulatedPaymentGateway("secret")
    order_ref = gateway.initiate_order("booking-1", 73800)
    signature = gateway.sign(order_ref, "pay_1")

    verification = gateway.verify(order_ref, PaymentProof("pay_2", signature))

    assert not verification.verified
    assert verification.reason == "invalid signature"


def test_simulated_gateway_requires_positive_amount():
    with pytest.raises(ValueError):
        SimulatedPaymentGateway("secret").initiate_order("booking-1", 0)


def test_simulated_gateway_requires_secret():
    with pytest.raises(ValueError):
        SimulatedPaymentGateway("")


def test_build_rejects_unknown_provider():
    with pytest.raises(ValueError):
        build_payment_gateway(Settings(database_url="sqlite://", payment_provider="paypal"))


def test_build_simulated_provider():
    gateway = build_payment_gateway(
        Settings(
            database_url="sqlite://",
            payment_provider="simulated",
            payment_signing_secret="secret",
            payment_currency="USD",
        )
    )

    assert isinstance(gateway, SimulatedPaymentGateway)
    assert gateway.currency == "USD"


class _FakeRazorpayClient:
    def __init__(self, signature_error):
        self.created = []
        self._signature_error = signature_error
        self.order = SimpleNamespace(create=self._create_order)
        self.utility = SimpleNamespace(verify_payment_signature=self._verify)

    def _create_order(self, payload):
        self.created.append(payload)
        return {"id": "order_rzp_1"}

    def _verify(self, params):
        if params["razorpay_signature"] != "good":
            raise self._signature_error("Razorpay Signature Verification Failed")
        return True


def test_razorpay_gateway_uses_orders_api_and_signature_check():
    razorpay = pytest.importorskip("razorpay")
    client = _FakeRazorpayClient(razorpay.errors.SignatureVerificationError)
    gateway = RazorpayGateway("rzp_test_key", "rzp_test_secret", client=client)

    order_ref = gateway.initiate_order("booking-1", 73800)

    assert order_ref == "order_rzp_1"
    assert client.created == [
        {"amount": 73800, "currency": "INR", "receipt": "booking-1"}
    ]
    assert gateway.verify(order_ref, PaymentProof("pay_1", "good")).verified
    assert not gateway.verify(order_ref, PaymentProof("pay_1", "bad")).verified


def test_razorpay_gateway_requires_keys():
    pytest.importorskip("razorpay")
    with pytest.raises(ValueError):
        RazorpayGateway("", "")
