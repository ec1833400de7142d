"""
Payment gateway adapter.

Orders are opened through the Razorpay API when RAZORPAY_KEY_ID is set.
Without a key id the gateway is simulated so local development and demos
work offline. A payment signature is an HMAC-SHA256 of
``"<gateway order id>|<gateway payment id>"`` keyed with the key secret;
with a key id the SDK's own verifier checks it, otherwise ``sign`` does.
"""
import hashlib
import hmac
import logging
import uuid
from typing import Optional

from fastapi import Request

from settings import Settings

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    pass


def sign(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    message = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class PaymentGateway:
    def __init__(self, key_id: Optional[str], key_secret: str):
        self.key_id = key_id
        self.key_secret = key_secret
        self._client = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaymentGateway":
        return cls(settings.razorpay_key_id, settings.razorpay_key_secret)

    @property
    def simulated(self) -> bool:
        return not self.key_id

    @property
    def client(self):
        if self._client is None:
            import razorpay

            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._client

    def create_order(self, amount: int, currency: str, receipt: str) -> dict:
        """Open a gateway order. ``amount`` is in minor currency units (paise)."""
        if self.simulated:
            logger.warning("Gateway key not configured, simulating order for receipt %s", receipt)
            return {"id": f"order_{uuid.uuid4().hex[:14]}", "amount": amount, "currency": currency,
                    "receipt": receipt, "status": "created"}
        try:
            return self.client.order.create(data={"amount": amount, "currency": currency, "receipt": receipt})
        except Exception as e:
            logger.exception("Gateway order creation failed for receipt %s", receipt)
            raise GatewayError(str(e)) from e

    def verify_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        if self.simulated:
            expected = sign(self.key_secret, gateway_order_id, gateway_payment_id)
            return hmac.compare_digest(expected.encode(), signature.encode())
        from razorpay.errors import SignatureVerificationError

        try:
            self.client.utility.verify_payment_signature({
                "razorpay_order_id": gateway_order_id,
                "razorpay_payment_id": gateway_payment_id,
                "razorpay_signature": signature,
            })
        except SignatureVerificationError:
            return False
        return True


def get_gateway(request: Request) -> PaymentGateway:
    return request.app.state.gateway
