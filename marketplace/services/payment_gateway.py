import logging
from typing import Any, Dict, Optional

import razorpay
import requests

from marketplace.config import settings
from marketplace.errors import ExternalServiceFailure

logger = logging.getLogger(__name__)


class RazorpayGateway:
    def __init__(self, key_id: Optional[str], key_secret: Optional[str]):
        self.key_id = key_id
        self.client = None
        if key_id and key_secret:
            self.client = razorpay.Client(auth=(key_id, key_secret))
        else:
            logger.warning("Razorpay credentials not configured. Payment features will be disabled.")

    def _require_client(self):
        if self.client is None:
            raise ExternalServiceFailure("Razorpay", "payment service not configured")
        return self.client

    def create_order(self, amount: float, receipt: str) -> Dict[str, Any]:
        """Create a gateway order; Razorpay expects the amount in paise."""
        client = self._require_client()
        try:
            return client.order.create(
                {
                    "amount": int(round(amount * 100)),
                    "currency": "INR",
                    "receipt": receipt,
                    "payment_capture": 1,
                }
            )
        except (razorpay.errors.BadRequestError, razorpay.errors.ServerError,
                razorpay.errors.GatewayError, requests.RequestException) as e:
            logger.error(f"Razorpay order creation failed for {receipt}: {e}")
            raise ExternalServiceFailure("Razorpay", str(e))

    def verify_signature(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        client = self._require_client()
        try:
            client.utility.verify_payment_signature({
                "razorpay_order_id": gateway_order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            })
        except razorpay.errors.SignatureVerificationError:
            return False
        return True

    def refund(self, payment_id: str, amount: float, receipt: str) -> Dict[str, Any]:
        """Refund part or all of a captured payment; amount in rupees."""
        client = self._require_client()
        try:
            return client.payment.refund(
                payment_id,
                {
                    "amount": int(round(amount * 100)),
                    "notes": {"order_number": receipt},
                },
            )
        except (razorpay.errors.BadRequestError, razorpay.errors.ServerError,
                razorpay.errors.GatewayError, requests.RequestException) as e:
            logger.error(f"Razorpay refund failed for {receipt} ({payment_id}): {e}")
            raise ExternalServiceFailure("Razorpay", str(e))


payment_gateway = RazorpayGateway(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)


def get_payment_gateway() -> RazorpayGateway:
    return payment_gateway
