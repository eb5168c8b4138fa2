# marketplace/services/sms_service.py
import logging
from enum import Enum
from typing import Dict, Optional

import requests

from marketplace.config import settings

logger = logging.getLogger(__name__)

MSG91_OTP_URL = "https://control.msg91.com/api/v5/otp"
MSG91_FLOW_URL = "https://control.msg91.com/api/v5/flow"


class SmsTemplate(str, Enum):
    otp = "otp"
    order_confirmation = "order_confirmation"
    shipping_update = "shipping_update"
    delivery_confirmation = "delivery_confirmation"


class SmsNotifier:
    """
    Sends SMS through MSG91.

    ``send`` never raises: delivery problems are logged and reported as
    ``False`` so the calling workflow carries on.
    """

    def __init__(
        self,
        api_key: Optional[str],
        sender_id: str,
        template_ids: Dict[SmsTemplate, Optional[str]],
        env: str = "local",
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.sender_id = sender_id
        self.template_ids = template_ids
        self.env = env
        self.timeout = timeout

    def send(self, phone: str, template: SmsTemplate, variables: Dict[str, str]) -> bool:
        template = SmsTemplate(template)

        if self.env == "local":
            logger.info(f"[DEV MODE] SMS {template.value} to {phone}: {variables}")
            return True

        if not self.api_key:
            logger.warning("MSG91 API key not configured. SMS not sent.")
            return False

        template_id = self.template_ids.get(template)
        if not template_id:
            logger.info(f"[SMS TEMPLATE NOT SET] {template.value} for {phone}: {variables}")
            return True

        try:
            if template == SmsTemplate.otp:
                response = requests.post(
                    MSG91_OTP_URL,
                    params={
                        "authkey": self.api_key,
                        "template_id": template_id,
                        "mobile": f"91{phone}",
                        "otp": variables["otp"],
                        "sender": self.sender_id,
                    },
                    timeout=self.timeout,
                )
            else:
                response = requests.post(
                    MSG91_FLOW_URL,
                    json={
                        "flow_id": template_id,
                        "sender": self.sender_id,
                        "mobiles": f"91{phone}",
                        **variables,
                    },
                    headers={"authkey": self.api_key, "Content-Type": "application/json"},
                    timeout=self.timeout,
                )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"SMS {template.value} to {phone} failed: {e}")
            return False

        if data.get("type") != "success":
            logger.error(f"MSG91 error for {template.value} to {phone}: {data.get('message')}")
            return False

        logger.info(f"SMS {template.value} sent to {phone}")
        return True


sms_notifier = SmsNotifier(
    api_key=settings.MSG91_API_KEY,
    sender_id=settings.MSG91_SENDER_ID,
    template_ids={
        SmsTemplate.otp: settings.MSG91_OTP_TEMPLATE_ID,
        SmsTemplate.order_confirmation: settings.MSG91_ORDER_TEMPLATE_ID,
        SmsTemplate.shipping_update: settings.MSG91_SHIPPING_TEMPLATE_ID,
        SmsTemplate.delivery_confirmation: settings.MSG91_DELIVERY_TEMPLATE_ID,
    },
    env=settings.ENV,
    timeout=settings.SMS_TIMEOUT_SECONDS,
)


def get_notifier() -> SmsNotifier:
    return sms_notifier
