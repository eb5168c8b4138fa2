from marketplace.notifications.events import NotificationEvent
from marketplace.services.sms_service import SmsTemplate


# which SMS template each lifecycle event sends
NOTIFICATION_RULES = {
    NotificationEvent.OTP_REQUESTED: SmsTemplate.otp,
    NotificationEvent.ORDER_PLACED: SmsTemplate.order_confirmation,
    NotificationEvent.SHIPPED: SmsTemplate.shipping_update,
    NotificationEvent.DELIVERED: SmsTemplate.delivery_confirmation,
}
