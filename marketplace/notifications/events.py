from enum import Enum


class NotificationEvent(str, Enum):
    OTP_REQUESTED = "otp_requested"
    ORDER_PLACED = "order_placed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
