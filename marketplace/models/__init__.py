from marketplace.models.user import User
from marketplace.models.vendor import Vendor
from marketplace.models.product import Product, ProductVariant
from marketplace.models.cart import Cart, CartItem
from marketplace.models.order_item import OrderItem
from marketplace.models.order import Order
from marketplace.models.order_event import OrderEvent, OrderEventType
from marketplace.models.ticket import Ticket
from marketplace.models.coupon import Coupon
from marketplace.models.counter import Counter

# add ALL models here
