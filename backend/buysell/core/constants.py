"""
Marketplace-wide enumerations and limits
"""
from decimal import Decimal

# Users
USER_ROLES = ("customer", "seller", "admin", "moderator")
SIGNUP_ROLES = ("customer", "seller")
SELLER_STATUSES = ("pending", "approved", "rejected", "suspended")
SELLER_ACTIONS = {
    "approve": "approved",
    "reject": "rejected",
    "suspend": "suspended",
}

# Orders
ORDER_STATUSES = (
    "pending",
    "confirmed",
    "processing",
    "shipped",
    "delivered",
    "cancelled",
    "refunded",
    "payment_failed",
)
CANCELLABLE_STATUSES = ("pending", "confirmed")
ORDER_PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded", "partially_refunded")
ORDER_PAYMENT_METHODS = ("card", "mobile_money", "cash_on_delivery")
SHIPPING_METHODS = ("standard", "express", "pickup")
ORDER_SORT_FIELDS = ("created_at", "total_amount")

# Payments
PAYMENT_PROVIDERS = ("cash", "orange_money", "mtn_money", "wave", "stripe")
MOBILE_MONEY_PROVIDERS = ("orange_money", "mtn_money", "wave")
CARD_PROVIDERS = ("stripe",)

# Which order-level method a provider belongs to
PROVIDER_ORDER_METHOD = {
    "cash": "cash_on_delivery",
    "orange_money": "mobile_money",
    "mtn_money": "mobile_money",
    "wave": "mobile_money",
    "stripe": "card",
}

IN_FLIGHT_PAYMENT_STATUSES = ("initiated", "pending", "processing", "pending_cash")
FINAL_PAYMENT_STATUSES = ("succeeded", "failed", "cancelled", "refunded", "fully_refunded")
REFUNDABLE_PAYMENT_STATUSES = ("succeeded", "partially_refunded")

# Coupons
DISCOUNT_TYPES = ("percentage", "fixed", "free_shipping")

# Products
PRODUCT_SORT_FIELDS = {
    "created_at": "p.created_at",
    "price": "p.price",
    "name": "p.name",
    "rating": "p.rating",
}
SELLER_PRODUCT_FILTERS = ("all", "published", "draft", "out_of_stock")
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")

# Notifications
NOTIFICATION_TYPES = (
    "WELCOME",
    "ORDER_CREATED",
    "ORDER_STATUS_UPDATED",
    "ORDER_CANCELLED",
    "PAYMENT_SUCCESS",
    "PAYMENT_FAILED",
    "PAYMENT_REFUNDED",
    "LOW_STOCK_ALERT",
    "SELLER_STATUS_UPDATED",
    "SECURITY_ALERT",
    "ANNOUNCEMENT",
)

# Analytics
ANALYTICS_PERIODS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
DEFAULT_ANALYTICS_PERIOD = "30d"
# Orders counted as sales; pending, cancelled, refunded and failed ones are not
SALES_ORDER_STATUSES = ("confirmed", "processing", "shipped", "delivered")
TOP_PRODUCTS_LIMIT = 10

# Limits
MAX_CART_ITEMS = 50
MAX_ORDER_ITEMS = 100
MIN_PASSWORD_LENGTH = 8
MAX_PAGE_SIZE = 100
MIN_PAYMENT_AMOUNT = Decimal("100")

# West / Central Africa plus the two card-only markets we ship to
COUNTRIES = ("SN", "CI", "ML", "BF", "GN", "NE", "TG", "BJ", "CM", "FR", "US")
