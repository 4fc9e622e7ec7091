# Overview: Enumerations shared by models, services and routes.

ROLE_ADMIN = "ADMIN"
ROLE_SELLER = "SELLER"
SELLER_ROLES = (ROLE_ADMIN, ROLE_SELLER)

PRICE_PROFILE_COST = "COST"
PRICE_PROFILE_SALE = "SALE"
PRICE_PROFILE_TYPES = (PRICE_PROFILE_COST, PRICE_PROFILE_SALE)

# Fulfillment axis
PENDING_APPROVAL = "PENDING_APPROVAL"
CONFIRMED = "CONFIRMED"
PICKED = "PICKED"
DELIVERING = "DELIVERING"
DELIVERED = "DELIVERED"
CANCELED = "CANCELED"
FULFILLMENT_STATUSES = (PENDING_APPROVAL, CONFIRMED, PICKED, DELIVERING, DELIVERED, CANCELED)
IN_DELIVERY_STATUSES = (CONFIRMED, PICKED, DELIVERING)

# Capital cycle axis
UNPAID_SUPPLIER = "UNPAID_SUPPLIER"
SUPPLIER_PAID = "SUPPLIER_PAID"
CAPITAL_CYCLE_COMPLETED = "CAPITAL_CYCLE_COMPLETED"
SUPPLIER_PAYMENT_STATUSES = (UNPAID_SUPPLIER, SUPPLIER_PAID, CAPITAL_CYCLE_COMPLETED)

# Collection axis
UNPAID = "UNPAID"
PARTIALLY_PAID = "PARTIALLY_PAID"
PAID_IN_FULL = "PAID_IN_FULL"
REFUNDED = "REFUNDED"
COLLECTION_STATUSES = (UNPAID, PARTIALLY_PAID, PAID_IN_FULL, REFUNDED)
UNCOLLECTED_STATUSES = (UNPAID, PARTIALLY_PAID)

APPROVAL_PENDING = "PENDING"
APPROVAL_APPROVED = "APPROVED"
APPROVAL_REJECTED = "REJECTED"
APPROVAL_STATUSES = (APPROVAL_PENDING, APPROVAL_APPROVED, APPROVAL_REJECTED)

DISCOUNT_NONE = "NONE"
DISCOUNT_PENDING = "PENDING"
DISCOUNT_APPROVED = "APPROVED"
DISCOUNT_REJECTED = "REJECTED"
DISCOUNT_STATUSES = (DISCOUNT_NONE, DISCOUNT_PENDING, DISCOUNT_APPROVED, DISCOUNT_REJECTED)

APPROVE_ORDER = "APPROVE_ORDER"
APPROVE_WITH_DISCOUNT = "APPROVE_WITH_DISCOUNT"
APPROVE_WITHOUT_DISCOUNT = "APPROVE_WITHOUT_DISCOUNT"
REJECT_ORDER = "REJECT_ORDER"
APPROVAL_DECISIONS = (APPROVE_ORDER, APPROVE_WITH_DISCOUNT, APPROVE_WITHOUT_DISCOUNT, REJECT_ORDER)

MAX_DISCOUNT_PERCENT = 90
MIN_LINE_WEIGHT_KG = 0.01

TREND_DAILY = "DAILY"
TREND_MONTHLY = "MONTHLY"
TREND_YEARLY = "YEARLY"
TREND_GRANULARITIES = (TREND_DAILY, TREND_MONTHLY, TREND_YEARLY)

# Starter catalog: (product name, default cost per kg)
INITIAL_PRODUCTS = (
    ("Lụa", 130_000),
    ("Thủ", 130_000),
    ("Quế", 100_000),
    ("Chiên", 100_000),
    ("Thì là", 100_000),
    ("Gân", 100_000),
    ("Giò sống", 100_000),
    ("Khô gà", 220_000),
    ("Da bao", 125_000),
    ("Nem chua", 130_000),
    ("Bò", 160_000),
)
