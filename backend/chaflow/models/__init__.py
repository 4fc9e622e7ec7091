from .sellers import Seller, SellerSession
from .catalog import Product, PriceProfile, PriceProfileItem
from .customers import Customer
from .orders import Order, OrderLine
from .order_links import CustomerOrderLink, CustomerOrderLinkItem

__all__ = [
    'Seller', 'SellerSession',
    'Product', 'PriceProfile', 'PriceProfileItem',
    'Customer',
    'Order', 'OrderLine',
    'CustomerOrderLink', 'CustomerOrderLinkItem',
]
