"""
WooCommerce / WordPress REST clients organized by responsibility.

Each specialized client covers one resource family; WooCommerceClient
combines them behind a single session per site.
"""

from .base_client import BaseWooCommerceClient
from .customer_client import WooCommerceCustomerClient
from .order_client import WooCommerceOrderClient
from .product_client import WooCommerceProductClient
from .report_client import WooCommerceReportClient
from .unified_client import WooCommerceClient
from .wordpress_client import WordPressClient

__all__ = [
    "BaseWooCommerceClient",
    "WooCommerceOrderClient",
    "WooCommerceCustomerClient",
    "WooCommerceProductClient",
    "WooCommerceReportClient",
    "WordPressClient",
    "WooCommerceClient",
]
