"""
Unified WooCommerce client that combines all specialized clients.

One instance talks to one site: WooCommerce (wc/v3) and WordPress (wp/v2)
share the same session and credentials.
"""

import logging
from typing import Any, Dict, List, Optional

from eidf_crm.utils.yoast_seo import format_seo_for_yoast

from .customer_client import WooCommerceCustomerClient
from .order_client import WooCommerceOrderClient
from .product_client import WooCommerceProductClient
from .report_client import WooCommerceReportClient
from .wordpress_client import WordPressClient

logger = logging.getLogger(__name__)


class WooCommerceClient(
    WooCommerceOrderClient,
    WooCommerceCustomerClient,
    WooCommerceProductClient,
    WooCommerceReportClient,
    WordPressClient,
):
    """
    Unified client exposing orders, customers, products, reports and WordPress content.
    """

    async def fetch_collection(self, data_type: str, modified_after: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Fetch a complete collection by cache data type.

        Args:
            data_type: orders, products, customers, posts, pages, media, comments or users
            modified_after: ISO date for incremental fetches (orders and products)

        Returns:
            List of items
        """
        if data_type == "orders":
            return await self.get_all_orders(modified_after=modified_after)
        if data_type == "products":
            return await self.get_all_products(modified_after=modified_after)
        if data_type == "customers":
            return await self.get_all_customers()
        return await self.get_wp_collection(data_type)

    async def update_product_seo(self, product_id: int, seo: Dict[str, Any]) -> Dict[str, Any]:
        """
        Write Yoast SEO fields on a product.

        Args:
            product_id: WooCommerce product id
            seo: Dict with meta_title, meta_description, keywords and focus_keyphrase

        Returns:
            Updated product
        """
        meta_data = format_seo_for_yoast(seo)
        logger.info(f"📝 Writing Yoast SEO meta on product {product_id} ({len(meta_data)} keys)")
        return await self.update_product_meta(product_id, meta_data)
