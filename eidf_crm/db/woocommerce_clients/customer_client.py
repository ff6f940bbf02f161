"""
WooCommerce client for customer operations.
"""

import logging
from typing import Any, Dict, List, Optional

from .base_client import BaseWooCommerceClient

logger = logging.getLogger(__name__)


class WooCommerceCustomerClient(BaseWooCommerceClient):
    """
    Specialized client for WooCommerce customers.
    """

    async def get_all_customers(
        self, role: Optional[str] = None, search: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Fetch every customer, most recently registered first.

        Args:
            role: WordPress role (defaults to "customer")
            search: Free text search

        Returns:
            List of customers
        """
        params = {
            "orderby": "registered_date",
            "order": "desc",
            "role": role or "customer",
            "search": search,
        }
        return await self.fetch_all_pages("customers", params)

    async def get_customers_page(self, page: int = 1, per_page: int = 20, **filters) -> Dict[str, Any]:
        params = {"orderby": "registered_date", "order": "desc", "role": "customer", **filters}
        return await self.get_page("customers", page, per_page, params)

    async def get_customer(self, customer_id: int) -> Dict[str, Any]:
        return await self._get(f"customers/{customer_id}")
