"""
WooCommerce client for order operations.

Handles order listing, detail, status changes, notes and refunds.
"""

import logging
from typing import Any, Dict, List, Optional

from .base_client import BaseWooCommerceClient

logger = logging.getLogger(__name__)


class WooCommerceOrderClient(BaseWooCommerceClient):
    """
    Specialized client for WooCommerce order operations.
    """

    async def get_all_orders(
        self, customer_id: Optional[int] = None, modified_after: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Fetch every order, oldest first.

        Args:
            customer_id: Restrict to one customer
            modified_after: ISO date, only orders modified after it

        Returns:
            List of orders
        """
        params = {
            "orderby": "date",
            "order": "asc",
            "customer": customer_id,
            "modified_after": modified_after,
        }
        return await self.fetch_all_pages("orders", params)

    async def get_orders_page(self, page: int = 1, per_page: int = 20, **filters) -> Dict[str, Any]:
        """
        Fetch one page of orders, newest first.

        Args:
            page: Page number
            per_page: Items per page
            **filters: status, search, customer, after, before...

        Returns:
            Dict with items, total and total_pages
        """
        params = {"orderby": "date", "order": "desc", **filters}
        return await self.get_page("orders", page, per_page, params)

    async def get_order(self, order_id: int) -> Dict[str, Any]:
        return await self._get(f"orders/{order_id}")

    async def update_order_status(self, order_id: int, status: str) -> Dict[str, Any]:
        """
        Change the status of an order.

        Args:
            order_id: WooCommerce order id
            status: New status (pending, processing, completed...)

        Returns:
            Updated order
        """
        data, _ = await self._request("PUT", f"orders/{order_id}", json_data={"status": status})
        logger.info(f"✅ Order {order_id} status updated to {status}")
        return data

    async def get_order_notes(self, order_id: int) -> List[Dict[str, Any]]:
        return await self._get(f"orders/{order_id}/notes")

    async def create_order_note(self, order_id: int, note: str, customer_note: bool = False) -> Dict[str, Any]:
        data, _ = await self._request(
            "POST", f"orders/{order_id}/notes", json_data={"note": note, "customer_note": customer_note}
        )
        return data

    async def get_order_refunds(self, order_id: int) -> List[Dict[str, Any]]:
        return await self._get(f"orders/{order_id}/refunds")
