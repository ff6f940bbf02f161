"""
WooCommerce client for product operations.

This module handles product listing with filters, product updates,
categories and the Yoast SEO meta fields written through meta_data.
"""

import logging
from typing import Any, Dict, List, Optional

from eidf_crm.utils.error_handler import ValidationException

from .base_client import BaseWooCommerceClient

logger = logging.getLogger(__name__)

PRODUCT_FILTERS = ("search", "status", "category", "tag", "sku", "stock_status", "min_price", "max_price")


class WooCommerceProductClient(BaseWooCommerceClient):
    """
    Specialized client for WooCommerce product operations.
    """

    async def get_all_products(self, modified_after: Optional[str] = None, **filters) -> List[Dict[str, Any]]:
        """
        Fetch every product matching the filters.

        Args:
            modified_after: ISO date, only products modified after it
            **filters: search, status, category, tag, sku, stock_status

        Returns:
            List of products
        """
        params = {key: filters.get(key) for key in PRODUCT_FILTERS}
        params.update({"orderby": "date", "order": "desc", "modified_after": modified_after})
        return await self.fetch_all_pages("products", params)

    async def get_products_page(self, page: int = 1, per_page: int = 20, **filters) -> Dict[str, Any]:
        """
        Fetch one page of products. Only published products unless a status is given.

        Args:
            page: Page number
            per_page: Items per page
            **filters: Product filters, orderby and order

        Returns:
            Dict with items, total and total_pages
        """
        params = {key: value for key, value in filters.items() if value is not None}
        params["status"] = params.get("status") or "publish"
        return await self.get_page("products", page, per_page, params)

    async def get_product(self, product_id: int) -> Dict[str, Any]:
        return await self._get(f"products/{product_id}")

    async def update_product(self, product_id: int, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a product with the non-empty fields of the payload.

        Args:
            product_id: WooCommerce product id
            updates: Fields to update; None values are ignored

        Returns:
            Updated product

        Raises:
            ValidationException: When nothing is left to update
        """
        payload = {key: value for key, value in updates.items() if value is not None}
        if not payload:
            raise ValidationException("No changes provided for update.", field="updates")

        data, _ = await self._request("PUT", f"products/{product_id}", json_data=payload)
        logger.info(f"✅ Product {product_id} updated ({', '.join(payload)})")
        return data

    async def update_product_meta(self, product_id: int, meta_data: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Write custom meta fields on a product (used for Yoast SEO).

        Args:
            product_id: WooCommerce product id
            meta_data: List of {"key", "value"} entries

        Returns:
            Updated product
        """
        return await self.update_product(product_id, {"meta_data": meta_data})

    async def get_categories(self) -> List[Dict[str, Any]]:
        return await self.fetch_all_pages("products/categories", {"orderby": "name", "order": "asc"})
