"""
WordPress REST client (wp/v2) for posts, pages, media, comments and users.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from eidf_crm.utils.error_handler import ValidationException, WooCommerceAPIException

from .base_client import BaseWooCommerceClient, clean_params

logger = logging.getLogger(__name__)

WORDPRESS_COLLECTIONS = ("posts", "pages", "media", "comments", "users")


class WordPressClient(BaseWooCommerceClient):
    """
    Specialized client for the WordPress REST API of the same site.
    """

    async def get_wp_collection(self, kind: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Fetch every item of a WordPress collection.

        Args:
            kind: posts, pages, media, comments or users
            params: Extra query parameters

        Returns:
            List of items

        Raises:
            ValidationException: For an unknown collection
        """
        if kind not in WORDPRESS_COLLECTIONS:
            raise ValidationException(
                f"Unknown WordPress collection: {kind}",
                field="kind",
                invalid_value=kind,
                expected_format=", ".join(WORDPRESS_COLLECTIONS),
            )
        return await self.fetch_all_pages(kind, params, api="wp")

    async def _count(self, kind: str) -> int:
        page = await self.get_page(kind, page=1, per_page=1, api="wp")
        return page["total"]

    async def get_wp_stats(self) -> Dict[str, int]:
        """
        Item counts of each WordPress collection, read from X-WP-Total.

        Returns:
            Dict of collection name to count
        """
        counts = await asyncio.gather(*(self._count(kind) for kind in WORDPRESS_COLLECTIONS))
        return dict(zip(WORDPRESS_COLLECTIONS, counts))

    async def forward(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Any = None,
    ) -> Tuple[int, Any, Optional[str]]:
        """
        Forward a raw request to {site}/wp-json/{path}.

        Args:
            method: HTTP method
            path: Path below wp-json (e.g. "wc/v3/orders")
            params: Query parameters
            json_data: JSON body

        Returns:
            Tuple of (HTTP status, parsed body, upstream Content-Type)

        Raises:
            WooCommerceAPIException: On network failure or timeout
        """
        await self.initialize()
        url = f"{self.api_url}/wp-json/{path.lstrip('/')}"
        logger.debug(f"Proxying {method} {url}")
        try:
            async with self.session.request(method, url, params=clean_params(params), json=json_data) as response:
                body = await self._read_body(response)
                return response.status, body, response.headers.get("Content-Type")
        except aiohttp.ClientError as e:
            logger.error(f"❌ Network error proxying {url}: {str(e)}")
            raise WooCommerceAPIException(f"Network error: {str(e)}", endpoint=path) from e
        except asyncio.TimeoutError as e:
            logger.error(f"❌ Timeout proxying {url}")
            raise WooCommerceAPIException(f"Request timed out: {url}", endpoint=path) from e
