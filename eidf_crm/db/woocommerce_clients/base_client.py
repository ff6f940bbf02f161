"""
Base WooCommerce REST client with common functionality.

This module provides the foundation for all WooCommerce/WordPress clients,
including session management, authentication, pagination and error handling.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Tuple

import aiohttp
from aiohttp import BasicAuth, ClientTimeout

from eidf_crm.core.config import get_settings
from eidf_crm.core.logging_config import log_api_call
from eidf_crm.utils.error_handler import WooCommerceAPIException

logger = logging.getLogger(__name__)


def clean_params(params: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """
    Drop None values and stringify the rest for aiohttp query strings.

    Args:
        params: Raw query parameters

    Returns:
        Dict of string parameters
    """
    cleaned: Dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            cleaned[key] = "true" if value else "false"
        else:
            cleaned[key] = str(value)
    return cleaned


class BaseWooCommerceClient:
    """
    Base client for the WooCommerce REST API (wc/v3) and WordPress REST API (wp/v2).

    Specialized clients inherit the session handling, request execution
    and page-by-page fetching from this class.
    """

    def __init__(
        self,
        api_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: Optional[int] = None,
    ):
        """
        Initialize the base WooCommerce client.

        Args:
            api_url: Site root URL (e.g. https://shop.example.com)
            consumer_key: WooCommerce REST consumer key
            consumer_secret: WooCommerce REST consumer secret
            timeout: Request timeout in seconds
        """
        self.settings = get_settings()
        self.api_url = api_url.rstrip("/")
        if not self.api_url.startswith(("http://", "https://")):
            self.api_url = f"https://{self.api_url}"

        self.base_url = f"{self.api_url}/wp-json/wc/v3"
        self.wp_base_url = f"{self.api_url}/wp-json/wp/v2"
        self._auth = BasicAuth(consumer_key, consumer_secret)
        self.timeout = timeout or self.settings.WOOCOMMERCE_TIMEOUT
        self.per_page = self.settings.WOOCOMMERCE_PER_PAGE
        self.max_pages = self.settings.WOOCOMMERCE_MAX_PAGES

        self.session: Optional[aiohttp.ClientSession] = None

    async def initialize(self):
        """Create the HTTP session if it does not exist yet."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=ClientTimeout(total=self.timeout, connect=10),
                auth=self._auth,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "User-Agent": f"{self.settings.APP_NAME}/{self.settings.APP_VERSION}",
                },
            )
            logger.debug(f"WooCommerce session opened for {self.api_url}")

    async def close(self):
        """Close the HTTP session and clean up resources."""
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug(f"WooCommerce session closed for {self.api_url}")
        self.session = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _build_url(self, endpoint: str, api: str = "wc") -> str:
        base = self.base_url if api == "wc" else self.wp_base_url
        return f"{base}/{endpoint.lstrip('/')}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        json_data: Any = None,
        api: str = "wc",
    ) -> Tuple[Any, Mapping[str, str]]:
        """
        Execute a REST request with error handling.

        Args:
            method: HTTP method
            endpoint: Path relative to the API base
            params: Query parameters
            json_data: JSON body
            api: "wc" for WooCommerce, "wp" for WordPress

        Returns:
            Tuple of (parsed JSON body, response headers)

        Raises:
            WooCommerceAPIException: On HTTP >= 400 or network failure
        """
        await self.initialize()
        url = self._build_url(endpoint, api)
        start_time = time.time()
        try:
            async with self.session.request(method, url, params=clean_params(params), json=json_data) as response:
                log_api_call(method, url, response.status, time.time() - start_time)
                body = await self._read_body(response)

                if response.status >= 400:
                    message = body.get("message") if isinstance(body, dict) else None
                    raise WooCommerceAPIException(
                        message or f"WooCommerce API error: HTTP {response.status}",
                        api_response_code=response.status,
                        endpoint=endpoint,
                        response_body=body,
                    )

                return body, response.headers

        except aiohttp.ClientError as e:
            logger.error(f"❌ Network error calling {url}: {str(e)}")
            raise WooCommerceAPIException(f"Network error: {str(e)}", endpoint=endpoint) from e
        except asyncio.TimeoutError as e:
            logger.error(f"❌ Timeout calling {url}")
            raise WooCommerceAPIException(f"Request timed out: {url}", endpoint=endpoint) from e

    @staticmethod
    async def _read_body(response: aiohttp.ClientResponse) -> Any:
        if response.status == 204:
            return None
        try:
            return await response.json(content_type=None)
        except (ValueError, aiohttp.ContentTypeError):
            return await response.text()

    async def _get(self, endpoint: str, params: Optional[Mapping[str, Any]] = None, api: str = "wc") -> Any:
        data, _ = await self._request("GET", endpoint, params=params, api=api)
        return data

    async def get_page(
        self,
        endpoint: str,
        page: int = 1,
        per_page: Optional[int] = None,
        params: Optional[Mapping[str, Any]] = None,
        api: str = "wc",
    ) -> Dict[str, Any]:
        """
        Fetch a single page along with the pagination totals.

        Args:
            endpoint: Collection endpoint
            page: Page number (1-based)
            per_page: Items per page
            params: Additional filters
            api: "wc" or "wp"

        Returns:
            Dict with items, total and total_pages (read from X-WP-Total headers)
        """
        query = {**(params or {}), "page": page, "per_page": per_page or self.per_page}
        items, headers = await self._request("GET", endpoint, params=query, api=api)
        items = items or []

        return {
            "items": items,
            "page": page,
            "total": int(headers.get("X-WP-Total", len(items))),
            "total_pages": int(headers.get("X-WP-TotalPages", 1)),
        }

    async def fetch_all_pages(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        api: str = "wc",
    ) -> List[Dict[str, Any]]:
        """
        Fetch every page of a collection sequentially.

        Stops on an empty or short page, or after the configured page cap.

        Args:
            endpoint: Collection endpoint
            params: Filters applied to every page
            api: "wc" or "wp"

        Returns:
            List with all items
        """
        all_items: List[Dict[str, Any]] = []
        page = 1

        while page <= self.max_pages:
            query = {**(params or {}), "page": page, "per_page": self.per_page}
            items, _ = await self._request("GET", endpoint, params=query, api=api)

            if not items:
                break

            all_items.extend(items)
            if len(items) < self.per_page:
                break
            page += 1
        else:
            logger.warning(f"⚠️ Page cap reached for {endpoint} ({self.max_pages} pages)")

        logger.info(f"Fetched {len(all_items)} items from {endpoint}")
        return all_items

    async def system_status(self) -> Dict[str, Any]:
        """
        Fetch WooCommerce system status, used to validate credentials.

        Returns:
            System status payload
        """
        return await self._get("system_status")

    def __repr__(self):
        return f"{self.__class__.__name__}(api_url='{self.api_url}', initialized={self.session is not None})"
