"""
API Client for the EIDF CRM Dashboard

Handles all communication with the FastAPI backend endpoints. Every request
carries the Firebase ID token and the active organization header.
"""

import os
from typing import Any

import requests
import streamlit as st

from dashboard.utils.constants import DEFAULT_CONFIG

# Timeout constants
DEFAULT_TIMEOUT = DEFAULT_CONFIG["timeout"]
SYNC_TIMEOUT = 300  # Full cache sync walks every REST page of the store
AI_TIMEOUT = 90

ORGANIZATION_HEADER = "X-Organization-ID"


class APIClient:
    """Client for interacting with the EIDF CRM API."""

    def __init__(
        self,
        base_url: str | None = None,
        id_token: str | None = None,
        organization_id: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the API client.

        Args:
            base_url: API v1 base URL (default: DASHBOARD_API_URL or localhost:3001/api/v1)
            id_token: Firebase ID token (default: DASHBOARD_ID_TOKEN)
            organization_id: Active organization (default: DASHBOARD_ORGANIZATION_ID)
            timeout: Request timeout in seconds
        """
        self.timeout = timeout
        self.session = requests.Session()
        self.base_url = ""
        self.id_token = ""
        self.organization_id = ""
        self.configure(
            base_url or os.getenv("DASHBOARD_API_URL", DEFAULT_CONFIG["api_url"]),
            id_token if id_token is not None else os.getenv("DASHBOARD_ID_TOKEN", ""),
            organization_id if organization_id is not None else os.getenv("DASHBOARD_ORGANIZATION_ID", ""),
        )

    def configure(self, base_url: str, id_token: str, organization_id: str) -> bool:
        """
        Update connection settings. Returns True when anything changed.
        """
        base_url = base_url.rstrip("/")
        changed = (base_url, id_token, organization_id) != (self.base_url, self.id_token, self.organization_id)

        self.base_url = base_url
        self.id_token = id_token
        self.organization_id = organization_id

        self.session.headers.pop("Authorization", None)
        self.session.headers.pop(ORGANIZATION_HEADER, None)
        if id_token:
            self.session.headers["Authorization"] = f"Bearer {id_token}"
        if organization_id:
            self.session.headers[ORGANIZATION_HEADER] = organization_id

        return changed

    @property
    def server_url(self) -> str:
        """Server root, where /health lives."""
        return self.base_url.removesuffix("/api/v1")

    @property
    def is_configured(self) -> bool:
        return bool(self.id_token and self.organization_id)

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        timeout: int | None = None,
        absolute: bool = False,
    ) -> Any:
        """
        Make an HTTP request to the API.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: Endpoint relative to the API base (e.g., "/cache/status")
            params: Query parameters
            json: JSON body for POST/PUT requests
            timeout: Optional timeout override (default: self.timeout)
            absolute: Resolve endpoint against the server root instead of /api/v1

        Returns:
            Response JSON data, {} for empty bodies, or None if error
        """
        url = f"{self.server_url if absolute else self.base_url}{endpoint}"
        request_timeout = timeout if timeout is not None else self.timeout

        try:
            response = self.session.request(method=method, url=url, params=params, json=json, timeout=request_timeout)
            response.raise_for_status()
            if response.status_code == 204 or not response.content:
                return {}
            return response.json()

        except requests.exceptions.Timeout:
            st.error(f"⏱️ Timeout de solicitud: La API no respondió en {request_timeout}s")
            return None
        except requests.exceptions.ConnectionError:
            st.error(f"🔌 Error de conexión: No se pudo conectar a la API en {self.base_url}")
            return None
        except requests.exceptions.HTTPError as e:
            st.error(f"❌ Error HTTP {e.response.status_code}: {self._error_message(e.response)}")
            return None
        except ValueError as e:
            st.error(f"❌ Respuesta no válida de la API: {str(e)}")
            return None

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict):
            return body.get("message") or body.get("detail") or response.text
        return response.text

    # ==================== HEALTH ====================

    @st.cache_data(ttl=10)
    def get_health(_self) -> dict[str, Any] | None:
        """Get backend health (cached for 10s)."""
        return _self._make_request("GET", "/health", absolute=True)

    # ==================== ORGANIZATIONS ====================

    @st.cache_data(ttl=60)
    def get_my_organizations(_self) -> list[dict[str, Any]] | None:
        """Organizations of the signed-in user (cached for 60s)."""
        return _self._make_request("GET", "/my-organizations")

    # ==================== ANALYTICS ====================

    @st.cache_data(ttl=60)
    def get_analytics_summary(_self) -> dict[str, Any] | None:
        """Revenue KPIs from the cache (cached for 60s)."""
        return _self._make_request("GET", "/analytics/summary")

    @st.cache_data(ttl=60)
    def get_revenue_by_day(_self, days: int = 30) -> list[dict[str, Any]] | None:
        """Daily revenue buckets (cached for 60s)."""
        return _self._make_request("GET", "/analytics/revenue", params={"days": days})

    @st.cache_data(ttl=60)
    def get_top_products(_self, limit: int = 5) -> list[dict[str, Any]] | None:
        """Best sellers by revenue (cached for 60s)."""
        return _self._make_request("GET", "/analytics/top-products", params={"limit": limit})

    @st.cache_data(ttl=30)
    def get_recent_activity(_self, limit: int = 10) -> list[dict[str, Any]] | None:
        """Latest orders and customers (cached for 30s)."""
        return _self._make_request("GET", "/analytics/recent-activity", params={"limit": limit})

    # ==================== CACHE / SYNC ====================

    @st.cache_data(ttl=5)
    def get_sync_status(_self) -> dict[str, Any] | None:
        """Sync metadata per data type (cached for 5s)."""
        return _self._make_request("GET", "/cache/status")

    @st.cache_data(ttl=30)
    def get_cache_size(_self) -> dict[str, Any] | None:
        return _self._make_request("GET", "/cache/size")

    @st.cache_data(ttl=10)
    def get_sync_logs(_self, limit: int = 20) -> list[dict[str, Any]] | None:
        return _self._make_request("GET", "/cache/logs", params={"limit": limit})

    @st.cache_data(ttl=30)
    def get_cached_entities(
        _self,
        data_type: str,
        limit: int = 50,
        offset: int = 0,
        status: str | None = None,
        search: str | None = None,
    ) -> dict[str, Any] | None:
        """
        Cached entities of one data type (cached for 30s).

        Args:
            data_type: orders, products, customers, posts, ...
            limit: Page size
            offset: Items to skip
            status: Optional status filter
            search: Optional text search
        """
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if status:
            params["status"] = status
        if search:
            params["search"] = search
        return _self._make_request("GET", f"/cache/{data_type}", params=params)

    def trigger_full_sync(_self, data_types: list[str] | None = None, force: bool = False) -> dict[str, Any] | None:
        """Sync every data type (or the given ones) into the cache."""
        payload: dict[str, Any] = {"force_full_sync": force}
        if data_types:
            payload["data_types"] = data_types
        return _self._make_request("POST", "/cache/sync", json=payload, timeout=SYNC_TIMEOUT)

    def trigger_sync(_self, data_type: str, incremental: bool = True) -> dict[str, Any] | None:
        """
        Sync a single data type.

        Args:
            data_type: Data type to sync
            incremental: Only fetch entities modified since the last sync
        """
        params = {"incremental": str(incremental).lower()}
        return _self._make_request("POST", f"/cache/sync/{data_type}", params=params, timeout=SYNC_TIMEOUT)

    def cancel_sync(_self) -> dict[str, Any] | None:
        return _self._make_request("POST", "/cache/sync/cancel")

    def clear_cache(_self) -> dict[str, Any] | None:
        return _self._make_request("DELETE", "/cache")

    # ==================== WOOCOMMERCE ====================

    def get_order(_self, order_id: int) -> dict[str, Any] | None:
        """Live order from the store (no cache)."""
        return _self._make_request("GET", f"/woocommerce/orders/{order_id}")

    def update_order_status(_self, order_id: int, status: str) -> dict[str, Any] | None:
        return _self._make_request("PUT", f"/woocommerce/orders/{order_id}/status", json={"status": status})

    def get_order_notes(_self, order_id: int) -> list[dict[str, Any]] | None:
        return _self._make_request("GET", f"/woocommerce/orders/{order_id}/notes")

    def add_order_note(_self, order_id: int, note: str, customer_note: bool = False) -> dict[str, Any] | None:
        payload = {"note": note, "customer_note": customer_note}
        return _self._make_request("POST", f"/woocommerce/orders/{order_id}/notes", json=payload)

    @st.cache_data(ttl=60)
    def get_customer_orders(_self, customer_id: int) -> list[dict[str, Any]] | None:
        """Live orders of one customer (cached for 60s)."""
        return _self._make_request("GET", f"/woocommerce/customers/{customer_id}/orders")

    def get_product(_self, product_id: int) -> dict[str, Any] | None:
        return _self._make_request("GET", f"/woocommerce/products/{product_id}")

    def update_product(_self, product_id: int, data: dict[str, Any]) -> dict[str, Any] | None:
        return _self._make_request("PUT", f"/woocommerce/products/{product_id}", json=data)

    # ==================== AI / SEO ====================

    @st.cache_data(ttl=3600)
    def get_ai_styles(_self) -> list[dict[str, Any]] | None:
        """SEO writing styles (cached for 1h)."""
        return _self._make_request("GET", "/ai/styles")

    def generate_content(_self, kind: str, product: dict[str, Any], style: str | None = None) -> dict[str, Any] | None:
        """
        Generate product content with AI. Consumes one generation of the plan quota.

        Args:
            kind: title, description, short_description or seo
            product: WooCommerce product
            style: SEO style name
        """
        payload: dict[str, Any] = {"product": product}
        if style:
            payload["style"] = style
        return _self._make_request("POST", f"/ai/generate/{kind}", json=payload, timeout=AI_TIMEOUT)

    def validate_seo(_self, seo: dict[str, Any]) -> dict[str, Any] | None:
        return _self._make_request("POST", "/ai/validate-seo", json=seo)

    def apply_seo(_self, product_id: int, seo: dict[str, Any], validate: bool = True) -> dict[str, Any] | None:
        payload = {"seo": seo, "validate_content": validate}
        return _self._make_request("POST", f"/ai/products/{product_id}/apply-seo", json=payload)

    # ==================== CAMPAIGNS ====================

    @st.cache_data(ttl=10)
    def get_campaigns(_self) -> list[dict[str, Any]] | None:
        return _self._make_request("GET", "/campaigns")

    @st.cache_data(ttl=10)
    def get_campaign_queue_stats(_self) -> dict[str, int] | None:
        return _self._make_request("GET", "/campaigns/queue/stats")

    def create_campaign(_self, data: dict[str, Any]) -> dict[str, Any] | None:
        return _self._make_request("POST", "/campaigns", json=data)

    def update_campaign(_self, campaign_id: str, data: dict[str, Any]) -> dict[str, Any] | None:
        return _self._make_request("PUT", f"/campaigns/{campaign_id}", json=data)

    def delete_campaign(_self, campaign_id: str) -> dict[str, Any] | None:
        return _self._make_request("DELETE", f"/campaigns/{campaign_id}")

    def send_test_campaign(_self, campaign_id: str, emails: list[str]) -> dict[str, Any] | None:
        return _self._make_request("POST", f"/campaigns/{campaign_id}/test", json={"testEmails": emails})

    def send_campaign(_self, campaign_id: str) -> dict[str, Any] | None:
        return _self._make_request("POST", f"/campaigns/{campaign_id}/send", timeout=SYNC_TIMEOUT)

    # ==================== BILLING ====================

    @st.cache_data(ttl=3600)
    def get_plans(_self) -> list[dict[str, Any]] | None:
        """Pricing plans (cached for 1h)."""
        return _self._make_request("GET", "/billing/plans")

    @st.cache_data(ttl=60)
    def get_subscription(_self) -> dict[str, Any] | None:
        return _self._make_request("GET", "/billing/subscription")

    @st.cache_data(ttl=30)
    def get_usage(_self, metric: str) -> dict[str, Any] | None:
        """Usage of one metric against the plan limit (cached for 30s)."""
        return _self._make_request("GET", f"/billing/usage/{metric}")

    def create_checkout(_self, plan: str, billing_period: str) -> dict[str, Any] | None:
        payload = {"plan": plan, "billingPeriod": billing_period}
        return _self._make_request("POST", "/billing/checkout", json=payload)

    def create_portal(_self) -> dict[str, Any] | None:
        return _self._make_request("POST", "/billing/portal")

    # ==================== CREDENTIALS & SETTINGS ====================

    @st.cache_data(ttl=30)
    def get_credentials(_self) -> list[dict[str, Any]] | None:
        """Stored API credentials, without secrets (cached for 30s)."""
        return _self._make_request("GET", "/credentials")

    def create_credential(_self, service: str, name: str, credentials: dict[str, Any]) -> dict[str, Any] | None:
        payload = {"service": service, "name": name, "credentials": credentials}
        return _self._make_request("POST", "/credentials", json=payload)

    def update_credential(_self, credential_id: str, data: dict[str, Any]) -> dict[str, Any] | None:
        return _self._make_request("PUT", f"/credentials/{credential_id}", json=data)

    def delete_credential(_self, credential_id: str) -> dict[str, Any] | None:
        return _self._make_request("DELETE", f"/credentials/{credential_id}")

    def test_woocommerce_connection(_self) -> dict[str, Any] | None:
        return _self._make_request("POST", "/credentials/test/woocommerce")

    @st.cache_data(ttl=30)
    def get_email_settings(_self) -> dict[str, Any] | None:
        return _self._make_request("GET", "/settings/email")

    def update_email_settings(_self, data: dict[str, Any]) -> dict[str, Any] | None:
        return _self._make_request("PUT", "/settings/email", json=data)


# Singleton instance
_client_instance: APIClient | None = None


def get_api_client() -> APIClient:
    """Get or create the API client singleton."""
    global _client_instance
    if _client_instance is None:
        _client_instance = APIClient()
    return _client_instance
