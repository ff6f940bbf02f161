"""
Fábrica de clientes WooCommerce por organización.

Mantiene un cliente por organización durante WOOCOMMERCE_CLIENT_TTL_SECONDS;
pasado ese tiempo se vuelven a leer las credenciales y se reconstruye.
Los clientes reemplazados pueden seguir en uso por peticiones en curso,
así que solo se cierran al apagar la aplicación.
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.core.config import get_settings
from eidf_crm.db.woocommerce_clients import WooCommerceClient
from eidf_crm.services.api_credential_service import ApiCredentialService
from eidf_crm.utils.error_handler import NotFoundException

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass
class _CachedClient:
    client: WooCommerceClient
    created_at: float


class WooCommerceFactory:
    """Caché de clientes WooCommerce con expiración."""

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.WOOCOMMERCE_CLIENT_TTL_SECONDS
        self._clients: Dict[str, _CachedClient] = {}
        self._retired: List[WooCommerceClient] = []

    async def get_client(self, session: AsyncSession, organization_id: str) -> WooCommerceClient:
        """
        Cliente WooCommerce de una organización.

        Args:
            session: Sesión de base de datos para leer las credenciales
            organization_id: Organización

        Returns:
            WooCommerceClient: Cliente inicializado

        Raises:
            NotFoundException: Si la organización no tiene credenciales WooCommerce activas
        """
        cached = self._clients.get(organization_id)
        if cached and time.monotonic() - cached.created_at < self.ttl_seconds:
            return cached.client

        if cached:
            self._retire(organization_id)

        credentials = await ApiCredentialService(session).get_woocommerce_credentials(organization_id)
        if not credentials:
            raise NotFoundException(
                "WooCommerce credentials not configured for this organization", resource="woocommerce_credentials"
            )

        client = WooCommerceClient(
            api_url=credentials["apiUrl"],
            consumer_key=credentials["consumerKey"],
            consumer_secret=credentials["consumerSecret"],
        )
        await client.initialize()

        self._clients[organization_id] = _CachedClient(client=client, created_at=time.monotonic())
        logger.info(f"🔌 WooCommerce client created for organization {organization_id}")
        return client

    def _retire(self, organization_id: str):
        cached = self._clients.pop(organization_id, None)
        if cached:
            self._retired.append(cached.client)

    async def clear_cache(self, organization_id: Optional[str] = None):
        """
        Descarta el cliente de una organización, o todos, sin cerrarlos.

        La siguiente petición construye un cliente nuevo con las credenciales actuales.
        """
        organization_ids = [organization_id] if organization_id is not None else list(self._clients)
        for org_id in organization_ids:
            self._retire(org_id)

    async def close_all(self):
        """Cierra los clientes activos y los retirados."""
        clients = [cached.client for cached in self._clients.values()] + self._retired
        self._clients.clear()
        self._retired = []

        for client in clients:
            await client.close()
        if clients:
            logger.info(f"🧹 Closed {len(clients)} WooCommerce clients")

    def __len__(self) -> int:
        return len(self._clients)


_factory: Optional[WooCommerceFactory] = None


def get_woocommerce_factory() -> WooCommerceFactory:
    global _factory
    if _factory is None:
        _factory = WooCommerceFactory()
    return _factory
