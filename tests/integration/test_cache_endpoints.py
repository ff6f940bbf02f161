"""Tests de integración para los endpoints del caché."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from eidf_crm.api.v1.dependencies import get_site_client
from eidf_crm.api.v1.endpoints.cache import router as cache_router
from eidf_crm.core.auth import AuthUser, require_organization
from eidf_crm.services import cache_store

ORDERS = [
    {"id": 1, "status": "completed", "billing": {"email": "marie@example.fr"}},
    {"id": 2, "status": "processing", "billing": {"email": "paul@example.fr"}},
    {"id": 3, "status": "completed", "billing": {"email": "luc@example.fr"}},
]


@pytest.fixture
def site_client():
    client = MagicMock()
    client.fetch_collection = AsyncMock(return_value=[{"id": 100}, {"id": 101}])
    return client


@pytest.fixture
async def client(make_app, site_client):
    app = make_app(cache_router, overrides={get_site_client: lambda: site_client})
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestCacheQueries:
    """Tests para la consulta de entidades cacheadas."""

    @pytest.mark.asyncio
    async def test_list_with_pagination(self, client, db_session, site_id):
        """Debe paginar y devolver el total del sitio."""
        await cache_store.upsert_entities(db_session, "orders", site_id, ORDERS)

        response = await client.get("/api/v1/cache/orders", params={"limit": 2, "offset": 0})

        body = response.json()
        assert response.status_code == 200
        assert [o["id"] for o in body["items"]] == [1, 2]
        assert body["total"] == 3

    @pytest.mark.asyncio
    async def test_list_with_filters(self, client, db_session, site_id):
        """Debe contar en total solo las entidades que cumplen los filtros."""
        await cache_store.upsert_entities(db_session, "orders", site_id, ORDERS)

        response = await client.get("/api/v1/cache/orders", params={"status": "completed", "limit": 1})

        body = response.json()
        assert [o["id"] for o in body["items"]] == [1]
        assert body["total"] == 2

    @pytest.mark.asyncio
    async def test_search_matches_values_only(self, client, db_session, site_id):
        """Debe buscar en los valores y contar solo las coincidencias."""
        await cache_store.upsert_entities(db_session, "orders", site_id, ORDERS)

        by_key = await client.get("/api/v1/cache/orders", params={"search": "billing"})
        by_email = await client.get("/api/v1/cache/orders", params={"search": "paul@", "status": "processing"})

        assert by_key.json()["total"] == 0
        assert [o["id"] for o in by_email.json()["items"]] == [2]
        assert by_email.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_unknown_data_type(self, client):
        """Debe responder 400 para tipos desconocidos."""
        response = await client.get("/api/v1/cache/invoices")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_get_entity(self, client, db_session, site_id):
        """Debe devolver una entidad o 404."""
        await cache_store.upsert_entities(db_session, "orders", site_id, ORDERS)

        found = await client.get("/api/v1/cache/orders/2")
        missing = await client.get("/api/v1/cache/orders/42")

        assert found.json()["status"] == "processing"
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_size(self, client, db_session, site_id):
        """Debe devolver el total de entidades del sitio."""
        await cache_store.upsert_entities(db_session, "orders", site_id, ORDERS)

        response = await client.get("/api/v1/cache/size")

        assert response.json()["total_items"] == 3


class TestCacheSync:
    """Tests para la sincronización desde la API."""

    @pytest.mark.asyncio
    async def test_full_sync(self, client, db_session, site_id, site_client):
        """Debe sincronizar los tipos pedidos y devolver los totales."""
        response = await client.post("/api/v1/cache/sync", json={"data_types": ["products"], "force_full_sync": True})

        assert response.status_code == 200
        assert response.json() == {"success": True, "results": {"products": 2}, "total": 2}
        assert await cache_store.count_entities(db_session, "products", site_id) == 2

        status = await client.get("/api/v1/cache/status")
        assert status.json()["data_types"]["products"]["status"] == "completed"

        logs = await client.get("/api/v1/cache/logs")
        assert logs.json()[0]["status"] == "completed"

    @pytest.mark.asyncio
    async def test_single_type_sync(self, client, site_client):
        """Debe sincronizar un tipo de forma incremental o completa."""
        response = await client.post("/api/v1/cache/sync/pages", params={"incremental": "false"})

        assert response.json() == {"success": True, "data_type": "pages", "synced": 2, "incremental": False}
        site_client.fetch_collection.assert_awaited_once_with("pages")

    @pytest.mark.asyncio
    async def test_cancel_without_sync(self, client):
        """Debe indicar que no hay sincronización que cancelar."""
        response = await client.post("/api/v1/cache/sync/cancel")
        assert response.json()["success"] is False


class TestCacheClear:
    """Tests para el vaciado del caché."""

    @pytest.mark.asyncio
    async def test_owner_can_clear(self, client, db_session, site_id):
        """Debe vaciar el caché del sitio."""
        await cache_store.upsert_entities(db_session, "orders", site_id, ORDERS)

        response = await client.delete("/api/v1/cache")

        assert response.status_code == 204
        assert await cache_store.count_entities(db_session, "orders", site_id) == 0

    @pytest.mark.asyncio
    async def test_member_cannot_clear(self, make_app, site_id):
        """Debe exigir rol OWNER o ADMIN."""
        member = AuthUser(uid="user-2", organization_id=site_id, role="MEMBER")
        app = make_app(cache_router, overrides={require_organization: lambda: member})

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.delete("/api/v1/cache")

        assert response.status_code == 403
