"""Tests unitarios para el almacén de caché de entidades."""

from datetime import timedelta

import pytest

from eidf_crm.services import cache_store
from eidf_crm.utils.error_handler import ValidationException
from eidf_crm.utils.time_utils import utcnow


class TestCacheHelpers:
    """Tests para las funciones auxiliares del caché."""

    def test_get_cache_model_rejects_unknown_type(self):
        """Debe rechazar tipos de dato que no existen."""
        with pytest.raises(ValidationException):
            cache_store.get_cache_model("invoices")

    def test_data_types_cover_wordpress_content(self):
        """Debe incluir los tipos de WooCommerce y de WordPress."""
        assert set(cache_store.DATA_TYPES) == {
            "orders",
            "products",
            "customers",
            "posts",
            "pages",
            "media",
            "comments",
            "users",
        }

    def test_is_stale_without_timestamp(self):
        """Debe considerar obsoleto un dato sin fecha."""
        assert cache_store.is_stale(None) is True

    def test_is_stale_respects_threshold(self):
        """Debe comparar la antigüedad con el umbral en minutos."""
        now = utcnow()
        assert cache_store.is_stale(now - timedelta(minutes=10), 30, now=now) is False
        assert cache_store.is_stale(now - timedelta(minutes=31), 30, now=now) is True

    def test_cache_key(self):
        """Debe componer la clave sitio-id."""
        assert cache_store.get_cache_key("site", 42) == "site-42"


class TestEntityStorage:
    """Tests para la escritura y lectura de entidades."""

    @pytest.mark.asyncio
    async def test_upsert_inserts_and_updates(self, db_session, site_id):
        """Debe insertar nuevas entidades y reemplazar las existentes (la última escritura gana)."""
        written = await cache_store.upsert_entities(
            db_session, "products", site_id, [{"id": 1, "name": "Vis"}, {"id": 2, "name": "Écrou"}]
        )
        assert written == 2

        await cache_store.upsert_entities(db_session, "products", site_id, [{"id": 1, "name": "Vis inox"}])

        assert await cache_store.count_entities(db_session, "products", site_id) == 2
        item = await cache_store.get_entity(db_session, "products", site_id, 1)
        assert item["name"] == "Vis inox"

    @pytest.mark.asyncio
    async def test_upsert_skips_items_without_id(self, db_session, site_id):
        """Debe ignorar entidades sin id."""
        written = await cache_store.upsert_entities(db_session, "orders", site_id, [{"total": "10.00"}])
        assert written == 0
        assert await cache_store.count_entities(db_session, "orders", site_id) == 0

    @pytest.mark.asyncio
    async def test_entities_are_scoped_by_site(self, db_session):
        """Debe aislar las entidades de cada sitio."""
        await cache_store.upsert_entities(db_session, "customers", "site-a", [{"id": 1}])
        await cache_store.upsert_entities(db_session, "customers", "site-b", [{"id": 1}, {"id": 2}])

        assert await cache_store.count_entities(db_session, "customers", "site-a") == 1
        assert await cache_store.count_entities(db_session, "customers", "site-b") == 2
        assert await cache_store.count_entities(db_session, "customers") == 3

    @pytest.mark.asyncio
    async def test_get_entities_paginates_and_filters(self, db_session, site_id):
        """Debe paginar y filtrar por texto y por estado."""
        orders = [
            {"id": 1, "status": "completed", "billing": {"email": "marie@example.fr"}},
            {"id": 2, "status": "processing", "billing": {"email": "paul@example.fr"}},
            {"id": 3, "status": "completed", "billing": {"email": "luc@example.fr"}},
        ]
        await cache_store.upsert_entities(db_session, "orders", site_id, orders)

        page = await cache_store.get_entities(db_session, "orders", site_id, limit=2, offset=1)
        assert [o["id"] for o in page] == [2, 3]

        found = await cache_store.get_entities(db_session, "orders", site_id, search="MARIE")
        assert [o["id"] for o in found] == [1]

        completed = await cache_store.get_entities(db_session, "orders", site_id, status="completed")
        assert [o["id"] for o in completed] == [1, 3]
        assert await cache_store.count_entities(db_session, "orders", site_id, status="completed") == 2

    @pytest.mark.asyncio
    async def test_search_ignores_keys_and_repr(self, db_session, site_id):
        """Debe buscar solo en los valores, no en las claves ni en la sintaxis del JSON."""
        customers = [
            {"id": 1, "first_name": "Marie", "email": "marie@example.fr"},
            {"id": 2, "first_name": "Paul", "email": "paul@example.fr", "billing": {"city": "Lyon"}},
        ]
        await cache_store.upsert_entities(db_session, "customers", site_id, customers)

        assert await cache_store.get_entities(db_session, "customers", site_id, search="first_name") == []
        assert await cache_store.get_entities(db_session, "customers", site_id, search="'") == []
        assert await cache_store.get_entities(db_session, "customers", site_id, search="billing") == []

        nested = await cache_store.get_entities(db_session, "customers", site_id, search="lyon")
        assert [c["id"] for c in nested] == [2]

        by_id = await cache_store.get_entities(db_session, "customers", site_id, search="2")
        assert [c["id"] for c in by_id] == [2]

    def test_matches_search_skips_booleans(self):
        """Debe ignorar booleanos y nulos al comparar."""
        assert cache_store.matches_search({"on_sale": True, "parent": None}, "true") is False
        assert cache_store.matches_search({"tags": [{"name": "Promo"}]}, "promo") is True

    @pytest.mark.asyncio
    async def test_get_entity_missing(self, db_session, site_id):
        """Debe devolver None si la entidad no está en caché."""
        assert await cache_store.get_entity(db_session, "posts", site_id, 99) is None

    @pytest.mark.asyncio
    async def test_cache_size_estimate(self, db_session, site_id):
        """Debe sumar todas las entidades y estimar el tamaño en MB."""
        await cache_store.upsert_entities(db_session, "posts", site_id, [{"id": i} for i in range(1, 4)])
        await cache_store.upsert_entities(db_session, "pages", site_id, [{"id": 1}])

        size = await cache_store.get_cache_size(db_session, site_id)
        assert size["total_items"] == 4
        assert size["size_estimate"].endswith(" MB")

    @pytest.mark.asyncio
    async def test_clear_site_cache(self, db_session, site_id):
        """Debe borrar entidades, metadatos e historial del sitio."""
        await cache_store.upsert_entities(db_session, "media", site_id, [{"id": 1}])
        await cache_store.update_sync_metadata(db_session, site_id, "media", status="completed")
        await cache_store.log_sync(db_session, site_id, "media", "started")

        await cache_store.clear_site_cache(db_session, site_id)

        assert await cache_store.count_entities(db_session, "media", site_id) == 0
        assert await cache_store.get_last_sync(db_session, site_id, "media") is None
        assert await cache_store.get_sync_logs(db_session, site_id) == []


class TestSyncMetadata:
    """Tests para metadatos e historial de sincronización."""

    @pytest.mark.asyncio
    async def test_new_metadata_starts_idle(self, db_session, site_id):
        """Debe crear el registro en estado idle con contadores a cero."""
        metadata = await cache_store.update_sync_metadata(db_session, site_id, "orders")
        assert metadata.status == "idle"
        assert metadata.total_count == 0
        assert metadata.synced_count == 0
        assert metadata.last_sync is not None

    @pytest.mark.asyncio
    async def test_update_metadata_applies_changes(self, db_session, site_id):
        """Debe aplicar las columnas indicadas sobre el registro existente."""
        await cache_store.update_sync_metadata(db_session, site_id, "orders", status="syncing")
        metadata = await cache_store.update_sync_metadata(
            db_session, site_id, "orders", status="completed", total_count=5, synced_count=5
        )
        assert metadata.status == "completed"
        assert metadata.total_count == 5

    @pytest.mark.asyncio
    async def test_invalid_status_rejected(self, db_session, site_id):
        """Debe rechazar estados desconocidos."""
        with pytest.raises(ValidationException):
            await cache_store.update_sync_metadata(db_session, site_id, "orders", status="paused")

    @pytest.mark.asyncio
    async def test_log_sync_lifecycle(self, db_session, site_id):
        """Debe crear el registro al empezar y cerrarlo al completar."""
        log_id = await cache_store.log_sync(db_session, site_id, "all", "started")
        await cache_store.log_sync(db_session, site_id, "all", "completed", items_synced=12, log_id=log_id)

        logs = await cache_store.get_sync_logs(db_session, site_id)
        assert len(logs) == 1
        assert logs[0].status == "completed"
        assert logs[0].items_synced == 12
        assert logs[0].end_time is not None

    @pytest.mark.asyncio
    async def test_log_sync_rejects_unknown_status(self, db_session, site_id):
        """Debe rechazar estados de historial desconocidos."""
        with pytest.raises(ValidationException):
            await cache_store.log_sync(db_session, site_id, "all", "running")
