"""Tests unitarios para el servicio de sincronización del caché."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from eidf_crm.services import cache_store
from eidf_crm.services.sync_service import SyncCancelled, SyncService
from eidf_crm.utils.error_handler import ConflictException, SyncException, WooCommerceAPIException
from eidf_crm.utils.time_utils import utcnow


def make_client(collections=None, error=None):
    """Cliente WooCommerce simulado que devuelve colecciones fijas por tipo."""
    collections = collections or {}
    client = MagicMock()

    async def fetch_collection(data_type, modified_after=None):
        if error is not None:
            raise error
        return collections.get(data_type, [])

    client.fetch_collection = AsyncMock(side_effect=fetch_collection)
    return client


class TestSyncDataType:
    """Tests para la sincronización de un tipo de dato."""

    @pytest.mark.asyncio
    async def test_sync_writes_items_and_completes(self, db_session, site_id):
        """Debe volcar los elementos en el caché y marcar el tipo como completado."""
        client = make_client({"orders": [{"id": i, "status": "completed"} for i in range(1, 251)]})

        synced = await SyncService().sync_data_type(db_session, client, site_id, "orders")

        assert synced == 250
        assert await cache_store.count_entities(db_session, "orders", site_id) == 250
        metadata = await cache_store.get_last_sync(db_session, site_id, "orders")
        assert metadata.status == "completed"
        assert metadata.total_count == 250
        assert metadata.synced_count == 250

    @pytest.mark.asyncio
    async def test_fresh_cache_is_skipped(self, db_session, site_id):
        """Debe omitir un tipo cuyo último sync completado sigue fresco."""
        await cache_store.update_sync_metadata(db_session, site_id, "products", status="completed", last_sync=utcnow())
        client = make_client({"products": [{"id": 1}]})

        synced = await SyncService().sync_data_type(db_session, client, site_id, "products")

        assert synced == 0
        client.fetch_collection.assert_not_called()

    @pytest.mark.asyncio
    async def test_stale_cache_is_refreshed(self, db_session, site_id):
        """Debe sincronizar si el último sync supera el umbral de obsolescencia."""
        await cache_store.update_sync_metadata(
            db_session, site_id, "customers", status="completed", last_sync=utcnow() - timedelta(days=1)
        )
        client = make_client({"customers": [{"id": 1}]})

        synced = await SyncService().sync_data_type(db_session, client, site_id, "customers")

        assert synced == 1
        client.fetch_collection.assert_awaited_once_with("customers")

    @pytest.mark.asyncio
    async def test_force_full_sync_replaces_cache(self, db_session, site_id):
        """Debe borrar las entidades previas en una sincronización forzada."""
        await cache_store.upsert_entities(db_session, "posts", site_id, [{"id": 1}, {"id": 2}])
        await cache_store.update_sync_metadata(db_session, site_id, "posts", status="completed", last_sync=utcnow())
        client = make_client({"posts": [{"id": 3}]})

        synced = await SyncService().sync_data_type(db_session, client, site_id, "posts", force_full_sync=True)

        assert synced == 1
        items = await cache_store.get_entities(db_session, "posts", site_id)
        assert [item["id"] for item in items] == [3]

    @pytest.mark.asyncio
    async def test_remote_error_marks_metadata(self, db_session, site_id):
        """Debe dejar el tipo en estado error y lanzar SyncException."""
        client = make_client(error=WooCommerceAPIException("Boom", api_response_code=500, endpoint="orders"))

        with pytest.raises(SyncException):
            await SyncService().sync_data_type(db_session, client, site_id, "orders")

        metadata = await cache_store.get_last_sync(db_session, site_id, "orders")
        assert metadata.status == "error"
        assert "Boom" in metadata.error


class TestIncrementalSync:
    """Tests para la sincronización incremental."""

    @pytest.mark.asyncio
    async def test_without_previous_sync_falls_back_to_full(self, db_session, site_id):
        """Debe hacer una sincronización completa si no hay sync previo."""
        client = make_client({"orders": [{"id": 1}]})

        synced = await SyncService().incremental_sync(db_session, client, site_id, "orders")

        assert synced == 1
        client.fetch_collection.assert_awaited_once_with("orders")

    @pytest.mark.asyncio
    async def test_uses_modified_after(self, db_session, site_id):
        """Debe pedir solo lo modificado desde el último sync y conservar el resto."""
        await cache_store.upsert_entities(db_session, "products", site_id, [{"id": 1, "name": "A"}])
        await cache_store.update_sync_metadata(
            db_session, site_id, "products", status="completed", last_sync=utcnow() - timedelta(hours=2)
        )
        client = make_client({"products": [{"id": 1, "name": "A2"}, {"id": 2, "name": "B"}]})

        synced = await SyncService().incremental_sync(db_session, client, site_id, "products")

        assert synced == 2
        _, kwargs = client.fetch_collection.call_args
        assert kwargs["modified_after"] is not None
        metadata = await cache_store.get_last_sync(db_session, site_id, "products")
        assert metadata.total_count == 2
        assert (await cache_store.get_entity(db_session, "products", site_id, 1))["name"] == "A2"

    @pytest.mark.asyncio
    async def test_non_incremental_type_syncs_fully(self, db_session, site_id):
        """Debe sincronizar completo los tipos sin modified_after."""
        await cache_store.update_sync_metadata(db_session, site_id, "comments", status="completed", last_sync=utcnow())
        client = make_client({"comments": [{"id": 7}]})

        await SyncService().incremental_sync(db_session, client, site_id, "comments")

        client.fetch_collection.assert_awaited_once_with("comments")

    @pytest.mark.asyncio
    async def test_rejected_while_full_sync_runs(self, db_session, site_id):
        """Debe rechazar la sincronización incremental durante un sync completo."""
        service = SyncService()
        service._sync_in_progress = True
        client = make_client({"orders": [{"id": 1}]})

        with pytest.raises(ConflictException):
            await service.incremental_sync(db_session, client, site_id, "orders")

        client.fetch_collection.assert_not_called()

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_metadata(self, db_session, site_id):
        """Debe dejar el tipo en estado error ante errores que no son de la app."""
        await cache_store.update_sync_metadata(
            db_session, site_id, "orders", status="completed", last_sync=utcnow() - timedelta(hours=1)
        )
        client = make_client(error=RuntimeError("disk full"))

        with pytest.raises(SyncException):
            await SyncService().incremental_sync(db_session, client, site_id, "orders")

        metadata = await cache_store.get_last_sync(db_session, site_id, "orders")
        assert metadata.status == "error"
        assert metadata.error == "disk full"


class TestSyncAll:
    """Tests para la sincronización de todos los tipos."""

    @pytest.mark.asyncio
    async def test_sync_all_returns_counts_and_logs(self, db_session, site_id):
        """Debe devolver las entidades por tipo y registrar la ejecución."""
        client = make_client({"orders": [{"id": 1}, {"id": 2}], "products": [{"id": 10}]})
        progress = []

        results = await SyncService().sync_all(
            db_session, client, site_id, data_types=["orders", "products"], on_progress=progress.append
        )

        assert results == {"orders": 2, "products": 1}
        assert [p["percentage"] for p in progress] == [50, 100]
        logs = await cache_store.get_sync_logs(db_session, site_id)
        assert logs[0].data_type == "all"
        assert logs[0].status == "completed"
        assert logs[0].items_synced == 3

    @pytest.mark.asyncio
    async def test_rejects_concurrent_sync(self, db_session, site_id):
        """Debe rechazar una segunda sincronización mientras hay otra en curso."""
        service = SyncService()
        service._sync_in_progress = True

        with pytest.raises(ConflictException):
            await service.sync_all(db_session, make_client(), site_id)

    @pytest.mark.asyncio
    async def test_cancel_stops_between_types(self, db_session, site_id):
        """Debe detenerse al cancelar y registrar la ejecución como fallida."""
        service = SyncService()
        client = make_client({"orders": [{"id": 1}], "products": [{"id": 2}]})

        with pytest.raises(SyncCancelled):
            await service.sync_all(
                db_session,
                client,
                site_id,
                data_types=["orders", "products"],
                on_progress=lambda _: service.cancel_sync(),
            )

        assert service.is_syncing() is False
        assert await cache_store.count_entities(db_session, "products", site_id) == 0
        logs = await cache_store.get_sync_logs(db_session, site_id)
        assert logs[0].status == "failed"

    @pytest.mark.asyncio
    async def test_failed_start_releases_flag(self, db_session, site_id):
        """Debe liberar el estado de sincronización si falla el registro inicial."""
        service = SyncService()
        client = make_client({"orders": [{"id": 1}]})

        with patch.object(cache_store, "log_sync", AsyncMock(side_effect=RuntimeError("database is locked"))):
            with pytest.raises(RuntimeError):
                await service.sync_all(db_session, client, site_id, data_types=["orders"])

        assert service.is_syncing() is False
        assert service.current_site_id is None

        results = await service.sync_all(db_session, client, site_id, data_types=["orders"])
        assert results == {"orders": 1}

    def test_cancel_without_sync(self):
        """Debe devolver False si no hay nada que cancelar."""
        assert SyncService().cancel_sync() is False

    @pytest.mark.asyncio
    async def test_sync_status_lists_known_types(self, db_session, site_id):
        """Debe devolver solo los tipos con metadatos."""
        await cache_store.update_sync_metadata(db_session, site_id, "orders", status="completed")

        status = await SyncService().get_sync_status(db_session, site_id)

        assert list(status) == ["orders"]
        assert status["orders"]["status"] == "completed"
