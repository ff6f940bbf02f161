"""
Servicio de sincronización del caché WooCommerce/WordPress.

Recorre las colecciones remotas página a página y las vuelca en el caché
por lotes, manteniendo los metadatos de estado por tipo de dato y un
registro de cada ejecución. Solo se permite una sincronización a la vez
por proceso; con Redis configurado el lock se comparte entre procesos.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.core.config import get_settings
from eidf_crm.core.logging_config import log_sync_operation
from eidf_crm.core.redis_client import acquire_lock, release_lock
from eidf_crm.db.woocommerce_clients import WooCommerceClient
from eidf_crm.services import cache_store
from eidf_crm.utils.error_handler import AppException, ConflictException, ErrorCode, SyncException
from eidf_crm.utils.time_utils import isoformat, utcnow

settings = get_settings()
logger = logging.getLogger("eidf_crm.sync.service")

SYNC_IN_PROGRESS_MESSAGE = "Une synchronisation est déjà en cours"

# Tamaño de lote de escritura por tipo de dato
BATCH_SIZES = {"orders": 100, "products": 50}
DEFAULT_BATCH_SIZE = 100

# Tipos que admiten sincronización incremental con modified_after
INCREMENTAL_TYPES = ("orders", "products")

ProgressCallback = Callable[[Dict[str, Any]], None]


class SyncCancelled(SyncException):
    """La sincronización fue cancelada por el usuario."""


class SyncService:
    """
    Orquesta la sincronización de los tipos de dato de un sitio.
    """

    def __init__(self):
        self._sync_in_progress = False
        self._cancel_requested = False
        self.current_site_id: Optional[str] = None

    def is_syncing(self) -> bool:
        return self._sync_in_progress

    def cancel_sync(self) -> bool:
        """
        Solicita cancelar la sincronización en curso.

        Returns:
            bool: True si había una sincronización en curso
        """
        if not self._sync_in_progress:
            return False
        self._cancel_requested = True
        logger.info(f"🛑 Cancel requested for sync of site {self.current_site_id}")
        return True

    def ensure_idle(self):
        """Lanza ConflictException si ya hay una sincronización en curso."""
        if self._sync_in_progress:
            raise ConflictException(SYNC_IN_PROGRESS_MESSAGE, error_code=ErrorCode.SYNC_IN_PROGRESS)

    def _check_cancelled(self, data_type: str, site_id: str):
        if self._cancel_requested:
            raise SyncCancelled("Sync cancelled", data_type=data_type, site_id=site_id)

    async def sync_all(
        self,
        session: AsyncSession,
        client: WooCommerceClient,
        site_id: str,
        data_types: Optional[Iterable[str]] = None,
        force_full_sync: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, int]:
        """
        Sincroniza todos los tipos de dato indicados de un sitio.

        Args:
            session: Sesión de base de datos
            client: Cliente WooCommerce del sitio
            site_id: Sitio del caché
            data_types: Tipos a sincronizar (por defecto todos)
            force_full_sync: Ignorar la frescura y reemplazar el caché
            on_progress: Callback con {data_type, current, total, percentage}

        Returns:
            Dict[str, int]: Entidades sincronizadas por tipo

        Raises:
            ConflictException: Si ya hay una sincronización en curso
            SyncException: Si falla algún tipo de dato o se cancela
        """
        self.ensure_idle()

        data_types = list(data_types or cache_store.DATA_TYPES)
        for data_type in data_types:
            cache_store.get_cache_model(data_type)

        lock_key = f"eidf:sync:{site_id}"
        if not await acquire_lock(lock_key, settings.SYNC_LOCK_TTL_SECONDS):
            raise ConflictException(SYNC_IN_PROGRESS_MESSAGE, error_code=ErrorCode.SYNC_IN_PROGRESS)

        self._sync_in_progress = True
        self._cancel_requested = False
        self.current_site_id = site_id

        log_id: Optional[int] = None
        results: Dict[str, int] = {}
        progress_per_type = 100 / len(data_types) if data_types else 100

        try:
            log_id = await cache_store.log_sync(session, site_id, "all", "started")
            log_sync_operation("started", "all", site_id, data_types=data_types, force_full_sync=force_full_sync)

            for index, data_type in enumerate(data_types):
                self._check_cancelled(data_type, site_id)

                results[data_type] = await self.sync_data_type(
                    session, client, site_id, data_type, force_full_sync=force_full_sync
                )

                if on_progress:
                    on_progress(
                        {
                            "data_type": data_type,
                            "current": index + 1,
                            "total": len(data_types),
                            "percentage": round(progress_per_type * (index + 1)),
                        }
                    )

            total_items = sum(results.values())
            await cache_store.log_sync(session, site_id, "all", "completed", items_synced=total_items, log_id=log_id)
            log_sync_operation("completed", "all", site_id, items_synced=total_items)
            return results

        except Exception as e:
            if log_id is not None:
                await cache_store.log_sync(
                    session, site_id, "all", "failed", items_synced=sum(results.values()), error=str(e), log_id=log_id
                )
                await session.commit()
            log_sync_operation("failed", "all", site_id, error=str(e))
            raise

        finally:
            self._sync_in_progress = False
            self._cancel_requested = False
            self.current_site_id = None
            await release_lock(lock_key)

    async def sync_data_type(
        self,
        session: AsyncSession,
        client: WooCommerceClient,
        site_id: str,
        data_type: str,
        force_full_sync: bool = False,
    ) -> int:
        """
        Sincroniza un tipo de dato completo.

        Se omite si el último sync completado sigue fresco, salvo que se fuerce.

        Args:
            session: Sesión de base de datos
            client: Cliente WooCommerce
            site_id: Sitio del caché
            data_type: Tipo de dato
            force_full_sync: Reemplazar el caché aunque esté fresco

        Returns:
            int: Entidades sincronizadas (0 si se omitió)

        Raises:
            SyncException: Si falla la descarga o la escritura
        """
        cache_store.get_cache_model(data_type)
        metadata = await cache_store.get_last_sync(session, site_id, data_type)
        max_age = settings.get_stale_minutes(data_type)

        if (
            not force_full_sync
            and metadata is not None
            and metadata.status == "completed"
            and not cache_store.is_stale(metadata.last_sync, max_age)
        ):
            logger.info(f"⏭️ {data_type} cache is fresh for site {site_id}, skipping sync")
            log_sync_operation("skipped", data_type, site_id)
            return 0

        await cache_store.update_sync_metadata(session, site_id, data_type, status="syncing", error=None)

        try:
            items = await client.fetch_collection(data_type)
            if force_full_sync:
                await cache_store.delete_entities(session, data_type, site_id)

            synced = await self._write_batches(session, site_id, data_type, items)

            await cache_store.update_sync_metadata(
                session,
                site_id,
                data_type,
                status="completed",
                last_sync=utcnow(),
                total_count=len(items),
                synced_count=synced,
            )
            log_sync_operation("completed", data_type, site_id, items_synced=synced)
            return synced

        except Exception as e:
            await cache_store.update_sync_metadata(session, site_id, data_type, status="error", error=str(e))
            # El estado de error debe sobrevivir al rollback de la petición
            await session.commit()
            log_sync_operation("failed", data_type, site_id, error=str(e))
            if isinstance(e, SyncException):
                raise
            if isinstance(e, AppException):
                raise SyncException(
                    f"Sync of {data_type} failed: {e.message}", data_type=data_type, site_id=site_id, details=e.details
                ) from e
            raise SyncException(f"Sync of {data_type} failed: {str(e)}", data_type=data_type, site_id=site_id) from e

    async def _write_batches(self, session: AsyncSession, site_id: str, data_type: str, items: List[Dict]) -> int:
        batch_size = BATCH_SIZES.get(data_type, DEFAULT_BATCH_SIZE)
        synced = 0
        for start in range(0, len(items), batch_size):
            self._check_cancelled(data_type, site_id)
            synced += await cache_store.batch_update(session, data_type, site_id, items[start : start + batch_size])
        return synced

    async def incremental_sync(
        self, session: AsyncSession, client: WooCommerceClient, site_id: str, data_type: str
    ) -> int:
        """
        Sincroniza solo lo modificado desde el último sync.

        Sin sync previo se hace una sincronización completa. Solo pedidos y
        productos admiten modified_after; el resto se sincroniza completo.

        Args:
            session: Sesión de base de datos
            client: Cliente WooCommerce
            site_id: Sitio del caché
            data_type: Tipo de dato

        Returns:
            int: Entidades sincronizadas

        Raises:
            ConflictException: Si hay una sincronización completa en curso
            SyncException: Si falla la descarga o la escritura
        """
        self.ensure_idle()
        cache_store.get_cache_model(data_type)
        metadata = await cache_store.get_last_sync(session, site_id, data_type)
        if metadata is None or metadata.status != "completed" or data_type not in INCREMENTAL_TYPES:
            return await self.sync_data_type(session, client, site_id, data_type, force_full_sync=True)

        since = isoformat(metadata.last_sync)
        logger.info(f"🔄 Incremental sync of {data_type} for site {site_id} since {since}")
        started_at = utcnow()

        try:
            items = await client.fetch_collection(data_type, modified_after=since)
            synced = await cache_store.batch_update(session, data_type, site_id, items)
            total = await cache_store.count_entities(session, data_type, site_id)
            await cache_store.update_sync_metadata(
                session,
                site_id,
                data_type,
                status="completed",
                last_sync=started_at,
                total_count=total,
                synced_count=total,
                error=None,
            )
            log_sync_operation("completed", data_type, site_id, items_synced=synced, incremental=True)
            return synced
        except Exception as e:
            message = e.message if isinstance(e, AppException) else str(e)
            await cache_store.update_sync_metadata(session, site_id, data_type, status="error", error=message)
            await session.commit()
            log_sync_operation("failed", data_type, site_id, error=message, incremental=True)
            raise SyncException(
                f"Incremental sync of {data_type} failed: {message}", data_type=data_type, site_id=site_id
            ) from e

    async def get_sync_status(self, session: AsyncSession, site_id: str) -> Dict[str, Dict[str, Any]]:
        """
        Metadatos de sincronización de cada tipo de dato del sitio.

        Returns:
            Dict: data_type → metadatos serializables (solo tipos con metadatos)
        """
        status: Dict[str, Dict[str, Any]] = {}
        for data_type in cache_store.DATA_TYPES:
            metadata = await cache_store.get_last_sync(session, site_id, data_type)
            if metadata is None:
                continue
            status[data_type] = {
                "data_type": data_type,
                "last_sync": isoformat(metadata.last_sync),
                "total_count": metadata.total_count,
                "synced_count": metadata.synced_count,
                "status": metadata.status,
                "error": metadata.error,
                "next_sync_scheduled": isoformat(metadata.next_sync_scheduled),
            }
        return status


_sync_service: Optional[SyncService] = None


def get_sync_service() -> SyncService:
    """Instancia única del servicio por proceso."""
    global _sync_service
    if _sync_service is None:
        _sync_service = SyncService()
    return _sync_service
