"""
Almacén de caché de entidades WooCommerce/WordPress.

Las entidades remotas se guardan tal cual (JSON) indexadas por
(site_id, external_id). La última escritura gana: no hay resolución
de conflictos. Además se mantienen los metadatos de sincronización
por tipo de dato y un historial de ejecuciones.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.db.models import CACHE_MODELS, SyncLog, SyncMetadata
from eidf_crm.utils.error_handler import ValidationException
from eidf_crm.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

DATA_TYPES = tuple(CACHE_MODELS.keys())

SYNC_STATUSES = ("idle", "syncing", "completed", "error")
SYNC_LOG_STATUSES = ("started", "completed", "failed")


def get_cache_model(data_type: str):
    """
    Obtiene el modelo de caché de un tipo de dato.

    Args:
        data_type: orders, products, customers, posts, pages, media, comments o users

    Raises:
        ValidationException: Si el tipo no existe
    """
    model = CACHE_MODELS.get(data_type)
    if model is None:
        raise ValidationException(
            f"Unknown data type: {data_type}",
            field="data_type",
            invalid_value=data_type,
            expected_format=", ".join(DATA_TYPES),
        )
    return model


def is_stale(last_updated: Optional[datetime], max_age_minutes: int = 30, now: Optional[datetime] = None) -> bool:
    """
    Indica si un dato cacheado está obsoleto.

    Args:
        last_updated: Última actualización (None se considera obsoleto)
        max_age_minutes: Antigüedad máxima aceptada
        now: Instante de referencia

    Returns:
        bool: True si hay que refrescar
    """
    if last_updated is None:
        return True
    now = ensure_utc(now) if now else utcnow()
    return now - ensure_utc(last_updated) > timedelta(minutes=max_age_minutes)


def get_cache_key(site_id: Any, item_id: Any) -> str:
    return f"{site_id}-{item_id}"


async def upsert_entities(
    session: AsyncSession, data_type: str, site_id: str, items: Iterable[Dict[str, Any]]
) -> int:
    """
    Inserta o actualiza entidades por (site_id, external_id).

    Args:
        session: Sesión de base de datos
        data_type: Tipo de dato del caché
        site_id: Sitio al que pertenecen
        items: Entidades remotas; su "id" es el external_id

    Returns:
        int: Número de entidades escritas
    """
    model = get_cache_model(data_type)
    now = utcnow()

    by_external_id: Dict[str, Dict[str, Any]] = {}
    for item in items:
        if item.get("id") is None:
            logger.warning(f"⚠️ {data_type} item without id skipped for site {site_id}")
            continue
        by_external_id[str(item["id"])] = item

    if not by_external_id:
        return 0

    result = await session.execute(
        select(model).where(model.site_id == site_id, model.external_id.in_(list(by_external_id)))
    )
    existing = {row.external_id: row for row in result.scalars()}

    for external_id, item in by_external_id.items():
        row = existing.get(external_id)
        if row is None:
            session.add(model(site_id=site_id, external_id=external_id, data=item, last_updated=now))
        else:
            row.data = item
            row.last_updated = now

    await session.flush()
    return len(by_external_id)


# Alias usado por la sincronización por lotes
batch_update = upsert_entities


def _text_values(value: Any) -> Iterable[str]:
    """Valores de texto y numéricos de un JSON, recorriendo listas y objetos anidados."""
    if isinstance(value, dict):
        for child in value.values():
            yield from _text_values(child)
    elif isinstance(value, list):
        for child in value:
            yield from _text_values(child)
    elif isinstance(value, str):
        yield value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        yield str(value)


def matches_search(item: Dict[str, Any], search: str) -> bool:
    """
    Indica si algún valor de la entidad contiene el texto buscado.

    Solo se comparan valores (nombre, email, número, ...), nunca las claves.
    """
    needle = search.lower()
    return any(needle in text.lower() for text in _text_values(item))


def _filtered_query(model, site_id: str, status: Optional[str]):
    query = select(model).where(model.site_id == site_id)
    if status:
        query = query.where(model.data["status"].as_string() == status)
    return query


async def get_entities(
    session: AsyncSession,
    data_type: str,
    site_id: str,
    limit: Optional[int] = None,
    offset: int = 0,
    search: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Lista entidades cacheadas de un sitio.

    Sin búsqueda de texto la paginación se resuelve en SQL.

    Args:
        session: Sesión de base de datos
        data_type: Tipo de dato
        site_id: Sitio
        limit: Máximo de resultados
        offset: Desplazamiento
        search: Texto a buscar en los valores de la entidad (sin distinguir mayúsculas)
        status: Valor exacto del campo "status" (pedidos, productos, posts)

    Returns:
        List[Dict]: Datos de las entidades
    """
    model = get_cache_model(data_type)
    query = _filtered_query(model, site_id, status).order_by(model.id)

    if not search:
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        result = await session.execute(query)
        return [row.data for row in result.scalars()]

    result = await session.execute(query)
    items = [row.data for row in result.scalars() if matches_search(row.data, search)]
    if limit is not None:
        return items[offset : offset + limit]
    return items[offset:]


async def get_entity(
    session: AsyncSession, data_type: str, site_id: str, external_id: Any
) -> Optional[Dict[str, Any]]:
    model = get_cache_model(data_type)
    result = await session.execute(
        select(model).where(model.site_id == site_id, model.external_id == str(external_id))
    )
    row = result.scalar_one_or_none()
    return row.data if row else None


async def count_entities(
    session: AsyncSession, data_type: str, site_id: Optional[str] = None, status: Optional[str] = None
) -> int:
    model = get_cache_model(data_type)
    query = select(func.count()).select_from(model)
    if site_id is not None:
        query = query.where(model.site_id == site_id)
    if status:
        query = query.where(model.data["status"].as_string() == status)
    return (await session.execute(query)).scalar_one()


async def delete_entities(session: AsyncSession, data_type: str, site_id: str) -> None:
    model = get_cache_model(data_type)
    await session.execute(delete(model).where(model.site_id == site_id))


async def clear_site_cache(session: AsyncSession, site_id: str) -> None:
    """
    Elimina todo el caché de un sitio, incluidos metadatos e historial.

    Args:
        session: Sesión de base de datos
        site_id: Sitio a limpiar
    """
    for data_type in DATA_TYPES:
        await delete_entities(session, data_type, site_id)
    await session.execute(delete(SyncMetadata).where(SyncMetadata.site_id == site_id))
    await session.execute(delete(SyncLog).where(SyncLog.site_id == site_id))
    logger.info(f"🧹 Cache cleared for site {site_id}")


async def get_cache_size(session: AsyncSession, site_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Número total de entidades cacheadas y tamaño estimado (~1 KB por entidad).

    Args:
        session: Sesión de base de datos
        site_id: Limitar a un sitio

    Returns:
        Dict: {"total_items", "size_estimate"}
    """
    total_items = 0
    for data_type in DATA_TYPES:
        total_items += await count_entities(session, data_type, site_id)

    return {"total_items": total_items, "size_estimate": f"{total_items / 1024:.2f} MB"}


async def get_last_sync(session: AsyncSession, site_id: str, data_type: str) -> Optional[SyncMetadata]:
    result = await session.execute(
        select(SyncMetadata).where(SyncMetadata.site_id == site_id, SyncMetadata.data_type == data_type)
    )
    return result.scalar_one_or_none()


async def update_sync_metadata(session: AsyncSession, site_id: str, data_type: str, **updates) -> SyncMetadata:
    """
    Crea o actualiza los metadatos de sincronización.

    Al crearse, el registro empieza con last_sync=ahora, contadores a 0
    y estado "idle", y después se aplican las actualizaciones.

    Args:
        session: Sesión de base de datos
        site_id: Sitio
        data_type: Tipo de dato
        **updates: Columnas de SyncMetadata a modificar

    Returns:
        SyncMetadata: Registro actualizado
    """
    status = updates.get("status")
    if status is not None and status not in SYNC_STATUSES:
        raise ValidationException(f"Invalid sync status: {status}", field="status", invalid_value=status)

    metadata = await get_last_sync(session, site_id, data_type)
    if metadata is None:
        metadata = SyncMetadata(
            site_id=site_id,
            data_type=data_type,
            last_sync=utcnow(),
            total_count=0,
            synced_count=0,
            status="idle",
        )
        session.add(metadata)

    for key, value in updates.items():
        setattr(metadata, key, value)

    await session.flush()
    return metadata


async def log_sync(
    session: AsyncSession,
    site_id: str,
    data_type: str,
    status: str,
    items_synced: int = 0,
    error: Optional[str] = None,
    log_id: Optional[int] = None,
) -> int:
    """
    Registra o actualiza una ejecución de sincronización.

    Args:
        session: Sesión de base de datos
        site_id: Sitio
        data_type: Tipo de dato o "all"
        status: started, completed o failed
        items_synced: Entidades sincronizadas
        error: Mensaje de error
        log_id: Registro existente a actualizar

    Returns:
        int: ID del registro
    """
    if status not in SYNC_LOG_STATUSES:
        raise ValidationException(f"Invalid sync log status: {status}", field="status", invalid_value=status)

    log = await session.get(SyncLog, log_id) if log_id is not None else None
    if log is None:
        log = SyncLog(site_id=site_id, data_type=data_type, start_time=utcnow(), status=status)
        session.add(log)

    log.status = status
    log.items_synced = items_synced
    log.error = error
    if status in ("completed", "failed"):
        log.end_time = utcnow()

    await session.flush()
    return log.id


async def get_sync_logs(session: AsyncSession, site_id: str, limit: int = 20) -> List[SyncLog]:
    result = await session.execute(
        select(SyncLog).where(SyncLog.site_id == site_id).order_by(SyncLog.id.desc()).limit(limit)
    )
    return list(result.scalars())
