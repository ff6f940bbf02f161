"""
Endpoints del caché local de entidades WooCommerce/WordPress.

El sitio del caché es la organización activa: cada organización tiene
una única tienda configurada.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.api.v1.dependencies import get_site_client
from eidf_crm.api.v1.schemas.content_schemas import CacheSyncRequest
from eidf_crm.core.auth import AuthUser, require_organization, require_role
from eidf_crm.db.connection import get_db_session
from eidf_crm.db.woocommerce_clients import WooCommerceClient
from eidf_crm.services import cache_store
from eidf_crm.services.sync_service import get_sync_service
from eidf_crm.utils.error_handler import NotFoundException
from eidf_crm.utils.time_utils import isoformat

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cache")

DEFAULT_QUERY_LIMIT = Query(default=100, ge=1, le=1000)
DEFAULT_QUERY_OFFSET = Query(default=0, ge=0)


@router.post("/sync", summary="Sincronizar el caché completo")
async def sync_cache(
    payload: Optional[CacheSyncRequest] = None,
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
    client: WooCommerceClient = Depends(get_site_client),
) -> Dict[str, Any]:
    """
    Ejecuta la sincronización de todos los tipos pedidos.

    Returns:
        Dict: {"success", "results": {data_type: entidades}, "total"}
    """
    payload = payload or CacheSyncRequest()
    results = await get_sync_service().sync_all(
        session,
        client,
        user.organization_id,
        data_types=payload.data_types,
        force_full_sync=payload.force_full_sync,
    )
    return {"success": True, "results": results, "total": sum(results.values())}


@router.post("/sync/cancel", summary="Cancelar la sincronización en curso")
async def cancel_sync(user: AuthUser = Depends(require_organization)) -> Dict[str, Any]:
    service = get_sync_service()
    if service.current_site_id not in (None, user.organization_id):
        return {"success": False, "message": "No sync in progress for this organization"}

    cancelled = service.cancel_sync()
    return {"success": cancelled, "message": "Sync cancellation requested" if cancelled else "No sync in progress"}


@router.post("/sync/{data_type}", summary="Sincronizar un tipo de dato")
async def sync_data_type(
    data_type: str,
    incremental: bool = Query(default=True),
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
    client: WooCommerceClient = Depends(get_site_client),
) -> Dict[str, Any]:
    cache_store.get_cache_model(data_type)
    service = get_sync_service()

    if incremental:
        synced = await service.incremental_sync(session, client, user.organization_id, data_type)
    else:
        service.ensure_idle()
        synced = await service.sync_data_type(session, client, user.organization_id, data_type, force_full_sync=True)

    return {"success": True, "data_type": data_type, "synced": synced, "incremental": incremental}


@router.get("/status", summary="Estado de sincronización por tipo")
async def get_cache_status(
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    service = get_sync_service()
    return {
        "is_syncing": service.is_syncing() and service.current_site_id == user.organization_id,
        "data_types": await service.get_sync_status(session, user.organization_id),
    }


@router.get("/size", summary="Tamaño del caché")
async def get_cache_size(
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    return await cache_store.get_cache_size(session, user.organization_id)


@router.get("/logs", summary="Historial de sincronizaciones")
async def get_sync_logs(
    limit: int = Query(default=20, ge=1, le=200),
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
) -> List[Dict[str, Any]]:
    logs = await cache_store.get_sync_logs(session, user.organization_id, limit=limit)
    return [
        {
            "id": log.id,
            "data_type": log.data_type,
            "status": log.status,
            "items_synced": log.items_synced,
            "start_time": isoformat(log.start_time),
            "end_time": isoformat(log.end_time),
            "error": log.error,
        }
        for log in logs
    ]


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, summary="Vaciar el caché del sitio")
async def clear_cache(
    user: AuthUser = Depends(require_role("OWNER", "ADMIN")),
    session: AsyncSession = Depends(get_db_session),
) -> Response:
    await cache_store.clear_site_cache(session, user.organization_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{data_type}", summary="Entidades cacheadas")
async def list_cached_entities(
    data_type: str,
    limit: int = DEFAULT_QUERY_LIMIT,
    offset: int = DEFAULT_QUERY_OFFSET,
    search: Optional[str] = Query(default=None),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    """
    Página de entidades cacheadas. "total" cuenta las que cumplen los filtros.
    """
    site_id = user.organization_id
    if search:
        matching = await cache_store.get_entities(session, data_type, site_id, search=search, status=status_filter)
        items = matching[offset : offset + limit]
        total = len(matching)
    else:
        items = await cache_store.get_entities(
            session, data_type, site_id, limit=limit, offset=offset, status=status_filter
        )
        total = await cache_store.count_entities(session, data_type, site_id, status=status_filter)
    return {"items": items, "total": total, "limit": limit, "offset": offset}


@router.get("/{data_type}/{external_id}", summary="Entidad cacheada")
async def get_cached_entity(
    data_type: str,
    external_id: str,
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    item = await cache_store.get_entity(session, data_type, user.organization_id, external_id)
    if item is None:
        raise NotFoundException(f"{data_type} item {external_id} not found in cache", resource=data_type)
    return item
