"""
Endpoints de credenciales de API por organización.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.api.v1.schemas.saas_schemas import CredentialCreate, CredentialUpdate
from eidf_crm.core.auth import AuthUser, require_organization, require_role
from eidf_crm.db.connection import get_db_session
from eidf_crm.services.api_credential_service import ApiCredentialService, serialize_credential
from eidf_crm.services.woocommerce_factory import get_woocommerce_factory
from eidf_crm.utils.error_handler import AppException, NotFoundException, ValidationException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/credentials")


async def _invalidate_client(service: str, organization_id: str):
    # El cliente en caché usa las credenciales anteriores
    if service == "woocommerce":
        await get_woocommerce_factory().clear_cache(organization_id)


@router.get("", summary="Credenciales de la organización (sin secretos)")
async def list_credentials(
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
) -> List[Dict[str, Any]]:
    return await ApiCredentialService(session).list(user.organization_id)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Crear credencial")
async def create_credential(
    payload: CredentialCreate,
    user: AuthUser = Depends(require_role("OWNER", "ADMIN")),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    if not payload.service or not payload.name or not payload.credentials:
        raise ValidationException("Service, name and credentials are required", field="service, name, credentials")

    credential = await ApiCredentialService(session).create(
        user.organization_id, payload.service, payload.name, payload.credentials
    )
    await _invalidate_client(credential.service, user.organization_id)
    return serialize_credential(credential)


@router.put("/{credential_id}", summary="Actualizar credencial")
async def update_credential(
    credential_id: str,
    payload: CredentialUpdate,
    user: AuthUser = Depends(require_role("OWNER", "ADMIN")),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    credential = await ApiCredentialService(session).update(
        credential_id,
        user.organization_id,
        name=payload.name,
        credentials=payload.credentials,
        is_active=payload.is_active,
    )
    await _invalidate_client(credential.service, user.organization_id)
    return serialize_credential(credential)


@router.delete("/{credential_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Eliminar credencial")
async def delete_credential(
    credential_id: str,
    user: AuthUser = Depends(require_role("OWNER")),
    session: AsyncSession = Depends(get_db_session),
) -> Response:
    credential = await ApiCredentialService(session).delete(credential_id, user.organization_id)
    await _invalidate_client(credential.service, user.organization_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/test/woocommerce", summary="Probar la conexión WooCommerce guardada")
async def test_woocommerce_connection(
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Lee el estado del sistema de la tienda con las credenciales guardadas.

    Returns:
        {"success", "message", "storeInfo"} o 400 con {"success": false, "message"}
    """
    credentials = await ApiCredentialService(session).get_woocommerce_credentials(user.organization_id)
    if not credentials:
        raise NotFoundException("WooCommerce credentials not found", resource="woocommerce_credentials")

    try:
        client = await get_woocommerce_factory().get_client(session, user.organization_id)
        system_status = await client.system_status()
    except AppException as e:
        logger.warning(f"⚠️ WooCommerce connection test failed for {user.organization_id}: {e.message}")
        return JSONResponse(status_code=400, content={"success": False, "message": e.message})

    environment = system_status.get("environment") or {}
    return {
        "success": True,
        "message": "WooCommerce connection successful",
        "storeInfo": {
            "name": environment.get("site_title"),
            "url": environment.get("site_url"),
            "wcVersion": environment.get("version"),
        },
    }
