"""
Endpoints de organizaciones y sus miembros.

La organización se toma del path, así que los permisos se comprueban
contra la membresía en esa organización y no contra X-Organization-ID.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.api.v1.schemas.saas_schemas import (
    OrganizationCreate,
    OrganizationMemberAdd,
    OrganizationMemberRole,
)
from eidf_crm.core.auth import AuthUser, get_current_user
from eidf_crm.db.connection import get_db_session
from eidf_crm.services.organization_service import (
    OrganizationService,
    serialize_member,
    serialize_organization,
)
from eidf_crm.utils.error_handler import (
    AuthorizationException,
    NotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _require_path_role(service: OrganizationService, organization_id: str, user: AuthUser, *roles: str):
    membership = await service.get_membership(organization_id, user.uid)
    if membership is None:
        raise AuthorizationException("Access denied")
    if roles and membership.role not in roles:
        raise AuthorizationException("Insufficient permissions")
    return membership


@router.get("/my-organizations", summary="Organizaciones del usuario")
async def list_my_organizations(
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> List[Dict[str, Any]]:
    return await OrganizationService(session).get_user_organizations(user.uid)


@router.post("/organizations", status_code=status.HTTP_201_CREATED, summary="Crear organización")
async def create_organization(
    payload: OrganizationCreate,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    """
    Crea una organización. El usuario autenticado queda como OWNER.
    """
    if not payload.name or not payload.name.strip():
        raise ValidationException("Organization name is required", field="name")

    organization = await OrganizationService(session).create_organization(
        payload.name, user.uid, website=payload.website, logo=payload.logo
    )
    return serialize_organization(organization)


@router.get("/organizations/{organization_id}", summary="Detalle de organización")
async def get_organization(
    organization_id: str,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    service = OrganizationService(session)
    organization = await service.get_organization_by_id(organization_id)
    if organization is None:
        raise NotFoundException("Organization not found", resource="organization")

    if not any(member.user_id == user.uid for member in organization.users):
        raise AuthorizationException("Access denied")

    return serialize_organization(organization)


@router.post(
    "/organizations/{organization_id}/users",
    status_code=status.HTTP_201_CREATED,
    summary="Añadir miembro",
)
async def add_organization_user(
    organization_id: str,
    payload: OrganizationMemberAdd,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    service = OrganizationService(session)
    await _require_path_role(service, organization_id, user, "OWNER", "ADMIN")

    if not payload.user_id:
        raise ValidationException("User ID is required", field="userId")

    member = await service.add_user_to_organization(organization_id, payload.user_id, payload.role)
    return serialize_member(member)


@router.patch("/organizations/{organization_id}/users/{user_id}", summary="Cambiar rol de un miembro")
async def update_organization_user(
    organization_id: str,
    user_id: str,
    payload: OrganizationMemberRole,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    service = OrganizationService(session)
    await _require_path_role(service, organization_id, user, "OWNER")

    if not payload.role:
        raise ValidationException("Role is required", field="role")

    member = await service.update_user_role(organization_id, user_id, payload.role)
    return serialize_member(member)


@router.delete(
    "/organizations/{organization_id}/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Quitar miembro",
)
async def remove_organization_user(
    organization_id: str,
    user_id: str,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> Response:
    service = OrganizationService(session)
    await _require_path_role(service, organization_id, user, "OWNER", "ADMIN")

    await service.remove_user_from_organization(organization_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
