"""
Dependencias de autenticación y autorización.

Cada petición autenticada trae un ID token de Firebase en la cabecera
Authorization. La organización activa se indica con la cabecera
X-Organization-ID (o el query param organizationId) y se valida contra
la membresía del usuario.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.db.connection import get_db_session
from eidf_crm.services.firebase_admin_service import verify_id_token
from eidf_crm.services.organization_service import OrganizationService
from eidf_crm.utils.error_handler import (
    AuthenticationException,
    AuthorizationException,
    ValidationException,
)

logger = logging.getLogger(__name__)

ORGANIZATION_HEADER = "X-Organization-ID"
ORGANIZATION_QUERY_PARAM = "organizationId"


class AuthUser(BaseModel):
    """Usuario autenticado y, si aplica, su organización activa."""

    uid: str
    email: Optional[str] = None
    organization_id: Optional[str] = None
    role: Optional[str] = None


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Extrae el token de una cabecera Authorization.

    Raises:
        AuthenticationException: Si la cabecera falta o no es Bearer
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationException("Unauthorized")
    token = authorization[len("Bearer ") :].strip()
    if not token:
        raise AuthenticationException("Unauthorized")
    return token


async def get_current_user(request: Request, session: AsyncSession = Depends(get_db_session)) -> AuthUser:
    """
    Verifica el token y resuelve la organización activa.

    Args:
        request: Petición entrante
        session: Sesión de base de datos

    Returns:
        AuthUser: Usuario con organization_id y role si se indicó organización

    Raises:
        AuthenticationException: Token ausente o inválido (401)
        AuthorizationException: El usuario no pertenece a la organización (403)
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    decoded = await verify_id_token(token)

    user = AuthUser(uid=decoded["uid"], email=decoded.get("email"))

    organization_id = request.headers.get(ORGANIZATION_HEADER) or request.query_params.get(ORGANIZATION_QUERY_PARAM)
    if organization_id:
        membership = await OrganizationService(session).get_membership(organization_id, user.uid)
        if membership is None:
            logger.warning(f"🚫 User {user.uid} denied access to organization {organization_id}")
            raise AuthorizationException("Access denied to this organization")
        user.organization_id = organization_id
        user.role = membership.role

    return user


async def require_organization(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """Exige una organización activa (400 si falta)."""
    if not user.organization_id:
        raise ValidationException("Organization ID required", field=ORGANIZATION_HEADER)
    return user


def require_role(*roles: str):
    """
    Crea una dependencia que exige uno de los roles dados en la organización activa.

    Args:
        *roles: Roles permitidos (OWNER, ADMIN, MEMBER)

    Returns:
        Callable: Dependencia FastAPI que devuelve el AuthUser
    """

    async def _require_role(user: AuthUser = Depends(require_organization)) -> AuthUser:
        if user.role not in roles:
            raise AuthorizationException("Insufficient permissions")
        return user

    return _require_role
