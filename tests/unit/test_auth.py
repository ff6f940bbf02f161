"""Tests unitarios para las dependencias de autenticación."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from eidf_crm.core import auth
from eidf_crm.core.auth import AuthUser, extract_bearer_token, get_current_user, require_organization, require_role
from eidf_crm.services.organization_service import OrganizationService
from eidf_crm.utils.error_handler import AuthenticationException, AuthorizationException, ValidationException


def make_request(headers=None, query_params=None):
    request = MagicMock()
    request.headers = headers or {}
    request.query_params = query_params or {}
    return request


class TestExtractBearerToken:
    """Tests para la lectura de la cabecera Authorization."""

    def test_valid_header(self):
        """Debe extraer el token."""
        assert extract_bearer_token("Bearer abc.def") == "abc.def"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer "])
    def test_invalid_header(self, header):
        """Debe rechazar cabeceras ausentes o sin Bearer."""
        with pytest.raises(AuthenticationException):
            extract_bearer_token(header)


class TestGetCurrentUser:
    """Tests para get_current_user."""

    @pytest.mark.asyncio
    async def test_user_without_organization(self, db_session):
        """Debe devolver el usuario sin organización si no se indica ninguna."""
        request = make_request({"Authorization": "Bearer token"})

        with patch.object(auth, "verify_id_token", AsyncMock(return_value={"uid": "u1", "email": "a@b.fr"})):
            user = await get_current_user(request, db_session)

        assert user == AuthUser(uid="u1", email="a@b.fr")

    @pytest.mark.asyncio
    async def test_member_gets_role(self, db_session):
        """Debe resolver el rol del usuario en la organización indicada."""
        organization = await OrganizationService(db_session).create_organization("Boutique", "u1")
        request = make_request({"Authorization": "Bearer token", "X-Organization-ID": organization.id})

        with patch.object(auth, "verify_id_token", AsyncMock(return_value={"uid": "u1"})):
            user = await get_current_user(request, db_session)

        assert user.organization_id == organization.id
        assert user.role == "OWNER"

    @pytest.mark.asyncio
    async def test_organization_from_query_param(self, db_session):
        """Debe aceptar la organización como query param."""
        organization = await OrganizationService(db_session).create_organization("Boutique", "u1")
        request = make_request({"Authorization": "Bearer token"}, {"organizationId": organization.id})

        with patch.object(auth, "verify_id_token", AsyncMock(return_value={"uid": "u1"})):
            user = await get_current_user(request, db_session)

        assert user.organization_id == organization.id

    @pytest.mark.asyncio
    async def test_non_member_denied(self, db_session):
        """Debe denegar el acceso a organizaciones ajenas."""
        organization = await OrganizationService(db_session).create_organization("Boutique", "u1")
        request = make_request({"Authorization": "Bearer token", "X-Organization-ID": organization.id})

        with patch.object(auth, "verify_id_token", AsyncMock(return_value={"uid": "intruder"})):
            with pytest.raises(AuthorizationException):
                await get_current_user(request, db_session)

    @pytest.mark.asyncio
    async def test_missing_token(self, db_session):
        """Debe exigir el token."""
        with pytest.raises(AuthenticationException):
            await get_current_user(make_request(), db_session)


class TestRoleDependencies:
    """Tests para require_organization y require_role."""

    @pytest.mark.asyncio
    async def test_require_organization(self):
        """Debe exigir una organización activa."""
        with pytest.raises(ValidationException):
            await require_organization(AuthUser(uid="u1"))

    @pytest.mark.asyncio
    async def test_require_role(self):
        """Debe permitir solo los roles indicados."""
        dependency = require_role("OWNER", "ADMIN")
        admin = AuthUser(uid="u1", organization_id="org", role="ADMIN")
        member = AuthUser(uid="u2", organization_id="org", role="MEMBER")

        assert await dependency(admin) == admin
        with pytest.raises(AuthorizationException):
            await dependency(member)
