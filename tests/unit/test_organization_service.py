"""Tests unitarios para organizaciones y miembros."""

import pytest

from eidf_crm.services.organization_service import OrganizationService, slugify
from eidf_crm.utils.error_handler import ConflictException, LimitExceededException, ValidationException


class TestSlugify:
    """Tests para la generación de slugs."""

    def test_slugify(self):
        """Debe usar guiones entre bloques alfanuméricos."""
        assert slugify("  Quincaillerie Dupont & Fils!  ") == "quincaillerie-dupont-fils"


class TestOrganizationService:
    """Tests para OrganizationService."""

    @pytest.mark.asyncio
    async def test_create_organization_with_owner_and_free_plan(self, db_session):
        """Debe crear la organización con su propietario y una suscripción FREE."""
        service = OrganizationService(db_session)

        organization = await service.create_organization("EIDF Boutique", "user-1", website="https://eidf.fr")

        assert organization.slug == "eidf-boutique"
        assert [(m.user_id, m.role) for m in organization.users] == [("user-1", "OWNER")]
        assert organization.subscription.plan == "FREE"
        assert organization.subscription.max_users == 1

    @pytest.mark.asyncio
    async def test_slug_is_unique(self, db_session):
        """Debe añadir un sufijo si el slug ya existe."""
        service = OrganizationService(db_session)
        await service.create_organization("Boutique", "user-1")

        second = await service.create_organization("Boutique", "user-2")

        assert second.slug == "boutique-1"

    @pytest.mark.asyncio
    async def test_name_required(self, db_session):
        """Debe exigir un nombre."""
        with pytest.raises(ValidationException):
            await OrganizationService(db_session).create_organization("   ", "user-1")

    @pytest.mark.asyncio
    async def test_user_organizations_include_role(self, db_session):
        """Debe listar las organizaciones del usuario con su rol."""
        service = OrganizationService(db_session)
        organization = await service.create_organization("Boutique", "user-1")

        organizations = await service.get_user_organizations("user-1")

        assert len(organizations) == 1
        assert organizations[0]["id"] == organization.id
        assert organizations[0]["role"] == "OWNER"
        assert organizations[0]["subscription"]["plan"] == "FREE"

    @pytest.mark.asyncio
    async def test_user_limit_enforced(self, db_session):
        """Debe respetar el límite de usuarios del plan."""
        service = OrganizationService(db_session)
        organization = await service.create_organization("Boutique", "user-1")

        with pytest.raises(LimitExceededException):
            await service.add_user_to_organization(organization.id, "user-2")

    @pytest.mark.asyncio
    async def test_add_member_and_reject_duplicate(self, db_session):
        """Debe añadir miembros y rechazar duplicados."""
        service = OrganizationService(db_session)
        organization = await service.create_organization("Boutique", "user-1")
        organization.subscription.max_users = 5
        await db_session.flush()

        member = await service.add_user_to_organization(organization.id, "user-2", "ADMIN")
        assert member.role == "ADMIN"

        with pytest.raises(ConflictException):
            await service.add_user_to_organization(organization.id, "user-2")

    @pytest.mark.asyncio
    async def test_last_owner_is_protected(self, db_session):
        """Debe impedir degradar o eliminar al único propietario."""
        service = OrganizationService(db_session)
        organization = await service.create_organization("Boutique", "user-1")

        with pytest.raises(ValidationException, match="last owner"):
            await service.update_user_role(organization.id, "user-1", "ADMIN")
        with pytest.raises(ValidationException, match="last owner"):
            await service.remove_user_from_organization(organization.id, "user-1")

    @pytest.mark.asyncio
    async def test_owner_can_be_removed_when_another_exists(self, db_session):
        """Debe permitir quitar un propietario si queda otro."""
        service = OrganizationService(db_session)
        organization = await service.create_organization("Boutique", "user-1")
        organization.subscription.max_users = 5
        await db_session.flush()
        await service.add_user_to_organization(organization.id, "user-2", "OWNER")

        await service.remove_user_from_organization(organization.id, "user-1")

        assert await service.get_membership(organization.id, "user-1") is None

    @pytest.mark.asyncio
    async def test_invalid_role(self, db_session):
        """Debe rechazar roles desconocidos."""
        service = OrganizationService(db_session)
        organization = await service.create_organization("Boutique", "user-1")

        with pytest.raises(ValidationException):
            await service.update_user_role(organization.id, "user-1", "SUPERADMIN")
