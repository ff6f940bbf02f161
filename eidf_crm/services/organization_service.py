"""
Servicio de organizaciones y miembros.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from eidf_crm.db.models import Organization, OrganizationUser, Subscription
from eidf_crm.services.billing_service import PRICING_PLANS, serialize_subscription
from eidf_crm.utils.error_handler import (
    ConflictException,
    LimitExceededException,
    NotFoundException,
    ValidationException,
)
from eidf_crm.utils.time_utils import isoformat

logger = logging.getLogger(__name__)

ROLES = ("OWNER", "ADMIN", "MEMBER")


def slugify(name: str) -> str:
    """
    Convierte un nombre en slug: minúsculas, guiones entre bloques alfanuméricos.

    Args:
        name: Nombre de la organización

    Returns:
        str: Slug sin guiones al principio ni al final
    """
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def validate_role(role: str) -> str:
    if role not in ROLES:
        raise ValidationException(
            f"Invalid role: {role}", field="role", invalid_value=role, expected_format=", ".join(ROLES)
        )
    return role


def serialize_member(member: OrganizationUser) -> Dict[str, Any]:
    return {"user_id": member.user_id, "role": member.role, "joined_at": isoformat(member.joined_at)}


def serialize_organization(organization: Organization, include_users: bool = True) -> Dict[str, Any]:
    data = {
        "id": organization.id,
        "name": organization.name,
        "slug": organization.slug,
        "website": organization.website,
        "logo": organization.logo,
        "created_at": isoformat(organization.created_at),
        "subscription": serialize_subscription(organization.subscription) if organization.subscription else None,
    }
    if include_users:
        data["users"] = [serialize_member(member) for member in organization.users]
    return data


class OrganizationService:
    """
    Alta de organizaciones y gestión de sus miembros.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _unique_slug(self, name: str) -> str:
        base_slug = slugify(name) or "organization"
        slug = base_slug
        counter = 1
        while (
            await self.session.execute(select(Organization.id).where(Organization.slug == slug))
        ).first() is not None:
            slug = f"{base_slug}-{counter}"
            counter += 1
        return slug

    async def create_organization(
        self, name: str, user_id: str, website: Optional[str] = None, logo: Optional[str] = None
    ) -> Organization:
        """
        Crea una organización con su propietario y una suscripción FREE.

        Args:
            name: Nombre
            user_id: UID de Firebase del creador, que queda como OWNER
            website: Web de la organización
            logo: URL del logo

        Returns:
            Organization: Organización creada con miembros y suscripción cargados
        """
        if not name or not name.strip():
            raise ValidationException("Organization name is required", field="name")

        organization = Organization(name=name.strip(), slug=await self._unique_slug(name), website=website, logo=logo)
        self.session.add(organization)
        await self.session.flush()

        self.session.add(OrganizationUser(organization_id=organization.id, user_id=user_id, role="OWNER"))
        self.session.add(
            Subscription(
                organization_id=organization.id,
                plan="FREE",
                status="ACTIVE",
                **PRICING_PLANS["FREE"]["limits"],
            )
        )
        await self.session.flush()

        logger.info(f"🏢 Organization '{organization.slug}' created by {user_id}")
        return await self.get_organization_by_id(organization.id)

    async def get_organization_by_id(self, organization_id: str) -> Optional[Organization]:
        result = await self.session.execute(
            select(Organization)
            .where(Organization.id == organization_id)
            .options(selectinload(Organization.users), selectinload(Organization.subscription))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_user_organizations(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Organizaciones de un usuario con su rol en cada una.
        """
        result = await self.session.execute(
            select(OrganizationUser, Organization)
            .join(Organization, Organization.id == OrganizationUser.organization_id)
            .where(OrganizationUser.user_id == user_id)
            .options(selectinload(Organization.subscription))
            .order_by(OrganizationUser.joined_at)
        )
        organizations = []
        for member, organization in result.all():
            data = serialize_organization(organization, include_users=False)
            data.update({"role": member.role, "joined_at": isoformat(member.joined_at)})
            organizations.append(data)
        return organizations

    async def get_membership(self, organization_id: str, user_id: str) -> Optional[OrganizationUser]:
        result = await self.session.execute(
            select(OrganizationUser).where(
                OrganizationUser.organization_id == organization_id, OrganizationUser.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def _require_membership(self, organization_id: str, user_id: str) -> OrganizationUser:
        member = await self.get_membership(organization_id, user_id)
        if member is None:
            raise NotFoundException("User is not a member of this organization", resource="organization_user")
        return member

    async def _count_owners(self, organization_id: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(OrganizationUser)
            .where(OrganizationUser.organization_id == organization_id, OrganizationUser.role == "OWNER")
        )
        return result.scalar_one()

    async def add_user_to_organization(
        self, organization_id: str, user_id: str, role: str = "MEMBER"
    ) -> OrganizationUser:
        """
        Añade un miembro respetando el límite de usuarios del plan.

        Raises:
            LimitExceededException: Si se alcanzó max_users
            ConflictException: Si el usuario ya es miembro
        """
        validate_role(role)

        subscription = (
            await self.session.execute(select(Subscription).where(Subscription.organization_id == organization_id))
        ).scalar_one_or_none()
        current = (
            await self.session.execute(
                select(func.count())
                .select_from(OrganizationUser)
                .where(OrganizationUser.organization_id == organization_id)
            )
        ).scalar_one()

        if subscription is not None and current >= subscription.max_users:
            raise LimitExceededException(
                "Organization has reached its user limit", metric="users", current=current, limit=subscription.max_users
            )

        if await self.get_membership(organization_id, user_id) is not None:
            raise ConflictException("User is already a member of this organization")

        member = OrganizationUser(organization_id=organization_id, user_id=user_id, role=role)
        self.session.add(member)
        await self.session.flush()
        logger.info(f"👤 User {user_id} added to organization {organization_id} as {role}")
        return member

    async def update_user_role(self, organization_id: str, user_id: str, new_role: str) -> OrganizationUser:
        """
        Cambia el rol de un miembro.

        Raises:
            ValidationException: Si se degrada al único OWNER
        """
        validate_role(new_role)
        member = await self._require_membership(organization_id, user_id)

        if new_role != "OWNER" and member.role == "OWNER" and await self._count_owners(organization_id) == 1:
            raise ValidationException("Cannot remove the last owner", field="role", invalid_value=new_role)

        member.role = new_role
        await self.session.flush()
        return member

    async def remove_user_from_organization(self, organization_id: str, user_id: str):
        member = await self._require_membership(organization_id, user_id)

        if member.role == "OWNER" and await self._count_owners(organization_id) == 1:
            raise ValidationException("Cannot remove the last owner", field="user_id", invalid_value=user_id)

        await self.session.delete(member)
        await self.session.flush()
        logger.info(f"👋 User {user_id} removed from organization {organization_id}")
