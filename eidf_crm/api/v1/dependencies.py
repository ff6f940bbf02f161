"""
Dependencias compartidas por los endpoints de la API v1.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.core.auth import AuthUser, require_organization
from eidf_crm.db.connection import get_db_session
from eidf_crm.db.woocommerce_clients import WooCommerceClient
from eidf_crm.services.woocommerce_factory import get_woocommerce_factory


async def get_site_client(
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
) -> WooCommerceClient:
    """Cliente WooCommerce de la organización activa."""
    return await get_woocommerce_factory().get_client(session, user.organization_id)
