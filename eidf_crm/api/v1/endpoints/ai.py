"""
Endpoints de generación de contenido con IA y SEO Yoast.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.api.v1.dependencies import get_site_client
from eidf_crm.api.v1.schemas.content_schemas import AIGenerateRequest, ApplySEORequest, SEOContent
from eidf_crm.core.auth import AuthUser, get_current_user, require_organization
from eidf_crm.db.connection import get_db_session
from eidf_crm.db.woocommerce_clients import WooCommerceClient
from eidf_crm.services.gemini_service import generate_for_organization, list_styles
from eidf_crm.utils.error_handler import ValidationException
from eidf_crm.utils.seo_validator import validate_seo_content
from eidf_crm.utils.yoast_seo import extract_yoast_seo_data

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai")


@router.get("/styles", summary="Estilos SEO disponibles", dependencies=[Depends(get_current_user)])
async def get_styles() -> List[Dict[str, Any]]:
    return list_styles()


@router.post("/generate/{kind}", summary="Generar contenido de producto")
async def generate_content(
    kind: str,
    payload: AIGenerateRequest,
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    """
    Genera title, description, short_description o seo para un producto.

    Consume una generación del cupo mensual de la organización.
    """
    return await generate_for_organization(session, user.organization_id, kind, payload.product, payload.style)


@router.post("/validate-seo", summary="Validar contenido SEO", dependencies=[Depends(get_current_user)])
async def validate_seo(payload: SEOContent) -> Dict[str, Any]:
    return validate_seo_content(payload.model_dump())


@router.post("/products/{product_id}/apply-seo", summary="Escribir SEO Yoast en un producto")
async def apply_seo(
    product_id: int,
    payload: ApplySEORequest,
    client: WooCommerceClient = Depends(get_site_client),
) -> Dict[str, Any]:
    """
    Escribe los campos Yoast del producto. Por defecto rechaza contenido SEO no válido.

    Returns:
        Dict: {"success", "product_id", "seo"} con el SEO leído del producto actualizado
    """
    seo = payload.seo.model_dump()
    if payload.validate_content:
        validation = validate_seo_content(seo)
        if not validation["is_valid"]:
            raise ValidationException(
                "SEO content is not valid", field="seo", details={"errors": validation["errors"]}
            )

    product = await client.update_product_seo(product_id, seo)
    return {
        "success": True,
        "product_id": product_id,
        "seo": extract_yoast_seo_data(product.get("meta_data") if isinstance(product, dict) else None),
    }
