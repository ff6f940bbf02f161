"""
Endpoints de facturación: planes, suscripción, Stripe Checkout/Portal, uso y webhook.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.api.v1.schemas.saas_schemas import CheckoutRequest
from eidf_crm.core.auth import AuthUser, require_organization, require_role
from eidf_crm.db.connection import get_db_session
from eidf_crm.services.billing_service import (
    BillingService,
    InvalidWebhookSignature,
    get_plan,
    list_plans,
    serialize_subscription,
)
from eidf_crm.utils.error_handler import NotFoundException, ValidationException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing")


@router.get("/plans", summary="Planes disponibles")
async def get_plans() -> List[Dict[str, Any]]:
    return list_plans()


@router.get("/subscription", summary="Suscripción de la organización")
async def get_subscription(
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    subscription = await BillingService(session).get_subscription(user.organization_id)
    if subscription is None:
        raise NotFoundException("Subscription not found", resource="subscription")

    data = serialize_subscription(subscription)
    plan = get_plan(subscription.plan)
    data["plan_details"] = {key: plan[key] for key in ("id", "name", "monthly_price", "yearly_price", "features", "limits")}
    return data


@router.post("/checkout", summary="Crear sesión de Stripe Checkout")
async def create_checkout(
    payload: CheckoutRequest,
    user: AuthUser = Depends(require_role("OWNER")),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    """
    Devuelve {session_id, checkout_url}. Solo el OWNER puede cambiar de plan.
    """
    if not payload.plan or not payload.billing_period:
        raise ValidationException("Plan and billing period are required", field="plan, billingPeriod")

    return await BillingService(session).create_checkout_session(
        user.organization_id, payload.plan, payload.billing_period, user_email=user.email
    )


@router.post("/portal", summary="Crear sesión del portal de cliente")
async def create_portal(
    user: AuthUser = Depends(require_role("OWNER", "ADMIN")),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    return await BillingService(session).create_portal_session(user.organization_id)


@router.get("/usage/{metric}", summary="Uso de una métrica frente al límite del plan")
async def get_usage(
    metric: str,
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    return await BillingService(session).check_usage_limits(user.organization_id, metric)


@router.post("/webhook", summary="Webhook de Stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    session: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    """
    Recibe eventos de Stripe. La firma se verifica sobre el cuerpo sin procesar.
    """
    if not stripe_signature:
        raise InvalidWebhookSignature("Missing stripe-signature header")

    payload = await request.body()
    event_type = await BillingService(session).handle_webhook(payload, stripe_signature)
    logger.info(f"💳 Stripe webhook processed: {event_type}")
    return {"received": True}
