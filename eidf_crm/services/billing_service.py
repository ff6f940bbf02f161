"""
Servicio de facturación con Stripe y control de límites de uso.

Los planes y sus límites viven en PRICING_PLANS; los price ids de Stripe
se leen de la configuración. Las llamadas al SDK de Stripe son síncronas
y se ejecutan en un hilo.
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import stripe
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.core.config import get_settings
from eidf_crm.db.models import Organization, OrganizationUser, Subscription, UsageRecord
from eidf_crm.utils.error_handler import (
    AppException,
    ErrorCode,
    ExternalServiceException,
    NotFoundException,
    ValidationException,
)
from eidf_crm.utils.time_utils import isoformat, start_of_month, utcnow

settings = get_settings()
logger = logging.getLogger(__name__)

PLAN_IDS = ("FREE", "STARTER", "PROFESSIONAL", "ENTERPRISE")
BILLING_PERIODS = ("monthly", "yearly")
USAGE_METRICS = ("users", "products", "orders", "ai_generations")

PRICING_PLANS: Dict[str, Dict[str, Any]] = {
    "FREE": {
        "id": "FREE",
        "name": "Gratuit",
        "description": "Parfait pour démarrer",
        "monthly_price": 0,
        "yearly_price": 0,
        "features": [
            "1 utilisateur",
            "Jusqu'à 100 produits",
            "Jusqu'à 1000 commandes/mois",
            "50 générations IA/mois",
            "Support par email",
        ],
        "limits": {"max_users": 1, "max_products": 100, "max_orders": 1000, "ai_generations_per_month": 50},
    },
    "STARTER": {
        "id": "STARTER",
        "name": "Starter",
        "description": "Pour les petites boutiques",
        "monthly_price": 29,
        "yearly_price": 290,
        "features": [
            "3 utilisateurs",
            "Jusqu'à 1000 produits",
            "Jusqu'à 5000 commandes/mois",
            "500 générations IA/mois",
            "Support prioritaire",
            "Exports avancés",
        ],
        "limits": {"max_users": 3, "max_products": 1000, "max_orders": 5000, "ai_generations_per_month": 500},
    },
    "PROFESSIONAL": {
        "id": "PROFESSIONAL",
        "name": "Professionnel",
        "description": "Pour les entreprises en croissance",
        "monthly_price": 99,
        "yearly_price": 990,
        "features": [
            "10 utilisateurs",
            "Jusqu'à 10000 produits",
            "Jusqu'à 50000 commandes/mois",
            "2000 générations IA/mois",
            "Support prioritaire 24/7",
            "API avancée",
            "Rapports personnalisés",
        ],
        "limits": {"max_users": 10, "max_products": 10000, "max_orders": 50000, "ai_generations_per_month": 2000},
    },
    "ENTERPRISE": {
        "id": "ENTERPRISE",
        "name": "Enterprise",
        "description": "Solutions sur mesure",
        "monthly_price": 299,
        "yearly_price": 2990,
        "features": [
            "Utilisateurs illimités",
            "Produits illimités",
            "Commandes illimitées",
            "Générations IA illimitées",
            "Support dédié",
            "SLA garanti",
            "Formation personnalisée",
            "Intégrations sur mesure",
        ],
        "limits": {
            "max_users": 9999,
            "max_products": 999999,
            "max_orders": 999999,
            "ai_generations_per_month": 99999,
        },
    },
}


def get_plan(plan_id: str) -> Dict[str, Any]:
    """
    Plan de precios con sus price ids de Stripe.

    Raises:
        ValidationException: Si el plan no existe
    """
    plan = PRICING_PLANS.get(plan_id)
    if plan is None:
        raise ValidationException(
            f"Invalid pricing plan: {plan_id}",
            field="plan",
            invalid_value=plan_id,
            expected_format=", ".join(PLAN_IDS),
        )
    return {
        **plan,
        "stripe_price_id_monthly": settings.get_stripe_price_id(plan_id, "monthly") if plan_id != "FREE" else None,
        "stripe_price_id_yearly": settings.get_stripe_price_id(plan_id, "yearly") if plan_id != "FREE" else None,
    }


def list_plans() -> List[Dict[str, Any]]:
    """Planes públicos, sin price ids."""
    return [
        {key: plan[key] for key in ("id", "name", "description", "monthly_price", "yearly_price", "features", "limits")}
        for plan in PRICING_PLANS.values()
    ]


def map_stripe_status(stripe_status: str) -> str:
    if stripe_status == "active":
        return "ACTIVE"
    if stripe_status == "past_due":
        return "PAST_DUE"
    if stripe_status in ("canceled", "unpaid"):
        return "CANCELLED"
    return "INACTIVE"


def apply_plan_limits(subscription: Subscription, plan_id: str):
    for key, value in PRICING_PLANS[plan_id]["limits"].items():
        setattr(subscription, key, value)


def serialize_subscription(subscription: Subscription) -> Dict[str, Any]:
    return {
        "organization_id": subscription.organization_id,
        "plan": subscription.plan,
        "status": subscription.status,
        "stripe_customer_id": subscription.stripe_customer_id,
        "stripe_subscription_id": subscription.stripe_subscription_id,
        "current_period_end": isoformat(subscription.current_period_end),
        "max_users": subscription.max_users,
        "max_products": subscription.max_products,
        "max_orders": subscription.max_orders,
        "ai_generations_per_month": subscription.ai_generations_per_month,
        "created_at": isoformat(subscription.created_at),
        "updated_at": isoformat(subscription.updated_at),
    }


class InvalidWebhookSignature(AppException):
    """La firma del webhook de Stripe no es válida."""

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message=message, error_code=ErrorCode.INVALID_WEBHOOK_SIGNATURE, status_code=400)


class BillingService:
    """
    Suscripciones, sesiones de Stripe y contadores de uso de una organización.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _configure_stripe(self):
        if not settings.STRIPE_SECRET_KEY:
            raise ExternalServiceException("Stripe is not configured", service="stripe", status_code=503)
        stripe.api_key = settings.STRIPE_SECRET_KEY

    async def get_subscription(self, organization_id: str) -> Optional[Subscription]:
        result = await self.session.execute(
            select(Subscription).where(Subscription.organization_id == organization_id)
        )
        return result.scalar_one_or_none()

    async def _require_subscription(self, organization_id: str) -> Subscription:
        subscription = await self.get_subscription(organization_id)
        if subscription is None:
            raise NotFoundException("Subscription not found", resource="subscription")
        return subscription

    async def create_checkout_session(
        self, organization_id: str, plan: str, billing_period: str, user_email: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Crea una sesión de Stripe Checkout para cambiar de plan.

        Si la organización no tiene cliente en Stripe, se crea y se guarda.

        Args:
            organization_id: Organización
            plan: STARTER, PROFESSIONAL o ENTERPRISE
            billing_period: monthly o yearly
            user_email: Email del usuario que paga

        Returns:
            Dict: {"session_id", "checkout_url"}

        Raises:
            ValidationException: Plan o periodo inválidos, o price id sin configurar
            NotFoundException: Si la organización no tiene suscripción
        """
        if billing_period not in BILLING_PERIODS:
            raise ValidationException(
                f"Invalid billing period: {billing_period}",
                field="billingPeriod",
                invalid_value=billing_period,
                expected_format=", ".join(BILLING_PERIODS),
            )
        plan_config = get_plan(plan)
        if plan == "FREE":
            raise ValidationException("The free plan does not require checkout", field="plan", invalid_value=plan)

        price_id = plan_config[f"stripe_price_id_{billing_period}"]
        if not price_id:
            raise ValidationException("Stripe price ID not configured for this plan", field="plan", invalid_value=plan)

        subscription = await self._require_subscription(organization_id)
        self._configure_stripe()

        try:
            if not subscription.stripe_customer_id:
                organization = await self.session.get(Organization, organization_id)
                customer = await asyncio.to_thread(
                    stripe.Customer.create,
                    email=user_email,
                    name=organization.name if organization else None,
                    metadata={"organizationId": organization_id},
                )
                subscription.stripe_customer_id = customer.id
                await self.session.flush()
                logger.info(f"💳 Stripe customer {customer.id} created for organization {organization_id}")

            checkout = await asyncio.to_thread(
                stripe.checkout.Session.create,
                customer=subscription.stripe_customer_id,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=f"{settings.FRONTEND_URL}/billing/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{settings.FRONTEND_URL}/billing",
                metadata={"organizationId": organization_id, "plan": plan},
            )
        except stripe.StripeError as e:
            raise ExternalServiceException(f"Stripe checkout failed: {e}", service="stripe") from e

        return {"session_id": checkout.id, "checkout_url": checkout.url}

    async def create_portal_session(self, organization_id: str) -> Dict[str, Any]:
        """
        Crea una sesión del portal de cliente de Stripe.

        Raises:
            NotFoundException: Si la organización no tiene cliente en Stripe
        """
        subscription = await self.get_subscription(organization_id)
        if subscription is None or not subscription.stripe_customer_id:
            raise NotFoundException("No Stripe customer found", resource="stripe_customer")

        self._configure_stripe()
        try:
            portal = await asyncio.to_thread(
                stripe.billing_portal.Session.create,
                customer=subscription.stripe_customer_id,
                return_url=f"{settings.FRONTEND_URL}/billing",
            )
        except stripe.StripeError as e:
            raise ExternalServiceException(f"Stripe portal failed: {e}", service="stripe") from e

        return {"portal_url": portal.url}

    async def handle_webhook(self, payload: bytes, signature: str) -> str:
        """
        Verifica y procesa un evento de webhook de Stripe.

        Args:
            payload: Cuerpo crudo de la petición
            signature: Cabecera Stripe-Signature

        Returns:
            str: Tipo de evento recibido

        Raises:
            InvalidWebhookSignature: Si la firma no es válida o falta el secreto
        """
        if not settings.STRIPE_WEBHOOK_SECRET:
            raise InvalidWebhookSignature("Stripe webhook secret not configured")

        try:
            stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"⚠️ Stripe webhook signature verification failed: {e}")
            raise InvalidWebhookSignature() from e

        event = json.loads(payload)
        event_type = event.get("type", "")
        data = event.get("data", {}).get("object", {})
        logger.info(f"📨 Stripe webhook received: {event_type}")

        if event_type == "checkout.session.completed":
            await self._handle_checkout_completed(data)
        elif event_type == "customer.subscription.updated":
            await self._handle_subscription_updated(data)
        elif event_type == "customer.subscription.deleted":
            await self._handle_subscription_deleted(data)
        elif event_type == "invoice.payment_failed":
            await self._handle_payment_failed(data)
        else:
            logger.debug(f"Unhandled Stripe event type: {event_type}")

        return event_type

    async def _find_by_stripe_subscription(self, stripe_subscription_id: Optional[str]) -> Optional[Subscription]:
        if not stripe_subscription_id:
            return None
        result = await self.session.execute(
            select(Subscription).where(Subscription.stripe_subscription_id == stripe_subscription_id)
        )
        return result.scalar_one_or_none()

    async def _handle_checkout_completed(self, checkout: Dict[str, Any]):
        metadata = checkout.get("metadata") or {}
        organization_id = metadata.get("organizationId")
        plan = metadata.get("plan")
        if not organization_id or plan not in PRICING_PLANS:
            logger.error("❌ Missing or invalid metadata in checkout session")
            return

        subscription = await self.get_subscription(organization_id)
        if subscription is None:
            logger.error(f"❌ Subscription not found for organization {organization_id}")
            return

        subscription.plan = plan
        subscription.status = "ACTIVE"
        subscription.stripe_subscription_id = checkout.get("subscription")
        subscription.stripe_customer_id = checkout.get("customer") or subscription.stripe_customer_id
        subscription.current_period_end = utcnow() + timedelta(days=30)
        apply_plan_limits(subscription, plan)
        await self.session.flush()
        logger.info(f"✅ Organization {organization_id} upgraded to {plan}")

    async def _handle_subscription_updated(self, stripe_subscription: Dict[str, Any]):
        subscription = await self._find_by_stripe_subscription(stripe_subscription.get("id"))
        if subscription is None:
            return

        subscription.status = map_stripe_status(stripe_subscription.get("status", ""))
        period_end = stripe_subscription.get("current_period_end")
        if period_end:
            subscription.current_period_end = datetime.fromtimestamp(period_end, tz=timezone.utc)
        await self.session.flush()

    async def _handle_subscription_deleted(self, stripe_subscription: Dict[str, Any]):
        subscription = await self._find_by_stripe_subscription(stripe_subscription.get("id"))
        if subscription is None:
            return

        subscription.status = "CANCELLED"
        subscription.plan = "FREE"
        apply_plan_limits(subscription, "FREE")
        await self.session.flush()
        logger.info(f"🔻 Organization {subscription.organization_id} downgraded to FREE")

    async def _handle_payment_failed(self, invoice: Dict[str, Any]):
        subscription = await self._find_by_stripe_subscription(invoice.get("subscription"))
        if subscription is None:
            return

        subscription.status = "PAST_DUE"
        await self.session.flush()
        logger.warning(f"⚠️ Payment failed for organization {subscription.organization_id}")

    async def _sum_usage(self, organization_id: str, metric: str, since: Optional[datetime] = None) -> int:
        query = select(func.coalesce(func.sum(UsageRecord.quantity), 0)).where(
            UsageRecord.organization_id == organization_id, UsageRecord.metric == metric
        )
        if since is not None:
            query = query.where(UsageRecord.created_at >= since)
        return int((await self.session.execute(query)).scalar_one())

    async def check_usage_limits(self, organization_id: str, metric: str) -> Dict[str, Any]:
        """
        Compara el uso actual de una métrica con el límite del plan.

        Args:
            organization_id: Organización
            metric: users, products, orders o ai_generations

        Returns:
            Dict: {"allowed", "current", "limit"}

        Raises:
            ValidationException: Para una métrica desconocida
            NotFoundException: Si la organización no tiene suscripción
        """
        if metric not in USAGE_METRICS:
            raise ValidationException(
                "Invalid metric", field="metric", invalid_value=metric, expected_format=", ".join(USAGE_METRICS)
            )

        subscription = await self._require_subscription(organization_id)

        if metric == "users":
            current = (
                await self.session.execute(
                    select(func.count())
                    .select_from(OrganizationUser)
                    .where(OrganizationUser.organization_id == organization_id)
                )
            ).scalar_one()
            limit = subscription.max_users
        elif metric == "ai_generations":
            current = await self._sum_usage(organization_id, metric, since=start_of_month())
            limit = subscription.ai_generations_per_month
        elif metric == "products":
            current = await self._sum_usage(organization_id, metric)
            limit = subscription.max_products
        else:
            current = await self._sum_usage(organization_id, metric)
            limit = subscription.max_orders

        return {"allowed": current < limit, "current": current, "limit": limit}

    async def record_usage(self, organization_id: str, metric: str, quantity: int = 1) -> UsageRecord:
        record = UsageRecord(organization_id=organization_id, metric=metric, quantity=quantity)
        self.session.add(record)
        await self.session.flush()
        return record
