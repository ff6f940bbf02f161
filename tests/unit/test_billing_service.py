"""Tests unitarios para facturación y límites de uso."""

import json
from unittest.mock import patch

import pytest

from eidf_crm.services import billing_service
from eidf_crm.services.billing_service import (
    BillingService,
    InvalidWebhookSignature,
    get_plan,
    list_plans,
    map_stripe_status,
)
from eidf_crm.services.organization_service import OrganizationService
from eidf_crm.utils.error_handler import ValidationException


@pytest.fixture
async def organization(db_session):
    return await OrganizationService(db_session).create_organization("Boutique", "user-1")


def webhook_payload(event_type, data):
    return json.dumps({"type": event_type, "data": {"object": data}}).encode("utf-8")


class TestPlans:
    """Tests para la definición de planes."""

    def test_plan_limits(self):
        """Debe exponer los límites de cada plan."""
        assert get_plan("FREE")["limits"]["ai_generations_per_month"] == 50
        assert get_plan("STARTER")["limits"]["max_users"] == 3
        assert get_plan("PROFESSIONAL")["limits"]["max_orders"] == 50000

    def test_invalid_plan(self):
        """Debe rechazar planes desconocidos."""
        with pytest.raises(ValidationException):
            get_plan("GOLD")

    def test_list_plans_hides_price_ids(self):
        """Debe listar los planes sin price ids de Stripe."""
        plans = list_plans()
        assert [p["id"] for p in plans] == ["FREE", "STARTER", "PROFESSIONAL", "ENTERPRISE"]
        assert all("stripe_price_id_monthly" not in p for p in plans)

    @pytest.mark.parametrize(
        "stripe_status,expected",
        [("active", "ACTIVE"), ("past_due", "PAST_DUE"), ("canceled", "CANCELLED"), ("unpaid", "CANCELLED"), ("trialing", "INACTIVE")],
    )
    def test_map_stripe_status(self, stripe_status, expected):
        """Debe traducir los estados de Stripe."""
        assert map_stripe_status(stripe_status) == expected


class TestUsageLimits:
    """Tests para el control de uso frente al plan."""

    @pytest.mark.asyncio
    async def test_ai_generations_within_limit(self, db_session, organization):
        """Debe permitir generaciones por debajo del límite."""
        service = BillingService(db_session)
        await service.record_usage(organization.id, "ai_generations", 3)

        usage = await service.check_usage_limits(organization.id, "ai_generations")

        assert usage == {"allowed": True, "current": 3, "limit": 50}

    @pytest.mark.asyncio
    async def test_ai_generations_limit_reached(self, db_session, organization):
        """Debe bloquear al alcanzar el límite mensual."""
        service = BillingService(db_session)
        await service.record_usage(organization.id, "ai_generations", 50)

        usage = await service.check_usage_limits(organization.id, "ai_generations")

        assert usage["allowed"] is False

    @pytest.mark.asyncio
    async def test_users_counted_from_members(self, db_session, organization):
        """Debe contar los miembros para la métrica users."""
        usage = await BillingService(db_session).check_usage_limits(organization.id, "users")
        assert usage == {"allowed": False, "current": 1, "limit": 1}

    @pytest.mark.asyncio
    async def test_invalid_metric(self, db_session, organization):
        """Debe rechazar métricas desconocidas."""
        with pytest.raises(ValidationException):
            await BillingService(db_session).check_usage_limits(organization.id, "storage")


class TestWebhook:
    """Tests para el procesamiento de webhooks de Stripe."""

    @pytest.mark.asyncio
    async def test_missing_secret_rejected(self, db_session):
        """Debe rechazar el webhook si no hay secreto configurado."""
        with patch.object(billing_service.settings, "STRIPE_WEBHOOK_SECRET", None):
            with pytest.raises(InvalidWebhookSignature):
                await BillingService(db_session).handle_webhook(b"{}", "sig")

    @pytest.mark.asyncio
    async def test_invalid_signature_rejected(self, db_session):
        """Debe rechazar firmas inválidas."""
        with patch.object(billing_service.settings, "STRIPE_WEBHOOK_SECRET", "whsec_test"), patch.object(
            billing_service.stripe.Webhook, "construct_event", side_effect=ValueError("bad payload")
        ):
            with pytest.raises(InvalidWebhookSignature):
                await BillingService(db_session).handle_webhook(b"{}", "sig")

    @pytest.mark.asyncio
    async def test_checkout_completed_upgrades_plan(self, db_session, organization):
        """Debe aplicar el plan comprado y sus límites."""
        payload = webhook_payload(
            "checkout.session.completed",
            {
                "subscription": "sub_123",
                "customer": "cus_123",
                "metadata": {"organizationId": organization.id, "plan": "STARTER"},
            },
        )

        with patch.object(billing_service.settings, "STRIPE_WEBHOOK_SECRET", "whsec_test"), patch.object(
            billing_service.stripe.Webhook, "construct_event"
        ):
            event_type = await BillingService(db_session).handle_webhook(payload, "sig")

        subscription = await BillingService(db_session).get_subscription(organization.id)
        assert event_type == "checkout.session.completed"
        assert subscription.plan == "STARTER"
        assert subscription.status == "ACTIVE"
        assert subscription.stripe_subscription_id == "sub_123"
        assert subscription.max_users == 3

    @pytest.mark.asyncio
    async def test_subscription_lifecycle(self, db_session, organization):
        """Debe marcar impagos y volver a FREE al cancelar."""
        subscription = await BillingService(db_session).get_subscription(organization.id)
        subscription.plan = "PROFESSIONAL"
        subscription.stripe_subscription_id = "sub_999"
        await db_session.flush()

        with patch.object(billing_service.settings, "STRIPE_WEBHOOK_SECRET", "whsec_test"), patch.object(
            billing_service.stripe.Webhook, "construct_event"
        ):
            service = BillingService(db_session)
            await service.handle_webhook(webhook_payload("invoice.payment_failed", {"subscription": "sub_999"}), "sig")
            assert subscription.status == "PAST_DUE"

            await service.handle_webhook(
                webhook_payload("customer.subscription.updated", {"id": "sub_999", "status": "active", "current_period_end": 1893456000}),
                "sig",
            )
            assert subscription.status == "ACTIVE"
            assert subscription.current_period_end is not None

            await service.handle_webhook(webhook_payload("customer.subscription.deleted", {"id": "sub_999"}), "sig")

        assert subscription.status == "CANCELLED"
        assert subscription.plan == "FREE"
        assert subscription.ai_generations_per_month == 50


class TestCheckout:
    """Tests para la creación de sesiones de checkout."""

    @pytest.mark.asyncio
    async def test_free_plan_checkout_rejected(self, db_session, organization):
        """Debe rechazar el checkout del plan gratuito."""
        with pytest.raises(ValidationException):
            await BillingService(db_session).create_checkout_session(organization.id, "FREE", "monthly")

    @pytest.mark.asyncio
    async def test_invalid_billing_period(self, db_session, organization):
        """Debe rechazar periodos de facturación desconocidos."""
        with pytest.raises(ValidationException):
            await BillingService(db_session).create_checkout_session(organization.id, "STARTER", "weekly")
