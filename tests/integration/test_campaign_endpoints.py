"""Tests de integración para los endpoints de campañas y de seguimiento."""

import pytest
from httpx import ASGITransport, AsyncClient

from eidf_crm.api.v1.endpoints.campaigns import router as campaigns_router
from eidf_crm.api.v1.endpoints.tracking import router as tracking_router
from eidf_crm.services.email_service import get_email_service

CAMPAIGN = {
    "name": "Soldes d'hiver",
    "subject": "Profitez de nos offres",
    "body": "<html><body><p>Découvrez notre sélection</p></body></html>",
    "recipientEmails": ["marie@example.fr", "paul@example.fr"],
}


@pytest.fixture
def app(make_app, mock_email_service):
    return make_app(campaigns_router, tracking_router, overrides={get_email_service: lambda: mock_email_service})


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestCampaignEndpoints:
    """Tests para el CRUD y el envío de campañas."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, client):
        """Debe crear la campaña y listarla."""
        response = await client.post("/api/v1/campaigns", json=CAMPAIGN)

        assert response.status_code == 201
        assert response.json()["id"] == "1"

        listed = await client.get("/api/v1/campaigns")
        assert [c["name"] for c in listed.json()] == ["Soldes d'hiver"]

    @pytest.mark.asyncio
    async def test_create_missing_fields(self, client):
        """Debe responder 400 con el formato de error estándar."""
        response = await client.post("/api/v1/campaigns", json={"name": "Sans sujet"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] is True
        assert body["message"] == "Name, subject, and body are required"

    @pytest.mark.asyncio
    async def test_unknown_campaign(self, client):
        """Debe responder 404 para campañas inexistentes."""
        response = await client.get("/api/v1/campaigns/99")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_and_delete(self, client):
        """Debe actualizar y eliminar la campaña."""
        await client.post("/api/v1/campaigns", json=CAMPAIGN)

        updated = await client.put("/api/v1/campaigns/1", json={"subject": "Dernière chance"})
        assert updated.json()["subject"] == "Dernière chance"

        deleted = await client.delete("/api/v1/campaigns/1")
        assert deleted.status_code == 204
        assert (await client.get("/api/v1/campaigns/1")).status_code == 404

    @pytest.mark.asyncio
    async def test_send_test_emails(self, client, mock_email_service):
        """Debe enviar la prueba con el asunto prefijado."""
        await client.post("/api/v1/campaigns", json=CAMPAIGN)

        response = await client.post("/api/v1/campaigns/1/test", json={"testEmails": ["test@example.fr"]})

        assert response.status_code == 200
        assert response.json()["results"][0]["email"] == "test@example.fr"
        assert mock_email_service.send_email.call_args.args[1] == "[TEST] Profitez de nos offres"

    @pytest.mark.asyncio
    async def test_send_test_emails_limits(self, client):
        """Debe exigir entre 1 y 5 direcciones de prueba."""
        await client.post("/api/v1/campaigns", json=CAMPAIGN)

        empty = await client.post("/api/v1/campaigns/1/test", json={"testEmails": []})
        too_many = await client.post(
            "/api/v1/campaigns/1/test", json={"testEmails": [f"t{i}@example.fr" for i in range(6)]}
        )

        assert empty.status_code == 400
        assert too_many.status_code == 400

    @pytest.mark.asyncio
    async def test_send_campaign(self, client, campaign_store):
        """Debe enviar a todos los destinatarios y marcar la campaña como enviada."""
        await client.post("/api/v1/campaigns", json=CAMPAIGN)

        response = await client.post("/api/v1/campaigns/1/send")

        body = response.json()
        assert body["success"] is True
        assert (body["sent"], body["failed"], body["total"]) == (2, 0, 2)

        campaign = campaign_store.get("1")
        assert campaign["status"] == "SENT"
        assert campaign["stats"]["sent"] == 2
        assert campaign["sentAt"] is not None
        assert campaign_store.queue_stats()["completed"] == 1

    @pytest.mark.asyncio
    async def test_send_without_recipients(self, client):
        """Debe rechazar el envío sin destinatarios."""
        await client.post("/api/v1/campaigns", json={**CAMPAIGN, "recipientEmails": []})

        response = await client.post("/api/v1/campaigns/1/send")

        assert response.status_code == 400


class TestTrackingEndpoints:
    """Tests para el seguimiento de aperturas, clics y bajas."""

    @pytest.mark.asyncio
    async def test_open_pixel_counts_open(self, client, campaign_store):
        """Debe devolver el GIF y contar la apertura."""
        await client.post("/api/v1/campaigns", json=CAMPAIGN)

        response = await client.get("/api/v1/track/open/1/marie%40example.fr")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/gif"
        assert response.headers["cache-control"].startswith("no-cache")
        assert campaign_store.get("1")["stats"]["opened"] == 1

    @pytest.mark.asyncio
    async def test_open_pixel_for_unknown_campaign(self, client):
        """Debe devolver el pixel aunque la campaña no exista."""
        response = await client.get("/api/v1/track/open/99/someone")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_click_redirects(self, client, campaign_store):
        """Debe redirigir a la URL y contar el clic."""
        await client.post("/api/v1/campaigns", json=CAMPAIGN)

        response = await client.get(
            "/api/v1/track/click/1/marie%40example.fr", params={"url": "https://eidf.fr/promo"}
        )

        assert response.status_code == 302
        assert response.headers["location"] == "https://eidf.fr/promo"
        assert campaign_store.get("1")["stats"]["clicked"] == 1

    @pytest.mark.asyncio
    async def test_click_requires_url(self, client):
        """Debe exigir el parámetro url."""
        response = await client.get("/api/v1/track/click/1/someone")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unsubscribe(self, client, campaign_store):
        """Debe confirmar la baja escapando el email y contarla."""
        await client.post("/api/v1/campaigns", json=CAMPAIGN)

        response = await client.get("/api/v1/unsubscribe", params={"email": "<b>x</b>@example.fr", "campaign": "1"})

        assert response.status_code == 200
        assert "&lt;b&gt;x&lt;/b&gt;@example.fr" in response.text
        assert campaign_store.get("1")["stats"]["unsubscribed"] == 1

    @pytest.mark.asyncio
    async def test_unsubscribe_twice(self, client, campaign_store):
        """Debe registrar la baja una vez y avisar si ya estaba dada de baja."""
        await client.post("/api/v1/campaigns", json=CAMPAIGN)
        params = {"email": "marie@example.fr", "campaign": "1"}

        first = await client.get("/api/v1/unsubscribe", params=params)
        second = await client.get("/api/v1/unsubscribe", params=params)

        assert "Désabonnement confirmé" in first.text
        assert "Déjà désabonné" in second.text
        assert campaign_store.is_unsubscribed("marie@example.fr")
        assert campaign_store.get("1")["stats"]["unsubscribed"] == 1

    @pytest.mark.asyncio
    async def test_send_skips_unsubscribed(self, client, campaign_store, mock_email_service):
        """Debe excluir del envío a quien se dio de baja."""
        await client.post("/api/v1/campaigns", json=CAMPAIGN)
        await client.get("/api/v1/unsubscribe", params={"email": "Marie@example.fr"})

        response = await client.post("/api/v1/campaigns/1/send")

        body = response.json()
        assert (body["sent"], body["skipped"], body["total"]) == (1, 1, 1)
        assert mock_email_service.send_bulk.call_args.args[0] == ["paul@example.fr"]

    @pytest.mark.asyncio
    async def test_send_with_everyone_unsubscribed(self, client, campaign_store):
        """Debe rechazar el envío si todos los destinatarios se dieron de baja."""
        await client.post("/api/v1/campaigns", json=CAMPAIGN)
        for email in CAMPAIGN["recipientEmails"]:
            campaign_store.add_unsubscribed(email)

        response = await client.post("/api/v1/campaigns/1/send")

        assert response.status_code == 400
        assert campaign_store.get("1")["status"] == "DRAFT"
