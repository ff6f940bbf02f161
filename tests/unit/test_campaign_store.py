"""Tests unitarios para el almacenamiento de campañas y ajustes de email."""

import json

import pytest

from eidf_crm.services.campaign_store import DEFAULT_FROM_EMAIL, recipient_emails
from eidf_crm.utils.error_handler import NotFoundException, ValidationException


def new_campaign(**overrides):
    payload = {
        "name": "Soldes d'hiver",
        "subject": "Profitez de nos offres",
        "body": "<p>Découvrez notre sélection</p>",
        "recipientEmails": ["marie@example.fr", " paul@example.fr "],
    }
    payload.update(overrides)
    return payload


class TestCampaignStore:
    """Tests para CampaignStore."""

    def test_create_assigns_incremental_ids(self, campaign_store):
        """Debe asignar ids numéricos crecientes como cadena."""
        first = campaign_store.create(new_campaign())
        second = campaign_store.create(new_campaign(name="Black Friday"))

        assert (first["id"], second["id"]) == ("1", "2")

    def test_create_applies_defaults(self, campaign_store):
        """Debe crear en borrador con remitente y estadísticas por defecto."""
        campaign = campaign_store.create(new_campaign())

        assert campaign["status"] == "DRAFT"
        assert campaign["fromEmail"] == DEFAULT_FROM_EMAIL
        assert campaign["recipients"] == [{"email": "marie@example.fr"}, {"email": "paul@example.fr"}]
        assert campaign["recipientCount"] == 2
        assert campaign["stats"]["opened"] == 0

    def test_create_requires_fields(self, campaign_store):
        """Debe exigir nombre, asunto y cuerpo."""
        with pytest.raises(ValidationException, match="Name, subject, and body are required"):
            campaign_store.create(new_campaign(body=""))

    def test_create_rejects_unknown_status(self, campaign_store):
        """Debe rechazar estados de campaña desconocidos."""
        with pytest.raises(ValidationException):
            campaign_store.create(new_campaign(status="ARCHIVED"))

    def test_persists_to_json(self, campaign_store):
        """Debe guardar campañas y siguiente id en el fichero."""
        campaign_store.create(new_campaign())

        data = json.loads(campaign_store.path.read_text(encoding="utf-8"))

        assert data["nextId"] == 2
        assert data["campaigns"][0]["name"] == "Soldes d'hiver"

    def test_update_replaces_recipients(self, campaign_store):
        """Debe sustituir los destinatarios con recipientEmails."""
        campaign = campaign_store.create(new_campaign())

        updated = campaign_store.update(campaign["id"], {"subject": "Nouveau", "recipientEmails": ["luc@example.fr"]})

        assert updated["subject"] == "Nouveau"
        assert updated["recipients"] == [{"email": "luc@example.fr"}]
        assert updated["recipientCount"] == 1
        assert updated["name"] == "Soldes d'hiver"

    def test_missing_campaign(self, campaign_store):
        """Debe lanzar NotFoundException para campañas inexistentes."""
        assert campaign_store.get("99") is None
        with pytest.raises(NotFoundException):
            campaign_store.require("99")
        with pytest.raises(NotFoundException):
            campaign_store.update("99", {"name": "x"})
        with pytest.raises(NotFoundException):
            campaign_store.delete("99")

    def test_delete(self, campaign_store):
        """Debe eliminar la campaña."""
        campaign = campaign_store.create(new_campaign())

        campaign_store.delete(campaign["id"])

        assert campaign_store.list() == []

    def test_increment_stat(self, campaign_store):
        """Debe incrementar contadores solo de campañas existentes."""
        campaign = campaign_store.create(new_campaign())

        assert campaign_store.increment_stat(campaign["id"], "opened") is True
        assert campaign_store.increment_stat(campaign["id"], "opened") is True
        assert campaign_store.increment_stat("42", "opened") is False
        assert campaign_store.get(campaign["id"])["stats"]["opened"] == 2

    def test_queue_stats(self, campaign_store):
        """Debe contar campañas por estado."""
        campaign_store.create(new_campaign(status="SCHEDULED"))
        campaign_store.create(new_campaign(status="SENT"))
        campaign_store.create(new_campaign())

        assert campaign_store.queue_stats() == {"waiting": 1, "active": 0, "completed": 1, "failed": 0, "delayed": 0}

    def test_legacy_campaign_gets_stats(self, campaign_store):
        """Debe construir stats a partir de los contadores planos antiguos."""
        campaign_store.path.write_text(
            json.dumps({"campaigns": [{"id": "1", "name": "Ancienne", "sentCount": 4, "openedCount": 2}], "nextId": 2}),
            encoding="utf-8",
        )

        campaign = campaign_store.get("1")

        assert campaign["stats"]["sent"] == 4
        assert campaign["stats"]["opened"] == 2


class TestUnsubscribeList:
    """Tests para la lista de bajas."""

    def test_add_is_idempotent(self, campaign_store):
        """Debe registrar cada dirección una sola vez, sin distinguir mayúsculas."""
        assert campaign_store.add_unsubscribed("Marie@Example.fr", campaign_id="1") is True
        assert campaign_store.add_unsubscribed(" marie@example.fr") is False

        assert campaign_store.unsubscribed_emails() == {"marie@example.fr"}
        assert campaign_store.is_unsubscribed("MARIE@example.fr")
        assert not campaign_store.is_unsubscribed("paul@example.fr")

    def test_survives_campaign_writes(self, campaign_store):
        """Debe conservar las bajas al crear y actualizar campañas."""
        campaign_store.add_unsubscribed("marie@example.fr")
        campaign_store.create(new_campaign())
        campaign_store.update("1", {"subject": "Dernière chance"})

        data = json.loads(campaign_store.path.read_text(encoding="utf-8"))
        assert [entry["email"] for entry in data["unsubscribed"]] == ["marie@example.fr"]
        assert data["unsubscribed"][0]["unsubscribedAt"]


class TestRecipientEmails:
    """Tests para la lectura de destinatarios."""

    def test_reads_recipient_objects(self):
        """Debe leer la lista de objetos {email}."""
        assert recipient_emails({"recipients": [{"email": "a@example.fr"}]}) == ["a@example.fr"]

    def test_falls_back_to_plain_list(self):
        """Debe aceptar el formato antiguo recipientEmails."""
        assert recipient_emails({"recipientEmails": ["b@example.fr"]}) == ["b@example.fr"]


class TestEmailSettingsStore:
    """Tests para los ajustes de email."""

    def test_defaults_without_file(self, email_settings_store):
        """Debe devolver la configuración por defecto."""
        settings = email_settings_store.load()
        assert "smtpHost" in settings
        assert "trackingBaseUrl" in settings

    def test_update_hides_password(self, email_settings_store):
        """Debe guardar la contraseña sin devolverla."""
        public = email_settings_store.update({"smtpHost": "smtp.example.fr", "smtpPassword": "secret", "smtpUser": None})

        assert public["smtpHost"] == "smtp.example.fr"
        assert "smtpPassword" not in public
        assert email_settings_store.load()["smtpPassword"] == "secret"
