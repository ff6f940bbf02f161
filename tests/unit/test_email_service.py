"""Tests unitarios para el envío de emails."""

import smtplib
from unittest.mock import patch

import pytest

from eidf_crm.services import email_service as email_module
from eidf_crm.services.email_service import EmailService, add_tracking_pixel, html_to_text


class TestHtmlHelpers:
    """Tests para las utilidades HTML."""

    def test_html_to_text(self):
        """Debe quitar estilos, scripts y etiquetas."""
        html = "<style>p{color:red}</style><p>Bonjour   <b>Marie</b></p><script>alert(1)</script>"
        assert html_to_text(html) == "Bonjour Marie"

    def test_pixel_before_body_close(self):
        """Debe insertar el pixel antes de </body>."""
        html = add_tracking_pixel("<html><body><p>Hi</p></body></html>", "3", "a@b.fr", "https://api.example.fr/api/v1/")

        assert '/track/open/3/a%40b.fr"' in html
        assert html.endswith("</body></html>")
        assert "https://api.example.fr/api/v1/track/open" in html

    def test_pixel_appended_without_body(self):
        """Debe añadir el pixel al final si no hay </body>."""
        html = add_tracking_pixel("<p>Hi</p>", "3", "a@b.fr", "https://api.example.fr")
        assert html.startswith("<p>Hi</p><img")

    def test_unsubscribe_link(self):
        """Debe incluir el enlace de baja con email y campaña codificados."""
        html = add_tracking_pixel("<html><body><p>Hi</p></body></html>", "3", "a+b@b.fr", "https://api.example.fr/")

        assert 'href="https://api.example.fr/unsubscribe?email=a%2Bb%40b.fr&amp;campaign=3"' in html
        assert html.index("Se désabonner") < html.index("</body>")


class TestEmailService:
    """Tests para EmailService."""

    @pytest.mark.asyncio
    async def test_send_email_success(self, email_settings_store):
        """Debe devolver el message id al enviar."""
        service = EmailService(email_settings_store)

        with patch.object(service, "_send_sync") as send_sync:
            result = await service.send_email("marie@example.fr", "Sujet", "<p>Bonjour</p>", from_email="shop@eidf.fr")

        assert result["success"] is True
        assert result["message_id"].endswith("@eidf.fr>")
        _, message, from_addr, to = send_sync.call_args.args
        assert from_addr == "shop@eidf.fr"
        assert to == "marie@example.fr"
        assert message["Subject"] == "Sujet"

    @pytest.mark.asyncio
    async def test_send_email_failure(self, email_settings_store):
        """Debe devolver el error sin lanzar excepción."""
        service = EmailService(email_settings_store)

        with patch.object(service, "_send_sync", side_effect=smtplib.SMTPException("relay denied")):
            result = await service.send_email("marie@example.fr", "Sujet", "<p>Bonjour</p>")

        assert result == {"success": False, "error": "relay denied"}

    @pytest.mark.asyncio
    async def test_send_bulk_adds_tracking_per_recipient(self, email_settings_store):
        """Debe enviar a cada destinatario con su pixel de apertura."""
        email_settings_store.update({"trackingBaseUrl": "https://api.example.fr/api/v1"})
        service = EmailService(email_settings_store)
        bodies = {}

        async def fake_send(to, subject, html, from_name=None, from_email=None):
            bodies[to] = html
            return {"success": to != "bad@example.fr", "message_id": "<x@y>"}

        with patch.object(service, "send_email", side_effect=fake_send), patch.object(
            email_module.settings, "EMAIL_BATCH_DELAY_SECONDS", 0
        ):
            results = await service.send_bulk(
                ["a@example.fr", "bad@example.fr"], "Sujet", "<p>Hi</p>", campaign_id="7"
            )

        assert [r["email"] for r in results] == ["a@example.fr", "bad@example.fr"]
        assert [r["success"] for r in results] == [True, False]
        assert "/track/open/7/a%40example.fr" in bodies["a@example.fr"]
