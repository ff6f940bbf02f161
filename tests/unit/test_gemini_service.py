"""Tests unitarios para la generación de contenido con Gemini."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from eidf_crm.services.billing_service import BillingService
from eidf_crm.services.gemini_service import (
    GeminiService,
    build_fallback_seo,
    generate_for_organization,
    get_style,
    parse_seo_response,
    strip_code_fences,
)
from eidf_crm.services.organization_service import OrganizationService
from eidf_crm.utils.error_handler import ExternalServiceException, LimitExceededException, ValidationException

PRODUCT = {
    "id": 12,
    "name": "Vis inox A2",
    "sku": "VIS-A2",
    "price": "4.90",
    "categories": [{"name": "Visserie"}],
}


def gemini_client(text):
    """Cliente google-genai simulado con una respuesta fija."""
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(text=text)
    return client


class TestSeoParsing:
    """Tests para la interpretación de la respuesta SEO."""

    def test_strip_code_fences(self):
        """Debe quitar los bloques markdown."""
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_parse_camel_case_response(self):
        """Debe aceptar claves camelCase."""
        response = json.dumps(
            {
                "metaTitle": "Vis inox A2 - Découvrez notre qualité",
                "metaDescription": "Découvrez notre vis inox avec livraison rapide et garantie.",
                "keywords": ["vis inox", "visserie", "inox"],
                "focusKeyphrase": "vis inox",
            }
        )

        seo = parse_seo_response(f"```json\n{response}\n```", PRODUCT)

        assert seo["meta_title"] == "Vis inox A2 - Découvrez notre qualité"
        assert seo["keywords"] == ["vis inox", "visserie", "inox"]
        assert seo["focus_keyphrase"] == "vis inox"

    def test_invalid_json_uses_template(self):
        """Debe usar la plantilla del estilo si el JSON no es válido."""
        seo = parse_seo_response("Voici vos métadonnées", PRODUCT, "ecological")

        assert seo == build_fallback_seo(PRODUCT, "ecological")
        assert seo["focus_keyphrase"] == "vis inox a2 écologique"

    def test_english_response_uses_template(self):
        """Debe descartar contenido en inglés."""
        response = json.dumps(
            {
                "metaTitle": "Stainless screw - buy now",
                "metaDescription": "Shop for the best screws with free shipping",
                "keywords": "screw, steel",
                "focusKeyphrase": "stainless screw",
            }
        )

        assert parse_seo_response(response, PRODUCT) == build_fallback_seo(PRODUCT)


class TestFallbackSeo:
    """Tests para las plantillas SEO por estilo."""

    def test_commercial_template(self):
        """Debe construir título, palabras clave y frase clave del estilo comercial."""
        seo = build_fallback_seo(PRODUCT)

        assert seo["meta_title"] == "Vis inox A2 - Qualité Premium | Visserie"
        assert seo["keywords"][:2] == ["vis inox a2", "visserie"]
        assert seo["focus_keyphrase"] == "vis inox a2 prix"

    def test_title_truncated(self):
        """Debe limitar el meta título a 60 caracteres."""
        seo = build_fallback_seo({**PRODUCT, "name": "Très long nom de produit " * 4})
        assert len(seo["meta_title"]) == 60

    def test_technical_template_extracts_dimensions(self):
        """Debe añadir las dimensiones del nombre como palabras clave."""
        seo = build_fallback_seo({**PRODUCT, "name": "Vis inox 6 mm x 40 mm"}, "technical")
        assert "6 mm" in seo["keywords"]

    def test_unknown_style(self):
        """Debe rechazar estilos desconocidos."""
        with pytest.raises(ValidationException):
            get_style("poetic")


class TestGeminiService:
    """Tests para GeminiService."""

    @pytest.mark.asyncio
    async def test_description_wrapped_in_paragraph(self):
        """Debe envolver en <p> una descripción sin HTML."""
        service = GeminiService(api_key="key", client=gemini_client("Une vis robuste."))

        description = await service.generate("description", PRODUCT, "technical")

        assert description == "<p>Une vis robuste.</p>"

    @pytest.mark.asyncio
    async def test_title_strips_quotes(self):
        """Debe quitar las comillas del título generado."""
        service = GeminiService(api_key="key", client=gemini_client('"Vis inox A2 - Fixation durable"'))
        assert await service.generate("title", PRODUCT) == "Vis inox A2 - Fixation durable"

    @pytest.mark.asyncio
    async def test_empty_response_fails(self):
        """Debe fallar si el modelo devuelve una respuesta vacía."""
        service = GeminiService(api_key="key", client=gemini_client(""))

        with pytest.raises(ExternalServiceException):
            await service.generate("short_description", PRODUCT)

    @pytest.mark.asyncio
    async def test_unknown_kind(self):
        """Debe rechazar tipos de generación desconocidos."""
        service = GeminiService(api_key="key", client=gemini_client("x"))

        with pytest.raises(ValidationException):
            await service.generate("tags", PRODUCT)


class TestGenerateForOrganization:
    """Tests para la generación con límite de plan."""

    @pytest.mark.asyncio
    async def test_records_usage(self, db_session):
        """Debe registrar cada generación en el uso del mes."""
        organization = await OrganizationService(db_session).create_organization("Boutique", "user-1")
        service = MagicMock()
        service.generate = AsyncMock(return_value="Titre")

        result = await generate_for_organization(db_session, organization.id, "title", PRODUCT, service=service)

        assert result == {"kind": "title", "content": "Titre", "usage": {"current": 1, "limit": 50}}
        usage = await BillingService(db_session).check_usage_limits(organization.id, "ai_generations")
        assert usage["current"] == 1

    @pytest.mark.asyncio
    async def test_limit_reached(self, db_session):
        """Debe bloquear la generación al alcanzar el límite mensual."""
        organization = await OrganizationService(db_session).create_organization("Boutique", "user-1")
        await BillingService(db_session).record_usage(organization.id, "ai_generations", 50)
        service = MagicMock()
        service.generate = AsyncMock()

        with pytest.raises(LimitExceededException):
            await generate_for_organization(db_session, organization.id, "seo", PRODUCT, service=service)

        service.generate.assert_not_called()
