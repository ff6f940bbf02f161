"""Tests unitarios para el servicio de credenciales de API."""

import pytest

from eidf_crm.services.api_credential_service import ApiCredentialService, validate_credentials
from eidf_crm.services.encryption_service import EncryptionService
from eidf_crm.utils.error_handler import NotFoundException, ValidationException

WOO_CREDENTIALS = {
    "apiUrl": "https://shop.example.fr",
    "consumerKey": "ck_test",
    "consumerSecret": "cs_test",
}


@pytest.fixture
def credential_service(db_session):
    return ApiCredentialService(db_session, EncryptionService("clave-de-test-con-mas-de-32-caracteres"))


class TestValidateCredentials:
    """Tests para la validación de credenciales por servicio."""

    def test_valid_woocommerce(self):
        """Debe aceptar credenciales WooCommerce completas."""
        validate_credentials("woocommerce", WOO_CREDENTIALS)

    def test_missing_fields(self):
        """Debe rechazar credenciales incompletas."""
        with pytest.raises(ValidationException, match="consumerSecret"):
            validate_credentials("woocommerce", {"apiUrl": "x", "consumerKey": "y"})

    def test_unknown_service(self):
        """Debe rechazar servicios no soportados."""
        with pytest.raises(ValidationException):
            validate_credentials("shopify", {"token": "x"})


class TestApiCredentialService:
    """Tests para ApiCredentialService."""

    @pytest.mark.asyncio
    async def test_create_stores_encrypted(self, credential_service, site_id):
        """Debe guardar las credenciales cifradas."""
        credential = await credential_service.create(site_id, "woocommerce", "Tienda", WOO_CREDENTIALS)

        assert "ck_test" not in credential.encrypted_data
        assert await credential_service.get_woocommerce_credentials(site_id) == WOO_CREDENTIALS

    @pytest.mark.asyncio
    async def test_get_updates_last_used(self, credential_service, site_id):
        """Debe registrar el último uso al leer la credencial."""
        await credential_service.create(site_id, "gemini", "Gemini", {"apiKey": "key"})

        credential = await credential_service.get(site_id, "gemini")

        assert credential.last_used_at is not None

    @pytest.mark.asyncio
    async def test_inactive_credentials_are_ignored(self, credential_service, site_id):
        """Debe ignorar credenciales desactivadas."""
        credential = await credential_service.create(site_id, "gemini", "Gemini", {"apiKey": "key"})
        await credential_service.update(credential.id, site_id, is_active=False)

        assert await credential_service.get_gemini_credentials(site_id) is None

    @pytest.mark.asyncio
    async def test_update_reencrypts(self, credential_service, site_id):
        """Debe validar y volver a cifrar las credenciales nuevas."""
        credential = await credential_service.create(site_id, "gemini", "Gemini", {"apiKey": "old"})

        await credential_service.update(credential.id, site_id, name="Gemini Pro", credentials={"apiKey": "new"})

        assert (await credential_service.get_gemini_credentials(site_id)) == {"apiKey": "new"}
        with pytest.raises(ValidationException):
            await credential_service.update(credential.id, site_id, credentials={"apiKey": ""})

    @pytest.mark.asyncio
    async def test_other_organization_cannot_delete(self, credential_service, site_id):
        """Debe ocultar las credenciales de otras organizaciones."""
        credential = await credential_service.create(site_id, "woocommerce", "Tienda", WOO_CREDENTIALS)

        with pytest.raises(NotFoundException):
            await credential_service.delete(credential.id, "other-org")

        await credential_service.delete(credential.id, site_id)
        assert await credential_service.list(site_id) == []

    @pytest.mark.asyncio
    async def test_list_hides_secrets(self, credential_service, site_id):
        """Debe listar sin el contenido cifrado."""
        await credential_service.create(site_id, "woocommerce", "Tienda", WOO_CREDENTIALS)

        listed = await credential_service.list(site_id)

        assert len(listed) == 1
        assert listed[0]["service"] == "woocommerce"
        assert listed[0]["isActive"] is True
        assert "encrypted_data" not in listed[0]
