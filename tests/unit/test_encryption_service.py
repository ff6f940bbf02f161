"""Tests unitarios para el cifrado de credenciales."""

import base64

import pytest

from eidf_crm.services.encryption_service import EncryptionService
from eidf_crm.utils.error_handler import EncryptionException

SECRET = "una-clave-de-cifrado-de-al-menos-32-caracteres"


class TestEncryptionService:
    """Tests para EncryptionService."""

    def test_encrypt_decrypt_text(self):
        """Debe recuperar el texto original."""
        service = EncryptionService(SECRET)
        encrypted = service.encrypt("ck_1234567890")

        assert encrypted != "ck_1234567890"
        assert service.decrypt(encrypted) == "ck_1234567890"

    def test_each_encryption_is_unique(self):
        """Debe usar salt e IV aleatorios en cada cifrado."""
        service = EncryptionService(SECRET)
        assert service.encrypt("secret") != service.encrypt("secret")

    def test_encrypt_object(self):
        """Debe cifrar y descifrar objetos JSON."""
        service = EncryptionService(SECRET)
        credentials = {"apiUrl": "https://shop.example.fr", "consumerKey": "ck", "consumerSecret": "cs"}

        assert service.decrypt_object(service.encrypt_object(credentials)) == credentials

    def test_short_key_rejected(self):
        """Debe exigir una clave de al menos 32 caracteres."""
        with pytest.raises(EncryptionException):
            EncryptionService("too-short").encrypt("data")

    def test_wrong_key_fails(self):
        """Debe fallar al descifrar con otra clave."""
        encrypted = EncryptionService(SECRET).encrypt("data")
        other = EncryptionService("otra-clave-distinta-tambien-de-32-caracteres")

        with pytest.raises(EncryptionException):
            other.decrypt(encrypted)

    def test_tampered_data_fails(self):
        """Debe detectar datos manipulados."""
        service = EncryptionService(SECRET)
        raw = bytearray(base64.b64decode(service.encrypt("data")))
        raw[-1] ^= 0x01

        with pytest.raises(EncryptionException):
            service.decrypt(base64.b64encode(bytes(raw)).decode("ascii"))

    def test_invalid_base64_fails(self):
        """Debe rechazar datos que no son base64."""
        with pytest.raises(EncryptionException):
            EncryptionService(SECRET).decrypt("not base64!!")

    def test_truncated_data_fails(self):
        """Debe rechazar datos más cortos que la cabecera."""
        with pytest.raises(EncryptionException):
            EncryptionService(SECRET).decrypt(base64.b64encode(b"short").decode("ascii"))
