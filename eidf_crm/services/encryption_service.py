"""
Cifrado de credenciales de API con AES-256-GCM.

Formato de salida: base64(salt | iv | tag | ciphertext). La clave de cada
mensaje se deriva con PBKDF2-HMAC-SHA256 a partir de la clave maestra,
que a su vez sale de ENCRYPTION_KEY con scrypt.
"""

import base64
import binascii
import json
import logging
import os
from functools import lru_cache
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from eidf_crm.core.config import get_settings
from eidf_crm.utils.error_handler import EncryptionException

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16
SALT_LENGTH = 64
ITERATIONS = 100000
MIN_KEY_CHARS = 32


@lru_cache(maxsize=4)
def _derive_master_key(secret: str) -> bytes:
    kdf = Scrypt(salt=b"salt", length=KEY_LENGTH, n=2**14, r=8, p=1)
    return kdf.derive(secret.encode("utf-8"))


def get_master_key(secret: Optional[str] = None) -> bytes:
    """
    Clave maestra derivada de ENCRYPTION_KEY.

    Raises:
        EncryptionException: Si la clave no está configurada o es demasiado corta
    """
    secret = secret if secret is not None else get_settings().ENCRYPTION_KEY
    if not secret or len(secret) < MIN_KEY_CHARS:
        raise EncryptionException(f"ENCRYPTION_KEY must be at least {MIN_KEY_CHARS} characters long")
    return _derive_master_key(secret)


def _message_key(master_key: bytes, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=salt, iterations=ITERATIONS)
    return kdf.derive(master_key)


class EncryptionService:
    """Cifra y descifra textos y objetos JSON."""

    def __init__(self, secret: Optional[str] = None):
        self._secret = secret

    def encrypt(self, text: str) -> str:
        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)
        key = _message_key(get_master_key(self._secret), salt)

        sealed = AESGCM(key).encrypt(iv, text.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

        return base64.b64encode(salt + iv + tag + ciphertext).decode("ascii")

    def decrypt(self, encrypted_data: str) -> str:
        """
        Descifra un texto producido por encrypt().

        Args:
            encrypted_data: Texto en base64

        Returns:
            str: Texto original

        Raises:
            EncryptionException: Si el dato está corrupto o la clave no coincide
        """
        try:
            buffer = base64.b64decode(encrypted_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncryptionException("Encrypted data is not valid base64") from e

        header = SALT_LENGTH + IV_LENGTH + TAG_LENGTH
        if len(buffer) < header:
            raise EncryptionException("Encrypted data is too short")

        salt = buffer[:SALT_LENGTH]
        iv = buffer[SALT_LENGTH : SALT_LENGTH + IV_LENGTH]
        tag = buffer[SALT_LENGTH + IV_LENGTH : header]
        ciphertext = buffer[header:]

        key = _message_key(get_master_key(self._secret), salt)
        try:
            plain = AESGCM(key).decrypt(iv, ciphertext + tag, None)
        except InvalidTag as e:
            raise EncryptionException("Unable to decrypt data: authentication failed") from e

        return plain.decode("utf-8")

    def encrypt_object(self, obj: Any) -> str:
        return self.encrypt(json.dumps(obj))

    def decrypt_object(self, encrypted_data: str) -> Any:
        return json.loads(self.decrypt(encrypted_data))


_encryption_service: Optional[EncryptionService] = None


def get_encryption_service() -> EncryptionService:
    global _encryption_service
    if _encryption_service is None:
        _encryption_service = EncryptionService()
    return _encryption_service
