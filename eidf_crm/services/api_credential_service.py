"""
Servicio de credenciales de API por organización.

Las credenciales se guardan cifradas (ver encryption_service) y nunca
se devuelven descifradas en los listados.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.db.models import ApiCredential
from eidf_crm.services.encryption_service import EncryptionService, get_encryption_service
from eidf_crm.utils.error_handler import AppException, NotFoundException, ValidationException
from eidf_crm.utils.time_utils import isoformat, utcnow

logger = logging.getLogger(__name__)

# Campos obligatorios por servicio
REQUIRED_FIELDS = {
    "woocommerce": ("apiUrl", "consumerKey", "consumerSecret"),
    "gemini": ("apiKey",),
}

SUPPORTED_SERVICES = tuple(REQUIRED_FIELDS.keys())


def validate_credentials(service: str, credentials: Optional[Dict[str, Any]]) -> None:
    """
    Valida el contenido de unas credenciales según el servicio.

    Args:
        service: woocommerce o gemini
        credentials: Credenciales en claro

    Raises:
        ValidationException: Si el servicio no existe o falta algún campo
    """
    if service not in REQUIRED_FIELDS:
        raise ValidationException(
            f"Unsupported service: {service}",
            field="service",
            invalid_value=service,
            expected_format=", ".join(SUPPORTED_SERVICES),
        )

    credentials = credentials or {}
    missing = [field for field in REQUIRED_FIELDS[service] if not credentials.get(field)]
    if missing:
        raise ValidationException(
            f"Invalid {service} credentials: missing {', '.join(missing)}",
            field="credentials",
            expected_format=", ".join(REQUIRED_FIELDS[service]),
        )


def serialize_credential(credential: ApiCredential) -> Dict[str, Any]:
    """Representación pública, sin el contenido cifrado."""
    return {
        "id": credential.id,
        "service": credential.service,
        "name": credential.name,
        "isActive": credential.is_active,
        "lastUsedAt": isoformat(credential.last_used_at),
        "createdAt": isoformat(credential.created_at),
        "updatedAt": isoformat(credential.updated_at),
    }


class ApiCredentialService:
    """
    CRUD de credenciales cifradas, siempre acotado a una organización.
    """

    def __init__(self, session: AsyncSession, encryption: Optional[EncryptionService] = None):
        self.session = session
        self.encryption = encryption or get_encryption_service()

    async def create(
        self, organization_id: str, service: str, name: str, credentials: Dict[str, Any]
    ) -> ApiCredential:
        """
        Crea un registro de credenciales cifradas.

        Args:
            organization_id: Organización propietaria
            service: woocommerce o gemini
            name: Nombre descriptivo
            credentials: Credenciales en claro

        Returns:
            ApiCredential: Registro creado
        """
        validate_credentials(service, credentials)
        if not name:
            raise ValidationException("Credential name is required", field="name")

        credential = ApiCredential(
            organization_id=organization_id,
            service=service,
            name=name,
            encrypted_data=self.encryption.encrypt_object(credentials),
        )
        self.session.add(credential)
        await self.session.flush()

        logger.info(f"🔐 {service} credential created for organization {organization_id}")
        return credential

    async def get(self, organization_id: str, service: str, name: Optional[str] = None) -> Optional[ApiCredential]:
        """
        Credencial activa más reciente de un servicio. Actualiza last_used_at.
        """
        query = select(ApiCredential).where(
            ApiCredential.organization_id == organization_id,
            ApiCredential.service == service,
            ApiCredential.is_active.is_(True),
        )
        if name:
            query = query.where(ApiCredential.name == name)
        query = query.order_by(ApiCredential.created_at.desc()).limit(1)

        credential = (await self.session.execute(query)).scalar_one_or_none()
        if credential is not None:
            credential.last_used_at = utcnow()
            await self.session.flush()
        return credential

    async def get_decrypted(
        self, organization_id: str, service: str, name: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Credenciales descifradas, o None si no existen o no se pueden descifrar.
        """
        credential = await self.get(organization_id, service, name)
        if credential is None:
            return None

        try:
            return self.encryption.decrypt_object(credential.encrypted_data)
        except (AppException, ValueError) as e:
            logger.error(f"❌ Failed to decrypt {service} credentials for organization {organization_id}: {e}")
            return None

    async def get_woocommerce_credentials(self, organization_id: str) -> Optional[Dict[str, Any]]:
        return await self.get_decrypted(organization_id, "woocommerce")

    async def get_gemini_credentials(self, organization_id: str) -> Optional[Dict[str, Any]]:
        return await self.get_decrypted(organization_id, "gemini")

    async def _get_owned(self, credential_id: str, organization_id: str) -> ApiCredential:
        result = await self.session.execute(
            select(ApiCredential).where(
                ApiCredential.id == credential_id, ApiCredential.organization_id == organization_id
            )
        )
        credential = result.scalar_one_or_none()
        if credential is None:
            raise NotFoundException("Credential not found", resource="api_credential")
        return credential

    async def update(
        self,
        credential_id: str,
        organization_id: str,
        name: Optional[str] = None,
        credentials: Optional[Dict[str, Any]] = None,
        is_active: Optional[bool] = None,
    ) -> ApiCredential:
        """
        Actualiza nombre, contenido o estado de una credencial de la organización.

        Raises:
            NotFoundException: Si la credencial no pertenece a la organización
            ValidationException: Si las nuevas credenciales no son válidas
        """
        credential = await self._get_owned(credential_id, organization_id)

        if name is not None:
            credential.name = name
        if credentials is not None:
            validate_credentials(credential.service, credentials)
            credential.encrypted_data = self.encryption.encrypt_object(credentials)
        if is_active is not None:
            credential.is_active = is_active
        credential.updated_at = utcnow()

        await self.session.flush()
        return credential

    async def delete(self, credential_id: str, organization_id: str) -> ApiCredential:
        credential = await self._get_owned(credential_id, organization_id)
        await self.session.delete(credential)
        await self.session.flush()
        logger.info(f"🗑️ Credential {credential_id} deleted for organization {organization_id}")
        return credential

    async def list(self, organization_id: str) -> List[Dict[str, Any]]:
        result = await self.session.execute(
            select(ApiCredential)
            .where(ApiCredential.organization_id == organization_id)
            .order_by(ApiCredential.created_at.desc())
        )
        return [serialize_credential(credential) for credential in result.scalars()]
