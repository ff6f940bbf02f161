"""
Modelos Pydantic de las peticiones de organizaciones, facturación y credenciales.

Los cuerpos usan camelCase como el frontend. Los campos obligatorios se
declaran opcionales y se validan en el endpoint para responder 400 con
el mensaje de negocio.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class OrganizationCreate(CamelModel):
    name: Optional[str] = Field(None, max_length=255, description="Nombre de la organización")
    website: Optional[str] = Field(None, max_length=512)
    logo: Optional[str] = Field(None, max_length=512)


class OrganizationMemberAdd(CamelModel):
    user_id: Optional[str] = Field(None, alias="userId", description="uid de Firebase del nuevo miembro")
    role: str = Field(default="MEMBER", description="OWNER, ADMIN o MEMBER")


class OrganizationMemberRole(CamelModel):
    role: Optional[str] = Field(None, description="Nuevo rol")


class CheckoutRequest(CamelModel):
    plan: Optional[str] = Field(None, description="STARTER, PROFESSIONAL o ENTERPRISE")
    billing_period: Optional[str] = Field(None, alias="billingPeriod", description="monthly o yearly")


class CredentialCreate(CamelModel):
    service: Optional[str] = Field(None, description="woocommerce o gemini")
    name: Optional[str] = Field(None, max_length=255)
    credentials: Optional[Dict[str, Any]] = None


class CredentialUpdate(CamelModel):
    name: Optional[str] = Field(None, max_length=255)
    credentials: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = Field(None, alias="isActive")

