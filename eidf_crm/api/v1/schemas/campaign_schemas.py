"""
Modelos Pydantic de campañas de email y ajustes de email.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CampaignPayload(BaseModel):
    """
    Cuerpo de creación y actualización de campañas.

    Los nombres de campo coinciden con los guardados en campaigns.json.
    """

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    fromName: Optional[str] = None
    fromEmail: Optional[str] = None
    status: Optional[str] = None
    scheduledDate: Optional[str] = None
    recipientEmails: Optional[List[str]] = None
    recipients: Optional[List[Dict[str, Any]]] = None

    def to_store(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CampaignTestRequest(BaseModel):
    testEmails: List[str] = Field(default_factory=list, description="Entre 1 y 5 direcciones")


class EmailSettingsUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    defaultFromName: Optional[str] = None
    defaultFromEmail: Optional[str] = None
    smtpHost: Optional[str] = None
    smtpPort: Optional[int] = Field(None, ge=1, le=65535)
    smtpUser: Optional[str] = None
    smtpPassword: Optional[str] = None
    smtpSecure: Optional[bool] = None
    trackingBaseUrl: Optional[str] = None
