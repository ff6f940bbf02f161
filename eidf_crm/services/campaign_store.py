"""
Almacenamiento de campañas de email en un fichero JSON.

Formato: {"campaigns": [...], "nextId": n, "unsubscribed": [...]}. Los ids
son cadenas numéricas crecientes; "unsubscribed" es la lista de bajas que
se excluye de todos los envíos.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from eidf_crm.core.config import get_settings
from eidf_crm.utils.error_handler import NotFoundException, ValidationException
from eidf_crm.utils.time_utils import isoformat, utcnow

logger = logging.getLogger(__name__)

CAMPAIGN_STATUSES = ("DRAFT", "SCHEDULED", "SENDING", "SENT", "FAILED", "PAUSED", "CANCELLED")

DEFAULT_FROM_NAME = "EIDF CRM"
DEFAULT_FROM_EMAIL = "noreply@eidf-crm.fr"

UPDATABLE_FIELDS = ("name", "subject", "body", "fromName", "fromEmail", "status", "scheduledDate", "recipients")


def default_stats(campaign: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Estadísticas iniciales de una campaña.

    Con una campaña antigua se aprovechan sus contadores planos (sentCount...).
    """
    campaign = campaign or {}
    return {
        "sent": campaign.get("sentCount", 0),
        "delivered": campaign.get("deliveredCount", 0),
        "opened": campaign.get("openedCount", 0),
        "clicked": campaign.get("clickedCount", 0),
        "converted": campaign.get("convertedCount", 0),
        "bounced": campaign.get("bouncedCount", 0),
        "unsubscribed": campaign.get("unsubscribedCount", 0),
        "spamReported": campaign.get("spamReportedCount", 0),
        "revenue": 0,
        "lastUpdated": campaign.get("updatedAt") or campaign.get("createdAt") or isoformat(utcnow()),
    }


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_recipients(emails: List[str]) -> List[Dict[str, str]]:
    return [{"email": email.strip()} for email in emails if email and email.strip()]


def recipient_emails(campaign: Dict[str, Any]) -> List[str]:
    """Direcciones de destino en cualquiera de los dos formatos guardados."""
    recipients = campaign.get("recipients") or []
    if recipients:
        return [r["email"] if isinstance(r, dict) else str(r) for r in recipients]
    return list(campaign.get("recipientEmails") or [])


class CampaignStore:
    """
    CRUD de campañas sobre {DATA_DIR}/campaigns.json.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else Path(get_settings().DATA_DIR) / "campaigns.json"

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"campaigns": [], "nextId": 1, "unsubscribed": []}

        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return {
            "campaigns": data.get("campaigns") or [],
            "nextId": data.get("nextId") or 1,
            "unsubscribed": data.get("unsubscribed") or [],
        }

    def _save(self, data: Dict[str, Any]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def list(self) -> List[Dict[str, Any]]:
        campaigns = self._load()["campaigns"]
        for campaign in campaigns:
            if not campaign.get("stats"):
                campaign["stats"] = default_stats(campaign)
        return campaigns

    def get(self, campaign_id: str) -> Optional[Dict[str, Any]]:
        for campaign in self._load()["campaigns"]:
            if campaign.get("id") == str(campaign_id):
                if not campaign.get("stats"):
                    campaign["stats"] = default_stats(campaign)
                return campaign
        return None

    def require(self, campaign_id: str) -> Dict[str, Any]:
        campaign = self.get(campaign_id)
        if campaign is None:
            raise NotFoundException("Campaign not found", resource="campaign")
        return campaign

    def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Crea una campaña.

        Args:
            payload: name, subject y body obligatorios; recipientEmails o recipients,
                fromName, fromEmail, status y scheduledDate opcionales

        Returns:
            Dict: Campaña creada

        Raises:
            ValidationException: Si falta name, subject o body
        """
        missing = [field for field in ("name", "subject", "body") if not payload.get(field)]
        if missing:
            raise ValidationException("Name, subject, and body are required", field=", ".join(missing))

        status = payload.get("status") or "DRAFT"
        if status not in CAMPAIGN_STATUSES:
            raise ValidationException(f"Invalid campaign status: {status}", field="status", invalid_value=status)

        if payload.get("recipientEmails"):
            recipients = normalize_recipients(payload["recipientEmails"])
        else:
            recipients = list(payload.get("recipients") or [])

        data = self._load()
        now = isoformat(utcnow())
        campaign = {
            "id": str(data["nextId"]),
            "name": payload["name"],
            "subject": payload["subject"],
            "body": payload["body"],
            "fromName": payload.get("fromName") or DEFAULT_FROM_NAME,
            "fromEmail": payload.get("fromEmail") or DEFAULT_FROM_EMAIL,
            "recipients": recipients,
            "recipientCount": len(recipients),
            "status": status,
            "scheduledDate": payload.get("scheduledDate"),
            "createdAt": now,
            "updatedAt": now,
            "sentCount": 0,
            "failedCount": 0,
            "stats": default_stats({"createdAt": now}),
        }

        data["campaigns"].append(campaign)
        data["nextId"] += 1
        self._save(data)

        logger.info(f"📧 Campaign {campaign['id']} '{campaign['name']}' created")
        return campaign

    def update(self, campaign_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fusiona cambios en una campaña. recipientEmails sustituye a los destinatarios.

        Raises:
            NotFoundException: Si la campaña no existe
        """
        data = self._load()
        campaign = next((c for c in data["campaigns"] if c.get("id") == str(campaign_id)), None)
        if campaign is None:
            raise NotFoundException("Campaign not found", resource="campaign")

        status = payload.get("status")
        if status is not None and status not in CAMPAIGN_STATUSES:
            raise ValidationException(f"Invalid campaign status: {status}", field="status", invalid_value=status)

        for field in UPDATABLE_FIELDS:
            if field in payload and payload[field] is not None:
                campaign[field] = payload[field]

        if payload.get("recipientEmails") is not None:
            campaign["recipients"] = normalize_recipients(payload["recipientEmails"])
        campaign["recipientCount"] = len(campaign.get("recipients") or [])
        campaign["updatedAt"] = isoformat(utcnow())

        self._save(data)
        return campaign

    def save_campaign(self, campaign: Dict[str, Any]) -> Dict[str, Any]:
        """Reemplaza una campaña completa (estado de envío, estadísticas)."""
        data = self._load()
        for index, existing in enumerate(data["campaigns"]):
            if existing.get("id") == campaign["id"]:
                data["campaigns"][index] = campaign
                self._save(data)
                return campaign
        raise NotFoundException("Campaign not found", resource="campaign")

    def delete(self, campaign_id: str):
        data = self._load()
        remaining = [c for c in data["campaigns"] if c.get("id") != str(campaign_id)]
        if len(remaining) == len(data["campaigns"]):
            raise NotFoundException("Campaign not found", resource="campaign")
        data["campaigns"] = remaining
        self._save(data)
        logger.info(f"🗑️ Campaign {campaign_id} deleted")

    def increment_stat(self, campaign_id: str, stat: str, amount: int = 1) -> bool:
        """
        Incrementa un contador de stats.

        Returns:
            bool: False si la campaña no existe
        """
        data = self._load()
        campaign = next((c for c in data["campaigns"] if c.get("id") == str(campaign_id)), None)
        if campaign is None:
            return False

        stats = campaign.get("stats") or default_stats(campaign)
        stats[stat] = stats.get(stat, 0) + amount
        stats["lastUpdated"] = isoformat(utcnow())
        campaign["stats"] = stats
        self._save(data)
        return True

    def unsubscribed_emails(self) -> Set[str]:
        return {entry["email"] for entry in self._load()["unsubscribed"]}

    def is_unsubscribed(self, email: str) -> bool:
        return normalize_email(email) in self.unsubscribed_emails()

    def add_unsubscribed(self, email: str, campaign_id: Optional[str] = None) -> bool:
        """
        Registra la baja de una dirección.

        Args:
            email: Dirección que se da de baja
            campaign_id: Campaña desde la que se pidió la baja

        Returns:
            bool: False si la dirección ya estaba dada de baja
        """
        data = self._load()
        email = normalize_email(email)
        if any(entry["email"] == email for entry in data["unsubscribed"]):
            return False

        data["unsubscribed"].append(
            {"email": email, "campaignId": campaign_id, "unsubscribedAt": isoformat(utcnow())}
        )
        self._save(data)
        return True

    def queue_stats(self) -> Dict[str, int]:
        statuses = [c.get("status") for c in self._load()["campaigns"]]
        return {
            "waiting": statuses.count("SCHEDULED"),
            "active": statuses.count("SENDING"),
            "completed": statuses.count("SENT"),
            "failed": statuses.count("FAILED"),
            "delayed": 0,
        }


def get_campaign_store() -> CampaignStore:
    return CampaignStore()
