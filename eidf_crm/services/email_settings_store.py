"""
Ajustes de email guardados en {DATA_DIR}/email-settings.json.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from eidf_crm.core.config import get_settings
from eidf_crm.utils.time_utils import isoformat, utcnow

logger = logging.getLogger(__name__)

# Nunca se devuelve al cliente
SECRET_FIELDS = ("smtpPassword",)


def default_email_settings() -> Dict[str, Any]:
    settings = get_settings()
    return {
        "defaultFromName": settings.EMAIL_DEFAULT_FROM_NAME,
        "defaultFromEmail": settings.EMAIL_DEFAULT_FROM_EMAIL,
        "smtpHost": settings.SMTP_HOST,
        "smtpPort": settings.SMTP_PORT,
        "smtpUser": settings.SMTP_USER or "",
        "smtpSecure": settings.SMTP_USE_TLS,
        "trackingBaseUrl": settings.TRACKING_BASE_URL,
    }


class EmailSettingsStore:
    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else Path(get_settings().DATA_DIR) / "email-settings.json"

    def load(self) -> Dict[str, Any]:
        """
        Ajustes guardados sobre los valores por defecto de la configuración.

        Returns:
            Dict: Ajustes completos, incluidos los secretos
        """
        stored: Dict[str, Any] = {}
        if self.path.exists():
            with open(self.path, "r", encoding="utf-8") as f:
                stored = json.load(f)
        return {**default_email_settings(), **stored}

    def public(self) -> Dict[str, Any]:
        return {key: value for key, value in self.load().items() if key not in SECRET_FIELDS}

    def update(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fusiona y guarda cambios.

        Args:
            changes: Campos a modificar (los None se ignoran)

        Returns:
            Dict: Ajustes resultantes sin secretos
        """
        stored: Dict[str, Any] = {}
        if self.path.exists():
            with open(self.path, "r", encoding="utf-8") as f:
                stored = json.load(f)

        stored.update({key: value for key, value in changes.items() if value is not None})
        stored["updatedAt"] = isoformat(utcnow())

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(stored, f, indent=2, ensure_ascii=False)

        logger.info("⚙️ Email settings updated")
        return self.public()


def get_email_settings_store() -> EmailSettingsStore:
    return EmailSettingsStore()
