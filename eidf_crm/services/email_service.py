"""
Envío de emails por SMTP.

Los mensajes se envían como multipart/alternative (texto + HTML). La
conexión SMTP usa los ajustes de email guardados y, en su defecto, la
configuración de la aplicación.
"""

import asyncio
import logging
import re
import smtplib
import uuid
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from html import escape
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

from eidf_crm.core.config import get_settings
from eidf_crm.services.email_settings_store import EmailSettingsStore, get_email_settings_store
from eidf_crm.utils.error_handler import ErrorAggregator, ExternalServiceException

settings = get_settings()
logger = logging.getLogger(__name__)

_STYLE_RE = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_SCRIPT_RE = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")


def html_to_text(html: str) -> str:
    """
    Conversión simple de HTML a texto plano.

    Args:
        html: Cuerpo HTML

    Returns:
        str: Texto sin etiquetas, con los espacios colapsados
    """
    text = _STYLE_RE.sub("", html)
    text = _SCRIPT_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)
    return _SPACE_RE.sub(" ", text).strip()


def add_tracking_pixel(html: str, campaign_id: str, recipient: str, tracking_base_url: str) -> str:
    """Añade el pixel de apertura y el enlace de baja al final del HTML (o antes de </body>)."""
    base_url = tracking_base_url.rstrip("/")
    pixel_url = f"{base_url}/track/open/{quote(str(campaign_id))}/{quote(recipient, safe='')}"
    unsubscribe_url = f"{base_url}/unsubscribe?{urlencode({'email': recipient, 'campaign': campaign_id})}"
    footer = (
        f'<img src="{pixel_url}" width="1" height="1" alt="" style="display:none" />'
        f'<p style="font-size:12px;color:#888;text-align:center">'
        f'<a href="{escape(unsubscribe_url)}">Se désabonner</a></p>'
    )
    if "</body>" in html:
        return html.replace("</body>", f"{footer}</body>", 1)
    return f"{html}{footer}"


class EmailService:
    """
    Cliente SMTP para envíos individuales y por lotes.
    """

    def __init__(self, settings_store: Optional[EmailSettingsStore] = None):
        self.settings_store = settings_store or get_email_settings_store()

    def _smtp_config(self) -> Dict[str, Any]:
        email_settings = self.settings_store.load()
        return {
            "host": email_settings.get("smtpHost") or settings.SMTP_HOST,
            "port": int(email_settings.get("smtpPort") or settings.SMTP_PORT),
            "user": email_settings.get("smtpUser") or settings.SMTP_USER,
            "password": email_settings.get("smtpPassword") or settings.SMTP_PASSWORD,
            "use_tls": bool(email_settings.get("smtpSecure", settings.SMTP_USE_TLS)),
            "from_name": email_settings.get("defaultFromName") or settings.EMAIL_DEFAULT_FROM_NAME,
            "from_email": email_settings.get("defaultFromEmail") or settings.EMAIL_DEFAULT_FROM_EMAIL,
            "tracking_base_url": email_settings.get("trackingBaseUrl") or settings.TRACKING_BASE_URL,
        }

    def tracking_base_url(self) -> str:
        return self._smtp_config()["tracking_base_url"]

    def _send_sync(self, config: Dict[str, Any], message: MIMEMultipart, from_addr: str, to: str):
        with smtplib.SMTP(config["host"], config["port"], timeout=30) as server:
            if config["use_tls"]:
                server.starttls()
            if config["user"] and config["password"]:
                server.login(config["user"], config["password"])
            server.sendmail(from_addr, [to], message.as_string())

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        from_name: Optional[str] = None,
        from_email: Optional[str] = None,
        text: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Envía un email.

        Args:
            to: Destinatario
            subject: Asunto
            html: Cuerpo HTML
            from_name: Nombre del remitente
            from_email: Dirección del remitente
            text: Versión en texto plano (por defecto derivada del HTML)

        Returns:
            Dict: {"success", "message_id"} o {"success": False, "error"}
        """
        config = self._smtp_config()
        sender_email = from_email or config["from_email"]
        message_id = f"<{uuid.uuid4()}@{sender_email.split('@')[-1]}>"

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = formataddr((from_name or config["from_name"], sender_email))
        message["To"] = to
        message["Message-ID"] = message_id
        message.attach(MIMEText(text or html_to_text(html), "plain", "utf-8"))
        message.attach(MIMEText(html, "html", "utf-8"))

        try:
            await asyncio.to_thread(self._send_sync, config, message, sender_email, to)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ Email to {to} failed: {e}")
            return {"success": False, "error": str(e) or "Failed to send email"}

        logger.info(f"📨 Email sent to {to} ({message_id})")
        return {"success": True, "message_id": message_id}

    async def send_bulk(
        self,
        recipients: List[str],
        subject: str,
        html: str,
        from_name: Optional[str] = None,
        from_email: Optional[str] = None,
        campaign_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Envía un email a varios destinatarios por lotes.

        Entre lotes de EMAIL_BATCH_SIZE se espera EMAIL_BATCH_DELAY_SECONDS.
        Con campaign_id se añade un pixel de apertura y un enlace de baja por destinatario.

        Returns:
            List[Dict]: Resultado por destinatario con su email
        """
        batch_size = max(settings.EMAIL_BATCH_SIZE, 1)
        tracking_base_url = self.tracking_base_url() if campaign_id else None
        aggregator = ErrorAggregator()
        results: List[Dict[str, Any]] = []

        for start in range(0, len(recipients), batch_size):
            if start:
                await asyncio.sleep(settings.EMAIL_BATCH_DELAY_SECONDS)

            for recipient in recipients[start : start + batch_size]:
                body = html
                if campaign_id:
                    body = add_tracking_pixel(html, campaign_id, recipient, tracking_base_url)

                result = await self.send_email(recipient, subject, body, from_name, from_email)
                results.append({"email": recipient, **result})
                aggregator.increment_processed()
                if not result["success"]:
                    aggregator.add_error(
                        ExternalServiceException(result.get("error", "send failed"), service="smtp"),
                        {"email": recipient},
                    )

        summary = aggregator.get_summary()
        logger.info(f"📬 Bulk send finished: {summary['success_count']}/{summary['total_processed']} delivered")
        return results


def get_email_service() -> EmailService:
    return EmailService()
