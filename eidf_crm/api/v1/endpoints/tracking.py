"""
Endpoints públicos de seguimiento de campañas: apertura, clic y baja.

No requieren autenticación: se llaman desde los clientes de correo.
"""

import base64
import html
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from eidf_crm.services.campaign_store import CampaignStore, get_campaign_store
from eidf_crm.utils.error_handler import ValidationException

logger = logging.getLogger(__name__)

router = APIRouter()

TRACKING_PIXEL = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7")

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

UNSUBSCRIBE_PAGE = """<!DOCTYPE html>
<html>
<head>
  <title>{title}</title>
  <meta charset="utf-8">
  <style>
    body {{ font-family: Arial, sans-serif; text-align: center; padding: 50px; }}
    .container {{ max-width: 500px; margin: 0 auto; }}
  </style>
</head>
<body>
  <div class="container">
    <h1>{title}</h1>
    <p>L'adresse <strong>{email}</strong> ne recevra plus nos emails.</p>
  </div>
</body>
</html>
"""


@router.get("/track/open/{campaign_id}/{recipient}", summary="Pixel de apertura", include_in_schema=False)
async def track_open(
    campaign_id: str, recipient: str, store: CampaignStore = Depends(get_campaign_store)
) -> Response:
    if store.increment_stat(campaign_id, "opened"):
        logger.info(f"👁️ Campaign {campaign_id} opened by {recipient}")
    return Response(content=TRACKING_PIXEL, media_type="image/gif", headers=NO_CACHE_HEADERS)


@router.get("/track/click/{campaign_id}/{recipient}", summary="Redirección de clic", include_in_schema=False)
async def track_click(
    campaign_id: str,
    recipient: str,
    url: Optional[str] = Query(default=None),
    store: CampaignStore = Depends(get_campaign_store),
) -> RedirectResponse:
    if not url:
        raise ValidationException("URL parameter is required", field="url")

    if store.increment_stat(campaign_id, "clicked"):
        logger.info(f"🖱️ Campaign {campaign_id} link clicked by {recipient}")
    return RedirectResponse(url=url, status_code=302)


@router.get("/unsubscribe", summary="Baja de un destinatario", response_class=HTMLResponse)
async def unsubscribe(
    email: Optional[str] = Query(default=None),
    campaign: Optional[str] = Query(default=None),
    store: CampaignStore = Depends(get_campaign_store),
) -> HTMLResponse:
    """Registra la baja en la lista de exclusión y la cuenta en la campaña de origen."""
    if not email:
        raise ValidationException("Email parameter is required", field="email")

    if not store.add_unsubscribed(email, campaign_id=campaign):
        return HTMLResponse(content=UNSUBSCRIBE_PAGE.format(title="Déjà désabonné", email=html.escape(email)))

    logger.info(f"🚪 {email} unsubscribed" + (f" from campaign {campaign}" if campaign else ""))
    if campaign:
        store.increment_stat(campaign, "unsubscribed")

    return HTMLResponse(content=UNSUBSCRIBE_PAGE.format(title="Désabonnement confirmé", email=html.escape(email)))
