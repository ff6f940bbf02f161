"""
Endpoints de campañas de email.

Las campañas viven en un fichero JSON compartido; basta con estar
autenticado para gestionarlas.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Response, status

from eidf_crm.api.v1.schemas.campaign_schemas import CampaignPayload, CampaignTestRequest
from eidf_crm.core.auth import AuthUser, get_current_user
from eidf_crm.core.logging_config import LogContext
from eidf_crm.services.campaign_store import CampaignStore, get_campaign_store, normalize_email, recipient_emails
from eidf_crm.services.email_service import EmailService, get_email_service
from eidf_crm.utils.error_handler import ValidationException
from eidf_crm.utils.time_utils import isoformat, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/campaigns", dependencies=[Depends(get_current_user)])

MAX_TEST_EMAILS = 5
SEND_RESULTS_PREVIEW = 10


@router.get("/queue/stats", summary="Campañas por estado")
async def get_queue_stats(store: CampaignStore = Depends(get_campaign_store)) -> Dict[str, int]:
    return store.queue_stats()


@router.get("", summary="Listar campañas")
async def list_campaigns(store: CampaignStore = Depends(get_campaign_store)) -> List[Dict[str, Any]]:
    return store.list()


@router.get("/{campaign_id}", summary="Detalle de campaña")
async def get_campaign(campaign_id: str, store: CampaignStore = Depends(get_campaign_store)) -> Dict[str, Any]:
    return store.require(campaign_id)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Crear campaña")
async def create_campaign(
    payload: CampaignPayload,
    user: AuthUser = Depends(get_current_user),
    store: CampaignStore = Depends(get_campaign_store),
) -> Dict[str, Any]:
    campaign = store.create(payload.to_store())
    logger.info(f"📧 Campaign {campaign['id']} created by {user.uid}")
    return campaign


@router.put("/{campaign_id}", summary="Actualizar campaña")
async def update_campaign(
    campaign_id: str, payload: CampaignPayload, store: CampaignStore = Depends(get_campaign_store)
) -> Dict[str, Any]:
    return store.update(campaign_id, payload.to_store())


@router.delete("/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Eliminar campaña")
async def delete_campaign(campaign_id: str, store: CampaignStore = Depends(get_campaign_store)) -> Response:
    store.delete(campaign_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{campaign_id}/test", summary="Enviar emails de prueba")
async def send_test_emails(
    campaign_id: str,
    payload: CampaignTestRequest,
    store: CampaignStore = Depends(get_campaign_store),
    email_service: EmailService = Depends(get_email_service),
) -> Dict[str, Any]:
    """
    Envía la campaña con el asunto prefijado por "[TEST] " a entre 1 y 5 direcciones.
    """
    if not payload.testEmails:
        raise ValidationException("Test emails array is required and must not be empty", field="testEmails")
    if len(payload.testEmails) > MAX_TEST_EMAILS:
        raise ValidationException(
            f"Maximum {MAX_TEST_EMAILS} test emails allowed",
            field="testEmails",
            invalid_value=len(payload.testEmails),
        )

    campaign = store.require(campaign_id)

    results = []
    for email in payload.testEmails:
        result = await email_service.send_email(
            email,
            f"[TEST] {campaign['subject']}",
            campaign["body"],
            from_name=campaign.get("fromName"),
            from_email=campaign.get("fromEmail"),
        )
        results.append({"email": email, **result})

    logger.info(f"🧪 Test emails for campaign {campaign_id}: {sum(r['success'] for r in results)}/{len(results)} sent")
    return {"message": "Test emails processed", "results": results}


@router.post("/{campaign_id}/send", summary="Enviar campaña")
async def send_campaign(
    campaign_id: str,
    store: CampaignStore = Depends(get_campaign_store),
    email_service: EmailService = Depends(get_email_service),
) -> Dict[str, Any]:
    """
    Envía la campaña a sus destinatarios, salvo los dados de baja, y actualiza estado y estadísticas.

    Returns:
        Dict: {"success", "sent", "failed", "skipped", "total", "results"} con los 10 primeros resultados
    """
    campaign = store.require(campaign_id)
    all_emails = recipient_emails(campaign)
    if not all_emails:
        raise ValidationException("No recipients defined for this campaign", field="recipients")

    unsubscribed = store.unsubscribed_emails()
    emails = [email for email in all_emails if normalize_email(email) not in unsubscribed]
    skipped = len(all_emails) - len(emails)
    if skipped:
        logger.info(f"🚫 Campaign {campaign_id}: skipping {skipped} unsubscribed recipients")
    if not emails:
        raise ValidationException("All recipients of this campaign have unsubscribed", field="recipients")

    campaign["status"] = "SENDING"
    campaign["startedAt"] = isoformat(utcnow())
    store.save_campaign(campaign)

    with LogContext("bulk_send", logger=logger, campaign_id=campaign["id"], recipients=len(emails)):
        results = await email_service.send_bulk(
            emails,
            campaign["subject"],
            campaign["body"],
            from_name=campaign.get("fromName"),
            from_email=campaign.get("fromEmail"),
            campaign_id=campaign["id"],
        )

    sent = sum(1 for result in results if result["success"])
    failed = len(results) - sent
    now = isoformat(utcnow())

    # Releer por si el tracking actualizó estadísticas durante el envío
    campaign = store.require(campaign_id)
    campaign.update({"status": "SENT", "sentAt": now, "completedAt": now, "sentCount": sent, "failedCount": failed})
    stats = campaign.get("stats") or {}
    stats.update({"sent": sent, "delivered": sent, "lastUpdated": now})
    campaign["stats"] = stats
    store.save_campaign(campaign)

    logger.info(f"📬 Campaign {campaign_id} sent: {sent} delivered, {failed} failed")
    return {
        "success": True,
        "message": f"Campaign sent successfully to {sent} recipients",
        "campaignId": campaign["id"],
        "sent": sent,
        "failed": failed,
        "skipped": skipped,
        "total": len(results),
        "results": results[:SEND_RESULTS_PREVIEW],
    }
