"""
Endpoints de ajustes de email.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from eidf_crm.api.v1.schemas.campaign_schemas import EmailSettingsUpdate
from eidf_crm.core.auth import get_current_user
from eidf_crm.services.email_settings_store import EmailSettingsStore, get_email_settings_store

router = APIRouter(prefix="/settings", dependencies=[Depends(get_current_user)])


@router.get("/email", summary="Ajustes de email")
async def get_email_settings(store: EmailSettingsStore = Depends(get_email_settings_store)) -> Dict[str, Any]:
    return store.public()


@router.put("/email", summary="Actualizar ajustes de email")
async def update_email_settings(
    payload: EmailSettingsUpdate, store: EmailSettingsStore = Depends(get_email_settings_store)
) -> Dict[str, Any]:
    settings = store.update(payload.model_dump(exclude_none=True))
    return {"success": True, "settings": settings}
