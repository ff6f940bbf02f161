"""
Endpoints de analítica calculada sobre el caché de la organización.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.core.auth import AuthUser, require_organization
from eidf_crm.db.connection import get_db_session
from eidf_crm.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/analytics")


async def get_analytics_service(
    user: AuthUser = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
) -> AnalyticsService:
    return AnalyticsService(session, user.organization_id)


@router.get("/summary", summary="KPIs de ventas")
async def get_summary(service: AnalyticsService = Depends(get_analytics_service)) -> Dict[str, Any]:
    return await service.summary()


@router.get("/revenue", summary="Ingresos por día")
async def get_revenue_by_day(
    days: int = Query(default=30, ge=1, le=365),
    service: AnalyticsService = Depends(get_analytics_service),
) -> List[Dict[str, Any]]:
    return await service.revenue_by_day(days)


@router.get("/top-products", summary="Productos más vendidos")
async def get_top_products(
    limit: int = Query(default=5, ge=1, le=50),
    service: AnalyticsService = Depends(get_analytics_service),
) -> List[Dict[str, Any]]:
    return await service.top_products(limit)


@router.get("/recent-activity", summary="Actividad reciente")
async def get_recent_activity(
    limit: int = Query(default=10, ge=1, le=100),
    service: AnalyticsService = Depends(get_analytics_service),
) -> List[Dict[str, Any]]:
    return await service.recent_activity(limit)
