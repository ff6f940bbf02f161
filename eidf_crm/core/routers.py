"""
Configuración centralizada de routers para la aplicación FastAPI.

Este módulo se encarga de registrar todos los routers de la API,
configurar endpoints base y organizar las rutas de manera estructurada.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse

from eidf_crm.api.v1.endpoints.ai import router as ai_router
from eidf_crm.api.v1.endpoints.analytics import router as analytics_router
from eidf_crm.api.v1.endpoints.billing import router as billing_router
from eidf_crm.api.v1.endpoints.cache import router as cache_router
from eidf_crm.api.v1.endpoints.campaigns import router as campaigns_router
from eidf_crm.api.v1.endpoints.credentials import router as credentials_router
from eidf_crm.api.v1.endpoints.organizations import router as organizations_router
from eidf_crm.api.v1.endpoints.settings import router as settings_router
from eidf_crm.api.v1.endpoints.tracking import router as tracking_router
from eidf_crm.api.v1.endpoints.woocommerce import router as woocommerce_router
from eidf_crm.core.config import get_environment_info, get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

API_V1_PREFIX = "/api/v1"


async def get_health_checks() -> Dict[str, Any]:
    """
    Estado de las dependencias: base de datos, Redis y Firebase.

    Returns:
        Dict: checks por servicio y "overall"
    """
    from eidf_crm.core.redis_client import test_redis_connection
    from eidf_crm.db.connection import get_db_connection
    from eidf_crm.services.firebase_admin_service import is_firebase_initialized

    checks: Dict[str, Any] = {"database": await get_db_connection().health_check()}

    if settings.REDIS_URL:
        checks["redis"] = {"status": "healthy" if await test_redis_connection() else "unhealthy"}
    else:
        checks["redis"] = {"status": "disabled"}

    checks["firebase"] = {"status": "healthy" if is_firebase_initialized() else "not_initialized"}

    overall = checks["database"]["status"] == "healthy" and checks["redis"]["status"] != "unhealthy"
    return {"overall": overall, "checks": checks}


def create_root_endpoints(app: FastAPI) -> None:
    """
    Crea endpoints raíz de la aplicación.

    Args:
        app: Instancia de FastAPI
    """

    @app.get("/", tags=["Root"], summary="API Info")
    async def root():
        return {
            "message": f"{settings.APP_NAME} API",
            "description": "Tableau de bord WooCommerce/WordPress",
            "version": settings.APP_VERSION,
            "status": "running",
            "environment": get_environment_info(),
            "documentation": "/docs" if (settings.DEBUG or settings.ENABLE_DOCS) else "disabled",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": {
                "health": "/health",
                "api_v1": API_V1_PREFIX,
                "cache": f"{API_V1_PREFIX}/cache",
                "campaigns": f"{API_V1_PREFIX}/campaigns",
                "billing": f"{API_V1_PREFIX}/billing",
            },
        }


def create_health_endpoints(app: FastAPI) -> None:
    """
    Crea endpoints de health check.

    Args:
        app: Instancia de FastAPI
    """

    @app.get("/health", tags=["Health"], summary="Health Check")
    async def health_check():
        """
        Estado del servicio y de sus dependencias. 503 si alguna crítica falla.
        """
        try:
            health = await get_health_checks()
        except Exception as e:
            logger.error(f"Error en health check: {e}")
            return JSONResponse(
                status_code=503,
                content={
                    "status": "error",
                    "service": settings.APP_NAME,
                    "version": settings.APP_VERSION,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "error": str(e),
                },
            )

        return JSONResponse(
            status_code=200 if health["overall"] else 503,
            content={
                "status": "ok" if health["overall"] else "degraded",
                "service": settings.APP_NAME,
                "version": settings.APP_VERSION,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "checks": health["checks"],
            },
        )


def create_api_router() -> APIRouter:
    """
    Agrupa los routers de la API v1.

    Returns:
        APIRouter: Router con todos los endpoints bajo /api/v1
    """
    api_router = APIRouter(prefix=API_V1_PREFIX)

    api_router.include_router(organizations_router, tags=["Organizations"])
    api_router.include_router(billing_router, tags=["Billing"])
    api_router.include_router(credentials_router, tags=["Credentials"])
    api_router.include_router(woocommerce_router, tags=["WooCommerce"])
    api_router.include_router(cache_router, tags=["Cache"])
    api_router.include_router(analytics_router, tags=["Analytics"])
    api_router.include_router(campaigns_router, tags=["Campaigns"])
    api_router.include_router(settings_router, tags=["Settings"])
    api_router.include_router(tracking_router, tags=["Tracking"])
    api_router.include_router(ai_router, tags=["AI"])

    return api_router


def configure_all_routers(app: FastAPI) -> None:
    """
    Registra endpoints raíz, health checks y la API v1.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando routers...")

    create_root_endpoints(app)
    create_health_endpoints(app)
    app.include_router(create_api_router())

    logger.info("✅ Routers configurados correctamente")
