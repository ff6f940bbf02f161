"""
Manejadores de excepciones centralizados para la aplicación FastAPI.

Este módulo define los manejadores de excepciones personalizados y globales,
proporcionando respuestas JSON consistentes y logging apropiado.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from eidf_crm.core.config import get_settings
from eidf_crm.utils.error_handler import (
    AppException,
    RateLimitException,
    SyncException,
    WooCommerceAPIException,
)

settings = get_settings()
logger = logging.getLogger(__name__)


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")


def build_error_content(
    request: Request,
    error_type: str,
    message: Any,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Construye el cuerpo JSON estándar de error.

    Args:
        request: Request de FastAPI
        error_type: Categoría del error
        message: Mensaje legible
        error_code: Código estandardizado
        details: Información adicional

    Returns:
        Dict: Cuerpo de la respuesta
    """
    return {
        "error": True,
        "error_type": error_type,
        "error_code": error_code,
        "message": message,
        "details": details,
        "path": str(request.url.path),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": _request_id(request),
    }


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Manejador para excepciones personalizadas de la aplicación.

    Args:
        request: Request de FastAPI
        exc: Excepción personalizada de la app

    Returns:
        JSONResponse: Respuesta JSON con error formateado
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"App Exception: {exc.message} - Code: {exc.error_code.value} - URL: {request.url.path}")

    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_content(request, "application_error", exc.message, exc.error_code.value, exc.details),
    )


async def sync_exception_handler(request: Request, exc: SyncException) -> JSONResponse:
    """
    Manejador específico para errores de sincronización del caché.
    """
    logger.error(
        f"Sync Exception: {exc.message} - Data type: {exc.data_type} - Site: {exc.site_id} - URL: {request.url.path}"
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_content(
            request, "synchronization_error", exc.message, exc.error_code.value, exc.details
        ),
    )


async def woocommerce_exception_handler(request: Request, exc: WooCommerceAPIException) -> JSONResponse:
    """
    Manejador específico para errores de la API de WooCommerce.
    """
    logger.error(
        f"WooCommerce API Exception: {exc.message} - API Code: {exc.api_response_code} - "
        f"Endpoint: {exc.endpoint} - URL: {request.url.path}"
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_content(request, "woocommerce_api_error", exc.message, exc.error_code.value, exc.details),
    )


async def rate_limit_exception_handler(request: Request, exc: RateLimitException) -> JSONResponse:
    """
    Manejador para errores de rate limiting.
    """
    logger.warning(f"Rate Limit Exception: {exc.message} - Limit: {exc.limit} - URL: {request.url.path}")

    return JSONResponse(
        status_code=429,
        content=build_error_content(request, "rate_limit_error", exc.message, exc.error_code.value, exc.details),
        headers={"Retry-After": str(exc.retry_after), "X-Rate-Limit-Limit": str(exc.limit)},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Manejador para HTTPException de FastAPI/Starlette.
    """
    logger.warning(f"HTTP Exception: {exc.status_code} - {exc.detail} - URL: {request.url.path}")

    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_content(request, "http_error", exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Manejador para errores de validación de pydantic en el request.
    """
    logger.warning(f"Request Validation Error: {exc.errors()} - URL: {request.url.path}")

    return JSONResponse(
        status_code=422,
        content=build_error_content(
            request,
            "validation_error",
            "Request validation failed",
            "VALIDATION_ERROR",
            {"errors": jsonable_errors(exc)},
        ),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Manejador global para excepciones no capturadas.

    Args:
        request: Request de FastAPI
        exc: Excepción no manejada

    Returns:
        JSONResponse: Respuesta JSON de error interno
    """
    logger.error(
        f"Unhandled Exception: {str(exc)} - Type: {type(exc).__name__} - URL: {request.url.path} - "
        f"Traceback: {traceback.format_exc()}"
    )

    # Sin detalles internos fuera de debug
    error_message = "Internal Server Error"
    details = None
    if settings.DEBUG:
        details = {"exception": f"{type(exc).__name__}: {str(exc)}"}

    return JSONResponse(
        status_code=500,
        content=build_error_content(request, "internal_server_error", error_message, "UNKNOWN_ERROR", details),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Reduce los errores de pydantic a campos serializables."""
    return [
        {"loc": list(error.get("loc", [])), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


def configure_exception_handlers(app: FastAPI) -> None:
    """
    Configura todos los manejadores de excepciones de la aplicación.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando manejadores de excepciones...")

    # Manejadores específicos (orden de especificidad)
    app.add_exception_handler(RateLimitException, rate_limit_exception_handler)
    app.add_exception_handler(SyncException, sync_exception_handler)
    app.add_exception_handler(WooCommerceAPIException, woocommerce_exception_handler)
    app.add_exception_handler(AppException, app_exception_handler)

    # Manejadores HTTP estándar
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    # Manejador global (debe ser el último)
    app.add_exception_handler(Exception, global_exception_handler)

    logger.info("✅ Manejadores de excepciones configurados correctamente")
