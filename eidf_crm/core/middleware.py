"""
Configuración de Middleware para la aplicación FastAPI.

Este módulo centraliza toda la configuración de middleware incluyendo:
- CORS
- TrustedHost
- Request logging con X-Request-ID
- Rate limiting en memoria
- Security headers
"""

import logging
import time
import uuid
from collections import defaultdict
from typing import Dict, List, Tuple

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from eidf_crm.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Rutas públicas que no cuentan para el rate limit (pixel de apertura, health checks)
RATE_LIMIT_EXEMPT_PREFIXES = ("/health", "/api/v1/track", "/api/v1/unsubscribe", "/api/v1/billing/webhook")


class InMemoryRateLimiter:
    """
    Rate limiter de ventana deslizante de un minuto por cliente.
    """

    def __init__(self, limit_per_minute: int, window_seconds: int = 60):
        self.limit = limit_per_minute
        self.window = window_seconds
        self._requests: Dict[str, List[float]] = defaultdict(list)

    def hit(self, client_id: str, now: float = None) -> Tuple[bool, int]:
        """
        Registra una petición del cliente.

        Args:
            client_id: Identificador del cliente (IP)
            now: Timestamp actual (inyectable para tests)

        Returns:
            Tuple[bool, int]: (permitida, peticiones restantes)
        """
        now = now if now is not None else time.time()
        window_start = now - self.window

        recent = [t for t in self._requests[client_id] if t > window_start]
        if len(recent) >= self.limit:
            self._requests[client_id] = recent
            return False, 0

        recent.append(now)
        self._requests[client_id] = recent
        return True, self.limit - len(recent)

    def cleanup(self, now: float = None) -> None:
        """Elimina clientes sin peticiones en la ventana actual."""
        now = now if now is not None else time.time()
        window_start = now - self.window
        for client_id in list(self._requests):
            if not any(t > window_start for t in self._requests[client_id]):
                del self._requests[client_id]


def configure_cors_middleware(app: FastAPI) -> None:
    """
    Configura middleware CORS para el dashboard y otros orígenes permitidos.

    Args:
        app: Instancia de FastAPI
    """
    allowed_origins = settings.CORS_ORIGINS or ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allowed_origins != ["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=[
            "Accept",
            "Accept-Language",
            "Content-Language",
            "Content-Type",
            "Authorization",
            "X-Organization-ID",
            "X-Request-ID",
            "Stripe-Signature",
        ],
        expose_headers=["X-Process-Time", "X-Request-ID", "X-Rate-Limit-Remaining"],
    )

    logger.info(f"✅ CORS configurado - Origins permitidos: {allowed_origins}")


def configure_trusted_host_middleware(app: FastAPI) -> None:
    """
    Configura TrustedHost. Solo se aplica fuera de debug.
    """
    if not settings.DEBUG and settings.ALLOWED_HOSTS:
        allowed_hosts = settings.ALLOWED_HOSTS + ["localhost", "127.0.0.1"]
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)
        logger.info(f"✅ TrustedHost configurado - Hosts permitidos: {allowed_hosts}")


def configure_request_logging_middleware(app: FastAPI) -> None:
    """
    Configura middleware para logging de todas las requests/responses.

    Args:
        app: Instancia de FastAPI
    """

    @app.middleware("http")
    async def log_requests_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        request.state.request_id = request_id

        start_time = time.time()
        logger.info(f"📨 [{request_id}] {request.method} {request.url.path} - Client: {get_client_ip(request)}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"❌ [{request_id}] {request.method} {request.url.path} - Error: {str(e)} - Time: {process_time:.3f}s"
            )
            raise

        process_time = time.time() - start_time
        logger.info(
            f"{get_status_emoji(response.status_code)} [{request_id}] {request.method} {request.url.path} - "
            f"Status: {response.status_code} - Time: {process_time:.3f}s"
        )

        response.headers["X-Process-Time"] = f"{process_time:.3f}"
        response.headers["X-Request-ID"] = request_id

        if process_time > settings.SLOW_REQUEST_THRESHOLD:
            logger.warning(f"🐌 [{request_id}] Slow request detected: {process_time:.3f}s")

        return response


def configure_security_headers_middleware(app: FastAPI) -> None:
    """
    Configura middleware para agregar headers de seguridad.
    """

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        response = await call_next(request)

        security_headers = {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }
        if not settings.DEBUG and request.url.scheme == "https":
            security_headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        for header, value in security_headers.items():
            response.headers.setdefault(header, value)

        return response


def configure_rate_limiting_middleware(app: FastAPI) -> None:
    """
    Configura middleware de rate limiting por IP.

    Args:
        app: Instancia de FastAPI
    """
    if not settings.ENABLE_RATE_LIMITING:
        return

    limiter = InMemoryRateLimiter(settings.RATE_LIMIT_PER_MINUTE)
    app.state.rate_limiter = limiter

    @app.middleware("http")
    async def rate_limiting_middleware(request: Request, call_next):
        if request.url.path.startswith(RATE_LIMIT_EXEMPT_PREFIXES):
            return await call_next(request)

        client_ip = get_client_ip(request)
        limiter.cleanup()
        allowed, remaining = limiter.hit(client_ip)

        if not allowed:
            logger.warning(f"🚫 Rate limit exceeded for {client_ip}")
            return JSONResponse(
                status_code=429,
                content={
                    "error": True,
                    "error_type": "rate_limit_error",
                    "error_code": "RATE_LIMIT_EXCEEDED",
                    "message": f"Maximum {limiter.limit} requests per minute allowed",
                    "path": request.url.path,
                },
                headers={"Retry-After": str(limiter.window), "X-Rate-Limit-Remaining": "0"},
            )

        response = await call_next(request)
        response.headers["X-Rate-Limit-Limit"] = str(limiter.limit)
        response.headers["X-Rate-Limit-Remaining"] = str(remaining)
        return response


def configure_all_middleware(app: FastAPI) -> None:
    """
    Configura todos los middlewares de la aplicación.
    Se ejecutan en orden inverso al que se agregan.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando middlewares...")

    configure_rate_limiting_middleware(app)
    configure_security_headers_middleware(app)
    configure_request_logging_middleware(app)
    configure_trusted_host_middleware(app)
    # CORS el último en agregarse, primero en ejecutarse para OPTIONS
    configure_cors_middleware(app)

    logger.info("✅ Todos los middlewares configurados correctamente")


def generate_request_id() -> str:
    """Genera un ID corto para cada request."""
    return uuid.uuid4().hex[:8]


def get_client_ip(request: Request) -> str:
    """
    Obtiene la IP real del cliente considerando proxies.

    Args:
        request: Request de FastAPI

    Returns:
        str: IP del cliente
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


def get_status_emoji(status_code: int) -> str:
    """Obtiene emoji apropiado según el código de estado HTTP."""
    if 200 <= status_code < 300:
        return "✅"
    elif 300 <= status_code < 400:
        return "↩️"
    elif 400 <= status_code < 500:
        return "⚠️"
    return "❌"
