"""
Sistema de manejo de errores personalizado.

Este módulo define todas las excepciones personalizadas de la aplicación
y proporciona utilidades para manejo consistente de errores.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """
    Códigos de error estandardizados para la aplicación.
    """

    # Errores generales
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"

    # Errores de autenticación y permisos
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"

    # Errores de servicios externos
    WOOCOMMERCE_API_ERROR = "WOOCOMMERCE_API_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    ENCRYPTION_ERROR = "ENCRYPTION_ERROR"
    INVALID_WEBHOOK_SIGNATURE = "INVALID_WEBHOOK_SIGNATURE"

    # Errores de sincronización
    SYNC_FAILED = "SYNC_FAILED"
    SYNC_IN_PROGRESS = "SYNC_IN_PROGRESS"

    # Errores de API
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


class ErrorSeverity(Enum):
    """
    Niveles de severidad para errores.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AppException(Exception):
    """
    Excepción base para todas las excepciones personalizadas de la aplicación.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        is_retryable: bool = False,
        is_critical: bool = False,
    ):
        """
        Inicializa la excepción.

        Args:
            message: Mensaje de error
            error_code: Código de error estandardizado
            details: Información adicional del error
            status_code: Código HTTP asociado
            severity: Severidad del error
            is_retryable: Si la operación puede reintentarse
            is_critical: Si requiere alerta inmediata
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.severity = severity
        self.is_retryable = is_retryable
        self.is_critical = is_critical
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convierte la excepción a diccionario.

        Returns:
            Dict: Representación de la excepción
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "details": self.details,
            "status_code": self.status_code,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class ValidationException(AppException):
    """
    Excepción para errores de validación de datos.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        invalid_value: Any = None,
        expected_format: Optional[str] = None,
        **kwargs,
    ):
        """
        Inicializa la excepción de validación.

        Args:
            message: Mensaje de error
            field: Campo que falló la validación
            invalid_value: Valor que causó el error
            expected_format: Formato esperado
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.field = field
        self.invalid_value = invalid_value
        self.expected_format = expected_format

        self.details.update(
            {
                "field": field,
                "invalid_value": str(invalid_value) if invalid_value is not None else None,
                "expected_format": expected_format,
            }
        )


class AuthenticationException(AppException):
    """Token ausente o inválido."""

    def __init__(self, message: str = "Unauthorized", **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.UNAUTHORIZED,
            status_code=401,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )


class AuthorizationException(AppException):
    """Usuario autenticado sin permisos suficientes."""

    def __init__(self, message: str = "Insufficient permissions", **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.FORBIDDEN,
            status_code=403,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )


class NotFoundException(AppException):
    """Recurso inexistente."""

    def __init__(self, message: str, resource: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.NOT_FOUND,
            status_code=404,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.resource = resource
        if resource:
            self.details["resource"] = resource


class ConflictException(AppException):
    """Operación incompatible con el estado actual."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.CONFLICT, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=409,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )


class LimitExceededException(AppException):
    """
    Excepción para límites de plan alcanzados (usuarios, generaciones IA...).
    """

    def __init__(
        self,
        message: str,
        metric: Optional[str] = None,
        current: Optional[int] = None,
        limit: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(
            message=message,
            error_code=ErrorCode.LIMIT_EXCEEDED,
            status_code=403,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.metric = metric
        self.current = current
        self.limit = limit

        self.details.update({"metric": metric, "current": current, "limit": limit})


class WooCommerceAPIException(AppException):
    """
    Excepción para errores de la API REST de WooCommerce / WordPress.
    """

    def __init__(
        self,
        message: str,
        api_response_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        response_body: Any = None,
        **kwargs,
    ):
        """
        Inicializa la excepción de WooCommerce API.

        Args:
            message: Mensaje de error
            api_response_code: Código HTTP devuelto por WooCommerce
            endpoint: Endpoint que falló
            response_body: Cuerpo de la respuesta de error
            **kwargs: Argumentos adicionales para AppException
        """
        severity = ErrorSeverity.MEDIUM
        # Los 4xx de WooCommerce se propagan tal cual, el resto es un fallo de gateway
        if api_response_code and 400 <= api_response_code < 500:
            status_code = api_response_code
        else:
            status_code = 502
            severity = ErrorSeverity.HIGH

        super().__init__(
            message=message,
            error_code=ErrorCode.WOOCOMMERCE_API_ERROR,
            status_code=status_code,
            severity=severity,
            is_retryable=status_code >= 500,
            **kwargs,
        )

        self.api_response_code = api_response_code
        self.endpoint = endpoint
        self.response_body = response_body

        self.details.update(
            {
                "api_response_code": api_response_code,
                "endpoint": endpoint,
                "response": response_body,
            }
        )


class ExternalServiceException(AppException):
    """
    Excepción para fallos de servicios externos (Stripe, Gemini, SMTP, Firebase).
    """

    def __init__(self, message: str, service: str, **kwargs):
        kwargs.setdefault("status_code", 502)
        super().__init__(
            message=message,
            error_code=ErrorCode.EXTERNAL_SERVICE_ERROR,
            severity=ErrorSeverity.HIGH,
            is_retryable=True,
            **kwargs,
        )
        self.service = service
        self.details["service"] = service


class EncryptionException(AppException):
    """Error cifrando o descifrando credenciales."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.ENCRYPTION_ERROR,
            status_code=500,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )


class SyncException(AppException):
    """
    Excepción para errores de sincronización del caché.
    """

    def __init__(
        self,
        message: str,
        data_type: str,
        site_id: Optional[str] = None,
        sync_stats: Optional[Dict[str, Any]] = None,
        **kwargs,
    ):
        """
        Inicializa la excepción de sincronización.

        Args:
            message: Mensaje de error
            data_type: Tipo de dato que se sincronizaba
            site_id: Sitio del caché
            sync_stats: Estadísticas parciales de la sincronización
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.SYNC_FAILED,
            status_code=500,
            severity=ErrorSeverity.HIGH,
            is_retryable=True,
            **kwargs,
        )

        self.data_type = data_type
        self.site_id = site_id
        self.sync_stats = sync_stats or {}

        self.details.update({"data_type": data_type, "site_id": site_id, "sync_stats": self.sync_stats})


class RateLimitException(AppException):
    """
    Excepción para errores de rate limiting.
    """

    def __init__(self, message: str, limit: int, retry_after: int, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
            status_code=429,
            severity=ErrorSeverity.LOW,
            is_retryable=True,
            **kwargs,
        )

        self.limit = limit
        self.retry_after = retry_after

        self.details.update({"limit": limit, "retry_after": retry_after})


# === FUNCIONES DE UTILIDAD ===


def convert_to_app_exception(exception: Exception, context: Optional[Dict[str, Any]] = None) -> AppException:
    """
    Convierte una excepción estándar a AppException.

    Args:
        exception: Excepción a convertir
        context: Contexto adicional

    Returns:
        AppException: Excepción convertida
    """
    context = context or {}
    exception_type = type(exception).__name__
    message = str(exception)

    if isinstance(exception, (ValueError, KeyError)):
        return ValidationException(
            message=message,
            field=context.get("field", "unknown"),
            invalid_value=context.get("value"),
            details=context,
        )

    return AppException(
        message=f"{exception_type}: {message}",
        details={"original_exception": exception_type, **context},
    )


def log_error(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None,
    level: int = logging.ERROR,
) -> None:
    """
    Loggea un error de manera consistente.

    Args:
        exception: Excepción a loggear
        context: Contexto adicional
        level: Nivel de logging
    """
    context = context or {}

    log_data = {
        "exception_type": type(exception).__name__,
        "exception_message": str(exception),
        **context,
    }

    if isinstance(exception, AppException):
        message = f"{exception.error_code.value}: {exception.message}"
        log_data.update({"error_code": exception.error_code.value, "severity": exception.severity.value})
    else:
        message = f"Unhandled exception: {type(exception).__name__}: {str(exception)}"

    logger.log(level, message, extra=log_data)


class ErrorAggregator:
    """
    Agregador de errores para procesos batch (envíos masivos, sincronizaciones).
    """

    def __init__(self):
        self.errors: List[AppException] = []
        self.total_processed = 0
        self.start_time = datetime.now(timezone.utc)

    def add_error(self, exception: Union[AppException, Exception], context: Optional[Dict] = None):
        """
        Agrega un error al agregador.

        Args:
            exception: Excepción a agregar
            context: Contexto adicional
        """
        if not isinstance(exception, AppException):
            exception = convert_to_app_exception(exception, context)
        elif context:
            exception.details.update(context)

        self.errors.append(exception)

        if exception.is_critical:
            log_error(exception, context, logging.CRITICAL)

    def increment_processed(self):
        self.total_processed += 1

    def get_summary(self) -> Dict[str, Any]:
        """
        Obtiene resumen de errores.

        Returns:
            Dict: Resumen de errores
        """
        end_time = datetime.now(timezone.utc)
        duration = (end_time - self.start_time).total_seconds()

        return {
            "total_processed": self.total_processed,
            "error_count": len(self.errors),
            "success_count": self.total_processed - len(self.errors),
            "duration_seconds": duration,
            "start_time": self.start_time.isoformat(),
            "end_time": end_time.isoformat(),
            "errors": [error.to_dict() for error in self.errors],
        }
