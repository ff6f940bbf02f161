"""
Configuración centralizada de la aplicación.

Este módulo maneja todas las variables de entorno y configuraciones
de EIDF CRM usando Pydantic Settings para validación automática.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Configuración de la aplicación usando Pydantic Settings.

    Todas las configuraciones se cargan desde variables de entorno
    con valores por defecto apropiados para desarrollo.
    """

    # === CONFIGURACIÓN BÁSICA DE LA APP ===
    APP_NAME: str = "EIDF CRM"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development", env="ENV")
    DEBUG: bool = Field(default=True, env="DEBUG")

    # === CONFIGURACIÓN DEL SERVIDOR ===
    HOST: str = Field(default="0.0.0.0", env="HOST")
    PORT: int = Field(default=3001, env="PORT")
    WORKERS: int = Field(default=1, env="WORKERS")
    LOG_LEVEL: str = Field(default="INFO", env="LOG_LEVEL")

    # === CONFIGURACIÓN DE SEGURIDAD ===
    ALLOWED_HOSTS: Optional[List[str]] = Field(default=None, env="ALLOWED_HOSTS")
    CORS_ORIGINS: Optional[List[str]] = Field(default=None, env="CORS_ORIGINS")
    FRONTEND_URL: str = Field(default="http://localhost:8501", env="FRONTEND_URL")

    # === CONFIGURACIÓN DE BASE DE DATOS ===
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./data/eidf_crm.db", env="DATABASE_URL")
    DATABASE_ECHO: bool = Field(default=False, env="DATABASE_ECHO")

    # === CONFIGURACIÓN DE REDIS ===
    REDIS_URL: Optional[str] = Field(default=None, env="REDIS_URL")
    REDIS_MAX_CONNECTIONS: int = Field(default=10, env="REDIS_MAX_CONNECTIONS")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, env="REDIS_SOCKET_TIMEOUT")
    SYNC_LOCK_TTL_SECONDS: int = Field(default=1800, env="SYNC_LOCK_TTL_SECONDS")

    # === CONFIGURACIÓN DE FIREBASE ===
    FIREBASE_PROJECT_ID: Optional[str] = Field(default=None, env="FIREBASE_PROJECT_ID")
    FIREBASE_CREDENTIALS_PATH: Optional[str] = Field(default=None, env="FIREBASE_CREDENTIALS_PATH")

    # === CONFIGURACIÓN DE WOOCOMMERCE ===
    WOOCOMMERCE_TIMEOUT: int = Field(default=30, env="WOOCOMMERCE_TIMEOUT")
    WOOCOMMERCE_CLIENT_TTL_SECONDS: int = Field(default=300, env="WOOCOMMERCE_CLIENT_TTL_SECONDS")
    WOOCOMMERCE_PER_PAGE: int = Field(default=100, env="WOOCOMMERCE_PER_PAGE")
    WOOCOMMERCE_MAX_PAGES: int = Field(default=500, env="WOOCOMMERCE_MAX_PAGES")

    # === CONFIGURACIÓN DE SINCRONIZACIÓN DE CACHÉ ===
    # Minutos antes de considerar obsoleto cada tipo de dato
    SYNC_STALE_MINUTES_ORDERS: int = Field(default=30, env="SYNC_STALE_MINUTES_ORDERS")
    SYNC_STALE_MINUTES_PRODUCTS: int = Field(default=60, env="SYNC_STALE_MINUTES_PRODUCTS")
    SYNC_STALE_MINUTES_CUSTOMERS: int = Field(default=120, env="SYNC_STALE_MINUTES_CUSTOMERS")
    SYNC_STALE_MINUTES_DEFAULT: int = Field(default=60, env="SYNC_STALE_MINUTES_DEFAULT")

    # === CONFIGURACIÓN DE CIFRADO ===
    ENCRYPTION_KEY: Optional[str] = Field(default=None, env="ENCRYPTION_KEY")

    # === CONFIGURACIÓN DE STRIPE ===
    STRIPE_SECRET_KEY: Optional[str] = Field(default=None, env="STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET: Optional[str] = Field(default=None, env="STRIPE_WEBHOOK_SECRET")
    STRIPE_PRICE_STARTER_MONTHLY: Optional[str] = Field(default=None, env="STRIPE_PRICE_STARTER_MONTHLY")
    STRIPE_PRICE_STARTER_YEARLY: Optional[str] = Field(default=None, env="STRIPE_PRICE_STARTER_YEARLY")
    STRIPE_PRICE_PROFESSIONAL_MONTHLY: Optional[str] = Field(
        default=None, env="STRIPE_PRICE_PROFESSIONAL_MONTHLY"
    )
    STRIPE_PRICE_PROFESSIONAL_YEARLY: Optional[str] = Field(default=None, env="STRIPE_PRICE_PROFESSIONAL_YEARLY")
    STRIPE_PRICE_ENTERPRISE_MONTHLY: Optional[str] = Field(default=None, env="STRIPE_PRICE_ENTERPRISE_MONTHLY")
    STRIPE_PRICE_ENTERPRISE_YEARLY: Optional[str] = Field(default=None, env="STRIPE_PRICE_ENTERPRISE_YEARLY")

    # === CONFIGURACIÓN DE GEMINI ===
    GEMINI_API_KEY: Optional[str] = Field(default=None, env="GEMINI_API_KEY")
    GEMINI_MODEL: str = Field(default="gemini-2.0-flash-exp", env="GEMINI_MODEL")

    # === CONFIGURACIÓN DE EMAIL ===
    SMTP_HOST: str = Field(default="localhost", env="SMTP_HOST")
    SMTP_PORT: int = Field(default=25, env="SMTP_PORT")
    SMTP_USER: Optional[str] = Field(default=None, env="SMTP_USER")
    SMTP_PASSWORD: Optional[str] = Field(default=None, env="SMTP_PASSWORD")
    SMTP_USE_TLS: bool = Field(default=False, env="SMTP_USE_TLS")
    EMAIL_DEFAULT_FROM_NAME: str = Field(default="EIDF CRM", env="EMAIL_DEFAULT_FROM_NAME")
    EMAIL_DEFAULT_FROM_EMAIL: str = Field(default="noreply@eidf-crm.fr", env="EMAIL_DEFAULT_FROM_EMAIL")
    EMAIL_BATCH_SIZE: int = Field(default=10, env="EMAIL_BATCH_SIZE")
    EMAIL_BATCH_DELAY_SECONDS: float = Field(default=1.0, env="EMAIL_BATCH_DELAY_SECONDS")
    TRACKING_BASE_URL: str = Field(default="http://localhost:3001/api/v1", env="TRACKING_BASE_URL")

    # === ALMACENAMIENTO EN ARCHIVOS ===
    DATA_DIR: str = Field(default="data", env="DATA_DIR")

    # === CONFIGURACIÓN DE RATE LIMITING ===
    ENABLE_RATE_LIMITING: bool = Field(default=True, env="ENABLE_RATE_LIMITING")
    RATE_LIMIT_PER_MINUTE: int = Field(default=120, env="RATE_LIMIT_PER_MINUTE")

    # === CONFIGURACIÓN DE LOGGING ===
    LOG_FILE_PATH: Optional[str] = Field(default="logs/app.log", env="LOG_FILE_PATH")
    LOG_MAX_SIZE_MB: int = Field(default=10, env="LOG_MAX_SIZE_MB")
    LOG_BACKUP_COUNT: int = Field(default=5, env="LOG_BACKUP_COUNT")
    SLOW_REQUEST_THRESHOLD: float = Field(default=5.0, env="SLOW_REQUEST_THRESHOLD")

    # === CONFIGURACIÓN DE DOCUMENTACIÓN ===
    ENABLE_DOCS: bool = Field(default=True, env="ENABLE_DOCS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "allow",
    }

    @field_validator("ALLOWED_HOSTS", "CORS_ORIGINS", mode="before")
    @classmethod
    def parse_comma_list(cls, v):
        """Parsea listas separadas por comas."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Valida que el nivel de log sea válido."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL debe ser uno de: {valid_levels}")
        return v.upper()

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Valida que el entorno sea válido."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT debe ser uno de: {valid_envs}")
        return v.lower()

    @field_validator("PORT")
    @classmethod
    def validate_port(cls, v):
        """Valida que el puerto esté en rango válido."""
        if not 1 <= v <= 65535:
            raise ValueError("PORT debe estar entre 1 y 65535")
        return v

    @field_validator("TRACKING_BASE_URL", "FRONTEND_URL")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Verifica si está en entorno de producción."""
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        """Verifica si está en entorno de desarrollo."""
        return self.ENVIRONMENT == "development"

    def get_stale_minutes(self, data_type: str) -> int:
        """
        Obtiene el umbral de obsolescencia para un tipo de dato.

        Args:
            data_type: Tipo de dato del caché (orders, products, ...)

        Returns:
            int: Minutos tras los cuales el caché se considera obsoleto
        """
        thresholds = {
            "orders": self.SYNC_STALE_MINUTES_ORDERS,
            "products": self.SYNC_STALE_MINUTES_PRODUCTS,
            "customers": self.SYNC_STALE_MINUTES_CUSTOMERS,
        }
        return thresholds.get(data_type, self.SYNC_STALE_MINUTES_DEFAULT)

    def get_stripe_price_id(self, plan: str, billing_period: str) -> Optional[str]:
        """
        Obtiene el price id de Stripe para un plan y periodo.

        Args:
            plan: Plan (STARTER, PROFESSIONAL, ENTERPRISE)
            billing_period: monthly o yearly

        Returns:
            Optional[str]: Price id configurado o None
        """
        return getattr(self, f"STRIPE_PRICE_{plan.upper()}_{billing_period.upper()}", None)


@lru_cache()
def get_settings() -> Settings:
    """
    Obtiene instancia singleton de configuración.

    Usa LRU cache para evitar recrear la configuración
    múltiples veces durante la ejecución.

    Returns:
        Settings: Instancia de configuración
    """
    return Settings()


# Instancia global para uso directo
settings = get_settings()


def reload_settings() -> Settings:
    """
    Recarga la configuración (útil para testing).

    Returns:
        Settings: Nueva instancia de configuración
    """
    get_settings.cache_clear()
    return get_settings()


def get_environment_info() -> dict:
    """
    Obtiene información del entorno actual.

    Returns:
        dict: Información del entorno
    """
    settings = get_settings()

    return {
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "is_production": settings.is_production,
        "is_development": settings.is_development,
        "features": {
            "redis": bool(settings.REDIS_URL),
            "firebase": bool(settings.FIREBASE_PROJECT_ID or settings.FIREBASE_CREDENTIALS_PATH),
            "stripe": bool(settings.STRIPE_SECRET_KEY),
            "gemini": bool(settings.GEMINI_API_KEY),
            "encryption": bool(settings.ENCRYPTION_KEY),
            "rate_limiting": settings.ENABLE_RATE_LIMITING,
            "docs": settings.ENABLE_DOCS,
        },
    }
