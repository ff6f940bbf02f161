"""
Gestión del ciclo de vida de la aplicación FastAPI.

Este módulo maneja los eventos de startup y shutdown de la aplicación,
incluyendo inicialización de servicios, verificación de configuración y limpieza.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from eidf_crm.core.config import get_settings
from eidf_crm.core.logging_config import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)

# Integraciones opcionales: sin ellas la app arranca con funciones reducidas
OPTIONAL_INTEGRATIONS = {
    "ENCRYPTION_KEY": "API credential storage",
    "STRIPE_SECRET_KEY": "billing checkout and portal",
    "STRIPE_WEBHOOK_SECRET": "Stripe webhooks",
    "GEMINI_API_KEY": "AI generation without organization credentials",
    "REDIS_URL": "distributed sync locks",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestión del ciclo de vida de la aplicación.
    Maneja eventos de startup y shutdown de manera ordenada.

    Args:
        app: Instancia de FastAPI
    """
    # === STARTUP ===
    logger.info(f"🚀 Iniciando {settings.APP_NAME}...")

    try:
        # 1. Configurar logging
        await startup_configure_logging()

        # 2. Verificar configuración
        await startup_verify_configuration()

        # 3. Base de datos
        await startup_initialize_database()

        # 4. Servicios opcionales
        await startup_initialize_services()

        logger.info("🎉 Aplicación iniciada correctamente")

    except Exception as e:
        logger.error(f"❌ Error durante el startup: {e}")
        await shutdown_close_connections()
        sys.exit(1)

    # === YIELD (aplicación corriendo) ===
    yield

    # === SHUTDOWN ===
    logger.info(f"🛑 Cerrando {settings.APP_NAME}...")

    try:
        # 1. Clientes WooCommerce
        await shutdown_cleanup_services()

        # 2. Redis y base de datos
        await shutdown_close_connections()

        logger.info("👋 Aplicación cerrada correctamente")

    except Exception as e:
        logger.error(f"❌ Error durante el shutdown: {e}")


# === FUNCIONES DE STARTUP ===


async def startup_configure_logging():
    """Configura el sistema de logging."""
    setup_logging()
    logger.info("✅ Sistema de logging configurado")


async def startup_verify_configuration():
    """Avisa de integraciones opcionales sin configurar."""
    missing = [f"{var} ({feature})" for var, feature in OPTIONAL_INTEGRATIONS.items() if not getattr(settings, var, None)]

    for item in missing:
        logger.warning(f"⚠️ Variable no configurada: {item}")

    if not settings.FIREBASE_PROJECT_ID and not settings.FIREBASE_CREDENTIALS_PATH:
        logger.warning("⚠️ Firebase sin proyecto ni credenciales: se usarán las credenciales por defecto")

    logger.info("✅ Configuración verificada")


async def startup_initialize_database():
    """Inicializa el motor de base de datos y crea las tablas."""
    from eidf_crm.db.connection import get_db_connection, initialize_database

    await initialize_database()

    health = await get_db_connection().health_check()
    logger.info(f"✅ Base de datos inicializada ({health['backend']}, {health['response_time_ms']}ms)")


async def startup_initialize_services():
    """Inicializa Redis y Firebase Admin."""
    if settings.REDIS_URL:
        try:
            from eidf_crm.core import redis_client

            await redis_client.initialize_redis()
            logger.info("✅ Cliente Redis inicializado")
        except Exception as e:
            logger.warning(f"⚠️ Error inicializando Redis: {e} (no crítico)")

    try:
        from eidf_crm.services.firebase_admin_service import initialize_firebase

        initialize_firebase()
        logger.info("✅ Firebase Admin inicializado")
    except Exception as e:
        logger.warning(f"⚠️ Error inicializando Firebase Admin: {e} (las peticiones autenticadas fallarán)")


# === FUNCIONES DE SHUTDOWN ===


async def shutdown_cleanup_services():
    """Cierra los clientes WooCommerce en caché."""
    try:
        from eidf_crm.services.woocommerce_factory import get_woocommerce_factory

        await get_woocommerce_factory().close_all()
        logger.info("✅ Clientes WooCommerce cerrados")
    except Exception as e:
        logger.error(f"Error cerrando clientes WooCommerce: {e}")


async def shutdown_close_connections():
    """Cierra conexiones de manera limpia."""
    if settings.REDIS_URL:
        try:
            from eidf_crm.core import redis_client

            await redis_client.close_redis()
            logger.info("✅ Cliente Redis cerrado")
        except Exception as e:
            logger.error(f"Error cerrando Redis: {e}")

    try:
        from eidf_crm.db.connection import close_database

        await close_database()
        logger.info("✅ Base de datos cerrada")
    except Exception as e:
        logger.error(f"Error cerrando base de datos: {e}")
