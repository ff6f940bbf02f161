"""
Cliente Redis para locks de sincronización.

Redis es opcional: sin REDIS_URL la aplicación funciona con un único
proceso y el lock en memoria del servicio de sincronización.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from eidf_crm.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """
    Devuelve el cliente Redis compartido, o None si no está configurado.

    Returns:
        Optional[redis.Redis]: Cliente Redis
    """
    global _redis_client

    if not settings.REDIS_URL:
        return None

    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )
        logger.debug("Redis client instance created")

    return _redis_client


async def test_redis_connection() -> bool:
    """
    Verifica la conectividad con Redis.

    Returns:
        bool: True si responde al PING
    """
    client = get_redis_client()
    if client is None:
        return False
    try:
        return bool(await client.ping())
    except redis.RedisError as e:
        logger.error(f"Redis connection test failed: {e}")
        return False


async def acquire_lock(key: str, ttl_seconds: int) -> bool:
    """
    Toma un lock con SET NX y expiración.

    Args:
        key: Clave del lock
        ttl_seconds: Expiración en segundos

    Returns:
        bool: True si se obtuvo el lock o si Redis no está configurado
    """
    client = get_redis_client()
    if client is None:
        return True
    acquired = await client.set(key, "1", nx=True, ex=ttl_seconds)
    return bool(acquired)


async def release_lock(key: str) -> None:
    client = get_redis_client()
    if client is not None:
        await client.delete(key)


async def initialize_redis():
    """Verifica la conexión con Redis al arrancar."""
    if not settings.REDIS_URL:
        logger.info("📁 Redis no configurado - locks de sincronización en memoria")
        return
    if await test_redis_connection():
        logger.info("📡 Redis conectado")
    else:
        logger.warning("⚠️ Redis configurado pero no disponible")


async def close_redis():
    """Cierra el cliente Redis."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")
