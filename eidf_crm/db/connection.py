"""
Clase ConnDB para gestión exclusiva de conexiones a la base de datos.

Esta clase maneja el engine asíncrono de SQLAlchemy, la factory de sesiones
y el ciclo de vida de las conexiones. Por defecto usa SQLite vía aiosqlite.
"""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from eidf_crm.core.config import get_settings
from eidf_crm.db.models import Base
from eidf_crm.utils.error_handler import AppException, ErrorCode, ErrorSeverity

settings = get_settings()
logger = logging.getLogger(__name__)


class DatabaseException(AppException):
    """Fallo de conexión o de inicialización de la base de datos."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            status_code=503,
            severity=ErrorSeverity.CRITICAL,
            is_critical=True,
            **kwargs,
        )


class ConnDB:
    """
    Gestión de conexiones a la base de datos.

    Implementa el patrón Singleton para garantizar un único engine por proceso.
    """

    _instance = None
    _initialized = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super(ConnDB, cls).__new__(cls)
        return cls._instance

    def __init__(self, database_url: Optional[str] = None):
        if not self._initialized:
            self.engine: Optional[AsyncEngine] = None
            self.session_factory: Optional[async_sessionmaker] = None
            self.database_url = database_url or settings.DATABASE_URL
            ConnDB._initialized = True
            logger.info("ConnDB instance created")

    async def initialize(self):
        """
        Crea el engine, la factory de sesiones y las tablas.

        Raises:
            DatabaseException: Si falla la inicialización
        """
        if self.engine is not None:
            logger.info("Database connection already initialized")
            return

        try:
            logger.info("Initializing database connection...")
            url = make_url(self.database_url)
            engine_kwargs = {"echo": settings.DATABASE_ECHO, "future": True}

            if url.get_backend_name() == "sqlite":
                # Asegurar que exista el directorio del archivo SQLite
                if url.database and url.database != ":memory:":
                    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            else:
                engine_kwargs.update({"pool_pre_ping": True, "pool_recycle": 3600})

            self.engine = create_async_engine(self.database_url, **engine_kwargs)
            self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            logger.info("✅ Database connection initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database connection: {e}")
            await self.close()
            raise DatabaseException(f"Failed to initialize database connection: {str(e)}") from e

    def is_initialized(self) -> bool:
        return self.engine is not None and self.session_factory is not None

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """
        Abre una sesión que hace commit al salir o rollback ante error.

        Raises:
            DatabaseException: Si la conexión no está inicializada
        """
        if not self.is_initialized():
            raise DatabaseException("Database connection not initialized. Call initialize() first.")

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def test_connection(self) -> bool:
        """
        Prueba la conexión de forma no destructiva.

        Returns:
            bool: True si la conexión funciona correctamente
        """
        try:
            if not self.is_initialized():
                return False
            async with self.get_session() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False

    async def health_check(self) -> dict:
        """
        Health check de la base de datos con tiempo de respuesta.

        Returns:
            dict: Estado de salud de la conexión
        """
        start_time = time.time()
        healthy = await self.test_connection()
        return {
            "status": "healthy" if healthy else "unhealthy",
            "backend": make_url(self.database_url).get_backend_name(),
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }

    async def close(self):
        """Cierra la conexión y limpia todos los recursos."""
        if self.engine:
            await self.engine.dispose()
            logger.info("Database engine disposed")
        self.engine = None
        self.session_factory = None

    def __repr__(self) -> str:
        return f"ConnDB(initialized={self.is_initialized()}, url={make_url(self.database_url).render_as_string()})"


def get_db_connection() -> ConnDB:
    """
    Obtiene la instancia singleton de ConnDB.

    Returns:
        ConnDB: Instancia de conexión a base de datos
    """
    return ConnDB()


async def initialize_database():
    """Inicializa la base de datos y crea las tablas."""
    await get_db_connection().initialize()


async def close_database():
    """Cierra la base de datos."""
    await get_db_connection().close()


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """
    Dependencia FastAPI que entrega una sesión transaccional.

    Yields:
        AsyncSession: Sesión de SQLAlchemy
    """
    async with get_db_connection().get_session() as session:
        yield session
