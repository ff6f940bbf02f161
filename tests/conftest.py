"""
Fixtures compartidas: base de datos SQLite en memoria, stores JSON
temporales y una app FastAPI mínima con dependencias sustituidas.
"""

import os
from unittest.mock import AsyncMock, MagicMock

# Configuración de test antes de importar la aplicación
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key-with-32-characters!!")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENABLE_RATE_LIMITING", "false")

import pytest
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from eidf_crm.core.auth import AuthUser, get_current_user, require_organization
from eidf_crm.core.exception_handlers import configure_exception_handlers
from eidf_crm.db.connection import get_db_session
from eidf_crm.db.models import Base
from eidf_crm.services.campaign_store import CampaignStore, get_campaign_store
from eidf_crm.services.email_settings_store import EmailSettingsStore

SITE_ID = "org-test"


@pytest.fixture
async def db_session():
    """
    Sesión sobre una base SQLite en memoria con todas las tablas creadas.

    Yields:
        AsyncSession: Sesión con rollback al terminar
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def site_id() -> str:
    return SITE_ID


@pytest.fixture
def auth_user() -> AuthUser:
    return AuthUser(uid="user-1", email="owner@example.fr", organization_id=SITE_ID, role="OWNER")


@pytest.fixture
def campaign_store(tmp_path) -> CampaignStore:
    return CampaignStore(tmp_path / "campaigns.json")


@pytest.fixture
def email_settings_store(tmp_path) -> EmailSettingsStore:
    return EmailSettingsStore(tmp_path / "email-settings.json")


@pytest.fixture
def mock_email_service():
    """EmailService simulado: todos los envíos tienen éxito."""
    service = MagicMock()
    service.send_email = AsyncMock(return_value={"success": True, "message_id": "<test@example.fr>"})
    service.send_bulk = AsyncMock(
        side_effect=lambda recipients, *args, **kwargs: [
            {"email": email, "success": True, "message_id": f"<{i}@example.fr>"}
            for i, email in enumerate(recipients)
        ]
    )
    return service


@pytest.fixture
def make_app(db_session, auth_user, campaign_store):
    """
    Construye una app FastAPI con los routers dados y las dependencias de
    autenticación, base de datos y campañas sustituidas.
    """

    def _make_app(*routers, overrides=None) -> FastAPI:
        app = FastAPI()
        configure_exception_handlers(app)
        for router in routers:
            app.include_router(router, prefix="/api/v1")

        async def _session():
            yield db_session

        app.dependency_overrides[get_db_session] = _session
        app.dependency_overrides[get_current_user] = lambda: auth_user
        app.dependency_overrides[require_organization] = lambda: auth_user
        app.dependency_overrides[get_campaign_store] = lambda: campaign_store
        app.dependency_overrides.update(overrides or {})
        return app

    return _make_app
