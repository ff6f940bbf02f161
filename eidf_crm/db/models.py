"""
Modelos SQLAlchemy de EIDF CRM.

Incluye dos grupos de tablas:

- Caché de entidades WooCommerce/WordPress, indexadas por (site_id, external_id),
  más los metadatos y el historial de sincronización.
- Registros SaaS: organizaciones, miembros, suscripciones, uso y credenciales de API.
"""

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

from eidf_crm.utils.time_utils import utcnow

Base = declarative_base()


def _json_type():
    """JSON compatible con Postgres y SQLite."""
    return JSON().with_variant(JSONB, "postgresql")


def _uuid() -> str:
    return str(uuid.uuid4())


# === CACHÉ DE ENTIDADES ===


class CachedEntityMixin:
    """Columnas comunes a todas las tablas de caché."""

    id = Column(Integer, primary_key=True, autoincrement=True)
    site_id = Column(String(64), nullable=False, index=True)
    external_id = Column(String(64), nullable=False)
    data = Column(_json_type(), nullable=False)
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return self.data


def _cache_table_args(table_name: str):
    return (UniqueConstraint("site_id", "external_id", name=f"uq_{table_name}_site_external"),)


class CachedOrder(CachedEntityMixin, Base):
    __tablename__ = "cached_orders"
    __table_args__ = _cache_table_args(__tablename__)


class CachedProduct(CachedEntityMixin, Base):
    __tablename__ = "cached_products"
    __table_args__ = _cache_table_args(__tablename__)


class CachedCustomer(CachedEntityMixin, Base):
    __tablename__ = "cached_customers"
    __table_args__ = _cache_table_args(__tablename__)


class CachedPost(CachedEntityMixin, Base):
    __tablename__ = "cached_posts"
    __table_args__ = _cache_table_args(__tablename__)


class CachedPage(CachedEntityMixin, Base):
    __tablename__ = "cached_pages"
    __table_args__ = _cache_table_args(__tablename__)


class CachedMedia(CachedEntityMixin, Base):
    __tablename__ = "cached_media"
    __table_args__ = _cache_table_args(__tablename__)


class CachedComment(CachedEntityMixin, Base):
    __tablename__ = "cached_comments"
    __table_args__ = _cache_table_args(__tablename__)


class CachedUser(CachedEntityMixin, Base):
    __tablename__ = "cached_users"
    __table_args__ = _cache_table_args(__tablename__)


# Tipo de dato → modelo de caché
CACHE_MODELS = {
    "orders": CachedOrder,
    "products": CachedProduct,
    "customers": CachedCustomer,
    "posts": CachedPost,
    "pages": CachedPage,
    "media": CachedMedia,
    "comments": CachedComment,
    "users": CachedUser,
}


class SyncMetadata(Base):
    """Estado de sincronización por sitio y tipo de dato."""

    __tablename__ = "sync_metadata"
    __table_args__ = (UniqueConstraint("site_id", "data_type", name="uq_sync_metadata_site_type"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    site_id = Column(String(64), nullable=False, index=True)
    data_type = Column(String(32), nullable=False)
    last_sync = Column(DateTime(timezone=True), nullable=True)
    total_count = Column(Integer, nullable=False, default=0)
    synced_count = Column(Integer, nullable=False, default=0)
    # idle | syncing | completed | error
    status = Column(String(16), nullable=False, default="idle")
    error = Column(Text, nullable=True)
    next_sync_scheduled = Column(DateTime(timezone=True), nullable=True)


class SyncLog(Base):
    """Historial de ejecuciones de sincronización."""

    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    site_id = Column(String(64), nullable=False, index=True)
    data_type = Column(String(32), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    end_time = Column(DateTime(timezone=True), nullable=True)
    items_synced = Column(Integer, nullable=False, default=0)
    # started | completed | failed
    status = Column(String(16), nullable=False, default="started")
    error = Column(Text, nullable=True)


# === REGISTROS SAAS ===


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    website = Column(String(512), nullable=True)
    logo = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    users = relationship("OrganizationUser", back_populates="organization", cascade="all, delete-orphan")
    subscription = relationship(
        "Subscription", back_populates="organization", uselist=False, cascade="all, delete-orphan"
    )


class OrganizationUser(Base):
    __tablename__ = "organization_users"
    __table_args__ = (UniqueConstraint("organization_id", "user_id", name="uq_organization_users_org_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    # uid de Firebase
    user_id = Column(String(128), nullable=False, index=True)
    # OWNER | ADMIN | MEMBER
    role = Column(String(16), nullable=False, default="MEMBER")
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    organization = relationship("Organization", back_populates="users")


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    # FREE | STARTER | PROFESSIONAL | ENTERPRISE
    plan = Column(String(32), nullable=False, default="FREE")
    # ACTIVE | INACTIVE | PAST_DUE | CANCELLED
    status = Column(String(16), nullable=False, default="ACTIVE")
    stripe_customer_id = Column(String(128), nullable=True, index=True)
    stripe_subscription_id = Column(String(128), nullable=True, index=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    max_users = Column(Integer, nullable=False, default=1)
    max_products = Column(Integer, nullable=False, default=100)
    max_orders = Column(Integer, nullable=False, default=1000)
    ai_generations_per_month = Column(Integer, nullable=False, default=50)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    organization = relationship("Organization", back_populates="subscription")


class UsageRecord(Base):
    __tablename__ = "usage_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    # products | orders | ai_generations
    metric = Column(String(32), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)


class ApiCredential(Base):
    __tablename__ = "api_credentials"

    id = Column(String(36), primary_key=True, default=_uuid)
    organization_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    # woocommerce | gemini
    service = Column(String(32), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    encrypted_data = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
