"""
Modelos Pydantic de caché, datos WooCommerce y contenido IA.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CacheSyncRequest(BaseModel):
    data_types: Optional[List[str]] = Field(None, description="Tipos a sincronizar (por defecto todos)")
    force_full_sync: bool = Field(default=False, description="Ignorar la frescura y reemplazar el caché")


class OrderStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1, description="Nuevo estado del pedido")


class OrderNoteCreate(BaseModel):
    note: str = Field(..., min_length=1)
    customer_note: bool = Field(default=False, description="Visible para el cliente")


class AIGenerateRequest(BaseModel):
    """Producto sobre el que generar contenido y estilo opcional."""

    product: Dict[str, Any] = Field(..., description="Producto WooCommerce (name, categories, ...)")
    style: Optional[str] = Field(None, description="Estilo SEO")


class SEOContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    meta_title: str = ""
    meta_description: str = ""
    keywords: List[str] = Field(default_factory=list)
    focus_keyphrase: str = ""


class ApplySEORequest(BaseModel):
    seo: SEOContent
    validate_content: bool = Field(default=True, description="Rechazar contenido SEO no válido")
