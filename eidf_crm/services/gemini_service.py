"""
Generación de contenido de producto con Gemini.

Todo el contenido se genera en francés. Cada estilo SEO ajusta el tono
del prompt; si la respuesta SEO no es un JSON válido en francés se usa
una plantilla del estilo construida a partir del nombre y la categoría.
"""

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional

from google import genai
from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.core.config import get_settings
from eidf_crm.services.api_credential_service import ApiCredentialService
from eidf_crm.services.billing_service import BillingService
from eidf_crm.utils.error_handler import ExternalServiceException, LimitExceededException, ValidationException
from eidf_crm.utils.seo_validator import is_content_in_french, validate_seo_content

settings = get_settings()
logger = logging.getLogger(__name__)

GENERATION_KINDS = ("title", "description", "short_description", "seo")
AI_USAGE_METRIC = "ai_generations"

SEO_STYLES: Dict[str, Dict[str, Any]] = {
    "commercial": {
        "name": "commercial",
        "description": "Style commercial classique",
        "guidelines": "Mettre en avant les caractéristiques, le prix, la livraison et la garantie.",
        "tone": "Professionnel et persuasif, orienté conversion",
        "focus_points": ["caractéristiques produit", "rapport qualité-prix", "garanties", "livraison rapide"],
    },
    "utility": {
        "name": "utility",
        "description": "Axé sur l'utilité et les bénéfices",
        "guidelines": "Expliquer comment le produit résout des problèmes et améliore la vie du client.",
        "tone": "Informatif et pratique, centré sur les avantages client",
        "focus_points": ["utilité du produit", "résolution de problèmes", "bénéfices concrets", "cas d'usage"],
    },
    "storytelling": {
        "name": "storytelling",
        "description": "Narration et émotion",
        "guidelines": "Raconter une histoire autour du produit, créer une connexion émotionnelle.",
        "tone": "Narratif et émotionnel, création d'une expérience",
        "focus_points": ["histoire du produit", "artisanat", "valeurs", "expérience utilisateur"],
    },
    "technical": {
        "name": "technical",
        "description": "Technique et détaillé",
        "guidelines": "Fournir des spécifications détaillées et des informations techniques approfondies.",
        "tone": "Précis et informatif, pour un public averti",
        "focus_points": ["spécifications techniques", "matériaux", "processus de fabrication", "performance"],
    },
    "ecological": {
        "name": "ecological",
        "description": "Écologique et durable",
        "guidelines": "Mettre en avant l'aspect écologique, durable et responsable du produit.",
        "tone": "Engagé et responsable, sensibilisation environnementale",
        "focus_points": ["durabilité", "impact environnemental", "matériaux écologiques", "commerce équitable"],
    },
}

DEFAULT_STYLE = "commercial"

_FENCE_RE = re.compile(r"```(?:json|html)?", re.IGNORECASE)
_DIMENSION_RE = re.compile(r"\d+(?:[.,]\d+)?\s*(?:mm|cm|m|°)", re.IGNORECASE)


def get_style(style: Optional[str]) -> Dict[str, Any]:
    """
    Estilo SEO por nombre; None devuelve el estilo comercial.

    Raises:
        ValidationException: Para un estilo desconocido
    """
    if not style:
        return SEO_STYLES[DEFAULT_STYLE]
    if style not in SEO_STYLES:
        raise ValidationException(
            f"Unknown SEO style: {style}",
            field="style",
            invalid_value=style,
            expected_format=", ".join(SEO_STYLES),
        )
    return SEO_STYLES[style]


def product_context(product: Dict[str, Any]) -> Dict[str, str]:
    """Campos del producto WooCommerce usados en los prompts."""
    categories = product.get("categories") or []
    return {
        "name": (product.get("name") or "Produit").strip(),
        "category": (categories[0].get("name") if categories else None) or "Boutique",
        "sku": product.get("sku") or "N/A",
        "price": str(product.get("price") or "N/A"),
        "description": product.get("description") or "Aucune description",
    }


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def build_fallback_seo(product: Dict[str, Any], style: Optional[str] = None) -> Dict[str, Any]:
    """
    Contenido SEO de plantilla para un estilo.

    Args:
        product: Producto WooCommerce
        style: Estilo SEO

    Returns:
        Dict: meta_title, meta_description, keywords y focus_keyphrase
    """
    context = product_context(product)
    name = context["name"]
    lower_name = name.lower()
    category = context["category"].lower()
    style_name = get_style(style)["name"]

    if style_name == "utility":
        description = (
            f"{name} pour installation facile et rapide. Solution pratique pour professionnels, "
            "gain de temps, qualité durable. Commandez en ligne!"
        )
        keywords = [lower_name, category, "installation facile", "solution pratique", "gain de temps"]
        focus = f"{lower_name} installation"
    elif style_name == "technical":
        dimensions = _DIMENSION_RE.findall(name)
        description = (
            f"{name} conforme aux normes CE et NF. Qualité professionnelle, résistant à la corrosion, "
            "livraison rapide et garantie constructeur. Découvrez notre offre!"
        )
        keywords = [lower_name, category, "norme CE", "qualité professionnelle"] + [d.lower() for d in dimensions]
        focus = f"{lower_name} professionnel"
    elif style_name == "ecological":
        description = (
            f"{name} éco-responsable fabriqué en France. Matériaux recyclables, production durable, "
            "emballage écologique. Découvrez notre offre!"
        )
        keywords = [lower_name, category, "éco-responsable", "recyclable", "durable"]
        focus = f"{lower_name} écologique"
    elif style_name == "storytelling":
        description = (
            f"{name} issu de notre savoir-faire français. Fabrication artisanale, qualité exceptionnelle "
            "et contrôle unitaire. Découvrez notre histoire!"
        )
        keywords = [lower_name, category, "fabrication française", "artisanal", "savoir-faire"]
        focus = f"{lower_name} artisanal"
    else:
        description = (
            f"Découvrez notre {lower_name} de haute qualité. ✓ Livraison rapide ✓ Garantie satisfait "
            "ou remboursé ✓ Prix compétitif. Commandez maintenant!"
        )
        keywords = [lower_name, category, f"acheter {lower_name}", f"{lower_name} pas cher", f"{lower_name} qualité"]
        focus = f"{lower_name} prix"

    return {
        "meta_title": f"{name} - Qualité Premium | {context['category']}"[:60],
        "meta_description": description,
        "keywords": keywords[:8],
        "focus_keyphrase": focus,
    }


def parse_seo_response(text: str, product: Dict[str, Any], style: Optional[str] = None) -> Dict[str, Any]:
    """
    Interpreta la respuesta JSON de Gemini para el SEO.

    Acepta claves en camelCase (metaTitle) o snake_case (meta_title).
    Usa la plantilla del estilo si el JSON no es válido o no está en francés.

    Args:
        text: Respuesta del modelo
        product: Producto de referencia para la plantilla
        style: Estilo SEO

    Returns:
        Dict: meta_title, meta_description, keywords y focus_keyphrase
    """
    try:
        data = json.loads(strip_code_fences(text))
        if not isinstance(data, dict):
            raise ValueError("SEO response is not a JSON object")

        keywords = data.get("keywords", data.get("metaKeywords")) or []
        if isinstance(keywords, str):
            keywords = [k.strip() for k in keywords.split(",") if k.strip()]

        seo = {
            "meta_title": str(data.get("metaTitle") or data.get("meta_title") or "").strip(),
            "meta_description": str(data.get("metaDescription") or data.get("meta_description") or "").strip(),
            "keywords": [str(k) for k in keywords],
            "focus_keyphrase": str(data.get("focusKeyphrase") or data.get("focus_keyphrase") or "").strip(),
        }
    except ValueError as e:
        logger.warning(f"⚠️ Invalid SEO JSON from Gemini, using {style or DEFAULT_STYLE} template: {e}")
        return build_fallback_seo(product, style)

    if not is_content_in_french(seo["meta_title"]) or not is_content_in_french(seo["meta_description"]):
        logger.warning("⚠️ Non-French SEO content from Gemini, using style template")
        return build_fallback_seo(product, style)

    validation = validate_seo_content(seo)
    if not validation["is_valid"]:
        logger.info(f"SEO content accepted with warnings: {validation['errors']}")

    return seo


class GeminiService:
    """
    Cliente de generación de contenido en francés.
    """

    def __init__(self, api_key: str, model: Optional[str] = None, client: Optional[genai.Client] = None):
        self.model = model or settings.GEMINI_MODEL
        self.client = client or genai.Client(api_key=api_key)

    async def _generate(self, prompt: str) -> str:
        try:
            response = await asyncio.to_thread(self.client.models.generate_content, model=self.model, contents=prompt)
        except Exception as e:
            logger.error(f"❌ Gemini generation failed: {e}")
            raise ExternalServiceException(f"AI generation failed: {e}", service="gemini") from e

        text = (response.text or "").strip()
        if not text:
            raise ExternalServiceException("AI generation returned an empty response", service="gemini")
        return text

    @staticmethod
    def _style_block(style: Dict[str, Any]) -> str:
        return (
            f"STYLE : {style['description']}\n"
            f"Ton : {style['tone']}\n"
            f"Consignes : {style['guidelines']}\n"
            f"Points clés : {', '.join(style['focus_points'])}"
        )

    async def generate_title(self, product: Dict[str, Any]) -> str:
        context = product_context(product)
        prompt = (
            "Génère un titre de produit optimisé pour le SEO et les conversions en FRANÇAIS.\n\n"
            f"Produit actuel : {context['name']}\n"
            f"Catégorie : {context['category']}\n"
            f"SKU : {context['sku']}\n"
            f"Prix : {context['price']}\n\n"
            "Règles : commence par le mot-clé principal, 60 caractères maximum, "
            "1 à 2 caractéristiques différenciantes.\n"
            "Retourne UNIQUEMENT le titre optimisé."
        )
        return (await self._generate(prompt)).strip('"')

    async def generate_description(self, product: Dict[str, Any], style: Optional[str] = None) -> str:
        """
        Descripción HTML larga (150 a 300 palabras).

        Returns:
            str: HTML con párrafos y lista de ventajas
        """
        context = product_context(product)
        prompt = (
            "Génère une description de produit optimisée pour le SEO et la conversion en FRANÇAIS.\n\n"
            f"Nom du produit : {context['name']}\n"
            f"Catégorie : {context['category']}\n"
            f"Description actuelle : {context['description']}\n"
            f"Prix : {context['price']}\n\n"
            f"{self._style_block(get_style(style))}\n\n"
            "Structure : 150 à 300 mots, paragraphe d'accroche, paragraphe détaillé, "
            "liste <ul> de 3 à 5 avantages, paragraphe final avec appel à l'action.\n"
            "Retourne UNIQUEMENT le HTML, sans balises markdown."
        )
        text = strip_code_fences(await self._generate(prompt))
        if "<p>" not in text and "<ul>" not in text:
            text = f"<p>{text}</p>"
        return text

    async def generate_short_description(self, product: Dict[str, Any], style: Optional[str] = None) -> str:
        context = product_context(product)
        prompt = (
            "Génère une description courte optimisée pour le SEO en FRANÇAIS.\n\n"
            f"Produit : {context['name']}\n"
            f"Catégorie : {context['category']}\n\n"
            f"{self._style_block(get_style(style))}\n\n"
            "160 caractères maximum, sans HTML.\n"
            "Retourne UNIQUEMENT la description courte."
        )
        return await self._generate(prompt)

    async def generate_seo(self, product: Dict[str, Any], style: Optional[str] = None) -> Dict[str, Any]:
        """
        Metadatos SEO (título, descripción, palabras clave y frase clave).

        Args:
            product: Producto WooCommerce
            style: Estilo SEO

        Returns:
            Dict: meta_title, meta_description, keywords y focus_keyphrase
        """
        context = product_context(product)
        style_config = get_style(style)
        prompt = (
            "Génère des métadonnées SEO optimisées en FRANÇAIS pour un produit e-commerce.\n\n"
            f"Produit : {context['name']}\n"
            f"Catégorie : {context['category']}\n"
            f"Description : {context['description']}\n\n"
            f"{self._style_block(style_config)}\n\n"
            "1. metaTitle : 50 à 60 caractères, commence par le mot-clé principal.\n"
            "2. metaDescription : 120 à 160 caractères avec un appel à l'action.\n"
            "3. keywords : 5 à 8 mots-clés, le principal en premier.\n"
            "4. focusKeyphrase : 2 à 5 mots.\n\n"
            'Format : {"metaTitle": "...", "metaDescription": "...", "keywords": ["..."], "focusKeyphrase": "..."}\n'
            "Retourne UNIQUEMENT le JSON, sans markdown ni commentaires."
        )
        return parse_seo_response(await self._generate(prompt), product, style_config["name"])

    async def generate(self, kind: str, product: Dict[str, Any], style: Optional[str] = None) -> Any:
        if kind == "title":
            return await self.generate_title(product)
        if kind == "description":
            return await self.generate_description(product, style)
        if kind == "short_description":
            return await self.generate_short_description(product, style)
        if kind == "seo":
            return await self.generate_seo(product, style)
        raise ValidationException(
            f"Unknown generation kind: {kind}",
            field="kind",
            invalid_value=kind,
            expected_format=", ".join(GENERATION_KINDS),
        )


async def resolve_api_key(session: AsyncSession, organization_id: str) -> str:
    """
    API key de Gemini de la organización, o la global de configuración.

    Raises:
        ExternalServiceException: Si no hay ninguna configurada
    """
    credentials = await ApiCredentialService(session).get_gemini_credentials(organization_id)
    if credentials and credentials.get("apiKey"):
        return credentials["apiKey"]
    if settings.GEMINI_API_KEY:
        return settings.GEMINI_API_KEY
    raise ExternalServiceException("Gemini API key not configured", service="gemini", status_code=503)


async def generate_for_organization(
    session: AsyncSession,
    organization_id: str,
    kind: str,
    product: Dict[str, Any],
    style: Optional[str] = None,
    service: Optional[GeminiService] = None,
) -> Dict[str, Any]:
    """
    Genera contenido respetando el límite mensual de generaciones del plan.

    Args:
        session: Sesión de base de datos
        organization_id: Organización que consume la generación
        kind: title, description, short_description o seo
        product: Producto WooCommerce
        style: Estilo SEO
        service: Servicio ya construido (por defecto se crea con la API key resuelta)

    Returns:
        Dict: {"kind", "content", "usage"}

    Raises:
        LimitExceededException: Si se alcanzó el límite de generaciones IA
    """
    if kind not in GENERATION_KINDS:
        raise ValidationException(
            f"Unknown generation kind: {kind}", field="kind", invalid_value=kind, expected_format=", ".join(GENERATION_KINDS)
        )
    get_style(style)

    billing = BillingService(session)
    usage = await billing.check_usage_limits(organization_id, AI_USAGE_METRIC)
    if not usage["allowed"]:
        raise LimitExceededException(
            "AI generation limit reached for this month",
            metric=AI_USAGE_METRIC,
            current=usage["current"],
            limit=usage["limit"],
        )

    if service is None:
        service = GeminiService(api_key=await resolve_api_key(session, organization_id))

    content = await service.generate(kind, product, style)
    await billing.record_usage(organization_id, AI_USAGE_METRIC)
    logger.info(f"🤖 Generated {kind} for product {product.get('id')} (organization {organization_id})")

    return {
        "kind": kind,
        "content": content,
        "usage": {"current": usage["current"] + 1, "limit": usage["limit"]},
    }


def list_styles() -> List[Dict[str, Any]]:
    return list(SEO_STYLES.values())
