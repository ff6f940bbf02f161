"""
Validador de contenido SEO generado por IA.

Comprueba longitudes recomendadas por Yoast y que el contenido
esté redactado en francés.
"""

import re
from typing import Any, Dict, List

ENGLISH_PATTERNS = [
    re.compile(r"shop\s+for", re.IGNORECASE),
    re.compile(r"buy\s+now", re.IGNORECASE),
    re.compile(r"purchase\s+our", re.IGNORECASE),
    re.compile(r"in\s+our\s+\w+\s+category", re.IGNORECASE),
    re.compile(r"free\s+shipping", re.IGNORECASE),
    re.compile(r"add\s+to\s+cart", re.IGNORECASE),
    re.compile(r"best\s+seller", re.IGNORECASE),
    re.compile(r"on\s+sale", re.IGNORECASE),
    re.compile(r"limited\s+time", re.IGNORECASE),
    re.compile(r"customer\s+reviews", re.IGNORECASE),
]

FRENCH_INDICATORS = [
    "découvrez",
    "notre",
    "votre",
    "livraison",
    "gratuit",
    "gratuite",
    "garantie",
    "qualité",
    "commandez",
    "profitez",
    "achetez",
    "meilleur",
    "nouveau",
    "exclusive",
    "satisfait",
    "remboursé",
    "prix",
    "promotion",
    "offre",
]

META_TITLE_MAX = 60
META_DESCRIPTION_MIN = 120
META_DESCRIPTION_MAX = 160
KEYWORDS_MIN = 3
KEYWORDS_MAX = 8


def is_content_in_french(content: str) -> bool:
    """
    Heurística: ningún patrón inglés y al menos dos indicadores franceses.

    Args:
        content: Texto a evaluar

    Returns:
        bool: True si el texto parece francés
    """
    if any(pattern.search(content) for pattern in ENGLISH_PATTERNS):
        return False

    lower_content = content.lower()
    french_word_count = sum(1 for word in FRENCH_INDICATORS if word in lower_content)
    return french_word_count >= 2


def validate_seo_content(seo: Dict[str, Any]) -> Dict[str, Any]:
    """
    Valida un bloque de contenido SEO.

    Args:
        seo: Dict con meta_title, meta_description, keywords y focus_keyphrase

    Returns:
        Dict: {"is_valid": bool, "errors": [mensajes]}
    """
    errors: List[str] = []
    title = seo.get("meta_title") or ""
    description = seo.get("meta_description") or ""
    keywords = seo.get("keywords") or []
    focus_keyphrase = seo.get("focus_keyphrase") or ""

    if len(title) > META_TITLE_MAX:
        errors.append(f"Meta title trop long (max {META_TITLE_MAX} caractères)")
    if len(description) > META_DESCRIPTION_MAX:
        errors.append(f"Meta description trop longue (max {META_DESCRIPTION_MAX} caractères)")
    if len(description) < META_DESCRIPTION_MIN:
        errors.append(f"Meta description trop courte (min {META_DESCRIPTION_MIN} caractères)")

    if not is_content_in_french(title):
        errors.append("Meta title contient du contenu en anglais")
    if not is_content_in_french(description):
        errors.append("Meta description contient du contenu en anglais")

    if len(keywords) < KEYWORDS_MIN:
        errors.append(f"Pas assez de mots-clés (min {KEYWORDS_MIN})")
    if len(keywords) > KEYWORDS_MAX:
        errors.append(f"Trop de mots-clés (max {KEYWORDS_MAX})")

    if len(focus_keyphrase.split()) < 2:
        errors.append("Phrase clé trop courte (min 2 mots)")

    return {"is_valid": not errors, "errors": errors}
