"""
Conversión entre contenido SEO y los meta campos de Yoast SEO.

Yoast guarda el SEO de cada producto en meta keys propias que se
escriben a través del campo meta_data de la API REST de WooCommerce.
"""

from typing import Any, Dict, Iterable, List, Optional

YOAST_TITLE = "_yoast_wpseo_title"
YOAST_META_DESC = "_yoast_wpseo_metadesc"
YOAST_FOCUS_KW = "_yoast_wpseo_focuskw"
YOAST_META_KEYWORDS = "_yoast_wpseo_metakeywords"

YOAST_META_KEYS = (YOAST_TITLE, YOAST_META_DESC, YOAST_FOCUS_KW, YOAST_META_KEYWORDS)


def format_seo_for_yoast(seo: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Convierte contenido SEO al formato meta_data de Yoast.

    Args:
        seo: Dict con meta_title, meta_description, focus_keyphrase y keywords

    Returns:
        List[Dict]: Entradas {"key", "value"}; los campos vacíos se omiten
    """
    meta_data: List[Dict[str, str]] = []

    if seo.get("meta_title"):
        meta_data.append({"key": YOAST_TITLE, "value": seo["meta_title"]})
    if seo.get("meta_description"):
        meta_data.append({"key": YOAST_META_DESC, "value": seo["meta_description"]})
    if seo.get("focus_keyphrase"):
        meta_data.append({"key": YOAST_FOCUS_KW, "value": seo["focus_keyphrase"]})
    if seo.get("keywords"):
        meta_data.append({"key": YOAST_META_KEYWORDS, "value": ", ".join(seo["keywords"])})

    return meta_data


def extract_yoast_seo_data(meta_data: Optional[Iterable[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    """
    Extrae el contenido SEO de Yoast del meta_data de un producto.

    Args:
        meta_data: Lista de meta campos del producto

    Returns:
        Optional[Dict]: Contenido SEO, o None si no hay ninguna clave de Yoast
    """
    if not meta_data:
        return None

    seo: Dict[str, Any] = {"meta_title": "", "meta_description": "", "keywords": [], "focus_keyphrase": ""}
    has_data = False

    for meta in meta_data:
        key = meta.get("key")
        value = meta.get("value") or ""
        if key == YOAST_TITLE:
            seo["meta_title"] = value
        elif key == YOAST_META_DESC:
            seo["meta_description"] = value
        elif key == YOAST_FOCUS_KW:
            seo["focus_keyphrase"] = value
        elif key == YOAST_META_KEYWORDS:
            seo["keywords"] = [k.strip() for k in value.split(",") if k.strip()]
        else:
            continue
        has_data = True

    return seo if has_data else None
