"""
Firebase Admin: inicialización y verificación de ID tokens.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin import exceptions as firebase_exceptions

from eidf_crm.core.config import get_settings
from eidf_crm.utils.error_handler import AuthenticationException

settings = get_settings()
logger = logging.getLogger(__name__)

_firebase_app: Optional[firebase_admin.App] = None


def initialize_firebase() -> firebase_admin.App:
    """
    Inicializa la app de Firebase Admin una sola vez.

    Usa el fichero de cuenta de servicio si está configurado; si no,
    las credenciales por defecto de la aplicación.

    Returns:
        firebase_admin.App: App inicializada
    """
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None

    if settings.FIREBASE_CREDENTIALS_PATH:
        credential = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
        logger.info(f"🔑 Firebase Admin using service account {settings.FIREBASE_CREDENTIALS_PATH}")
    else:
        credential = credentials.ApplicationDefault()
        logger.info("🔑 Firebase Admin using application default credentials")

    _firebase_app = firebase_admin.initialize_app(credential, options)
    return _firebase_app


def is_firebase_initialized() -> bool:
    return _firebase_app is not None


async def verify_id_token(token: str) -> Dict[str, Any]:
    """
    Verifica un ID token de Firebase.

    Args:
        token: ID token del cliente

    Returns:
        Dict: Claims decodificados (uid, email...)

    Raises:
        AuthenticationException: Si el token no es válido o Firebase no está disponible
    """
    try:
        app = initialize_firebase()
        return await asyncio.to_thread(firebase_auth.verify_id_token, token, app)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError) as e:
        logger.debug(f"Firebase token rejected: {e}")
        raise AuthenticationException("Invalid token") from e
    except firebase_exceptions.FirebaseError as e:
        logger.error(f"❌ Firebase token verification failed: {e}")
        raise AuthenticationException("Invalid token") from e
