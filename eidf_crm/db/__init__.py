"""
Módulo de acceso a datos para EIDF CRM.

- ConnDB: motor y sesiones de SQLAlchemy (caché y registros SaaS)
- models: tablas del caché, metadatos de sincronización y SaaS
- woocommerce_clients: clientes REST de WooCommerce/WordPress
"""

from eidf_crm.db.connection import (
    ConnDB,
    close_database,
    get_db_connection,
    get_db_session,
    initialize_database,
)

__all__ = ["ConnDB", "close_database", "get_db_connection", "get_db_session", "initialize_database"]
