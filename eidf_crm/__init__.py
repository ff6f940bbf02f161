"""
EIDF CRM: backend del tableau de bord WooCommerce/WordPress.
"""
