"""
Servicios de negocio: caché y sincronización, organizaciones, facturación,
credenciales, campañas de email, analítica y generación de contenido IA.
"""
