"""
Núcleo de la aplicación: configuración, logging, autenticación,
middlewares, manejadores de excepciones y ciclo de vida.
"""
