"""Modelos Pydantic de las peticiones de la API v1."""
