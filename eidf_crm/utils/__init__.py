"""Utilidades compartidas: errores, fechas y SEO."""
