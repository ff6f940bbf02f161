"""API REST v1."""
