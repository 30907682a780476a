"""
FastAPI web surface.

Provides:
- GET / - Landing page
- GET /oauth/login, /oauth/callback - WorkflowMax authorization
- GET /health - Sync loop health check
"""

from src.api.app import create_app

__all__ = ["create_app"]
