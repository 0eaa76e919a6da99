"""
ASGI entrypoint: expose `app` pour les process managers (uvicorn, gunicorn -k uvicorn.workers.UvicornWorker).
Toute la configuration est centralisée dans marketplace.app_setup.factory.
"""
from marketplace.app import app

__all__ = ["app"]
