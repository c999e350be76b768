from typing import Any

from gunicorn.app.base import BaseApplication
from gunicorn.util import import_app

from assetgate.core.config import settings


def gunicorn_options() -> dict[str, Any]:
    """Gunicorn settings for serving the API with uvicorn workers."""
    return {
        "bind": f"{settings.backend_host}:{settings.backend_port}",
        "workers": settings.workers_count,
        "worker_class": "uvicorn.workers.UvicornWorker",
        "accesslog": None,
        "graceful_timeout": 30,
    }


class GunicornApplication(BaseApplication):
    """Gunicorn application loading the ASGI app from an import string."""

    def __init__(self, app_uri: str, options: dict[str, Any] | None = None):
        self.app_uri = app_uri
        self.options = options or {}
        super().__init__()

    def load_config(self):
        for key, value in self.options.items():
            if key in self.cfg.settings and value is not None:
                self.cfg.set(key.lower(), value)

    def load(self):
        return import_app(self.app_uri)
