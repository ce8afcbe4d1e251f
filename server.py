"""
mailpass Auth Server - Entry Point

Run with: uv run uvicorn server:app --host 0.0.0.0 --port 8083
"""

import logging

from api.app import create_app
from config.settings import get_settings

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Suppress noisy uvicorn logs
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

app = create_app(settings)

__all__ = ["app", "create_app"]

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
