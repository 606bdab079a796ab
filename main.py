"""
Gateway server entrypoint.

Loads settings from notebook.toml and the environment, configures logging
and serves the job endpoints with uvicorn.
"""
import uvicorn

from notebook_backend.core.config import get
from notebook_backend.core.logging_config import configure_logging, get_logger
from notebook_backend.gateway.api import create_app
from notebook_backend.gateway.settings import GatewaySettings

configure_logging(log_level=get("app", "log_level").upper(), service=get("app", "service_name"))
logger = get_logger("notebook_backend")

settings = GatewaySettings.load()
app = create_app(settings)

missing = [name for name, present in settings.configured().items() if not present]
if missing:
    logger.warning(f"Settings not configured, affected endpoints will return 500: {missing}")


if __name__ == "__main__":
    uvicorn.run("main:app", host=get("app", "host"), port=get("app", "port"))
