# /llmrouter/utils/lifecycle.py

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from llmrouter.utils.logging import setup_logging
from llmrouter.services.http_client import shared_http_client
from llmrouter.config.settings import settings, validate_environment

# Startup: logging and a configuration sanity check.
# Shutdown: release the pooled upstream connections.

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    setup_logging()
    validate_environment(settings)

    logger.info(
        f"LLM Router starting up (environment={settings.environment}, "
        f"default_provider={settings.default_provider.value})"
    )

    yield

    logger.info("LLM Router shutting down...")
    await shared_http_client.close()
