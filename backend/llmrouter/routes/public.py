# /llmrouter/routes/public.py

import asyncio
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest

from llmrouter.config.settings import Settings, settings
from llmrouter.models.api import APIResponse
from llmrouter.models.llm import LLMProvider
from llmrouter.services.http_client import get_http_client
from llmrouter.services.llm.factory import create_llm_client
from llmrouter.utils.dependencies import get_settings

# Unauthenticated service endpoints: root, health checks and metrics.

router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "LLM Router",
        "version": "1.0.0",
        "status": "operational",
        "environment": settings.environment,
    }


@router.get("/health", summary="Basic Health Check")
async def health_check():
    """Basic health check for load balancers."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc)}


@router.get("/health/providers", response_model=APIResponse, summary="Provider Credential Check")
async def provider_health_check(
    settings_obj: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """Check every configured provider key against its API."""
    providers = list(LLMProvider)
    configured = [p for p in providers if settings_obj.get_api_key(p)]

    results = await asyncio.gather(
        *(create_llm_client(p, settings_obj, http_client=http_client).validate_api_key() for p in configured)
    )
    validity = dict(zip(configured, results))

    services = {}
    for provider in providers:
        if provider not in validity:
            services[provider.value] = "not_configured"
        else:
            services[provider.value] = "valid" if validity[provider] else "invalid"

    healthy = any(validity.values())
    return APIResponse(
        success=healthy,
        message="Provider credential status retrieved.",
        data={"status": "healthy" if healthy else "degraded", "services": services},
        version=settings_obj.api_version,
    )


@router.get("/metrics", tags=["Monitoring"])
async def metrics():
    """Prometheus metrics endpoint."""
    return PlainTextResponse(generate_latest(), media_type="text/plain")
