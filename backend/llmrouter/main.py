# /llmrouter/main.py

import os
import time
import uvicorn
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from llmrouter.config.settings import settings
from llmrouter.services.llm.errors import CredentialMissingError, ProviderError
from llmrouter.utils.lifecycle import lifespan
from llmrouter.utils.metrics import response_time_histogram
from llmrouter.workflows.validator import FlowValidationError
from llmrouter.routes import chat, flows, proxy, public

log = structlog.get_logger(__name__)

app = FastAPI(
    title="LLM Router",
    version="1.0.0",
    description="Multi-provider chat proxy and sequential prompt flows",
    lifespan=lifespan,
    openapi_url=f"/api/{settings.api_version}/openapi.json" if settings.environment != "production" else None,
    docs_url=f"/api/{settings.api_version}/docs" if settings.environment != "production" else None,
    redoc_url=f"/api/{settings.api_version}/redoc" if settings.environment != "production" else None,
)


# --- Error handling ---

async def provider_error_handler(request: Request, exc: ProviderError):
    """Provider failures keep the upstream status when there is one."""
    if isinstance(exc, CredentialMissingError):
        status_code = 500
    elif exc.status_code and 400 <= exc.status_code < 600:
        status_code = exc.status_code
    else:
        status_code = 502
    log.warning("Provider error.", provider=exc.provider.value, status_code=exc.status_code, error=exc.message)
    return JSONResponse({"error": exc.message}, status_code=status_code)


async def flow_validation_error_handler(request: Request, exc: FlowValidationError):
    return JSONResponse({"error": exc.message, "error_code": exc.error_code}, status_code=400)


app.add_exception_handler(ProviderError, provider_error_handler)
app.add_exception_handler(FlowValidationError, flow_validation_error_handler)

# --- Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def performance_middleware(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response_time_histogram.labels(endpoint=request.url.path).observe(process_time)
    response.headers["X-Process-Time"] = str(process_time)
    return response


# --- API Routers ---
app.include_router(public.router)
app.include_router(proxy.router)
app.include_router(chat.router, prefix=f"/api/{settings.api_version}")
app.include_router(flows.router, prefix=f"/api/{settings.api_version}")

# --- Main Entry Point for Uvicorn (for local development) ---
if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "127.0.0.1")

    uvicorn.run(
        "llmrouter.main:app",
        host=host,
        port=port,
        reload=True if settings.environment == "development" else False,
        workers=settings.workers if settings.environment == "production" else 1,
    )
