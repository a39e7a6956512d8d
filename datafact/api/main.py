"""
FastAPI application entry point.

Builds the shared services once at startup (HTTP connection pools, the
generation provider, scraper, injector and persona store) and wires the
routers that expose them.
"""

import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncGenerator

from .routers import health, pipeline, forms, personas
from .models.common import APIError, InvalidRequestError
from .dependencies.save_states import save_state_store
from datafact import __version__
from datafact.config import ConfigError, configure_logging, load_config
from datafact.models.clients import close_clients, get_fast_client, get_generation_client
from datafact.models.providers.gemini import GeminiProvider
from datafact.models.services.persona_store import PersonaStore
from datafact.pipeline.forms.injector import FormInjector
from datafact.pipeline.forms.scraper import FormScraper

logger = logging.getLogger(__name__)

# Global application state
app_state = {}

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Expensive, shareable resources are created once here and torn down at
    shutdown; request handlers reach them through the dependency functions.
    """
    config = load_config()
    configure_logging(config.log_level)
    logger.info("1. Starting datafact API server...")

    generation_client = get_generation_client(config.gemini)
    fast_client = get_fast_client(config.forms)

    app_state["config"] = config
    app_state["generator"] = GeminiProvider(
        client=generation_client,
        base_url=config.gemini.base_url,
        request_timeout_s=config.gemini.request_timeout_s,
        max_retries=config.gemini.max_retries,
        backoff_unit_s=config.gemini.backoff_unit_s,
        status_backoff_unit_s=config.gemini.status_backoff_unit_s,
        temperature=config.gemini.temperature,
    )
    app_state["scraper"] = FormScraper(client=fast_client, user_agent=config.forms.user_agent)
    app_state["injector"] = FormInjector(
        client=fast_client,
        user_agent=config.forms.injector_user_agent,
        origin=config.forms.origin,
        max_concurrency=config.forms.inject_max_concurrency,
    )
    app_state["persona_store"] = (
        PersonaStore.from_settings(config.personas, client=fast_client)
        if config.personas.configured else None
    )
    save_state_store.timeout = timedelta(minutes=config.forms.save_state_ttl_minutes)

    if not config.auth.api_key:
        logger.warning("DATAFACT_API_KEY is not set; authorized endpoints will answer 500")
    logger.info("2. Shared clients and services initialized")
    logger.info("3. API server ready to accept requests")

    yield  # Server runs here

    logger.info("4. Shutting down datafact API server...")
    close_clients()
    app_state.clear()

def _error_response(status_code: int, error: str, error_code: str, details=None) -> JSONResponse:
    body = APIError(error=error, error_code=error_code, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    summary = "; ".join(f"{e['field']}: {e['message']}" if e["field"] else e["message"] for e in errors)
    return _error_response(400, summary or "invalid request body", "invalid_request", {"errors": errors})

async def invalid_request_handler(request: Request, exc: InvalidRequestError) -> JSONResponse:
    return _error_response(400, str(exc), "invalid_request")

async def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
    logger.error(f"configuration error on {request.url.path}: {exc}")
    return _error_response(500, str(exc), "server_misconfigured")

def create_app() -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    This approach allows for easy testing and configuration management.
    """

    app = FastAPI(
        title="DataFact API",
        description="Persona-driven generation, form scraping and form injection for workflow automation",
        version=__version__,
        lifespan=lifespan
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InvalidRequestError, invalid_request_handler)
    app.add_exception_handler(ConfigError, config_error_handler)

    # Include API routers
    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(pipeline.router, prefix="/api/v1/pipeline", tags=["pipeline"])
    app.include_router(forms.router, prefix="/api/v1/forms", tags=["forms"])
    app.include_router(personas.router, prefix="/api/v1/personas", tags=["personas"])

    @app.get("/")
    async def root():
        """Root endpoint with basic API information."""
        return {
            "name": "DataFact API",
            "version": __version__,
            "status": "operational",
            "endpoints": {
                "health": "/health",
                "pipeline": "/api/v1/pipeline/run",
                "scrape": "/api/v1/forms/scrape",
                "inject": "/api/v1/forms/inject",
                "personas": "/api/v1/personas/filter",
                "docs": "/docs",
            }
        }

    return app

# Create the FastAPI app instance
app = create_app()
