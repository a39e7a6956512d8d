"""
Health check endpoints for monitoring and diagnostics.
"""

import time
from typing import Optional
from fastapi import APIRouter, Depends
from datetime import datetime, timezone

from ..models.common import HealthStatus
from ..dependencies.save_states import SaveStateStore, get_save_state_store
from ..dependencies.services import get_config, get_generator, get_optional_persona_store
from datafact import __version__
from datafact.config import AppConfig
from datafact.models.clients import clients_open
from datafact.models.providers.base import TextGenerator
from datafact.models.services.persona_store import PersonaStore

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()

def _dependency_report(
    config: AppConfig,
    generator: TextGenerator,
    persona_store: Optional[PersonaStore],
    save_states: SaveStateStore,
):
    dependencies = {}
    dependencies["auth"] = "configured" if config.auth.api_key else "missing DATAFACT_API_KEY"

    if persona_store is None:
        dependencies["persona_store"] = "not configured"
    else:
        try:
            dependencies["persona_store"] = "available" if persona_store.health_check() else "client closed"
        except Exception as e:
            dependencies["persona_store"] = f"error: {e}"

    try:
        dependencies["generator"] = "available" if generator.health_check() else "client closed"
    except Exception as e:
        dependencies["generator"] = f"error: {e}"

    for name, is_open in clients_open().items():
        dependencies[f"http_{name}"] = "open" if is_open else "closed"

    stats = save_states.get_stats()
    dependencies["save_states"] = f"{stats['cached_forms']:.0f} cached"
    return dependencies

@router.get("/", response_model=HealthStatus)
async def health_check(
    config: AppConfig = Depends(get_config),
    generator: TextGenerator = Depends(get_generator),
    persona_store: Optional[PersonaStore] = Depends(get_optional_persona_store),
    save_states: SaveStateStore = Depends(get_save_state_store),
):
    """
    Basic health check endpoint.

    Reports the API version, uptime and the state of each collaborator.
    """
    return HealthStatus(
        status="healthy",
        version=__version__,
        uptime=time.time() - _server_start_time,
        dependencies=_dependency_report(config, generator, persona_store, save_states),
    )

@router.get("/ready")
async def readiness_check(
    config: AppConfig = Depends(get_config),
    generator: TextGenerator = Depends(get_generator),
):
    """
    Readiness probe for container deployments.

    Ready means inbound requests can be authorized and generation calls made.
    """
    if not config.auth.api_key:
        return {"ready": False, "reason": "DATAFACT_API_KEY not set"}
    if not generator.health_check():
        return {"ready": False, "reason": "generation client closed"}
    return {
        "ready": True,
        "message": "Service ready to handle requests",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
