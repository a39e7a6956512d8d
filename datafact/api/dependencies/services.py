"""
Accessors for the shared services the application builds at startup.
"""

from typing import Optional

from fastapi import HTTPException

from datafact.config import AppConfig
from datafact.models.providers.base import TextGenerator
from datafact.models.services.persona_store import PersonaStore
from datafact.pipeline.forms.injector import FormInjector
from datafact.pipeline.forms.scraper import FormScraper


def _state(name: str):
    from ..main import app_state
    return app_state[name]

def get_config() -> AppConfig:
    return _state("config")

def get_generator() -> TextGenerator:
    return _state("generator")

def get_scraper() -> FormScraper:
    return _state("scraper")

def get_injector() -> FormInjector:
    return _state("injector")

def get_optional_persona_store() -> Optional[PersonaStore]:
    """None when the store credentials are not configured."""
    from ..main import app_state
    return app_state.get("persona_store")

def get_persona_store() -> PersonaStore:
    store = get_optional_persona_store()
    if store is None:
        raise HTTPException(
            status_code=500,
            detail="server misconfigured: set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY",
        )
    return store
