from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union
import logging
import os

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "config.yaml"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# env var -> (section, field); secrets never live in the yaml file
ENV_OVERRIDES: Dict[str, Tuple[str, ...]] = {
    "DATAFACT_API_KEY": ("auth", "api_key"),
    "SUPABASE_URL": ("personas", "base_url"),
    "SUPABASE_SERVICE_ROLE_KEY": ("personas", "service_key"),
    "SUPABASE_DB_SCHEMA": ("personas", "db_schema"),
    "SUPABASE_PERSONA_TABLE": ("personas", "table"),
    "DATAFACT_LOG_LEVEL": ("log_level",),
}


class ConfigError(Exception):
    """Missing or invalid configuration or credentials."""


class AuthSettings(BaseModel):
    api_key: Optional[str] = None


class GeminiSettings(BaseModel):
    base_url: str = "https://generativelanguage.googleapis.com"
    default_model: str = "gemini-2.5-flash"
    temperature: float = 0.7
    request_timeout_s: float = Field(90.0, gt=0)
    connect_timeout_s: float = Field(10.0, gt=0)
    max_retries: int = Field(4, ge=0)
    backoff_unit_s: float = Field(2.0, ge=0)
    status_backoff_unit_s: float = Field(3.0, ge=0)
    max_connections: int = Field(100, ge=1)
    max_keepalive_connections: int = Field(50, ge=0)


class FactorySettings(BaseModel):
    max_concurrency: int = Field(5, ge=1)
    form_placeholder: str = "{{ $json.form }}"


class FormSettings(BaseModel):
    user_agent: str = BROWSER_USER_AGENT
    injector_user_agent: str = "Mozilla/5.0 (DataFact Injector Bot)"
    origin: str = "https://docs.google.com"
    request_timeout_s: float = Field(20.0, gt=0)
    connect_timeout_s: float = Field(5.0, gt=0)
    inject_max_concurrency: int = Field(20, ge=1)
    save_state_ttl_minutes: int = Field(60, ge=1)


class PersonaStoreSettings(BaseModel):
    base_url: Optional[str] = None
    service_key: Optional[str] = None
    db_schema: str = "public"
    table: str = "persona_bank"

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.service_key)


class AppConfig(BaseModel):
    log_level: str = "INFO"
    auth: AuthSettings = Field(default_factory=AuthSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    factory: FactorySettings = Field(default_factory=FactorySettings)
    forms: FormSettings = Field(default_factory=FormSettings)
    personas: PersonaStoreSettings = Field(default_factory=PersonaStoreSettings)


def _apply_env(raw: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    for var, path in ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        target = raw
        for key in path[:-1]:
            section = target.get(key)
            if not isinstance(section, dict):
                section = {}
                target[key] = section
            target = section
        target[path[-1]] = value
    return raw


def load_config(
    config_path: Optional[Union[Path, str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """
    Load the service configuration.

    Resolution order for the file: explicit argument, then DATAFACT_CONFIG,
    then the bundled config/config.yaml. An explicitly named file must exist;
    the bundled default may be absent, in which case built-in defaults apply.
    Environment secrets are layered on top of whatever the file provides.
    """
    environ = os.environ if environ is None else environ
    explicit = config_path or environ.get("DATAFACT_CONFIG")
    path = Path(explicit) if explicit else DEFAULT_CONFIG_PATH

    raw: Dict[str, Any] = {}
    if path.exists():
        try:
            with open(path) as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"Config root must be a mapping: {path}")
        raw = loaded or {}
    elif explicit:
        raise FileNotFoundError(f"Config not found: {path}")
    else:
        logger.info(f"No config file at {path}, using defaults")

    raw = _apply_env(raw, environ)
    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # request URLs carry the generation API key as a query parameter
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
