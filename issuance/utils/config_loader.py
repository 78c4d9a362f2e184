"""
Configuration loader for the issuance journey client
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "journey_config.yml"

# environment variable -> (section, key)
_ENV_OVERRIDES = {
    "ISSUANCE_API_URL": ("api", "base_url"),
    "ISSUANCE_API_KEY": ("api", "api_key"),
    "ISSUANCE_API_KEY_HEADER": ("api", "api_key_header"),
    "ISSUANCE_API_TIMEOUT": ("api", "timeout_seconds"),
    "ISSUANCE_POLL_INTERVAL_MS": ("polling", "interval_ms"),
    "ISSUANCE_POLL_MAX_ATTEMPTS": ("polling", "max_attempts"),
}


class ApiConfig(BaseModel):
    """Remote issuance API connection settings"""

    base_url: str = "http://localhost:8080/api/v1"
    api_key: str = ""
    api_key_header: str = "X-API-Key"
    timeout_seconds: float = Field(default=15.0, gt=0)


class PollingConfig(BaseModel):
    """Bounded polling used for underwriting and policy issuance waits"""

    interval_ms: int = Field(default=2000, ge=0)
    max_attempts: int = Field(default=15, ge=1, le=1000)

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0


class JourneyConfig(BaseModel):
    """Complete journey client configuration"""

    api: ApiConfig = Field(default_factory=ApiConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    diagnostics_history: int = Field(default=20, ge=1)


def load_journey_config(
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> JourneyConfig:
    """
    Load and validate the journey configuration

    Values come from the YAML file first, then environment variables
    (a local .env file is honoured) override individual keys.

    Args:
        config_path: Path to a YAML config file. Defaults to config/journey_config.yml
            when that file exists; an explicitly given path must exist.
        env: Environment mapping to read overrides from. Defaults to os.environ.

    Returns:
        Validated JourneyConfig object

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ValidationError: If the merged config doesn't match the schema
    """
    if env is None:
        load_dotenv()
        env = os.environ

    data: Dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        data = _read_yaml(config_path)
    elif DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH
        data = _read_yaml(config_path)

    for var, (section, key) in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value is None or value == "":
            continue
        data.setdefault(section, {})[key] = value

    try:
        config = JourneyConfig(**data)
    except ValidationError as e:
        logger.error(f"Journey config validation failed: {e}")
        raise

    if not config.api.api_key:
        logger.warning("No issuance API key configured; every call will be rejected with 401.")
    logger.info(f"Loaded journey config (file={config_path}, api={config.api.base_url})")
    return config


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return loaded
