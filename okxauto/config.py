import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings

from okxauto.exceptions import ConfigurationError
from okxauto.schemas.config import EngineConfig

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # OKX API credentials
    okx_api_key: str = ""
    okx_api_secret: str = ""
    okx_passphrase: str = ""
    okx_api_mode: str = "simulation"  # simulation or live

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/trades.db"

    # Engine configuration file (YAML)
    engine_config_path: str = "config/config.yaml"

    # Logging
    log_level: str = "INFO"

    # Control surface
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()


def load_engine_config(path: Union[str, Path]) -> EngineConfig:
    """
    Load and validate the engine configuration from a YAML file.

    Accepts either a document with a top-level ``trading:`` section or a bare
    engine mapping.

    Raises:
        ConfigurationError: file missing, unreadable YAML, or invalid values
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigurationError(f"Engine config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    return parse_engine_config(raw)


def parse_engine_config(raw: Dict[str, Any]) -> EngineConfig:
    """Validate an already-loaded mapping into an EngineConfig."""
    if not isinstance(raw, dict):
        raise ConfigurationError("Engine config must be a mapping")

    data = raw.get("trading", raw)
    try:
        config = EngineConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid engine config: {e}") from e

    if not config.symbols:
        raise ConfigurationError("Engine config must list at least one symbol")

    logger.info(
        f"Engine config loaded: mode={config.mode}, trade_type={config.trade_type}, "
        f"leverage={config.leverage}, symbols={config.symbols}"
    )
    return config
