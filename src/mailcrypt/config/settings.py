"""Configuration loading for MailCrypt services."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from mailcrypt.exceptions import ConfigurationError, MissingEnvVariableError

DEFAULT_SECRET_ENV_VAR = "MAILCRYPT_SECRET"


@dataclass
class CryptoSettings:
    """Process-wide settings for the crypto services."""

    secret_env_var: str = DEFAULT_SECRET_ENV_VAR
    secret: str | None = field(default=None, repr=False)
    token_length: int = 32
    log_level: str = "INFO"
    log_dir: Path | None = None
    operation_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.secret_env_var or not self.secret_env_var.strip():
            error_msg = "secret_env_var cannot be empty"
            raise ConfigurationError(error_msg)
        if self.token_length <= 0:
            error_msg = f"token_length must be positive, got {self.token_length}"
            raise ConfigurationError(error_msg)
        if self.operation_timeout is not None and self.operation_timeout <= 0:
            error_msg = f"operation_timeout must be positive, got {self.operation_timeout}"
            raise ConfigurationError(error_msg)
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir)


def load_settings(config_path: Path | None = None) -> CryptoSettings:
    """Load settings from a YAML or JSON file.

    Args:
        config_path: Path to the configuration file; defaults only if omitted

    Returns:
        Validated CryptoSettings instance

    Raises:
        ConfigurationError: If the file is missing or its content is invalid

    """
    if config_path is None:
        return CryptoSettings()

    if not config_path.is_file():
        error_msg = f"Configuration file not found: {config_path}"
        raise ConfigurationError(error_msg)

    try:
        with config_path.open(encoding="utf-8") as f:
            if config_path.suffix in (".yaml", ".yml"):
                config_data = yaml.safe_load(f)
            else:
                config_data = json.load(f)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        error_msg = f"Error loading configuration file: {e}"
        raise ConfigurationError(error_msg, e) from e

    if config_data is None:
        config_data = {}
    if not isinstance(config_data, dict):
        error_msg = "Configuration file must contain a mapping"
        raise ConfigurationError(error_msg)

    return _settings_from_mapping(config_data)


def resolve_secret(settings: CryptoSettings, *, required: bool = True) -> str | None:
    """Return the symmetric secret: environment variable first, then inline.

    Raises:
        MissingEnvVariableError: If required and neither source is set

    """
    secret = os.environ.get(settings.secret_env_var) or settings.secret
    if not secret and required:
        error_msg = f"Environment variable {settings.secret_env_var} is not set"
        raise MissingEnvVariableError(error_msg)
    return secret or None


def _settings_from_mapping(config_data: dict[str, Any]) -> CryptoSettings:
    known = {
        "secret_env_var",
        "secret",
        "token_length",
        "log_level",
        "log_dir",
        "operation_timeout",
    }
    unknown = sorted(set(config_data) - known)
    if unknown:
        error_msg = f"Unknown configuration fields: {', '.join(unknown)}"
        raise ConfigurationError(error_msg)

    try:
        timeout = config_data.get("operation_timeout")
        log_dir = config_data.get("log_dir")
        return CryptoSettings(
            secret_env_var=config_data.get("secret_env_var", DEFAULT_SECRET_ENV_VAR),
            secret=config_data.get("secret"),
            token_length=int(config_data.get("token_length", 32)),
            log_level=str(config_data.get("log_level", "INFO")),
            log_dir=Path(log_dir) if log_dir else None,
            operation_timeout=float(timeout) if timeout is not None else None,
        )
    except (TypeError, ValueError) as e:
        error_msg = f"Configuration validation failed: {e}"
        raise ConfigurationError(error_msg, e) from e
