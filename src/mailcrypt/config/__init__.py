"""Configuration for MailCrypt services."""

from .settings import DEFAULT_SECRET_ENV_VAR, CryptoSettings, load_settings, resolve_secret

__all__ = ["DEFAULT_SECRET_ENV_VAR", "CryptoSettings", "load_settings", "resolve_secret"]
