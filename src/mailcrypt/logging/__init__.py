"""MailCrypt Logging Module

Centralized logging configuration for MailCrypt services and the command line.
Supports file and console logging with rotation.
"""

from .logger_setup import LoggerConfigError, LoggingConfig, configure_logging, get_logger, setup_logging

__all__ = ["LoggerConfigError", "LoggingConfig", "configure_logging", "get_logger", "setup_logging"]
