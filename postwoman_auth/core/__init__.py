"""
LOT 1: Core

Configuration du client: modèles pydantic, chargement YAML, validation.
"""

from .interfaces import (
    DEFAULT_API_URL,
    ApiSettings,
    StorageSettings,
    RouteSettings,
    SessionSettings,
    LoggingSettings,
    ClientConfig,
    ConfigIssue,
    ValidationResult,
    ValidationSeverity,
    IConfigLoader,
    IConfigValidator,
)
from .config_loader import ConfigLoader, ConfigIntegrityError
from .config_validator import ConfigValidator

__all__ = [
    "DEFAULT_API_URL",
    "ApiSettings",
    "StorageSettings",
    "RouteSettings",
    "SessionSettings",
    "LoggingSettings",
    "ClientConfig",
    "ConfigIssue",
    "ValidationResult",
    "ValidationSeverity",
    "IConfigLoader",
    "IConfigValidator",
    "ConfigLoader",
    "ConfigIntegrityError",
    "ConfigValidator",
]
