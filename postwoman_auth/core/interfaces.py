"""
POSTWOMAN Auth - LOT 1 Core Interfaces
Modèles de configuration du client et contrats de chargement/validation.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


DEFAULT_API_URL = "https://post-women-backend.vercel.app/api"


# ══════════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ══════════════════════════════════════════════════════════════════════════════


class ApiSettings(BaseModel):
    """Accès au backend d'authentification."""

    base_url: str = DEFAULT_API_URL
    connection_timeout: float = 10.0
    request_timeout: float = 30.0
    # chemin -> timeout requête spécifique (secondes)
    endpoint_timeouts: Dict[str, float] = {}


class StorageSettings(BaseModel):
    """
    Persistance du token et du snapshot utilisateur.

    path absent = stockage en mémoire (tests, sessions éphémères).
    """

    path: Optional[str] = None
    token_key: str = "postwoman.auth.v1.token"
    user_key: str = "postwoman.auth.v1.user"


class RouteSettings(BaseModel):
    """Chemins de navigation utilisés par le guard et le client API."""

    login_path: str = "/login"
    unauthorized_path: str = "/unauthorized"
    home_path: str = "/"


class SessionSettings(BaseModel):
    """Comportement du gestionnaire de session."""

    check_token_expiry: bool = True
    min_password_length: int = 8
    prevent_self_actions: bool = True


class LoggingSettings(BaseModel):
    """Logging structuré."""

    level: str = "INFO"
    mask_sensitive: bool = True
    stream: bool = False
    max_entries: int = 1000


class ClientConfig(BaseModel):
    """Configuration complète du client d'authentification."""

    api: ApiSettings = Field(default_factory=ApiSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    routes: RouteSettings = Field(default_factory=RouteSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# ══════════════════════════════════════════════════════════════════════════════
# VALIDATION
# ══════════════════════════════════════════════════════════════════════════════


class ValidationSeverity(Enum):
    BLOCKING = "blocking"
    WARNING = "warning"


class ConfigIssue(BaseModel):
    """Violation d'une règle de configuration."""

    rule_id: str
    message: str
    location: str
    value: Optional[str] = None
    severity: ValidationSeverity = ValidationSeverity.BLOCKING


class ValidationResult(BaseModel):
    """Résultat de validation d'une configuration."""

    valid: bool
    errors: list[ConfigIssue] = []
    warnings: list[ConfigIssue] = []
    checked_at: datetime


# ══════════════════════════════════════════════════════════════════════════════
# INTERFACES
# ══════════════════════════════════════════════════════════════════════════════


class IConfigLoader(ABC):
    """Charge la configuration client depuis un fichier YAML."""

    @abstractmethod
    async def load(self, path: Optional[str] = None) -> ClientConfig:
        """
        Charge la configuration.

        Raises:
            ConfigIntegrityError: Si fichier illisible ou structure invalide
        """
        pass

    @abstractmethod
    def load_from_dict(self, data: Dict[str, Any]) -> ClientConfig:
        """Construit la configuration depuis un dictionnaire déjà parsé."""
        pass


class IConfigValidator(ABC):
    """Valide la configuration contre les règles du client."""

    @abstractmethod
    def validate(self, config: ClientConfig) -> ValidationResult:
        """
        Valide une config contre TOUTES les règles.
        Retourne TOUTES les erreurs (pas fail-fast).
        """
        pass

    @abstractmethod
    def validate_rule(self, rule_id: str, config: ClientConfig) -> Optional[ConfigIssue]:
        """Valide UNE règle spécifique."""
        pass
