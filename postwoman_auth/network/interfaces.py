"""
LOT 10: Network - Interfaces

Interfaces pour la gestion des timeouts du transport HTTP.

Limites:
    Timeout connexion 10 secondes max
    Timeout requête 30 secondes max (configurable par endpoint)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TimeoutType(Enum):
    """Types de timeout supportés."""

    CONNECTION = "connection"
    REQUEST = "request"
    READ = "read"
    WRITE = "write"


@dataclass
class TimeoutConfig:
    """Configuration des timeouts (secondes)."""

    connection_timeout: float = 10.0
    request_timeout: float = 30.0
    read_timeout: Optional[float] = None
    write_timeout: Optional[float] = None


class ITimeoutManager(ABC):
    """Interface gestion timeouts."""

    @abstractmethod
    def get_timeout(
        self, timeout_type: TimeoutType, endpoint: Optional[str] = None
    ) -> float:
        """
        Retourne timeout configuré.

        Args:
            timeout_type: Type de timeout
            endpoint: Endpoint optionnel pour config spécifique

        Returns:
            Valeur du timeout en secondes
        """
        pass

    @abstractmethod
    def set_endpoint_timeout(self, endpoint: str, config: TimeoutConfig) -> None:
        """
        Configure timeout spécifique par endpoint.

        Args:
            endpoint: Chemin de l'endpoint (ex: "/admin/stats")
            config: Configuration timeout
        """
        pass

    @abstractmethod
    def validate_timeout(self, timeout_type: TimeoutType, value: float) -> bool:
        """Valide que timeout respecte les limites."""
        pass
