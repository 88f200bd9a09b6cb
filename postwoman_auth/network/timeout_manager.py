"""
LOT 10: Network - Timeout Manager

Gestion centralisée des timeouts du client API.
"""

from typing import Dict, Optional

import httpx

from .interfaces import ITimeoutManager, TimeoutConfig, TimeoutType


class InvalidTimeoutError(Exception):
    """Configuration timeout invalide."""

    pass


class TimeoutManager(ITimeoutManager):
    """
    Gestion centralisée des timeouts.

    Un endpoint sans configuration spécifique utilise la configuration par
    défaut (10s connexion, 30s requête).

    Example:
        manager = TimeoutManager()
        manager.set_endpoint_timeout("/admin/stats", TimeoutConfig(request_timeout=5.0))
        timeout = manager.httpx_timeout("/admin/stats")
    """

    MAX_CONNECTION_TIMEOUT: float = 10.0
    MAX_REQUEST_TIMEOUT: float = 30.0
    MAX_READ_TIMEOUT: float = 60.0
    MAX_WRITE_TIMEOUT: float = 60.0

    def __init__(self, default_config: Optional[TimeoutConfig] = None) -> None:
        """
        Args:
            default_config: Configuration par défaut (optionnel)

        Raises:
            InvalidTimeoutError: Si configuration par défaut invalide
        """
        self._default = default_config or TimeoutConfig()
        self._endpoint_configs: Dict[str, TimeoutConfig] = {}

        self._validate_config(self._default)

    def _validate_config(self, config: TimeoutConfig) -> None:
        """
        Valide une configuration complète.

        Raises:
            InvalidTimeoutError: Si configuration invalide
        """
        if config.connection_timeout <= 0:
            raise InvalidTimeoutError("connection_timeout must be positive")

        if config.connection_timeout > self.MAX_CONNECTION_TIMEOUT:
            raise InvalidTimeoutError(
                f"connection_timeout ({config.connection_timeout}s) exceeds "
                f"maximum ({self.MAX_CONNECTION_TIMEOUT}s)"
            )

        if config.request_timeout <= 0:
            raise InvalidTimeoutError("request_timeout must be positive")

        if config.request_timeout > self.MAX_REQUEST_TIMEOUT:
            raise InvalidTimeoutError(
                f"request_timeout ({config.request_timeout}s) exceeds "
                f"maximum ({self.MAX_REQUEST_TIMEOUT}s)"
            )

        if config.read_timeout is not None:
            if config.read_timeout <= 0:
                raise InvalidTimeoutError("read_timeout must be positive")
            if config.read_timeout > self.MAX_READ_TIMEOUT:
                raise InvalidTimeoutError(
                    f"read_timeout ({config.read_timeout}s) exceeds "
                    f"maximum ({self.MAX_READ_TIMEOUT}s)"
                )

        if config.write_timeout is not None:
            if config.write_timeout <= 0:
                raise InvalidTimeoutError("write_timeout must be positive")
            if config.write_timeout > self.MAX_WRITE_TIMEOUT:
                raise InvalidTimeoutError(
                    f"write_timeout ({config.write_timeout}s) exceeds "
                    f"maximum ({self.MAX_WRITE_TIMEOUT}s)"
                )

    def _config_for(self, endpoint: Optional[str]) -> TimeoutConfig:
        if endpoint and endpoint in self._endpoint_configs:
            return self._endpoint_configs[endpoint]
        return self._default

    def get_timeout(
        self, timeout_type: TimeoutType, endpoint: Optional[str] = None
    ) -> float:
        """
        Retourne timeout configuré (spécifique à l'endpoint ou défaut).

        Args:
            timeout_type: Type de timeout demandé
            endpoint: Endpoint pour config spécifique (optionnel)

        Returns:
            Valeur du timeout en secondes
        """
        config = self._config_for(endpoint)

        if timeout_type == TimeoutType.CONNECTION:
            return config.connection_timeout
        elif timeout_type == TimeoutType.REQUEST:
            return config.request_timeout
        elif timeout_type == TimeoutType.READ:
            return config.read_timeout or config.request_timeout
        elif timeout_type == TimeoutType.WRITE:
            return config.write_timeout or config.request_timeout
        else:
            raise ValueError(f"Unknown timeout type: {timeout_type}")

    def httpx_timeout(self, endpoint: Optional[str] = None) -> httpx.Timeout:
        """
        Construit le httpx.Timeout d'un endpoint.

        Le timeout de requête sert de borne par défaut, la connexion a sa
        propre limite.
        """
        return httpx.Timeout(
            self.get_timeout(TimeoutType.REQUEST, endpoint),
            connect=self.get_timeout(TimeoutType.CONNECTION, endpoint),
            read=self.get_timeout(TimeoutType.READ, endpoint),
            write=self.get_timeout(TimeoutType.WRITE, endpoint),
        )

    def set_endpoint_timeout(self, endpoint: str, config: TimeoutConfig) -> None:
        """
        Configure timeout spécifique par endpoint.

        Raises:
            InvalidTimeoutError: Si configuration invalide
            ValueError: Si endpoint vide
        """
        if not endpoint or not endpoint.strip():
            raise ValueError("endpoint cannot be empty")

        self._validate_config(config)
        self._endpoint_configs[endpoint] = config

    def validate_timeout(self, timeout_type: TimeoutType, value: float) -> bool:
        """
        Valide que timeout respecte les limites.

        Returns:
            True si valide, False sinon
        """
        if value <= 0:
            return False

        if timeout_type == TimeoutType.CONNECTION:
            return value <= self.MAX_CONNECTION_TIMEOUT
        elif timeout_type == TimeoutType.REQUEST:
            return value <= self.MAX_REQUEST_TIMEOUT
        elif timeout_type == TimeoutType.READ:
            return value <= self.MAX_READ_TIMEOUT
        elif timeout_type == TimeoutType.WRITE:
            return value <= self.MAX_WRITE_TIMEOUT
        else:
            return False

    def get_default_config(self) -> TimeoutConfig:
        """Retourne la configuration par défaut."""
        return self._default
