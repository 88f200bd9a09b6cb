"""
POSTWOMAN Auth - Config Validator Implementation
Valide la configuration client avant construction du contexte.
"""

import re
from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from ..network.timeout_manager import TimeoutManager
from .interfaces import ClientConfig, ConfigIssue, IConfigValidator, ValidationResult, ValidationSeverity


_VERSIONED_KEY = re.compile(r"\.v\d+\.")
_LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}


class ConfigValidator(IConfigValidator):
    """Validation de la configuration contre les règles du client."""

    def __init__(self):
        self._validators = {
            "API_URL": self._validate_api_url,
            "API_TLS": self._validate_api_tls,
            "STORAGE_KEYS": self._validate_storage_keys,
            "TIMEOUTS": self._validate_timeouts,
            "ROUTES": self._validate_routes,
        }

    def validate(self, config: ClientConfig) -> ValidationResult:
        """
        Valide une config contre TOUTES les règles.
        Retourne TOUTES les erreurs (pas fail-fast).
        """
        errors = []
        warnings = []

        for rule_id in self._validators:
            issue = self.validate_rule(rule_id, config)
            if issue:
                if issue.severity == ValidationSeverity.BLOCKING:
                    errors.append(issue)
                else:
                    warnings.append(issue)

        return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings, checked_at=datetime.now())

    def validate_rule(self, rule_id: str, config: ClientConfig) -> Optional[ConfigIssue]:
        """Valide UNE règle spécifique."""
        if rule_id not in self._validators:
            return ConfigIssue(
                rule_id=rule_id,
                message=f"Règle inconnue: {rule_id}",
                location="config",
                severity=ValidationSeverity.BLOCKING,
            )

        return self._validators[rule_id](config)

    def _validate_api_url(self, config: ClientConfig) -> Optional[ConfigIssue]:
        """URL du backend absolue en http(s)."""
        url = config.api.base_url
        parsed = urlparse(url)

        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return ConfigIssue(
                rule_id="API_URL",
                message="api.base_url doit être une URL http(s) absolue",
                location="api.base_url",
                value=url,
            )

        return None

    def _validate_api_tls(self, config: ClientConfig) -> Optional[ConfigIssue]:
        """Bearer token en clair hors poste local = avertissement."""
        parsed = urlparse(config.api.base_url)

        if parsed.scheme == "http" and parsed.hostname not in _LOCAL_HOSTS:
            return ConfigIssue(
                rule_id="API_TLS",
                message="Le token transite en clair (http) vers un hôte distant",
                location="api.base_url",
                value=config.api.base_url,
                severity=ValidationSeverity.WARNING,
            )

        return None

    def _validate_storage_keys(self, config: ClientConfig) -> Optional[ConfigIssue]:
        """Clés de stockage versionnées et distinctes."""
        storage = config.storage

        if storage.token_key == storage.user_key:
            return ConfigIssue(
                rule_id="STORAGE_KEYS",
                message="token_key et user_key doivent être distinctes",
                location="storage",
                value=storage.token_key,
            )

        for name in ("token_key", "user_key"):
            value = getattr(storage, name)
            if not _VERSIONED_KEY.search(value):
                return ConfigIssue(
                    rule_id="STORAGE_KEYS",
                    message=f"{name} doit contenir un segment de version (ex: '.v1.')",
                    location=f"storage.{name}",
                    value=value,
                )

        return None

    def _validate_timeouts(self, config: ClientConfig) -> Optional[ConfigIssue]:
        """Timeouts positifs et dans les limites du TimeoutManager."""
        api = config.api

        if not 0 < api.connection_timeout <= TimeoutManager.MAX_CONNECTION_TIMEOUT:
            return ConfigIssue(
                rule_id="TIMEOUTS",
                message=f"connection_timeout doit être dans ]0, {TimeoutManager.MAX_CONNECTION_TIMEOUT}]",
                location="api.connection_timeout",
                value=str(api.connection_timeout),
            )

        if not 0 < api.request_timeout <= TimeoutManager.MAX_REQUEST_TIMEOUT:
            return ConfigIssue(
                rule_id="TIMEOUTS",
                message=f"request_timeout doit être dans ]0, {TimeoutManager.MAX_REQUEST_TIMEOUT}]",
                location="api.request_timeout",
                value=str(api.request_timeout),
            )

        for endpoint, timeout in api.endpoint_timeouts.items():
            if not endpoint.startswith("/") or not 0 < timeout <= TimeoutManager.MAX_REQUEST_TIMEOUT:
                return ConfigIssue(
                    rule_id="TIMEOUTS",
                    message="Timeout endpoint invalide (chemin absolu, ]0, 30])",
                    location=f"api.endpoint_timeouts[{endpoint}]",
                    value=str(timeout),
                )

        return None

    def _validate_routes(self, config: ClientConfig) -> Optional[ConfigIssue]:
        """Chemins de navigation absolus, connexion distincte de la page refus."""
        routes = config.routes

        for name in ("login_path", "unauthorized_path", "home_path"):
            value = getattr(routes, name)
            if not value.startswith("/"):
                return ConfigIssue(
                    rule_id="ROUTES",
                    message=f"{name} doit être un chemin absolu",
                    location=f"routes.{name}",
                    value=value,
                )

        if routes.login_path == routes.unauthorized_path:
            return ConfigIssue(
                rule_id="ROUTES",
                message="login_path et unauthorized_path doivent être distincts",
                location="routes",
                value=routes.login_path,
            )

        return None
