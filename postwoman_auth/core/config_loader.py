"""
POSTWOMAN Auth - Config Loader Implementation
Charge la configuration client depuis un fichier YAML.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from .interfaces import ClientConfig, IConfigLoader


class ConfigIntegrityError(Exception):
    """Erreur d'intégrité de configuration."""

    pass


class ConfigLoader(IConfigLoader):
    """
    Chargement de la configuration depuis YAML.

    La variable d'environnement POSTWOMAN_API_URL remplace api.base_url.
    """

    ENV_API_URL = "POSTWOMAN_API_URL"

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self._environ = environ if environ is not None else os.environ

    async def load(self, path: Optional[str] = None) -> ClientConfig:
        """
        Charge la configuration.

        Args:
            path: Fichier YAML (None = valeurs par défaut)

        Returns:
            ClientConfig validée par pydantic

        Raises:
            ConfigIntegrityError: Si fichier inexistant ou structure invalide
        """
        if path is None:
            return self.load_from_dict({})

        config_file = Path(path)

        if not config_file.exists():
            raise ConfigIntegrityError(f"Configuration non trouvée: {config_file}")

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigIntegrityError(f"Erreur de parsing YAML: {e}")
        except OSError as e:
            raise ConfigIntegrityError(f"Erreur de lecture fichier: {e}")

        if data is None:
            data = {}

        if not isinstance(data, dict):
            raise ConfigIntegrityError("Configuration doit être un objet YAML")

        return self.load_from_dict(data)

    def load_from_dict(self, data: Dict[str, Any]) -> ClientConfig:
        """
        Construit la configuration depuis un dictionnaire.

        Raises:
            ConfigIntegrityError: Si structure invalide
        """
        merged = dict(data)
        api_url = self._environ.get(self.ENV_API_URL)
        if api_url:
            api_section = dict(merged.get("api") or {})
            api_section["base_url"] = api_url
            merged["api"] = api_section

        try:
            return ClientConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigIntegrityError(f"Configuration invalide: {e}")
