"""
LOT 2: Storage - Interfaces

Contrats du stockage clé/valeur durable et du Token Store.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class IKeyValueStorage(ABC):
    """
    Stockage clé/valeur de chaînes, durable entre redémarrages.

    Une écriture est immédiatement visible par les lectures suivantes du
    même processus.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Retourne la valeur ou None si absente."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Écrit une valeur."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Supprime une clé (sans erreur si absente)."""
        pass


class ITokenStore(ABC):
    """
    Persistance du token de session et du snapshot utilisateur.

    Aucune validation: stockage purement mécanique.
    """

    @abstractmethod
    def save_token(self, token: str) -> None:
        pass

    @abstractmethod
    def read_token(self) -> Optional[str]:
        pass

    @abstractmethod
    def clear_token(self) -> None:
        pass

    @abstractmethod
    def save_user(self, user: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def read_user(self) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def clear_user(self) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        """Efface token et snapshot utilisateur."""
        pass
