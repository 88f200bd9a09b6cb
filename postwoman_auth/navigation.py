"""
Navigation

Abstraction du routeur de l'application hôte: le client API l'utilise pour
forcer le retour à la connexion, le guard pour ses redirections.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class NavigationEntry:
    """Une entrée d'historique: chemin + état attaché (ex: origine)."""

    path: str
    state: Dict[str, Any] = field(default_factory=dict)


class INavigator(ABC):
    """Routeur minimal."""

    @property
    @abstractmethod
    def current_path(self) -> str:
        pass

    @abstractmethod
    def navigate(self, path: str, replace: bool = False, state: Optional[Dict[str, Any]] = None) -> None:
        """
        Navigue vers path.

        Args:
            path: Chemin cible
            replace: Remplace l'entrée courante au lieu d'empiler
            state: État attaché à la nouvelle entrée
        """
        pass


class InMemoryNavigator(INavigator):
    """
    Navigateur en mémoire (CLI, tests, rendu serveur).

    Example:
        navigator = InMemoryNavigator("/dashboard")
        navigator.navigate("/login", replace=True, state={"from": "/dashboard"})
        navigator.current_state  # {"from": "/dashboard"}
    """

    def __init__(self, initial_path: str = "/"):
        self._history: List[NavigationEntry] = [NavigationEntry(initial_path)]

    @property
    def current_path(self) -> str:
        return self._history[-1].path

    @property
    def current_state(self) -> Dict[str, Any]:
        return dict(self._history[-1].state)

    @property
    def history(self) -> List[NavigationEntry]:
        return list(self._history)

    def navigate(self, path: str, replace: bool = False, state: Optional[Dict[str, Any]] = None) -> None:
        entry = NavigationEntry(path, dict(state or {}))
        if replace:
            self._history[-1] = entry
        else:
            self._history.append(entry)

    def back(self) -> None:
        if len(self._history) > 1:
            self._history.pop()
