"""
LOT 3: Interfaces Auth

Modèles de session et contrats du Session Manager et du guard.
Toute implémentation DOIT respecter ces interfaces.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..api.errors import ErrorKind
from .roles import Role


class User(BaseModel):
    """
    Utilisateur tel que renvoyé par le serveur.

    Toujours l'objet canonique du serveur: les champs inconnus sont conservés,
    les champs absents de la réponse n'apparaissent pas dans to_dict().
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    is_locked: Optional[bool] = Field(default=None, alias="isLocked")
    profile: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    last_login: Optional[str] = Field(default=None, alias="lastLogin")

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["User"]:
        """Construit un User depuis un dict serveur (None si inexploitable)."""
        if not isinstance(payload, dict):
            return None
        data = dict(payload)
        # certains backends exposent _id
        if "id" not in data and "_id" in data:
            data["id"] = data["_id"]
        if data.get("id") is None:
            return None
        data["id"] = str(data["id"])
        try:
            return cls.model_validate(data)
        except ValueError:
            return None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


class ApiKey(BaseModel):
    """Clé API personnelle (jamais mise en cache)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    id: str
    name: str = ""
    key: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    last_used: Optional[str] = Field(default=None, alias="lastUsed")
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["ApiKey"]:
        if not isinstance(payload, dict):
            return None
        data = dict(payload)
        if "id" not in data and "_id" in data:
            data["id"] = data["_id"]
        if data.get("id") is None:
            return None
        data["id"] = str(data["id"])
        try:
            return cls.model_validate(data)
        except ValueError:
            return None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


@dataclass(frozen=True)
class SessionState:
    """
    Instantané de session observé par l'UI.

    Attributes:
        current_user: Utilisateur connecté (None si aucun)
        is_authenticated: True ssi current_user présent et dernière
            restauration/connexion réussie
        is_loading: Opération en cours ou restauration non terminée
        is_bootstrapping: Restauration initiale non terminée
        last_error: Dernier message d'échec affichable
    """

    current_user: Optional[User] = None
    is_authenticated: bool = False
    is_loading: bool = False
    is_bootstrapping: bool = False
    last_error: Optional[str] = None

    @classmethod
    def initial(cls) -> "SessionState":
        return cls(is_loading=True, is_bootstrapping=True)


@dataclass(frozen=True)
class AuthResult:
    """
    Résultat d'une opération du Session Manager.

    Attributes:
        success: Opération aboutie et appliquée
        data: User, ApiKey, liste... selon l'opération
        message: Message affichable
        error_kind: Catégorie d'échec
        field_errors: Erreurs de saisie par champ (validation locale)
    """

    success: bool
    data: Any = None
    message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    field_errors: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "AuthResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        field_errors: Optional[Dict[str, str]] = None,
    ) -> "AuthResult":
        return cls(success=False, message=message, error_kind=kind, field_errors=dict(field_errors or {}))


StateListener = Callable[[SessionState], None]


class ISessionManager(ABC):
    """
    Interface du Session Manager.

    Seul mutateur de l'état de session; chaque opération commit un unique
    état terminal, sauf si une opération plus récente l'a supplantée.
    """

    @property
    @abstractmethod
    def state(self) -> SessionState:
        pass

    @abstractmethod
    async def bootstrap(self) -> SessionState:
        """Restaure la session depuis le Token Store (silencieux)."""
        pass

    @abstractmethod
    async def refresh(self) -> SessionState:
        """Revalide la session courante auprès du serveur."""
        pass

    @abstractmethod
    async def login(self, identifier: str, password: str) -> AuthResult:
        pass

    @abstractmethod
    async def register(self, fields: Dict[str, Any]) -> AuthResult:
        pass

    @abstractmethod
    async def logout(self) -> None:
        """Déconnexion locale inconditionnelle (appel serveur best-effort)."""
        pass

    @abstractmethod
    async def update_profile(self, fields: Dict[str, Any]) -> AuthResult:
        pass

    @abstractmethod
    async def change_password(self, current_password: str, new_password: str, confirm_password: str) -> AuthResult:
        pass

    @abstractmethod
    async def generate_api_key(self, name: str) -> AuthResult:
        pass

    @abstractmethod
    async def list_api_keys(self) -> AuthResult:
        pass

    @abstractmethod
    async def delete_api_key(self, key_id: str) -> AuthResult:
        pass

    @abstractmethod
    def has_role(self, required: Any) -> bool:
        pass

    @abstractmethod
    def is_admin(self) -> bool:
        pass

    @abstractmethod
    def is_moderator(self) -> bool:
        pass

    @abstractmethod
    def clear_error(self) -> None:
        pass

    @abstractmethod
    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Abonne un listener à chaque état commité.

        Returns:
            Fonction de désinscription
        """
        pass


# ══════════════════════════════════════════════════════════════════════════════
# GUARD
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Policy:
    """
    Politique d'accès d'une vue protégée.

    Attributes:
        required_role: Rôle minimal exigé
        admin_only: Réservé aux admins
        moderator_only: Réservé aux modérateurs et plus
    """

    required_role: Optional[Role] = None
    admin_only: bool = False
    moderator_only: bool = False


class GuardOutcome(Enum):
    """Issue d'une décision de navigation."""

    RENDER = "render"
    LOADING = "loading"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GuardDecision:
    """
    Décision du guard.

    Attributes:
        outcome: RENDER, LOADING ou REDIRECT
        target: Chemin de redirection
        from_location: Origine mémorisée (retour après connexion)
        reason: Motif lisible
    """

    outcome: GuardOutcome
    target: Optional[str] = None
    from_location: Optional[str] = None
    reason: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is GuardOutcome.RENDER
