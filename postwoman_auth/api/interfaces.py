"""
LOT 4: API - Interfaces

Enveloppe de réponse et contrat du client HTTP du backend auth/admin.

Toute opération retourne une ApiResponse quand l'échange HTTP aboutit, ou
lève TransportError sinon.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .errors import ErrorKind


UnauthorizedListener = Callable[[], None]


@dataclass(frozen=True)
class ApiResponse:
    """
    Enveloppe uniforme {success, data, message}.

    Attributes:
        success: Résultat métier annoncé par le serveur
        data: Charge utile (dict le plus souvent)
        message: Message lisible (échec ou confirmation)
        status_code: Statut HTTP
        error_kind: Catégorie d'échec (None si success)
        session_rejected: 401 ayant purgé la session courante (token envoyé
            encore stocké); False pour un 401 arrivé après un changement de token
    """

    success: bool
    data: Any = None
    message: Optional[str] = None
    status_code: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    session_rejected: bool = False

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
        data: Any = None,
    ) -> "ApiResponse":
        return cls(success=False, data=data, message=message, status_code=status_code, error_kind=kind)

    def get(self, key: str, default: Any = None) -> Any:
        """Lit une clé de data (data absent ou non dict → default)."""
        if isinstance(self.data, dict):
            return self.data.get(key, default)
        return default


class IAuthApi(ABC):
    """Contrat du backend d'authentification et d'administration."""

    # Authentification

    @abstractmethod
    async def register(self, user_data: Dict[str, Any]) -> ApiResponse:
        """POST /auth/register → {token, user}"""
        pass

    @abstractmethod
    async def login(self, identifier: str, password: str) -> ApiResponse:
        """POST /auth/login → {token, user}"""
        pass

    @abstractmethod
    async def logout(self) -> ApiResponse:
        """POST /auth/logout"""
        pass

    @abstractmethod
    async def get_current_user(self, session_scoped: bool = True) -> ApiResponse:
        """GET /auth/profile → {user}"""
        pass

    @abstractmethod
    async def update_profile(self, profile_data: Dict[str, Any]) -> ApiResponse:
        """PUT /auth/profile → {user}"""
        pass

    @abstractmethod
    async def change_password(self, current_password: str, new_password: str) -> ApiResponse:
        """POST /auth/change-password"""
        pass

    @abstractmethod
    async def generate_api_key(self, name: str) -> ApiResponse:
        """POST /auth/api-keys → {apiKey}"""
        pass

    @abstractmethod
    async def get_api_keys(self) -> ApiResponse:
        """GET /auth/api-keys → {apiKeys}"""
        pass

    @abstractmethod
    async def delete_api_key(self, key_id: str) -> ApiResponse:
        """DELETE /auth/api-keys/:id"""
        pass

    # Administration

    @abstractmethod
    async def get_users(self, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """GET /admin/users → {users, pagination}"""
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> ApiResponse:
        """GET /admin/users/:id → {user}"""
        pass

    @abstractmethod
    async def update_user_role(self, user_id: str, role: str) -> ApiResponse:
        """PUT /admin/users/:id/role → {user}"""
        pass

    @abstractmethod
    async def update_user_status(self, user_id: str, is_active: bool) -> ApiResponse:
        """PUT /admin/users/:id/status → {user}"""
        pass

    @abstractmethod
    async def unlock_user(self, user_id: str) -> ApiResponse:
        """POST /admin/users/:id/unlock"""
        pass

    @abstractmethod
    async def delete_user(self, user_id: str) -> ApiResponse:
        """DELETE /admin/users/:id"""
        pass

    @abstractmethod
    async def get_system_stats(self) -> ApiResponse:
        """GET /admin/stats → {users, roles, activity}"""
        pass

    @abstractmethod
    async def create_admin(self, admin_data: Dict[str, Any]) -> ApiResponse:
        """POST /admin/create-admin → {user}"""
        pass

    @abstractmethod
    async def bulk_actions(self, action: str, user_ids: List[str]) -> ApiResponse:
        """POST /admin/bulk-actions"""
        pass

    # Session

    @abstractmethod
    def add_unauthorized_listener(self, listener: UnauthorizedListener) -> Callable[[], None]:
        """
        Enregistre un listener appelé sur 401 d'un appel authentifié.

        Returns:
            Fonction de désinscription
        """
        pass
