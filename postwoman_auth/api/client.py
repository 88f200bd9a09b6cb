"""
LOT 4: API - Client

Client HTTP du backend auth/admin (httpx.AsyncClient).

Comportements transverses:
    - chaque requête reçoit "Authorization: Bearer <token>" si un token est stocké
    - un 401 sur un appel authentifié vide le Token Store, prévient les
      listeners et renvoie vers la connexion (sauf si déjà dessus)
"""

from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..logging import StructuredLogger
from ..navigation import INavigator
from ..network import TimeoutManager
from ..storage import ITokenStore, StorageError
from .errors import ErrorKind, TransportError, classify_status
from .interfaces import ApiResponse, IAuthApi, UnauthorizedListener


_NOT_JSON = object()


class ApiClient(IAuthApi):
    """
    Client du backend d'authentification.

    Example:
        client = ApiClient("https://host/api", token_store)
        response = await client.login("admin@postman-mvp.local", "admin123")
        if response.success:
            token = response.get("token")
        await client.aclose()
    """

    def __init__(
        self,
        base_url: str,
        token_store: ITokenStore,
        timeout_manager: Optional[TimeoutManager] = None,
        navigator: Optional[INavigator] = None,
        login_path: str = "/login",
        logger: Optional[StructuredLogger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: URL de base de l'API (ex: https://host/api)
            token_store: Source du bearer token
            timeout_manager: Timeouts par endpoint (défaut 10s/30s)
            navigator: Routeur pour le renvoi vers la connexion
            login_path: Chemin de la vue de connexion
            logger: Logger structuré
            transport: Transport httpx (tests: httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._token_store = token_store
        self._timeouts = timeout_manager or TimeoutManager()
        self._navigator = navigator
        self._login_path = login_path
        self._logger = logger or StructuredLogger("postwoman.api")
        self._listeners: List[UnauthorizedListener] = []
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            event_hooks={"request": [self._attach_token]},
            transport=transport,
        )

    async def aclose(self) -> None:
        """Ferme le client HTTP."""
        await self._client.aclose()

    # ══════════════════════════════════════════════════════════════════════
    # TRANSPORT
    # ══════════════════════════════════════════════════════════════════════

    async def _attach_token(self, request: httpx.Request) -> None:
        """Ajoute le bearer token courant (lu à chaque requête, absent si illisible)."""
        try:
            token = self._token_store.read_token()
        except StorageError as e:
            self._logger.warn("Token Store unreadable, request sent without token", error=str(e))
            return
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    def auth_headers(self) -> Dict[str, str]:
        """En-têtes d'authentification pour des requêtes manuelles."""
        token = self._token_store.read_token()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def add_unauthorized_listener(self, listener: UnauthorizedListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        session_scoped: bool = True,
        endpoint: Optional[str] = None,
    ) -> ApiResponse:
        """
        Exécute une requête et la convertit en ApiResponse.

        Args:
            session_scoped: False pour login/register/bootstrap (un 401 y
                signifie credentials refusés, pas session expirée)
            endpoint: Clé de configuration timeout (défaut: path)

        Raises:
            TransportError: Réseau, timeout ou corps 2xx illisible
        """
        timeout = self._timeouts.httpx_timeout(endpoint or path)

        try:
            response = await self._client.request(method, path, json=json, params=params, timeout=timeout)
        except httpx.TimeoutException as e:
            self._logger.warn("Request timed out", method=method, path=path)
            raise TransportError(f"Request timed out: {method} {path}", cause=e)
        except httpx.HTTPError as e:
            self._logger.warn("Network error", method=method, path=path, error=str(e))
            raise TransportError(f"Network error: {e}", cause=e)

        self._logger.debug("Response received", method=method, path=path, status=response.status_code)

        envelope = self._to_envelope(response, method, path)

        if response.status_code == 401 and session_scoped:
            sent = response.request.headers.get("Authorization")
            if self._handle_unauthorized(path, sent):
                envelope = replace(envelope, session_rejected=True)

        return envelope

    def _to_envelope(self, response: httpx.Response, method: str, path: str) -> ApiResponse:
        """Convertit une réponse HTTP en enveloppe {success, data, message}."""
        status = response.status_code
        body: Any = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = _NOT_JSON

        if response.is_success:
            if body is None:
                return ApiResponse(success=True, status_code=status)
            if body is _NOT_JSON or not isinstance(body, dict):
                raise TransportError(f"Malformed response body: {method} {path}")

            success = body.get("success")
            if not isinstance(success, bool):
                return ApiResponse.failure(
                    ErrorKind.SERVER_ERROR, "Malformed response envelope", status_code=status
                )

            return ApiResponse(
                success=success,
                data=body.get("data"),
                message=body.get("message"),
                status_code=status,
                error_kind=None if success else ErrorKind.SERVER_ERROR,
            )

        message = None
        data = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            data = body.get("data")

        self._logger.info("Request failed", method=method, path=path, status=status)
        return ApiResponse.failure(
            classify_status(status),
            message or f"HTTP {status}",
            status_code=status,
            data=data,
        )

    def _handle_unauthorized(self, path: str, sent_authorization: Optional[str]) -> bool:
        """
        Session refusée par le serveur: purge locale + renvoi connexion.

        Ignoré si le token envoyé n'est plus celui stocké (réponse d'une
        session déjà remplacée).

        Returns:
            True si la session courante a été purgée
        """
        try:
            current = self.auth_headers().get("Authorization")
        except StorageError as e:
            self._logger.warn("Token Store unreadable on unauthorized response", path=path, error=str(e))
            current = sent_authorization

        if current != sent_authorization:
            self._logger.info("Unauthorized response for a replaced token ignored", path=path)
            return False

        try:
            self._token_store.clear()
        except StorageError as e:
            self._logger.error("Token Store could not be cleared", path=path, error=str(e))
        self._logger.warn("Unauthorized response, session cleared", path=path)

        for listener in list(self._listeners):
            listener()

        if self._navigator is not None and self._navigator.current_path != self._login_path:
            self._navigator.navigate(self._login_path, replace=True)

        return True

    @staticmethod
    def format_error(error: BaseException) -> str:
        """Message lisible pour une exception du client."""
        message = getattr(error, "message", None) or str(error)
        return message or "An unexpected error occurred"

    # ══════════════════════════════════════════════════════════════════════
    # AUTHENTIFICATION
    # ══════════════════════════════════════════════════════════════════════

    async def register(self, user_data: Dict[str, Any]) -> ApiResponse:
        return await self._request("POST", "/auth/register", json=user_data, session_scoped=False)

    async def login(self, identifier: str, password: str) -> ApiResponse:
        return await self._request(
            "POST",
            "/auth/login",
            json={"identifier": identifier, "password": password},
            session_scoped=False,
        )

    async def logout(self) -> ApiResponse:
        return await self._request("POST", "/auth/logout")

    async def get_current_user(self, session_scoped: bool = True) -> ApiResponse:
        return await self._request("GET", "/auth/profile", session_scoped=session_scoped)

    async def update_profile(self, profile_data: Dict[str, Any]) -> ApiResponse:
        return await self._request("PUT", "/auth/profile", json=profile_data)

    async def change_password(self, current_password: str, new_password: str) -> ApiResponse:
        return await self._request(
            "POST",
            "/auth/change-password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    async def generate_api_key(self, name: str) -> ApiResponse:
        return await self._request("POST", "/auth/api-keys", json={"name": name})

    async def get_api_keys(self) -> ApiResponse:
        return await self._request("GET", "/auth/api-keys")

    async def delete_api_key(self, key_id: str) -> ApiResponse:
        response = await self._request(
            "DELETE", f"/auth/api-keys/{key_id}", endpoint="/auth/api-keys/:id"
        )
        return self._with_default_message(response, "API key deleted successfully")

    # ══════════════════════════════════════════════════════════════════════
    # ADMINISTRATION
    # ══════════════════════════════════════════════════════════════════════

    async def get_users(self, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        # filtres vides non transmis
        query = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
        return await self._request("GET", "/admin/users", params=query or None)

    async def get_user_by_id(self, user_id: str) -> ApiResponse:
        return await self._request("GET", f"/admin/users/{user_id}", endpoint="/admin/users/:id")

    async def update_user_role(self, user_id: str, role: str) -> ApiResponse:
        return await self._request(
            "PUT", f"/admin/users/{user_id}/role", json={"role": role}, endpoint="/admin/users/:id/role"
        )

    async def update_user_status(self, user_id: str, is_active: bool) -> ApiResponse:
        return await self._request(
            "PUT",
            f"/admin/users/{user_id}/status",
            json={"isActive": is_active},
            endpoint="/admin/users/:id/status",
        )

    async def unlock_user(self, user_id: str) -> ApiResponse:
        return await self._request(
            "POST", f"/admin/users/{user_id}/unlock", endpoint="/admin/users/:id/unlock"
        )

    async def delete_user(self, user_id: str) -> ApiResponse:
        response = await self._request("DELETE", f"/admin/users/{user_id}", endpoint="/admin/users/:id")
        return self._with_default_message(response, "User deleted successfully")

    async def get_system_stats(self) -> ApiResponse:
        return await self._request("GET", "/admin/stats")

    async def create_admin(self, admin_data: Dict[str, Any]) -> ApiResponse:
        return await self._request("POST", "/admin/create-admin", json=admin_data)

    async def bulk_actions(self, action: str, user_ids: List[str]) -> ApiResponse:
        return await self._request(
            "POST", "/admin/bulk-actions", json={"action": action, "userIds": list(user_ids)}
        )

    @staticmethod
    def _with_default_message(response: ApiResponse, message: str) -> ApiResponse:
        if response.success and not response.message:
            return ApiResponse(
                success=True,
                data=response.data,
                message=message,
                status_code=response.status_code,
            )
        return response
