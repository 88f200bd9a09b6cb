"""
LOT 3: Session Manager Implementation

Seul mutateur de l'état de session côté client.

Chaque opération:
    1. ouvre un ticket (génération de sa famille + époque de session) et
       efface last_error; le ticket compte dans is_loading jusqu'à sa fermeture
    2. appelle le client API
    3. commit UN état terminal si le ticket est encore courant, sinon rien
       (résultat SUPERSEDED, aucune écriture d'état ni de Token Store)

Le ticket est fermé même si l'opération lève (Token Store, listener).

Familles:
    session   bootstrap, refresh, login, register, logout, purge sur 401
    profile   update_profile
    password  change_password (époque seule)
    api_keys  clés API (époque seule)

L'époque change à chaque changement d'identité (connexion, déconnexion,
purge); une réponse de profil, mot de passe ou clé API issue d'une autre
identité est écartée.
"""

from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Set

from ..api import ApiResponse, ErrorKind, IAuthApi, TransportError, ValidationFailed
from ..core.interfaces import SessionSettings
from ..logging import ContextualLogger, StructuredLogger
from ..storage import ITokenStore, StorageError
from . import roles
from .interfaces import ApiKey, AuthResult, ISessionManager, SessionState, StateListener, User
from .token_inspector import TokenInspector
from .validators import (
    registration_payload,
    validate_api_key_name,
    validate_login,
    validate_password_change,
    validate_registration,
)


SESSION = "session"
PROFILE = "profile"
PASSWORD = "password"
API_KEYS = "api_keys"

# familles dont le succès n'écrit rien: seule l'époque compte
_EPOCH_ONLY = {PASSWORD, API_KEYS}

SUPERSEDED_MESSAGE = "Superseded by a newer operation"
EXPIRED_MESSAGE = "Your session has expired. Please sign in again"
NOT_AUTHENTICATED_MESSAGE = "You must be signed in"
MALFORMED_MESSAGE = "Malformed response envelope"
STORAGE_MESSAGE = "Unable to access the local session store"


@dataclass(frozen=True)
class _Ticket:
    family: str
    generation: int
    epoch: int


class SessionManager(ISessionManager):
    """
    Gestionnaire de session utilisateur.

    Example:
        manager = SessionManager(api_client, token_store)
        await manager.bootstrap()
        result = await manager.login("admin@postman-mvp.local", "admin123")
        if result.success and manager.is_admin():
            ...
    """

    def __init__(
        self,
        api: IAuthApi,
        token_store: ITokenStore,
        settings: Optional[SessionSettings] = None,
        token_inspector: Optional[TokenInspector] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            api: Client du backend
            token_store: Persistance token + utilisateur
            settings: Vérification d'expiration, longueur mot de passe
            token_inspector: Lecture d'expiration du token
            logger: Logger structuré
        """
        self._api = api
        self._token_store = token_store
        self._settings = settings or SessionSettings()
        self._inspector = token_inspector or TokenInspector()
        self._logger = logger or StructuredLogger("postwoman.session")

        self._state = SessionState.initial()
        self._bootstrapping = True
        self._open: Set[_Ticket] = set()
        self._generations: Dict[str, int] = {SESSION: 0, PROFILE: 0, PASSWORD: 0, API_KEYS: 0}
        self._epoch = 0
        self._listeners: List[StateListener] = []

        self._detach_api = api.add_unauthorized_listener(self._on_unauthorized)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def epoch(self) -> int:
        return self._epoch

    def close(self) -> None:
        """Détache le manager du client API."""
        self._detach_api()

    # ══════════════════════════════════════════════════════════════════════
    # ÉTAT
    # ══════════════════════════════════════════════════════════════════════

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear_error(self) -> None:
        self._publish(last_error=None)

    def _publish(self, **changes: Any) -> None:
        """Applique des changements et notifie si l'état a changé."""
        state = replace(self._state, **changes)
        state = replace(
            state,
            is_bootstrapping=self._bootstrapping,
            is_loading=self._bootstrapping or bool(self._open),
        )
        if state == self._state:
            return

        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _identity(self, user: Optional[User]) -> Dict[str, Any]:
        """Changements d'identité; l'époque avance si l'utilisateur change."""
        current = self._state.current_user
        if (current.id if current else None) != (user.id if user else None):
            self._epoch += 1
        return {"current_user": user, "is_authenticated": user is not None}

    @contextmanager
    def _operation(self, family: str) -> Iterator[_Ticket]:
        """Ouvre un ticket; il est refermé sans changement si le corps lève."""
        self._generations[family] += 1
        ticket = _Ticket(family, self._generations[family], self._epoch)
        self._open.add(ticket)
        self._publish(last_error=None)
        try:
            yield ticket
        finally:
            if ticket in self._open:
                self._end(ticket)

    def _end(self, ticket: _Ticket, **changes: Any) -> None:
        self._open.discard(ticket)
        self._publish(**changes)

    def _is_current(self, ticket: _Ticket) -> bool:
        if ticket.family != SESSION and ticket.epoch != self._epoch:
            return False
        if ticket.family in _EPOCH_ONLY:
            return True
        return self._generations[ticket.family] == ticket.generation

    def _teardown(self) -> None:
        """Purge locale: session vide, opérations de session en cours écartées."""
        self._generations[SESSION] += 1
        self._publish(last_error=None, **self._identity(None))

    def _on_unauthorized(self) -> None:
        # le client API a déjà vidé le Token Store
        self._logger.warn("Session rejected by server, signing out")
        self._teardown()

    # ══════════════════════════════════════════════════════════════════════
    # TOKEN STORE
    # ══════════════════════════════════════════════════════════════════════

    def _discard_store(self, log: ContextualLogger) -> None:
        """Vide le Token Store; un échec est journalisé, l'état mémoire fait foi."""
        try:
            self._token_store.clear()
        except StorageError as e:
            log.error("Token Store could not be cleared", error=str(e))

    def _cache_user(self, user: User, log: ContextualLogger) -> None:
        """Met à jour le snapshot utilisateur (cache, non bloquant)."""
        try:
            self._token_store.save_user(user.to_dict())
        except StorageError as e:
            log.warn("User snapshot not cached", error=str(e))

    def _cached_user_id(self) -> Optional[str]:
        try:
            snapshot = self._token_store.read_user()
        except StorageError:
            return None
        return str(snapshot["id"]) if snapshot and snapshot.get("id") is not None else None

    # ══════════════════════════════════════════════════════════════════════
    # OUTILS
    # ══════════════════════════════════════════════════════════════════════

    async def _call(self, operation: Callable[..., Awaitable[ApiResponse]], *args: Any, **kwargs: Any) -> ApiResponse:
        """Appel API; un échec de transport devient une enveloppe TRANSPORT."""
        try:
            return await operation(*args, **kwargs)
        except TransportError as e:
            return ApiResponse.failure(ErrorKind.TRANSPORT, e.message)

    def _fail(
        self, ticket: _Ticket, response: ApiResponse, default_message: str, log: ContextualLogger
    ) -> AuthResult:
        message = response.message or default_message
        kind = response.error_kind or ErrorKind.SERVER_ERROR
        log.info("Operation failed", error_kind=kind.value, status=response.status_code)
        self._end(ticket, last_error=message)
        return AuthResult.fail(kind, message)

    def _settle_stale(self, ticket: _Ticket, response: ApiResponse, log: ContextualLogger) -> Optional[AuthResult]:
        """
        Résultat à retourner sans rien écrire, ou None si le ticket est courant.
        """
        if response.session_rejected and ticket.family != SESSION:
            # purge déjà appliquée par _on_unauthorized
            self._end(ticket)
            return AuthResult.fail(ErrorKind.AUTH_FAILURE, response.message or EXPIRED_MESSAGE)

        if not self._is_current(ticket):
            log.info("Response superseded", family=ticket.family)
            self._end(ticket)
            return AuthResult.fail(ErrorKind.SUPERSEDED, SUPERSEDED_MESSAGE)

        return None

    def _require_session(self, log: ContextualLogger) -> Optional[AuthResult]:
        """Refus local si pas de session ou token manifestement expiré."""
        if not self._state.is_authenticated:
            return AuthResult.fail(ErrorKind.AUTH_FAILURE, NOT_AUTHENTICATED_MESSAGE)

        try:
            token = self._token_store.read_token()
        except StorageError as e:
            log.error("Token Store unreadable", error=str(e))
            return AuthResult.fail(ErrorKind.STORAGE, STORAGE_MESSAGE)

        if self._settings.check_token_expiry and self._inspector.is_known_expired(token):
            log.info("Stored token expired, signing out locally")
            self._discard_store(log)
            self._teardown()
            return AuthResult.fail(ErrorKind.AUTH_FAILURE, EXPIRED_MESSAGE)

        return None

    @staticmethod
    def _validation_failure(errors: Dict[str, str]) -> AuthResult:
        failure = ValidationFailed(errors)
        return AuthResult.fail(failure.kind, failure.message, failure.field_errors)

    # ══════════════════════════════════════════════════════════════════════
    # SESSION
    # ══════════════════════════════════════════════════════════════════════

    async def bootstrap(self) -> SessionState:
        """
        Restauration initiale, une seule fois au démarrage.

        Échec silencieux: une restauration ratée équivaut à "jamais connecté".
        """
        try:
            await self._restore("bootstrap")
        finally:
            self._bootstrapping = False
            self._publish()
        return self._state

    async def refresh(self) -> SessionState:
        """Même transition que bootstrap, sans l'indicateur de démarrage."""
        await self._restore("refresh")
        return self._state

    async def _restore(self, operation: str) -> None:
        log = self._logger.with_context(operation=operation)
        with self._operation(SESSION) as ticket:
            try:
                token = self._token_store.read_token()
            except StorageError as e:
                log.warn("Token Store unreadable, session cleared", error=str(e))
                self._discard_store(log)
                self._end(ticket, **self._identity(None))
                return

            if not token:
                self._discard_store(log)
                log.debug("No stored token")
                self._end(ticket, **self._identity(None))
                return

            if self._settings.check_token_expiry and self._inspector.is_known_expired(token):
                log.info("Stored token expired, session cleared", cached_user_id=self._cached_user_id())
                self._discard_store(log)
                self._end(ticket, **self._identity(None))
                return

            response = await self._call(self._api.get_current_user, session_scoped=False)

            if not self._is_current(ticket):
                log.info("Response superseded", family=SESSION)
                self._end(ticket)
                return

            user = User.from_payload(response.get("user")) if response.success else None
            if user is None:
                log.info(
                    "Session restore failed, store cleared",
                    error_kind=(response.error_kind or ErrorKind.SERVER_ERROR).value,
                    status=response.status_code,
                    cached_user_id=self._cached_user_id(),
                )
                self._discard_store(log)
                self._end(ticket, **self._identity(None))
                return

            self._cache_user(user, log)
            log.info("Session restored", user_id=user.id)
            self._end(ticket, **self._identity(user))

    async def login(self, identifier: str, password: str) -> AuthResult:
        errors = validate_login(identifier, password)
        if errors:
            return self._validation_failure(errors)

        log = self._logger.with_context(operation="login")
        with self._operation(SESSION) as ticket:
            response = await self._call(self._api.login, identifier, password)
            return self._sign_in(ticket, response, "Login failed", log)

    async def register(self, fields: Dict[str, Any]) -> AuthResult:
        errors = validate_registration(fields, self._settings.min_password_length)
        if errors:
            return self._validation_failure(errors)

        log = self._logger.with_context(operation="register")
        with self._operation(SESSION) as ticket:
            response = await self._call(self._api.register, registration_payload(fields))
            return self._sign_in(ticket, response, "Registration failed", log)

    def _sign_in(self, ticket: _Ticket, response: ApiResponse, default_message: str, log: ContextualLogger) -> AuthResult:
        """Commit commun login/register: token + utilisateur, ou rien."""
        if not self._is_current(ticket):
            log.info("Response superseded", family=SESSION)
            self._end(ticket)
            return AuthResult.fail(ErrorKind.SUPERSEDED, SUPERSEDED_MESSAGE)

        if not response.success:
            return self._fail(ticket, response, default_message, log)

        token = response.get("token")
        user = User.from_payload(response.get("user"))
        if not isinstance(token, str) or not token or user is None:
            log.warn("Sign-in response without token or user")
            self._end(ticket, last_error=MALFORMED_MESSAGE)
            return AuthResult.fail(ErrorKind.SERVER_ERROR, MALFORMED_MESSAGE)

        try:
            self._token_store.save_token(token)
            self._token_store.save_user(user.to_dict())
        except StorageError as e:
            log.error("Session could not be persisted, sign-in rolled back", error=str(e))
            self._discard_store(log)
            self._end(ticket, last_error=STORAGE_MESSAGE)
            return AuthResult.fail(ErrorKind.STORAGE, STORAGE_MESSAGE)

        log.info("Signed in", user_id=user.id, role=user.role)
        self._end(ticket, **self._identity(user))
        return AuthResult.ok(user, response.message)

    async def logout(self) -> None:
        """
        Déconnexion: appel serveur best-effort puis purge inconditionnelle.

        Une connexion lancée avant la déconnexion est écartée; une connexion
        lancée pendant reste valide si elle se termine après.
        """
        log = self._logger.with_context(operation="logout")
        with self._operation(SESSION) as ticket:
            try:
                response = await self._call(self._api.logout)
                if not response.success:
                    log.warn(
                        "Logout request failed, clearing local session anyway",
                        error_kind=(response.error_kind or ErrorKind.SERVER_ERROR).value,
                    )
            finally:
                self._discard_store(log)
                log.info("Signed out")
                self._end(ticket, last_error=None, **self._identity(None))

    # ══════════════════════════════════════════════════════════════════════
    # PROFIL
    # ══════════════════════════════════════════════════════════════════════

    async def update_profile(self, fields: Dict[str, Any]) -> AuthResult:
        log = self._logger.with_context(operation="update_profile")
        refused = self._require_session(log)
        if refused:
            return refused

        with self._operation(PROFILE) as ticket:
            response = await self._call(self._api.update_profile, dict(fields))

            stale = self._settle_stale(ticket, response, log)
            if stale:
                return stale
            if not response.success:
                return self._fail(ticket, response, "Profile update failed", log)

            user = User.from_payload(response.get("user"))
            if user is None:
                self._end(ticket, last_error=MALFORMED_MESSAGE)
                return AuthResult.fail(ErrorKind.SERVER_ERROR, MALFORMED_MESSAGE)

            # objet serveur tel quel, sans fusion locale
            self._cache_user(user, log)
            self._end(ticket, current_user=user)
            return AuthResult.ok(user, response.message)

    async def change_password(self, current_password: str, new_password: str, confirm_password: str) -> AuthResult:
        errors = validate_password_change(
            current_password, new_password, confirm_password, self._settings.min_password_length
        )
        if errors:
            return self._validation_failure(errors)

        log = self._logger.with_context(operation="change_password")
        refused = self._require_session(log)
        if refused:
            return refused

        with self._operation(PASSWORD) as ticket:
            response = await self._call(self._api.change_password, current_password, new_password)

            stale = self._settle_stale(ticket, response, log)
            if stale:
                return stale
            if not response.success:
                return self._fail(ticket, response, "Password change failed", log)

            log.info("Password changed")
            self._end(ticket)
            return AuthResult.ok(message=response.message or "Password changed successfully")

    # ══════════════════════════════════════════════════════════════════════
    # CLÉS API
    # ══════════════════════════════════════════════════════════════════════

    async def generate_api_key(self, name: str) -> AuthResult:
        errors = validate_api_key_name(name)
        if errors:
            return self._validation_failure(errors)

        log = self._logger.with_context(operation="generate_api_key")
        refused = self._require_session(log)
        if refused:
            return refused

        with self._operation(API_KEYS) as ticket:
            response = await self._call(self._api.generate_api_key, name.strip())

            stale = self._settle_stale(ticket, response, log)
            if stale:
                return stale
            if not response.success:
                return self._fail(ticket, response, "API key generation failed", log)

            api_key = ApiKey.from_payload(response.get("apiKey"))
            if api_key is None:
                self._end(ticket, last_error=MALFORMED_MESSAGE)
                return AuthResult.fail(ErrorKind.SERVER_ERROR, MALFORMED_MESSAGE)

            log.info("API key generated", item_id=api_key.id)
            self._end(ticket)
            return AuthResult.ok(api_key, response.message)

    async def list_api_keys(self) -> AuthResult:
        log = self._logger.with_context(operation="list_api_keys")
        refused = self._require_session(log)
        if refused:
            return refused

        with self._operation(API_KEYS) as ticket:
            response = await self._call(self._api.get_api_keys)

            stale = self._settle_stale(ticket, response, log)
            if stale:
                return stale
            if not response.success:
                return self._fail(ticket, response, "Failed to load API keys", log)

            raw_keys = response.get("apiKeys") or []
            keys = [k for k in (ApiKey.from_payload(item) for item in raw_keys) if k is not None]
            self._end(ticket)
            return AuthResult.ok(keys, response.message)

    async def delete_api_key(self, key_id: str) -> AuthResult:
        log = self._logger.with_context(operation="delete_api_key")
        refused = self._require_session(log)
        if refused:
            return refused

        with self._operation(API_KEYS) as ticket:
            response = await self._call(self._api.delete_api_key, key_id)

            stale = self._settle_stale(ticket, response, log)
            if stale:
                return stale
            if not response.success:
                return self._fail(ticket, response, "API key deletion failed", log)

            log.info("API key deleted", item_id=key_id)
            self._end(ticket)
            return AuthResult.ok(message=response.message)

    # ══════════════════════════════════════════════════════════════════════
    # RÔLES
    # ══════════════════════════════════════════════════════════════════════

    def has_role(self, required: Any) -> bool:
        user = self._state.current_user
        if user is None or not self._state.is_authenticated:
            return False
        return roles.has_role(user.role, required)

    def is_admin(self) -> bool:
        return self.has_role(roles.Role.ADMIN)

    def is_moderator(self) -> bool:
        return self.has_role(roles.Role.MODERATOR)
