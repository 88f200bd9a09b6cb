"""
LOT 5: Admin Console

Service de la console d'administration au-dessus du client API.

Règles locales, appliquées avant tout appel réseau:
    - un admin authentifié est requis
    - un admin ne peut ni changer son propre rôle, ni se désactiver,
      ni se supprimer (y compris via une action groupée)
    - rôle et action groupée doivent appartenir aux énumérations connues

Une réponse arrivée après un changement d'identité est écartée (SUPERSEDED).
"""

from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from ..api import ApiResponse, ErrorKind, IAuthApi, TransportError
from ..auth.interfaces import AuthResult, User
from ..auth.roles import Role
from ..auth.session_manager import SessionManager, SUPERSEDED_MESSAGE
from ..auth.validators import registration_payload, validate_registration
from ..core.interfaces import SessionSettings
from ..logging import StructuredLogger
from .interfaces import BulkAction, Pagination, SystemStats, UserPage, UserQuery


ADMIN_REQUIRED_MESSAGE = "Admin privileges required"


class AdminConsole:
    """
    Console d'administration.

    Example:
        console = AdminConsole(api_client, session_manager)
        result = await console.list_users(UserQuery(search="alice"))
        if result.success:
            page = result.data  # UserPage
    """

    def __init__(
        self,
        api: IAuthApi,
        session: SessionManager,
        settings: Optional[SessionSettings] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self._api = api
        self._session = session
        self._settings = settings or SessionSettings()
        self._logger = logger or StructuredLogger("postwoman.admin")

    # ══════════════════════════════════════════════════════════════════════
    # OUTILS
    # ══════════════════════════════════════════════════════════════════════

    def _current_user_id(self) -> Optional[str]:
        user = self._session.state.current_user
        return user.id if user else None

    def _is_self(self, user_id: str) -> bool:
        return self._settings.prevent_self_actions and str(user_id) == self._current_user_id()

    async def _run(
        self,
        operation: str,
        call: Callable[[], Awaitable[ApiResponse]],
        default_message: str,
        on_success: Callable[[ApiResponse], AuthResult],
        log_extra: Optional[Dict[str, Any]] = None,
    ) -> AuthResult:
        """
        Exécute un appel admin: garde admin, transport, époque, enveloppe.
        """
        log = self._logger.with_context(operation=operation, **(log_extra or {}))
        if not self._session.is_admin():
            log.warn("Admin operation refused locally")
            return AuthResult.fail(ErrorKind.AUTH_FAILURE, ADMIN_REQUIRED_MESSAGE)

        epoch = self._session.epoch
        try:
            response = await call()
        except TransportError as e:
            log.warn("Admin request failed", error_kind=e.kind.value)
            return AuthResult.fail(ErrorKind.TRANSPORT, e.message)

        if response.session_rejected:
            return AuthResult.fail(ErrorKind.AUTH_FAILURE, response.message or default_message)

        if self._session.epoch != epoch:
            log.info("Response superseded", family="admin")
            return AuthResult.fail(ErrorKind.SUPERSEDED, SUPERSEDED_MESSAGE)

        if not response.success:
            kind = response.error_kind or ErrorKind.SERVER_ERROR
            log.info("Admin operation failed", error_kind=kind.value, status=response.status_code)
            return AuthResult.fail(kind, response.message or default_message)

        try:
            result = on_success(response)
        except ValidationError:
            log.warn("Unexpected admin payload")
            return AuthResult.fail(ErrorKind.SERVER_ERROR, "Malformed response envelope")

        log.info("Admin operation succeeded")
        return result

    @staticmethod
    def _user_result(response: ApiResponse) -> AuthResult:
        user = User.from_payload(response.get("user"))
        return AuthResult.ok(user, response.message)

    @staticmethod
    def _message_result(response: ApiResponse) -> AuthResult:
        return AuthResult.ok(response.data, response.message)

    @staticmethod
    def _rejected(message: str, field: str) -> AuthResult:
        return AuthResult.fail(ErrorKind.VALIDATION, message, {field: message})

    # ══════════════════════════════════════════════════════════════════════
    # UTILISATEURS
    # ══════════════════════════════════════════════════════════════════════

    async def list_users(self, query: Optional[UserQuery] = None) -> AuthResult:
        query = query or UserQuery()

        def to_page(response: ApiResponse) -> AuthResult:
            raw_users = response.get("users") or []
            users = [u for u in (User.from_payload(item) for item in raw_users) if u is not None]
            pagination = Pagination.model_validate(response.get("pagination") or {})
            return AuthResult.ok(UserPage(users=users, pagination=pagination), response.message)

        return await self._run(
            "list_users",
            lambda: self._api.get_users(query.to_params()),
            "Failed to load users",
            to_page,
        )

    async def get_user(self, user_id: str) -> AuthResult:
        return await self._run(
            "get_user",
            lambda: self._api.get_user_by_id(user_id),
            "Failed to load user",
            self._user_result,
            {"target_user": user_id},
        )

    async def change_role(self, user_id: str, role: Union[Role, str]) -> AuthResult:
        parsed = Role.parse(role)
        if parsed is None:
            return self._rejected(f"Unknown role: {role}", "role")
        if self._is_self(user_id):
            return self._rejected("You cannot change your own role", "role")

        return await self._run(
            "change_role",
            lambda: self._api.update_user_role(user_id, parsed.value),
            "Failed to update user role",
            self._user_result,
            {"target_user": user_id, "role": parsed.value},
        )

    async def set_active(self, user_id: str, is_active: bool) -> AuthResult:
        if not is_active and self._is_self(user_id):
            return self._rejected("You cannot deactivate your own account", "isActive")

        return await self._run(
            "set_active",
            lambda: self._api.update_user_status(user_id, bool(is_active)),
            "Failed to update user status",
            self._user_result,
            {"target_user": user_id, "is_active": bool(is_active)},
        )

    async def unlock(self, user_id: str) -> AuthResult:
        return await self._run(
            "unlock",
            lambda: self._api.unlock_user(user_id),
            "Failed to unlock user",
            self._message_result,
            {"target_user": user_id},
        )

    async def delete(self, user_id: str) -> AuthResult:
        if self._is_self(user_id):
            return self._rejected("You cannot delete your own account", "userId")

        return await self._run(
            "delete_user",
            lambda: self._api.delete_user(user_id),
            "Failed to delete user",
            self._message_result,
            {"target_user": user_id},
        )

    async def create_admin(self, fields: Dict[str, Any]) -> AuthResult:
        errors = validate_registration(
            fields, self._settings.min_password_length, require_confirmation=False
        )
        if errors:
            first = next(iter(errors.values()))
            return AuthResult.fail(ErrorKind.VALIDATION, first, errors)

        return await self._run(
            "create_admin",
            lambda: self._api.create_admin(registration_payload(fields)),
            "Failed to create admin user",
            self._user_result,
        )

    async def bulk(self, action: Union[BulkAction, str], user_ids: Iterable[str]) -> AuthResult:
        """
        Action groupée sur une sélection d'utilisateurs.

        Args:
            action: activate, deactivate, unlock ou delete
            user_ids: Sélection (non vide, doublons retirés)
        """
        try:
            bulk_action = BulkAction(action)
        except ValueError:
            return self._rejected(f"Unknown bulk action: {action}", "action")

        ids: List[str] = list(dict.fromkeys(str(i) for i in user_ids))
        if not ids:
            return self._rejected("Please select users to perform bulk action", "userIds")

        if bulk_action.removes_access and any(self._is_self(i) for i in ids):
            return self._rejected(
                f"You cannot {bulk_action.value} your own account", "userIds"
            )

        return await self._run(
            "bulk_action",
            lambda: self._api.bulk_actions(bulk_action.value, ids),
            f"Failed to {bulk_action.value} users",
            self._message_result,
            {"action": bulk_action.value, "count": len(ids)},
        )

    # ══════════════════════════════════════════════════════════════════════
    # STATISTIQUES
    # ══════════════════════════════════════════════════════════════════════

    async def stats(self) -> AuthResult:
        def to_stats(response: ApiResponse) -> AuthResult:
            payload = response.data if isinstance(response.data, dict) else {}
            return AuthResult.ok(SystemStats.model_validate(payload), response.message)

        return await self._run(
            "system_stats",
            self._api.get_system_stats,
            "Failed to load system statistics",
            to_stats,
        )
