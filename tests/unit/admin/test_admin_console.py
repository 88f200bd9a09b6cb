"""
Tests unitaires pour LOT 5: Admin Console

- Garde admin locale
- Refus des actions sur son propre compte
- Actions groupées, statistiques, liste paginée
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from conftest import envelope
from postwoman_auth.admin import (
    ADMIN_REQUIRED_MESSAGE,
    AdminConsole,
    BulkAction,
    SystemStats,
    UserPage,
    UserQuery,
)
from postwoman_auth.api import ApiResponse, ErrorKind, IAuthApi
from postwoman_auth.auth import SessionState, User
from postwoman_auth.core import SessionSettings


@pytest.fixture
def console(api_client, session_manager) -> AdminConsole:
    return AdminConsole(api_client, session_manager)


async def sign_in(session_manager, login_as, role: str = "admin", user_id: str = "admin-1") -> None:
    await session_manager.bootstrap()
    login_as(role, user_id=user_id)
    result = await session_manager.login("admin@postman-mvp.local", "admin123")
    assert result.success


class TestAdminGate:
    """Un admin authentifié est requis."""

    @pytest.mark.asyncio
    async def test_signed_out(self, console, session_manager, backend) -> None:
        await session_manager.bootstrap()

        result = await console.stats()

        assert result.error_kind == ErrorKind.AUTH_FAILURE
        assert result.message == ADMIN_REQUIRED_MESSAGE
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_moderator_refused(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as, "moderator")

        result = await console.list_users()

        assert result.message == ADMIN_REQUIRED_MESSAGE
        assert backend.calls("GET", "/admin/users") == []


class TestListUsers:
    @pytest.mark.asyncio
    async def test_page(self, console, session_manager, login_as, backend, make_user) -> None:
        await sign_in(session_manager, login_as)
        backend.on(
            "GET",
            "/admin/users",
            json_body=envelope({
                "users": [make_user("user", "u-2"), make_user("moderator", "u-3"), {"username": "ghost"}],
                "pagination": {"page": 2, "limit": 2, "total": 5, "totalPages": 3, "hasNext": True, "hasPrev": True},
            }),
        )

        result = await console.list_users(UserQuery(page=2, limit=2, search="ada", role="moderator", isActive=True))

        page = result.data
        assert isinstance(page, UserPage)
        assert [u.id for u in page.users] == ["u-2", "u-3"]
        assert page.pagination.total_pages == 3
        assert page.pagination.has_next is True

        params = dict(backend.calls("GET", "/admin/users")[0].url.params)
        assert params == {
            "page": "2",
            "limit": "2",
            "search": "ada",
            "role": "moderator",
            "isActive": "true",
        }

    @pytest.mark.asyncio
    async def test_default_query(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)
        backend.on("GET", "/admin/users", json_body=envelope({"users": []}))

        result = await console.list_users()

        assert result.data.users == []
        assert result.data.pagination.page == 1
        assert dict(backend.calls("GET", "/admin/users")[0].url.params) == {"page": "1", "limit": "10"}

    def test_query_bounds(self) -> None:
        with pytest.raises(ValueError):
            UserQuery(page=0)
        with pytest.raises(ValueError):
            UserQuery(limit=500)


class TestSelfActions:
    """Un admin ne peut pas agir sur son propre compte."""

    @pytest.mark.asyncio
    async def test_change_own_role(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)

        result = await console.change_role("admin-1", "user")

        assert result.error_kind == ErrorKind.VALIDATION
        assert result.message == "You cannot change your own role"
        assert backend.calls("PUT", "/admin/users/admin-1/role") == []

    @pytest.mark.asyncio
    async def test_deactivate_self(self, console, session_manager, login_as) -> None:
        await sign_in(session_manager, login_as)

        result = await console.set_active("admin-1", False)

        assert result.message == "You cannot deactivate your own account"

    @pytest.mark.asyncio
    async def test_delete_self(self, console, session_manager, login_as) -> None:
        await sign_in(session_manager, login_as)

        result = await console.delete("admin-1")

        assert result.message == "You cannot delete your own account"

    @pytest.mark.asyncio
    async def test_bulk_including_self(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)

        result = await console.bulk("deactivate", ["u-2", "admin-1"])

        assert result.message == "You cannot deactivate your own account"
        assert backend.calls("POST", "/admin/bulk-actions") == []

    @pytest.mark.asyncio
    async def test_activate_self_allowed(self, console, session_manager, login_as, backend, make_user) -> None:
        await sign_in(session_manager, login_as)
        backend.on("PUT", "/admin/users/admin-1/status", json_body=envelope({"user": make_user("admin", "admin-1")}))

        result = await console.set_active("admin-1", True)

        assert result.success is True

    @pytest.mark.asyncio
    async def test_prevention_can_be_disabled(self, api_client, session_manager, login_as, backend) -> None:
        console = AdminConsole(api_client, session_manager, settings=SessionSettings(prevent_self_actions=False))
        await sign_in(session_manager, login_as)
        backend.on("DELETE", "/admin/users/admin-1", json_body=envelope())

        result = await console.delete("admin-1")

        assert result.success is True
        assert result.message == "User deleted successfully"


class TestUserOperations:
    @pytest.mark.asyncio
    async def test_change_role(self, console, session_manager, login_as, backend, make_user) -> None:
        await sign_in(session_manager, login_as)
        backend.on(
            "PUT",
            "/admin/users/u-2/role",
            json_body=envelope({"user": make_user("moderator", "u-2")}, message="User role updated"),
        )

        result = await console.change_role("u-2", "Moderator")

        assert result.data.role == "moderator"
        assert result.message == "User role updated"
        assert backend.body(backend.calls("PUT", "/admin/users/u-2/role")[0]) == {"role": "moderator"}

    @pytest.mark.asyncio
    async def test_unknown_role(self, console, session_manager, login_as) -> None:
        await sign_in(session_manager, login_as)

        result = await console.change_role("u-2", "superuser")

        assert result.error_kind == ErrorKind.VALIDATION
        assert result.field_errors == {"role": "Unknown role: superuser"}

    @pytest.mark.asyncio
    async def test_failure_without_body(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)
        backend.on("PUT", "/admin/users/u-2/role", status=500)

        result = await console.change_role("u-2", "user")

        # pas de corps: message générique du client HTTP
        assert result.message == "HTTP 500"
        assert result.error_kind == ErrorKind.SERVER_ERROR

    @pytest.mark.asyncio
    async def test_success_false_uses_default_message(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)
        backend.on("POST", "/admin/users/u-2/unlock", json_body={"success": False})

        result = await console.unlock("u-2")

        assert result.message == "Failed to unlock user"

    @pytest.mark.asyncio
    async def test_get_user(self, console, session_manager, login_as, backend, make_user) -> None:
        await sign_in(session_manager, login_as)
        backend.on("GET", "/admin/users/u-2", json_body=envelope({"user": make_user("user", "u-2")}))

        result = await console.get_user("u-2")

        assert result.data.id == "u-2"

    @pytest.mark.asyncio
    async def test_transport_error(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)
        backend.on("POST", "/admin/users/u-2/unlock", raises=httpx.ConnectError("offline"))

        result = await console.unlock("u-2")

        assert result.error_kind == ErrorKind.TRANSPORT

    @pytest.mark.asyncio
    async def test_unauthorized_signs_out(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)
        backend.on("GET", "/admin/users/u-2", status=401, json_body=envelope(message="Token expired", success=False))

        result = await console.get_user("u-2")

        assert result.error_kind == ErrorKind.AUTH_FAILURE
        assert session_manager.state.is_authenticated is False

    @pytest.mark.asyncio
    async def test_response_after_sign_out_superseded(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow(request):
            started.set()
            await release.wait()
            return httpx.Response(200, json=envelope({"users": []}))

        backend.on("GET", "/admin/users", handler=slow)
        backend.on("POST", "/auth/logout", json_body=envelope())

        listing = asyncio.create_task(console.list_users())
        await started.wait()
        await session_manager.logout()
        release.set()
        result = await listing

        assert result.error_kind == ErrorKind.SUPERSEDED


class TestCreateAdmin:
    FIELDS = {
        "username": "root_2",
        "email": "root2@postman-mvp.local",
        "password": "Sup3r-secret",
        "firstName": "Grace",
        "lastName": "Hopper",
    }

    @pytest.mark.asyncio
    async def test_create(self, console, session_manager, login_as, backend, make_user) -> None:
        await sign_in(session_manager, login_as)
        backend.on("POST", "/admin/create-admin", status=201, json_body=envelope({"user": make_user("admin", "a-2")}))

        result = await console.create_admin(self.FIELDS)

        assert result.success is True
        assert result.data.role == "admin"
        assert backend.body(backend.calls("POST", "/admin/create-admin")[0]) == self.FIELDS

    @pytest.mark.asyncio
    async def test_validation(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)

        result = await console.create_admin({**self.FIELDS, "email": "nope"})

        assert result.error_kind == ErrorKind.VALIDATION
        assert result.field_errors == {"email": "Please enter a valid email address"}
        assert backend.calls("POST", "/admin/create-admin") == []

    @pytest.mark.asyncio
    async def test_conflict(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)
        backend.on(
            "POST",
            "/admin/create-admin",
            status=409,
            json_body=envelope(message="Email already registered", success=False),
        )

        result = await console.create_admin(self.FIELDS)

        assert result.error_kind == ErrorKind.CONFLICT
        assert result.message == "Email already registered"


class TestBulk:
    @pytest.mark.asyncio
    async def test_bulk(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)
        backend.on("POST", "/admin/bulk-actions", json_body=envelope({"modifiedCount": 2}, message="2 users updated"))

        result = await console.bulk(BulkAction.UNLOCK, ["u-2", "u-3", "u-2"])

        assert result.success is True
        assert result.data == {"modifiedCount": 2}
        body = backend.body(backend.calls("POST", "/admin/bulk-actions")[0])
        assert body == {"action": "unlock", "userIds": ["u-2", "u-3"]}

    @pytest.mark.asyncio
    async def test_empty_selection(self, console, session_manager, login_as) -> None:
        await sign_in(session_manager, login_as)

        result = await console.bulk("activate", [])

        assert result.message == "Please select users to perform bulk action"

    @pytest.mark.asyncio
    async def test_unknown_action(self, console, session_manager, login_as) -> None:
        await sign_in(session_manager, login_as)

        result = await console.bulk("promote", ["u-2"])

        assert result.field_errors == {"action": "Unknown bulk action: promote"}

    @pytest.mark.asyncio
    async def test_unlock_self_allowed(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)
        backend.on("POST", "/admin/bulk-actions", json_body=envelope())

        result = await console.bulk("unlock", ["admin-1"])

        assert result.success is True

    def test_removes_access(self) -> None:
        assert BulkAction.DELETE.removes_access is True
        assert BulkAction.ACTIVATE.removes_access is False


class TestStats:
    @pytest.mark.asyncio
    async def test_stats(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)
        backend.on(
            "GET",
            "/admin/stats",
            json_body=envelope({
                "users": {"total": 12, "active": 10, "inactive": 2, "locked": 1},
                "roles": {"admin": 1, "moderator": 2, "user": 9},
                "activity": {"recentRegistrations": 4, "recentLogins": 7},
            }),
        )

        result = await console.stats()

        stats = result.data
        assert isinstance(stats, SystemStats)
        assert stats.users.total == 12
        assert stats.roles.moderator == 2
        assert stats.activity.recent_logins == 7

    @pytest.mark.asyncio
    async def test_malformed_stats(self, console, session_manager, login_as, backend) -> None:
        await sign_in(session_manager, login_as)
        backend.on("GET", "/admin/stats", json_body=envelope({"users": {"total": "many"}}))

        result = await console.stats()

        assert result.error_kind == ErrorKind.SERVER_ERROR
        assert result.message == "Malformed response envelope"


class TestIsolatedConsole:
    """Console isolée: client API et session simulés."""

    def make_console(self, role: str = "admin", user_id: str = "admin-1"):
        session = Mock()
        session.is_admin.return_value = role == "admin"
        session.epoch = 3
        session.state = SessionState(current_user=User(id=user_id, role=role), is_authenticated=True)

        api = Mock(spec=IAuthApi)
        api.delete_user = AsyncMock(return_value=ApiResponse(success=True, message="User deleted successfully"))
        api.update_user_role = AsyncMock(return_value=ApiResponse(success=True, data={"user": {"id": "u-2", "role": "admin"}}))
        return AdminConsole(api, session), api

    @pytest.mark.asyncio
    async def test_self_delete_never_reaches_api(self) -> None:
        console, api = self.make_console()

        await console.delete("admin-1")

        api.delete_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_other_user(self) -> None:
        console, api = self.make_console()

        result = await console.delete("u-2")

        api.delete_user.assert_awaited_once_with("u-2")
        assert result.message == "User deleted successfully"

    @pytest.mark.asyncio
    async def test_role_sent_as_enum_value(self) -> None:
        console, api = self.make_console()

        result = await console.change_role("u-2", "ADMIN")

        api.update_user_role.assert_awaited_once_with("u-2", "admin")
        assert result.data.role == "admin"

    @pytest.mark.asyncio
    async def test_non_admin_never_reaches_api(self) -> None:
        console, api = self.make_console(role="moderator")

        await console.delete("u-2")

        api.delete_user.assert_not_awaited()
