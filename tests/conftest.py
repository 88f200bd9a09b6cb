"""
POSTWOMAN Auth - Pytest Configuration
Fixtures partagées pour tous les tests.

Le backend HTTP est simulé par httpx.MockTransport: chaque route renvoie une
réponse fixe, un handler (sync ou async) ou lève une exception httpx.
"""

import inspect
import json
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import jwt
import pytest

from postwoman_auth.api import ApiClient
from postwoman_auth.auth import AuthorizationGuard, SessionManager
from postwoman_auth.logging import StructuredLogger
from postwoman_auth.navigation import InMemoryNavigator
from postwoman_auth.storage import MemoryStorage, TokenStore


BASE_URL = "https://api.test/api"
API_PREFIX = "/api"

Handler = Callable[[httpx.Request], Any]


class FakeBackend:
    """Backend auth/admin en mémoire, branché via httpx.MockTransport."""

    def __init__(self) -> None:
        self._routes: Dict[Tuple[str, str], Union[Handler, Exception]] = {}
        self.requests: List[httpx.Request] = []

    def on(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        content: Optional[bytes] = None,
        handler: Optional[Handler] = None,
        raises: Optional[Exception] = None,
    ) -> None:
        key = (method.upper(), API_PREFIX + path)
        if raises is not None:
            self._routes[key] = raises
        elif handler is not None:
            self._routes[key] = handler
        elif content is not None:
            self._routes[key] = lambda request: httpx.Response(status, content=content)
        elif json_body is not None:
            self._routes[key] = lambda request: httpx.Response(status, json=json_body)
        else:
            self._routes[key] = lambda request: httpx.Response(status)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == API_PREFIX + path]

    def body(self, request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self._routes.get((request.method, request.url.path))

        if route is None:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        if isinstance(route, Exception):
            raise route

        result = route(request)
        if inspect.isawaitable(result):
            result = await result
        return result


def envelope(data: Any = None, message: Optional[str] = None, success: bool = True) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": success}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def token_store(storage: MemoryStorage) -> TokenStore:
    return TokenStore(storage)


@pytest.fixture
def navigator() -> InMemoryNavigator:
    return InMemoryNavigator("/dashboard")


@pytest.fixture
def captured_logs() -> List[str]:
    """Lignes JSON émises par les loggers des fixtures."""
    return []


@pytest.fixture
def api_client(backend, token_store, navigator, captured_logs) -> ApiClient:
    return ApiClient(
        BASE_URL,
        token_store,
        navigator=navigator,
        logger=StructuredLogger("test.api", output_handler=captured_logs.append),
        transport=httpx.MockTransport(backend),
    )


@pytest.fixture
def session_manager(api_client, token_store, captured_logs) -> SessionManager:
    return SessionManager(
        api_client,
        token_store,
        logger=StructuredLogger("test.session", output_handler=captured_logs.append),
    )


@pytest.fixture
def guard(session_manager, navigator) -> AuthorizationGuard:
    return AuthorizationGuard(session_manager, navigator)


@pytest.fixture
def make_user() -> Callable[..., Dict[str, Any]]:
    """Fabrique un utilisateur tel que renvoyé par le serveur."""

    def factory(role: str = "user", user_id: str = "u-1", **fields: Any) -> Dict[str, Any]:
        user = {
            "id": user_id,
            "username": f"{role}_{user_id}".replace("-", "_"),
            "email": f"{user_id}@postman-mvp.local",
            "role": role,
            "firstName": "Ada",
            "lastName": "Lovelace",
            "isActive": True,
            "isLocked": False,
        }
        user.update(fields)
        return user

    return factory


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Fabrique un JWT HS256 expirant dans expires_in secondes (négatif = expiré)."""

    def factory(expires_in: int = 3600, **claims: Any) -> str:
        payload = {"sub": "u-1", "iat": int(time.time()), "exp": int(time.time()) + expires_in}
        payload.update(claims)
        return jwt.encode(payload, "test-secret-key-with-enough-length!", algorithm="HS256")

    return factory


@pytest.fixture
def login_as(backend, make_user):
    """Prépare /auth/login pour renvoyer un utilisateur du rôle donné."""

    def configure(role: str = "user", token: str = "t1", user_id: str = "u-1", **fields: Any) -> Dict[str, Any]:
        user = make_user(role, user_id, **fields)
        backend.on("POST", "/auth/login", json_body=envelope({"token": token, "user": user}))
        return user

    return configure
