"""
Contexte applicatif

Assemble stockage, Token Store, client API, Session Manager, guard et
console admin à partir d'une ClientConfig. Les consommateurs reçoivent le
contexte explicitement; il n'existe pas d'instance globale.
"""

import sys
from typing import Callable, Dict, Optional

import httpx

from .admin import AdminConsole
from .api import ApiClient
from .auth import AuthorizationGuard, SessionManager, SessionState, TokenInspector
from .core import ClientConfig, ConfigLoader
from .logging import LogConfig, LogLevel, StructuredLogger
from .navigation import INavigator, InMemoryNavigator
from .network import TimeoutConfig, TimeoutManager
from .storage import FileStorage, IKeyValueStorage, MemoryStorage, TokenStore


def _stderr_handler(line: str) -> None:
    print(line, file=sys.stderr)


class AuthContext:
    """
    Graphe d'objets du client d'authentification.

    Example:
        async with AuthContext.create(config) as ctx:
            await ctx.session.login("admin@postman-mvp.local", "admin123")
            stats = await ctx.admin.stats()
    """

    def __init__(
        self,
        config: ClientConfig,
        storage: IKeyValueStorage,
        token_store: TokenStore,
        navigator: INavigator,
        timeouts: TimeoutManager,
        api: ApiClient,
        session: SessionManager,
        guard: AuthorizationGuard,
        admin: AdminConsole,
        loggers: Dict[str, StructuredLogger],
    ):
        self.config = config
        self.storage = storage
        self.token_store = token_store
        self.navigator = navigator
        self.timeouts = timeouts
        self.api = api
        self.session = session
        self.guard = guard
        self.admin = admin
        self.loggers = loggers
        self._closed = False

    @classmethod
    def create(
        cls,
        config: Optional[ClientConfig] = None,
        storage: Optional[IKeyValueStorage] = None,
        navigator: Optional[INavigator] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        output_handler: Optional[Callable[[str], None]] = None,
    ) -> "AuthContext":
        """
        Construit le contexte.

        Args:
            config: Configuration (défaut: valeurs par défaut)
            storage: Backend clé/valeur (défaut: fichier si storage.path, sinon mémoire)
            navigator: Routeur de l'application (défaut: en mémoire)
            transport: Transport httpx (tests)
            output_handler: Sortie des logs JSON (prioritaire sur logging.stream)

        Raises:
            InvalidTimeoutError: Timeouts hors limites
        """
        config = config or ClientConfig()

        if output_handler is None and config.logging.stream:
            output_handler = _stderr_handler

        log_config = LogConfig(
            min_level=LogLevel.from_name(config.logging.level),
            mask_sensitive=config.logging.mask_sensitive,
            max_entries=config.logging.max_entries,
        )
        loggers = {
            name: StructuredLogger(f"postwoman.{name}", config=log_config, output_handler=output_handler)
            for name in ("api", "session", "guard", "admin")
        }

        if storage is None:
            storage = FileStorage(config.storage.path) if config.storage.path else MemoryStorage()
        token_store = TokenStore(storage, config.storage.token_key, config.storage.user_key)

        timeouts = TimeoutManager(
            TimeoutConfig(
                connection_timeout=config.api.connection_timeout,
                request_timeout=config.api.request_timeout,
            )
        )
        for endpoint, seconds in config.api.endpoint_timeouts.items():
            timeouts.set_endpoint_timeout(
                endpoint,
                TimeoutConfig(
                    connection_timeout=min(config.api.connection_timeout, seconds),
                    request_timeout=seconds,
                ),
            )

        navigator = navigator or InMemoryNavigator(config.routes.home_path)

        api = ApiClient(
            config.api.base_url,
            token_store,
            timeout_manager=timeouts,
            navigator=navigator,
            login_path=config.routes.login_path,
            logger=loggers["api"],
            transport=transport,
        )
        session = SessionManager(
            api,
            token_store,
            settings=config.session,
            token_inspector=TokenInspector(),
            logger=loggers["session"],
        )
        guard = AuthorizationGuard(session, navigator, routes=config.routes, logger=loggers["guard"])
        admin = AdminConsole(api, session, settings=config.session, logger=loggers["admin"])

        return cls(config, storage, token_store, navigator, timeouts, api, session, guard, admin, loggers)

    @classmethod
    async def from_file(cls, path: Optional[str] = None, **kwargs) -> "AuthContext":
        """
        Construit le contexte depuis un fichier YAML.

        Raises:
            ConfigIntegrityError: Fichier absent ou invalide
        """
        config = await ConfigLoader().load(path)
        return cls.create(config, **kwargs)

    async def start(self) -> SessionState:
        """Restaure la session persistée."""
        return await self.session.bootstrap()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.session.close()
        await self.api.aclose()

    async def __aenter__(self) -> "AuthContext":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
