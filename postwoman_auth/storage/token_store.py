"""
LOT 2: Storage - Token Store

Persistance du token de session et du snapshot utilisateur sous deux clés
fixes et versionnées.
"""

import json
from typing import Any, Dict, Optional

from .interfaces import IKeyValueStorage, ITokenStore


class TokenStore(ITokenStore):
    """
    Token Store au-dessus d'un stockage clé/valeur.

    Example:
        store = TokenStore(MemoryStorage())
        store.save_token("t1")
        store.read_token()  # "t1"
    """

    DEFAULT_TOKEN_KEY = "postwoman.auth.v1.token"
    DEFAULT_USER_KEY = "postwoman.auth.v1.user"

    def __init__(
        self,
        storage: IKeyValueStorage,
        token_key: str = DEFAULT_TOKEN_KEY,
        user_key: str = DEFAULT_USER_KEY,
    ):
        self._storage = storage
        self.token_key = token_key
        self.user_key = user_key

    def save_token(self, token: str) -> None:
        self._storage.set(self.token_key, token)

    def read_token(self) -> Optional[str]:
        token = self._storage.get(self.token_key)
        return token or None

    def clear_token(self) -> None:
        self._storage.delete(self.token_key)

    def save_user(self, user: Dict[str, Any]) -> None:
        self._storage.set(self.user_key, json.dumps(user, default=str))

    def read_user(self) -> Optional[Dict[str, Any]]:
        """Snapshot utilisateur en cache (None si absent ou JSON corrompu)."""
        raw = self._storage.get(self.user_key)
        if not raw:
            return None
        try:
            user = json.loads(raw)
        except ValueError:
            return None
        return user if isinstance(user, dict) else None

    def clear_user(self) -> None:
        self._storage.delete(self.user_key)

    def clear(self) -> None:
        self.clear_token()
        self.clear_user()
