"""
LOT 3: Token Inspector

Lecture non signée du bearer token (PyJWT) pour détecter un token
manifestement expiré avant l'aller-retour réseau.

Le verdict "non expiré" ne prouve rien: le 401 du serveur reste l'autorité.
Un token illisible ou sans claim exp a une expiration inconnue.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import jwt


class TokenInspector:
    """
    Inspecteur d'expiration best-effort.

    Example:
        inspector = TokenInspector()
        if inspector.is_known_expired(token):
            token_store.clear()
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None, leeway_seconds: int = 0):
        """
        Args:
            clock: Horloge injectable (défaut: now UTC)
            leeway_seconds: Tolérance ajoutée à exp
        """
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.leeway_seconds = leeway_seconds

    def decode_without_validation(self, token: str) -> Dict[str, Any]:
        """
        Décode le payload sans vérifier la signature.

        ⚠️ NE JAMAIS utiliser pour authentifier.

        Raises:
            jwt.InvalidTokenError: Token non JWT
        """
        return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})

    def expires_at(self, token: Optional[str]) -> Optional[datetime]:
        """Date d'expiration annoncée, None si inconnue."""
        if not token:
            return None
        try:
            payload = self.decode_without_validation(token)
        except jwt.InvalidTokenError:
            return None

        exp = payload.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return None
        try:
            return datetime.fromtimestamp(exp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    def is_known_expired(self, token: Optional[str]) -> bool:
        """True uniquement si exp est lisible et dépassé."""
        exp = self.expires_at(token)
        if exp is None:
            return False
        return self._clock().timestamp() > exp.timestamp() + self.leeway_seconds
