"""
LOT 4: API

Client HTTP du backend auth/admin:
- Enveloppe uniforme {success, data, message}
- Bearer token injecté sur chaque requête
- 401 d'un appel authentifié = purge de session + renvoi connexion
"""

from .errors import (
    ErrorKind,
    AuthClientError,
    TransportError,
    ValidationFailed,
    classify_status,
)
from .interfaces import ApiResponse, IAuthApi, UnauthorizedListener
from .client import ApiClient

__all__ = [
    "ErrorKind",
    "AuthClientError",
    "TransportError",
    "ValidationFailed",
    "classify_status",
    "ApiResponse",
    "IAuthApi",
    "UnauthorizedListener",
    "ApiClient",
]
