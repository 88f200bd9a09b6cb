"""
LOT 4: API - Errors

Taxonomie des échecs du client d'authentification.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorKind(Enum):
    """Catégories d'échec remontées aux consommateurs UI."""

    VALIDATION = "validation"  # détecté côté client, avant tout appel réseau
    AUTH_FAILURE = "auth_failure"  # 401/403
    CONFLICT = "conflict"  # 409 (identité déjà utilisée)
    TRANSPORT = "transport"  # réseau, timeout, réponse non JSON
    SERVER_ERROR = "server_error"  # 5xx ou enveloppe non classée
    SUPERSEDED = "superseded"  # réponse écartée par une opération plus récente
    STORAGE = "storage"  # Token Store illisible ou non inscriptible


def classify_status(status_code: int) -> ErrorKind:
    """
    Classe un statut HTTP d'échec.

    Args:
        status_code: Statut HTTP de la réponse

    Returns:
        ErrorKind correspondant (SERVER_ERROR si non classé)
    """
    if status_code in (401, 403):
        return ErrorKind.AUTH_FAILURE
    if status_code == 409:
        return ErrorKind.CONFLICT
    return ErrorKind.SERVER_ERROR


class AuthClientError(Exception):
    """Erreur de base du client d'authentification."""

    kind: ErrorKind = ErrorKind.SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TransportError(AuthClientError):
    """Échange HTTP non abouti (réseau, timeout, corps illisible)."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class ValidationFailed(AuthClientError):
    """Saisie invalide détectée localement, par champ."""

    kind = ErrorKind.VALIDATION

    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = dict(field_errors)
        first = next(iter(self.field_errors.values()), "Invalid input")
        super().__init__(first)
