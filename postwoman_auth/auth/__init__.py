"""
LOT 3: Authentication & Authorization

Session côté client:
- SessionManager: seul mutateur de l'état, générations anti-réponses périmées
- AuthorizationGuard: décisions de navigation par rôle
- Validation locale des formulaires
"""

from .roles import Role, ROLE_RANK, rank_of, has_role
from .interfaces import (
    User,
    ApiKey,
    SessionState,
    AuthResult,
    StateListener,
    ISessionManager,
    Policy,
    GuardOutcome,
    GuardDecision,
)
from .token_inspector import TokenInspector
from .validators import (
    password_strength,
    strength_label,
    validate_login,
    validate_registration,
    validate_password_change,
    validate_api_key_name,
    registration_payload,
)
from .session_manager import SessionManager
from .guard import AuthorizationGuard

__all__ = [
    # Rôles
    "Role",
    "ROLE_RANK",
    "rank_of",
    "has_role",
    # Modèles
    "User",
    "ApiKey",
    "SessionState",
    "AuthResult",
    "StateListener",
    "Policy",
    "GuardOutcome",
    "GuardDecision",
    # Interfaces
    "ISessionManager",
    # Implémentations
    "TokenInspector",
    "SessionManager",
    "AuthorizationGuard",
    # Validation
    "password_strength",
    "strength_label",
    "validate_login",
    "validate_registration",
    "validate_password_change",
    "validate_api_key_name",
    "registration_payload",
]
