"""
LOT 5: Administration

Console d'administration des utilisateurs:
- Liste paginée et filtrée, statistiques système
- Rôle, statut, déverrouillage, suppression, actions groupées
- Refus local des actions d'un admin sur son propre compte
"""

from .interfaces import (
    BulkAction,
    UserQuery,
    Pagination,
    UserPage,
    UserCounts,
    RoleCounts,
    ActivityCounts,
    SystemStats,
)
from .console import AdminConsole, ADMIN_REQUIRED_MESSAGE

__all__ = [
    "BulkAction",
    "UserQuery",
    "Pagination",
    "UserPage",
    "UserCounts",
    "RoleCounts",
    "ActivityCounts",
    "SystemStats",
    "AdminConsole",
    "ADMIN_REQUIRED_MESSAGE",
]
