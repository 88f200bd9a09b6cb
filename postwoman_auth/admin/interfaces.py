"""
LOT 5: Admin - Interfaces

Modèles de la console d'administration (liste paginée, statistiques,
actions groupées).
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..auth.interfaces import User
from ..auth.roles import Role


class BulkAction(str, Enum):
    """Actions groupées acceptées par /admin/bulk-actions."""

    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    UNLOCK = "unlock"
    DELETE = "delete"

    @property
    def removes_access(self) -> bool:
        return self in (BulkAction.DEACTIVATE, BulkAction.DELETE)


class UserQuery(BaseModel):
    """
    Filtres de la liste des utilisateurs.

    Attributes:
        page: Page demandée (1-based)
        limit: Taille de page
        search: Recherche libre (nom, email)
        role: Filtre par rôle
        is_active: Filtre par statut
    """

    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: str = ""
    role: Optional[Role] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    def to_params(self) -> Dict[str, Any]:
        """Paramètres de requête, filtres vides exclus."""
        params = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        return {k: v for k, v in params.items() if v != ""}


class Pagination(BaseModel):
    """Pagination renvoyée par le serveur."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    page: int = 1
    limit: int = 10
    total: int = 0
    total_pages: int = Field(default=0, alias="totalPages")
    has_next: bool = Field(default=False, alias="hasNext")
    has_prev: bool = Field(default=False, alias="hasPrev")


class UserPage(BaseModel):
    """Une page d'utilisateurs."""

    users: List[User] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class UserCounts(BaseModel):
    model_config = ConfigDict(extra="allow")

    total: int = 0
    active: int = 0
    inactive: int = 0
    locked: int = 0


class RoleCounts(BaseModel):
    model_config = ConfigDict(extra="allow")

    admin: int = 0
    moderator: int = 0
    user: int = 0


class ActivityCounts(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    recent_registrations: int = Field(default=0, alias="recentRegistrations")
    recent_logins: int = Field(default=0, alias="recentLogins")


class SystemStats(BaseModel):
    """Statistiques du tableau de bord admin."""

    model_config = ConfigDict(extra="allow")

    users: UserCounts = Field(default_factory=UserCounts)
    roles: RoleCounts = Field(default_factory=RoleCounts)
    activity: ActivityCounts = Field(default_factory=ActivityCounts)
