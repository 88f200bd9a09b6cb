"""
LOT 3: Roles

Hiérarchie fermée des rôles: user < moderator < admin.

La comparaison passe toujours par ROLE_RANK; un rôle inconnu a le rang 0
et ne satisfait aucune exigence.
"""

from enum import Enum
from typing import Dict, Optional, Union


class Role(str, Enum):
    """Rôles connus du backend."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Union["Role", str, None]) -> Optional["Role"]:
        """
        Convertit une saisie appelant en Role (None si inconnue).

        Tolère casse et espaces; les rôles renvoyés par le serveur passent
        par rank_of, sans normalisation.
        """
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


ROLE_RANK: Dict[Role, int] = {
    Role.USER: 1,
    Role.MODERATOR: 2,
    Role.ADMIN: 3,
}

UNKNOWN_RANK = 0


def rank_of(role: Union[Role, str, None]) -> int:
    """
    Rang hiérarchique d'un rôle, par correspondance exacte.

    Un rôle serveur est comparé tel quel: "Admin" n'est pas "admin".

    Returns:
        1-3 pour un rôle connu, 0 sinon
    """
    if isinstance(role, Role):
        return ROLE_RANK[role]
    if not isinstance(role, str):
        return UNKNOWN_RANK
    try:
        return ROLE_RANK[Role(role)]
    except ValueError:
        return UNKNOWN_RANK


def has_role(actual: Union[Role, str, None], required: Union[Role, str, None]) -> bool:
    """
    True si actual (rôle serveur, exact) satisfait required (saisie appelant).

    Rang inconnu d'un côté ou de l'autre = refus.
    """
    actual_rank = rank_of(actual)
    required_rank = rank_of(Role.parse(required))
    if actual_rank == UNKNOWN_RANK or required_rank == UNKNOWN_RANK:
        return False
    return actual_rank >= required_rank
