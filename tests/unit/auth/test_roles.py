"""
Tests unitaires pour LOT 3: Roles

Hiérarchie user < moderator < admin, rôle inconnu = refus.
Rôle serveur: correspondance exacte; rôle demandé: saisie tolérante.
"""

import itertools

import pytest

from postwoman_auth.auth import ROLE_RANK, Role, has_role, rank_of


KNOWN = [Role.USER, Role.MODERATOR, Role.ADMIN]


class TestParse:
    @pytest.mark.parametrize("value,expected", [
        ("admin", Role.ADMIN),
        ("Moderator", Role.MODERATOR),
        (" USER ", Role.USER),
        (Role.ADMIN, Role.ADMIN),
        ("superuser", None),
        ("", None),
        (None, None),
        (3, None),
    ])
    def test_parse(self, value, expected) -> None:
        assert Role.parse(value) is expected

    def test_role_is_str(self) -> None:
        assert Role.ADMIN == "admin"


class TestRank:
    def test_ranks(self) -> None:
        assert [rank_of(r) for r in KNOWN] == [1, 2, 3]

    def test_unknown_rank_is_zero(self) -> None:
        assert rank_of("guest") == 0
        assert rank_of(None) == 0

    def test_table_covers_every_role(self) -> None:
        assert set(ROLE_RANK) == set(Role)


class TestHasRole:
    """Comparaison hiérarchique."""

    @pytest.mark.parametrize("actual,required,expected", [
        ("admin", "admin", True),
        ("admin", "moderator", True),
        ("admin", "user", True),
        ("moderator", "admin", False),
        ("moderator", "moderator", True),
        ("moderator", "user", True),
        ("user", "moderator", False),
        ("user", "user", True),
    ])
    def test_matrix(self, actual, required, expected) -> None:
        assert has_role(actual, required) is expected

    @pytest.mark.parametrize("actual,required", [
        ("superuser", "user"),
        ("admin", "superuser"),
        (None, "user"),
        ("admin", None),
    ])
    def test_unknown_role_denied(self, actual, required) -> None:
        assert has_role(actual, required) is False

    def test_monotonic(self) -> None:
        """Un rôle plus élevé satisfait tout ce que satisfait un rôle plus bas."""
        for low, high in itertools.combinations(KNOWN, 2):
            for required in KNOWN:
                if has_role(low, required):
                    assert has_role(high, required)


class TestServerRoles:
    """Le rôle renvoyé par le serveur est comparé tel quel."""

    @pytest.mark.parametrize("value", ["Admin", "ADMIN", " admin", "Moderator"])
    def test_non_canonical_rank_zero(self, value) -> None:
        assert rank_of(value) == 0

    def test_non_canonical_denied(self) -> None:
        assert has_role("Admin", "user") is False

    def test_required_role_from_caller_is_lenient(self) -> None:
        assert has_role("admin", "Moderator") is True
        assert has_role("moderator", " USER ") is True
