"""
Tests unitaires pour LOT 3: Token Inspector

Détection best-effort d'un token expiré (lecture non signée).
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import jwt

from postwoman_auth.auth import TokenInspector


NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def token_with(**claims) -> str:
    return jwt.encode(claims, "any-signing-key-the-client-never-sees", algorithm="HS256")


def inspector(leeway: int = 0) -> TokenInspector:
    return TokenInspector(clock=lambda: NOW, leeway_seconds=leeway)


class TestExpiresAt:
    def test_reads_exp(self) -> None:
        exp = NOW + timedelta(hours=1)
        token = token_with(sub="u-1", exp=int(exp.timestamp()))

        assert inspector().expires_at(token) == exp

    def test_signature_not_checked(self) -> None:
        token = jwt.encode({"exp": int(NOW.timestamp())}, "another-signing-key-of-sufficient-length", algorithm="HS256")
        assert inspector().expires_at(token) is not None

    def test_missing_exp(self) -> None:
        assert inspector().expires_at(token_with(sub="u-1")) is None

    def test_non_numeric_exp(self) -> None:
        assert inspector().expires_at(token_with(exp="tomorrow")) is None

    def test_opaque_token(self) -> None:
        assert inspector().expires_at("t1") is None

    def test_empty_token(self) -> None:
        assert inspector().expires_at(None) is None
        assert inspector().expires_at("") is None


class TestIsKnownExpired:
    def test_expired(self) -> None:
        token = token_with(exp=int((NOW - timedelta(minutes=1)).timestamp()))
        assert inspector().is_known_expired(token) is True

    def test_not_expired(self) -> None:
        token = token_with(exp=int((NOW + timedelta(minutes=1)).timestamp()))
        assert inspector().is_known_expired(token) is False

    def test_leeway(self) -> None:
        token = token_with(exp=int((NOW - timedelta(seconds=30)).timestamp()))
        assert inspector(leeway=60).is_known_expired(token) is False

    def test_unknown_expiry_is_not_expired(self) -> None:
        """Un token opaque reste au jugement du serveur."""
        assert inspector().is_known_expired("opaque-token") is False
        assert inspector().is_known_expired(token_with(sub="u-1")) is False


class TestDecoding:
    def test_decode_error_means_unknown(self) -> None:
        with patch("jwt.decode", side_effect=jwt.DecodeError("Not enough segments")):
            assert inspector().expires_at("a.b.c") is None

    def test_signature_verification_disabled(self) -> None:
        with patch("jwt.decode", return_value={"exp": 0}) as mock_decode:
            inspector().decode_without_validation("a.b.c")

        options = mock_decode.call_args.kwargs["options"]
        assert options["verify_signature"] is False
