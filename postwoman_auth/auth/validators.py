"""
LOT 3: Validators

Validation locale des formulaires (connexion, inscription, mot de passe,
clé API). Aucun appel réseau: chaque fonction retourne un dict
{champ: message}, vide si la saisie est valide.
"""

import re
from typing import Any, Dict, Mapping, Optional


USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

LOGIN_MIN_PASSWORD = 6
MIN_PASSWORD_LENGTH = 8
MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_STRENGTH = 3

_STRENGTH_LABELS = {
    0: "Very Weak",
    1: "Very Weak",
    2: "Weak",
    3: "Good",
    4: "Strong",
    5: "Excellent",
}


def password_strength(password: Optional[str]) -> int:
    """
    Score 0-5: longueur ≥ 8, minuscule, majuscule, chiffre, caractère spécial.
    """
    if not password:
        return 0
    score = 0
    if len(password) >= 8:
        score += 1
    if re.search(r"[a-z]", password):
        score += 1
    if re.search(r"[A-Z]", password):
        score += 1
    if re.search(r"[0-9]", password):
        score += 1
    if re.search(r"[^A-Za-z0-9]", password):
        score += 1
    return score


def strength_label(score: int) -> str:
    return _STRENGTH_LABELS.get(score, "")


def _text(fields: Mapping[str, Any], name: str) -> str:
    value = fields.get(name)
    return value if isinstance(value, str) else ""


def validate_login(identifier: Optional[str], password: Optional[str]) -> Dict[str, str]:
    errors: Dict[str, str] = {}

    if not (identifier or "").strip():
        errors["identifier"] = "Email or username is required"

    if not password:
        errors["password"] = "Password is required"
    elif len(password) < LOGIN_MIN_PASSWORD:
        errors["password"] = f"Password must be at least {LOGIN_MIN_PASSWORD} characters"

    return errors


def validate_registration(
    fields: Mapping[str, Any],
    min_password_length: int = MIN_PASSWORD_LENGTH,
    require_confirmation: bool = True,
) -> Dict[str, str]:
    """
    Valide un formulaire d'inscription (ou de création d'admin).

    Args:
        fields: username, email, password, confirmPassword, firstName, lastName
        min_password_length: Longueur minimale du mot de passe
        require_confirmation: Exiger confirmPassword (faux pour la création d'admin)

    Returns:
        Erreurs par champ
    """
    errors: Dict[str, str] = {}

    username = _text(fields, "username").strip()
    if not username:
        errors["username"] = "Username is required"
    elif len(username) < MIN_USERNAME_LENGTH:
        errors["username"] = f"Username must be at least {MIN_USERNAME_LENGTH} characters"
    elif not USERNAME_PATTERN.match(username):
        errors["username"] = "Username can only contain letters, numbers, and underscores"

    email = _text(fields, "email").strip()
    if not email:
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(email):
        errors["email"] = "Please enter a valid email address"

    password = _text(fields, "password")
    if not password:
        errors["password"] = "Password is required"
    elif len(password) < min_password_length:
        errors["password"] = f"Password must be at least {min_password_length} characters"
    elif password_strength(password) < MIN_PASSWORD_STRENGTH:
        errors["password"] = "Password is too weak. Please use a stronger password"

    if require_confirmation or "confirmPassword" in fields:
        confirm = _text(fields, "confirmPassword")
        if not confirm:
            errors["confirmPassword"] = "Please confirm your password"
        elif confirm != password:
            errors["confirmPassword"] = "Passwords do not match"

    if not _text(fields, "firstName").strip():
        errors["firstName"] = "First name is required"
    if not _text(fields, "lastName").strip():
        errors["lastName"] = "Last name is required"

    return errors


def validate_password_change(
    current_password: Optional[str],
    new_password: Optional[str],
    confirm_password: Optional[str],
    min_password_length: int = MIN_PASSWORD_LENGTH,
) -> Dict[str, str]:
    errors: Dict[str, str] = {}

    if not current_password:
        errors["currentPassword"] = "Current password is required"

    if not new_password:
        errors["newPassword"] = "New password is required"
    elif len(new_password) < min_password_length:
        errors["newPassword"] = f"Password must be at least {min_password_length} characters"

    if new_password != confirm_password:
        errors["confirmPassword"] = "Passwords do not match"

    return errors


def validate_api_key_name(name: Optional[str]) -> Dict[str, str]:
    if not (name or "").strip():
        return {"name": "API key name is required"}
    return {}


def registration_payload(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Corps envoyé au serveur: sans confirmation, identifiants nettoyés."""
    payload = {k: v for k, v in fields.items() if k != "confirmPassword"}
    for key in ("username", "email", "firstName", "lastName"):
        if isinstance(payload.get(key), str):
            payload[key] = payload[key].strip()
    return payload
