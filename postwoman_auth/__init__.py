"""
postwoman-auth

Session et autorisation côté client de l'outil de test d'API:
restauration de session, connexion, rôles, clés API et console admin.
"""

from .context import AuthContext

__all__ = ["AuthContext"]

__version__ = "0.1.0"
