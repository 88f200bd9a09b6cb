"""
LOT 3: Authorization Guard

Décide si une vue peut être rendue selon l'état de session et une politique.

Précédence (première règle applicable):
    1. restauration en cours          → LOADING
    2. non authentifié                → REDIRECT connexion (origine mémorisée)
    3. admin_only et pas admin        → REDIRECT non autorisé
    4. moderator_only et pas modérateur → REDIRECT non autorisé
    5. required_role non satisfait    → REDIRECT non autorisé
    6. sinon                          → RENDER
"""

import functools
from typing import Any, Callable, Mapping, Optional, TypeVar, Union

from ..core.interfaces import RouteSettings
from ..logging import StructuredLogger
from ..navigation import INavigator
from .interfaces import GuardDecision, GuardOutcome, ISessionManager, Policy
from .roles import Role


T = TypeVar("T")

GuardedView = Callable[..., Union[T, GuardDecision]]


class AuthorizationGuard:
    """
    Guard de navigation, sans état propre: relit la session à chaque décision.

    Example:
        guard = AuthorizationGuard(session_manager, navigator)
        admin_panel = guard.admin_route(render_admin_panel)
        result = admin_panel()  # rendu, ou GuardDecision après redirection
    """

    def __init__(
        self,
        session: ISessionManager,
        navigator: INavigator,
        routes: Optional[RouteSettings] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self._session = session
        self._navigator = navigator
        self._routes = routes or RouteSettings()
        self._logger = logger or StructuredLogger("postwoman.guard")

    # ══════════════════════════════════════════════════════════════════════
    # DÉCISIONS
    # ══════════════════════════════════════════════════════════════════════

    def decide(self, policy: Optional[Policy] = None, location: Optional[str] = None) -> GuardDecision:
        """
        Décision pour une vue protégée.

        Args:
            policy: Politique d'accès (None = authentification seule)
            location: Chemin demandé, mémorisé pour le retour après connexion

        Returns:
            GuardDecision
        """
        policy = policy or Policy()
        state = self._session.state

        if state.is_bootstrapping:
            return GuardDecision(GuardOutcome.LOADING, reason="Checking authentication...")

        if not state.is_authenticated:
            return GuardDecision(
                GuardOutcome.REDIRECT,
                target=self._routes.login_path,
                from_location=location,
                reason="Authentication required",
            )

        if policy.admin_only and not self._session.is_admin():
            return self._unauthorized("Admin role required")

        if policy.moderator_only and not self._session.is_moderator():
            return self._unauthorized("Moderator role required")

        if policy.required_role is not None and not self._session.has_role(policy.required_role):
            return self._unauthorized(f"Role '{getattr(policy.required_role, 'value', policy.required_role)}' required")

        return GuardDecision(GuardOutcome.RENDER)

    def decide_public(self, location: Optional[str] = None, redirect_to: Optional[str] = None) -> GuardDecision:
        """Vue publique (connexion, inscription): un utilisateur connecté est renvoyé ailleurs."""
        state = self._session.state

        if state.is_bootstrapping:
            return GuardDecision(GuardOutcome.LOADING, reason="Loading...")

        if state.is_authenticated:
            return GuardDecision(
                GuardOutcome.REDIRECT,
                target=redirect_to or self._routes.home_path,
                from_location=location,
                reason="Already authenticated",
            )

        return GuardDecision(GuardOutcome.RENDER)

    def _unauthorized(self, reason: str) -> GuardDecision:
        return GuardDecision(GuardOutcome.REDIRECT, target=self._routes.unauthorized_path, reason=reason)

    # ══════════════════════════════════════════════════════════════════════
    # WRAPPERS
    # ══════════════════════════════════════════════════════════════════════

    def protect(self, view: Callable[..., T], policy: Optional[Policy] = None) -> GuardedView:
        """
        Enveloppe une vue protégée.

        La vue enveloppée retourne le rendu de view, ou la GuardDecision
        (LOADING, ou REDIRECT déjà appliqué via le navigateur).
        """

        @functools.wraps(view)
        def guarded(*args: Any, **kwargs: Any) -> Union[T, GuardDecision]:
            location = self._navigator.current_path
            decision = self.decide(policy, location)
            return self._apply(decision, view, args, kwargs)

        return guarded

    def public_only(self, view: Callable[..., T], redirect_to: Optional[str] = None) -> GuardedView:
        @functools.wraps(view)
        def guarded(*args: Any, **kwargs: Any) -> Union[T, GuardDecision]:
            decision = self.decide_public(self._navigator.current_path, redirect_to)
            return self._apply(decision, view, args, kwargs)

        return guarded

    def admin_route(self, view: Callable[..., T]) -> GuardedView:
        return self.protect(view, Policy(admin_only=True))

    def moderator_route(self, view: Callable[..., T]) -> GuardedView:
        return self.protect(view, Policy(moderator_only=True))

    def role_route(self, view: Callable[..., T], role: Union[Role, str]) -> GuardedView:
        """
        Raises:
            ValueError: Rôle inconnu
        """
        parsed = Role.parse(role)
        if parsed is None:
            raise ValueError(f"Unknown role: {role!r}")
        return self.protect(view, Policy(required_role=parsed))

    def _apply(self, decision: GuardDecision, view: Callable[..., T], args: tuple, kwargs: dict) -> Union[T, GuardDecision]:
        if decision.outcome is GuardOutcome.RENDER:
            return view(*args, **kwargs)

        if decision.outcome is GuardOutcome.REDIRECT and decision.target is not None:
            self._logger.info(
                "Navigation redirected",
                target=decision.target,
                origin=decision.from_location,
                reason=decision.reason,
            )
            state = {"from": decision.from_location} if decision.from_location else None
            self._navigator.navigate(decision.target, replace=True, state=state)

        return decision

    # ══════════════════════════════════════════════════════════════════════
    # APRÈS CONNEXION
    # ══════════════════════════════════════════════════════════════════════

    def post_login_target(self, state: Optional[Mapping[str, Any]] = None) -> str:
        """
        Destination après connexion: l'origine mémorisée, sinon l'accueil.

        Args:
            state: État de navigation (défaut: état courant du navigateur)
        """
        if state is None:
            state = getattr(self._navigator, "current_state", None) or {}

        origin = state.get("from")
        # chemin local uniquement ("//host" = autre origine)
        if (
            isinstance(origin, str)
            and origin.startswith("/")
            and not origin.startswith("//")
            and origin != self._routes.login_path
        ):
            return origin
        return self._routes.home_path
