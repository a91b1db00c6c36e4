# serenite/auth/guard.py

# Garde des routes protégées : décision pure + décorateur de vue.
#   - pas d'utilisateur          -> redirection vers /login (avec ?next=)
#   - rôle insuffisant           -> redirection vers /unauthorized
#   - sinon                      -> la vue s'exécute

from collections.abc import Callable
from enum import Enum
from functools import wraps
from typing import Any

from flask import redirect, request, url_for
from flask_login import current_user

from serenite.auth.roles import Role, has_at_least_role


class Access(Enum):
    ALLOW = "allow"
    LOGIN = "login"
    UNAUTHORIZED = "unauthorized"


def evaluate_access(user, min_role: Role = Role.VISITOR) -> Access:
    if user is None or not getattr(user, "is_authenticated", False):
        return Access.LOGIN
    if not has_at_least_role(user.role, min_role):
        return Access.UNAUTHORIZED
    return Access.ALLOW


def current_session_user():
    return current_user if current_user.is_authenticated else None


def role_required(min_role: Role = Role.VISITOR) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            decision = evaluate_access(current_session_user(), min_role)
            if decision is Access.LOGIN:
                nxt = request.full_path or request.path
                # Evite le '?' final de full_path quand il n'y a pas de query string.
                if nxt.endswith("?"):
                    nxt = nxt[:-1]
                return redirect(url_for("auth.login", next=nxt))
            if decision is Access.UNAUTHORIZED:
                return redirect(url_for("accueil.unauthorized"))
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def user_has_role(min_role) -> bool:
    """Helper pour les templates : {% if has_role('ADMIN_MEMBRE') %}."""
    return evaluate_access(current_session_user(), min_role) is Access.ALLOW
