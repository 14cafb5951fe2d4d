"""Session-backed authentication and role gating."""

from __future__ import annotations

from functools import wraps
from typing import Callable, Optional

from flask import redirect, session

from .errors import Forbidden, Unauthorized
from .models import Identity, Role, User

SESSION_USER_KEY = "user"
LOGIN_PAGE = "/login.html"


def get_current_identity() -> Optional[Identity]:
    """Resolve the session into an Identity, or None when anonymous.

    A session holding an unknown role is treated as anonymous.
    """
    data = session.get(SESSION_USER_KEY)
    if not isinstance(data, dict):
        return None
    username = data.get("username")
    role = Role.parse(data.get("role"))
    if not username or role is None:
        return None
    return Identity(username=str(username), role=role)


def start_session(user: User) -> Identity:
    session.clear()
    session[SESSION_USER_KEY] = {"username": user.username, "role": user.role}
    return Identity(username=user.username, role=Role(user.role))


def end_session() -> None:
    session.clear()


def api_roles(*roles: Role) -> Callable:
    """Gate a JSON endpoint; the view receives the caller as `identity`.

    Anonymous callers get 401, callers with another role get 403.
    """
    allowed = frozenset(roles)

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args, **kwargs):
            identity = get_current_identity()
            if identity is None:
                raise Unauthorized("Unauthorized")
            if identity.role not in allowed:
                raise Forbidden("Forbidden")
            return view(*args, identity=identity, **kwargs)

        return wrapper

    return decorator


def page_roles(*roles: Role) -> Callable:
    """Gate an HTML page: anonymous visitors go to the login page."""
    allowed = frozenset(roles)

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args, **kwargs):
            identity = get_current_identity()
            if identity is None:
                return redirect(LOGIN_PAGE)
            if identity.role not in allowed:
                return "Forbidden", 403, {"Content-Type": "text/plain; charset=utf-8"}
            return view(*args, identity=identity, **kwargs)

        return wrapper

    return decorator
