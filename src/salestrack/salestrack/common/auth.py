from __future__ import annotations

from functools import wraps

from flask import g, request

from ..users.model import Claims
from ..users.tokens import TokenService


def token_required(tokens: TokenService):
    """Decorator factory: resolve the bearer token into ``g.current_user``."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.current_user = tokens.from_header(request.headers.get("Authorization"))
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_user() -> Claims:
    return g.current_user
