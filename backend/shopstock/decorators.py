# Overview: Request decorators for API routes; bearer-token auth and role checks.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service
from .services.authorization import Actor


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session token.

    Sets on Flask g:
    - g.current_user: the authenticated User
    - g.actor: the Actor passed to service calls
    - g.token: the raw bearer token (for logout)

    Returns 401 if the header is missing, or the token is unknown, expired,
    revoked, or belongs to a deactivated account.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if user is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.actor = Actor.from_user(user)
        g.token = token
        return f(*args, **kwargs)

    return decorated_function


def require_role(check):
    """
    Require that the caller's role passes `check` (e.g. can_manage_catalog).

    Must be applied after @require_auth:

        @bp.post("")
        @require_auth
        @require_role(can_manage_catalog)
        def create(): ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = getattr(g, "actor", None)
            if actor is None:
                return jsonify({"error": "Authentication required"}), 401
            if not check(actor.role):
                return jsonify({"error": "Unauthorized"}), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def optional_actor() -> Actor | None:
    """Actor for the request's bearer token, or None; never responds."""
    token = _bearer_token()
    if token is None:
        return None
    user = session_service.validate_session(token)
    return Actor.from_user(user) if user else None
