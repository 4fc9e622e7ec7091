# Overview: Request decorators for API routes; session resolution and role checks.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service
from .services.session_service import Authenticated


def extract_token() -> str | None:
    """Session cookie first, then an "Authorization: Bearer <token>" header."""
    cookie_name = current_app.config.get("SESSION_COOKIE_NAME", "CHAFLOW_SESSION")
    token = request.cookies.get(cookie_name)
    if token:
        return token

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def _login_required_response():
    return jsonify({
        "error": "Authentication required",
        "redirect": session_service.LOGIN_REDIRECT,
    }), 401


def require_auth(f):
    """
    Resolve the caller's session.

    Sets:
    - g.current_seller: the authenticated Seller
    - g.session_context: the full SessionContext
    - g.session_token: the raw token (used by logout)

    Returns 401 with a redirect hint when there is no valid session.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = extract_token()
        result = session_service.require(token)

        if not isinstance(result, Authenticated):
            return _login_required_response()

        g.current_seller = result.context.seller
        g.session_context = result.context
        g.session_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require an ADMIN seller. Must be stacked under @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        seller = getattr(g, "current_seller", None)
        if seller is None:
            return _login_required_response()
        if not seller.is_admin:
            return jsonify({"error": "Administrator access required"}), 403
        return f(*args, **kwargs)

    return decorated_function
