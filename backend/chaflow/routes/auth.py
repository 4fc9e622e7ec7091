# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/chaflow/routes/auth.py
"""
Authentication API routes

The session token travels in the CHAFLOW_SESSION cookie (HttpOnly,
SameSite=Lax). It is also returned in the login body so non-browser clients
can send it as "Authorization: Bearer <token>".
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import seller_service
from ..services import session_service
from ..errors import ChaflowError, error_response
from ..validation import parse_change_password
from ..decorators import require_auth, extract_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _clear_session_cookie(response):
    response.delete_cookie(
        current_app.config.get("SESSION_COOKIE_NAME", "CHAFLOW_SESSION"),
        path="/",
        samesite="Lax",
        httponly=True,
    )
    return response


@auth_bp.post("/login")
def login_route():
    """
    Authenticate a seller and open a session.

    Creates the bootstrap admin first when no admin exists yet.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return {"error": "email and password required"}, 400

    try:
        seller_service.ensure_default_admin()
        seller = auth_service.authenticate(email, password)
        session, token = session_service.issue(
            seller_id=seller.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except ChaflowError as e:
        return error_response(e)

    response = jsonify({
        "seller": seller.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "must_change_password": seller.must_change_password,
        "message": "Login successful",
    })
    response.set_cookie(value=token, **session_service.cookie_settings(session))
    return response, 200


@auth_bp.post("/logout")
def logout_route():
    """Revoke the current session. Succeeds even when there is none."""
    token = extract_token()
    revoked = session_service.revoke(token)
    if revoked:
        current_app.logger.info("Session logged out")

    response = jsonify({"message": "Logout successful", "redirect": session_service.LOGIN_REDIRECT})
    return _clear_session_cookie(response), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return {
        "seller": g.current_seller.to_dict(),
        "session": g.session_context.session.to_dict(),
    }


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change the caller's own password.

    Every session of the seller is revoked, so the caller is logged out and
    must sign in again with the new password.
    """
    try:
        command = parse_change_password(request.get_json(silent=True))
        revoked = seller_service.change_password(
            g.current_seller.id,
            command.current_password,
            command.new_password,
            command.confirm_password,
        )
    except ChaflowError as e:
        return error_response(e)

    response = jsonify({
        "message": "Password changed; please sign in again",
        "sessions_revoked": revoked,
        "redirect": session_service.LOGIN_REDIRECT,
    })
    return _clear_session_cookie(response), 200
