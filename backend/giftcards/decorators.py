# Overview: Request decorators for API routes.

import hmac
from functools import wraps
from flask import request, jsonify, current_app


def require_admin_token(f):
    """
    Require the operator API token for administrative endpoints.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Token does not match ADMIN_API_TOKEN
    Returns 403 if ADMIN_API_TOKEN is not configured (endpoint disabled).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("ADMIN_API_TOKEN")
        if not expected:
            return jsonify({"success": False, "error": "FORBIDDEN",
                            "message": "Administrative API is disabled"}), 403

        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"success": False, "error": "UNAUTHORIZED",
                            "message": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        if not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
            current_app.logger.warning("Rejected admin request to %s from %s",
                                       request.path, request.remote_addr)
            return jsonify({"success": False, "error": "UNAUTHORIZED",
                            "message": "Invalid token"}), 401

        return f(*args, **kwargs)

    return decorated_function
