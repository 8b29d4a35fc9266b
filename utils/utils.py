from functools import wraps
from flask import request, jsonify, g, current_app
from utils.tokens import decode_jwt


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = request.cookies.get("access_token")
        if not token:
            current_app.logger.debug("No access_token found in cookies")
            return jsonify({"error": "Unauthorized"}), 401

        decoded = decode_jwt(token)
        if not decoded or not decoded.get("user_id"):
            return jsonify({"error": "Invalid token"}), 401

        g.user = decoded
        return f(*args, **kwargs)

    return decorated_function


def current_teacher_id():
    return g.user.get("user_id")


def set_auth_cookie(response, token, max_age=86400):
    response.set_cookie(
        "access_token", token,
        httponly=True,
        secure=current_app.config.get("JWT_COOKIE_SECURE", True),
        samesite=current_app.config.get("JWT_COOKIE_SAMESITE", "None"),
        path="/",
        max_age=max_age
    )
    return response
