from flask import Blueprint, request, jsonify, make_response, current_app
from models.teachers import Teacher
from models import db
from utils.tokens import get_jwt_token, decode_jwt
from utils.utils import set_auth_cookie
from utils.helpers import clean_text

auth_bp = Blueprint('auth_bp', __name__)


# Register
@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}

    email = (data.get('email') or "").strip().lower()
    password = data.get('password')
    full_name = clean_text(data.get('full_name'))

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    if len(password) < 6:
        return jsonify({"error": "Password must be at least 6 characters"}), 400

    if Teacher.query.filter_by(email=email).first():
        return jsonify({"error": "User already exists"}), 409

    teacher = Teacher(email=email, full_name=full_name)
    teacher.set_password(password)

    db.session.add(teacher)
    db.session.commit()
    current_app.logger.info("Registered teacher %s", teacher.id)

    return jsonify({"message": "Teacher registered successfully!", "user": teacher.to_dict()}), 201


# Login
@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    teacher = Teacher.query.filter_by(email=email).first()

    if not teacher or not teacher.check_password(password):
        return jsonify({"error": "Invalid credentials"}), 401

    token = get_jwt_token({
        "user_id": teacher.id,
        "email": teacher.email,
        "role": "teacher",
    })

    response = make_response(jsonify({
        "message": "Login successful",
        "user": teacher.to_dict()
    }))

    hours = current_app.config.get("JWT_EXPIRATION_HOURS", 24)
    return set_auth_cookie(response, token, max_age=hours * 3600)


# Logout
@auth_bp.route('/logout', methods=['POST'])
def logout():
    response = make_response(jsonify({"message": "Logout successful"}))
    return set_auth_cookie(response, "", max_age=0)


# Auth Check
@auth_bp.route('/check-auth', methods=['GET'])
def check_auth():
    token = request.cookies.get("access_token")

    if not token:
        return jsonify({"error": "Not authenticated"}), 401

    decoded_token = decode_jwt(token)
    if not decoded_token:
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({
        "message": "Authenticated",
        "user": {
            "id": decoded_token.get("user_id"),
            "email": decoded_token.get("email"),
            "role": decoded_token.get("role"),
        }
    }), 200
