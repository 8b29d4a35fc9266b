from flask import Blueprint, jsonify, request, session, current_app

from classes.attempt_manager import AttemptManager
from utils.codes import normalize_code

# Students' blueprint: no account, a student code identifies the player
play_bp = Blueprint("play", __name__)


def get_student_code(data=None):
    """Student code from the body, the query string, or the one remembered at join."""
    code = None
    if data:
        code = data.get("code") or data.get("student_code")
    code = code or request.args.get("code") or session.get("student_code")
    return normalize_code(code)


# Resolve a student code to the newest open quiz of the student's group
@play_bp.route("/join", methods=["POST"])
def join_quiz():
    data = request.get_json(silent=True) or {}
    student, quiz = AttemptManager.find_open_quiz(data.get("student_code"))

    session["student_code"] = student.student_code
    current_app.logger.info("Student %s joined quiz %s", student.id, quiz.id)

    return jsonify({
        "access_code": quiz.access_code,
        "student_code": student.student_code,
        "quiz": {"id": quiz.id, "title": quiz.title, "deadline": quiz.deadline.isoformat()},
    }), 200


# Start or resume the attempt
@play_bp.route("/<string:access_code>", methods=["GET"])
def load_quiz(access_code):
    return jsonify(AttemptManager.load(access_code, get_student_code())), 200


@play_bp.route("/<string:access_code>/answer", methods=["POST"])
def submit_answer(access_code):
    data = request.get_json(silent=True) or {}
    result = AttemptManager.submit_answer(
        access_code,
        get_student_code(data),
        data.get("question_id"),
        data.get("answer_ids"),
    )
    return jsonify(result), 200


# Finish the quiz; repeated calls return the stored result
@play_bp.route("/<string:access_code>/finish", methods=["POST"])
def finish_quiz(access_code):
    data = request.get_json(silent=True) or {}
    return jsonify(AttemptManager.finish(access_code, get_student_code(data))), 200
