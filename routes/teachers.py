import io
from flask import Blueprint, jsonify, request, current_app, send_file

from utils.utils import login_required, current_teacher_id
from utils.codes import generate_unique_code
from utils.helpers import utcnow, parse_datetime, extend_from_now, clean_text, parse_optional_int
from utils.dropbox_service import upload_bytes, StorageUnavailable
from utils.leaderboard_image import render_leaderboard_png, image_filename
from classes.errors import ValidationError
from classes.validators import validate_required_text
from classes.quiz_manager import QuizManager
from classes.ranking_manager import RankingManager

from models import db
from models.groups import Group
from models.students import Student
from models.quiz_sessions import QuizSession
from models.quiz_attempts import QuizAttempt

# Teachers' blueprint
teacher_bp = Blueprint("teacher", __name__)


def get_owned_group(group_id):
    return Group.query.filter_by(id=group_id, teacher_id=current_teacher_id()).first()


def get_owned_quiz(quiz_id):
    return QuizSession.query.filter_by(id=quiz_id, teacher_id=current_teacher_id()).first()


def parse_int_field(value, field_name, minimum=None):
    try:
        return parse_optional_int(value, field_name, minimum=minimum)
    except ValueError as e:
        raise ValidationError(str(e))


def parse_deadline(value):
    try:
        return parse_datetime(value)
    except ValueError:
        raise ValidationError("A valid deadline is required")

#__________________________________________________________________________________________ * Dashboard *__________________________________________________

@teacher_bp.route("/dashboard", methods=["GET"])
@login_required
def get_dashboard():
    teacher_id = current_teacher_id()

    group_ids = [g.id for g in Group.query.filter_by(teacher_id=teacher_id).with_entities(Group.id).all()]
    quiz_ids = [q.id for q in QuizSession.query.filter_by(teacher_id=teacher_id).with_entities(QuizSession.id).all()]

    students = Student.query.filter(Student.group_id.in_(group_ids)).count() if group_ids else 0
    attempts = QuizAttempt.query.filter(QuizAttempt.quiz_session_id.in_(quiz_ids)).count() if quiz_ids else 0

    return jsonify({
        "groups": len(group_ids),
        "students": students,
        "quizzes": len(quiz_ids),
        "attempts": attempts,
    }), 200

#__________________________________________________________________________________________ * Groups *__________________________________________________

# Fetch all groups
@teacher_bp.route("/groups", methods=["GET"])
@login_required
def get_groups():
    groups = Group.query.filter_by(teacher_id=current_teacher_id()).order_by(Group.created_at.desc(), Group.id.desc()).all()
    return jsonify({"groups": [group.to_dict() for group in groups]}), 200


# Create a group
@teacher_bp.route("/groups", methods=["POST"])
@login_required
def create_group():
    data = request.get_json(silent=True) or {}
    name = validate_required_text("Name", data.get("name"), max_length=255)

    group = Group(teacher_id=current_teacher_id(), name=name, description=clean_text(data.get("description")))
    db.session.add(group)
    db.session.commit()

    return jsonify({"message": "Group created successfully", "group": group.to_dict()}), 201


# Fetch one group with its students
@teacher_bp.route("/groups/<int:group_id>", methods=["GET"])
@login_required
def get_group(group_id):
    group = get_owned_group(group_id)
    if not group:
        return jsonify({"error": "Group not found"}), 404

    return jsonify(group.to_dict(include_students=True)), 200


# Edit a group
@teacher_bp.route("/groups/<int:group_id>", methods=["PUT"])
@login_required
def edit_group(group_id):
    group = get_owned_group(group_id)
    if not group:
        return jsonify({"error": "Group not found"}), 404

    data = request.get_json(silent=True) or {}
    if "name" in data:
        group.name = validate_required_text("Name", data.get("name"), max_length=255)
    if "description" in data:
        group.description = clean_text(data.get("description"))

    db.session.commit()

    return jsonify({"message": "Group updated successfully", "group": group.to_dict()}), 200


# Delete a group (students and their attempts go with it)
@teacher_bp.route("/groups/<int:group_id>", methods=["DELETE"])
@login_required
def delete_group(group_id):
    group = get_owned_group(group_id)
    if not group:
        return jsonify({"error": "Group not found"}), 404

    db.session.delete(group)
    db.session.commit()

    return jsonify({"message": "Group deleted successfully"}), 200

#__________________________________________________________________________________________ * Students *__________________________________________________

@teacher_bp.route("/groups/<int:group_id>/students", methods=["GET"])
@login_required
def get_students(group_id):
    group = get_owned_group(group_id)
    if not group:
        return jsonify({"error": "Group not found"}), 404

    return jsonify({"students": [student.to_dict() for student in group.students]}), 200


# Add one student ({"first_name": ...}) or many ({"first_names": [...]})
@teacher_bp.route("/groups/<int:group_id>/students", methods=["POST"])
@login_required
def add_students(group_id):
    group = get_owned_group(group_id)
    if not group:
        return jsonify({"error": "Group not found"}), 404

    data = request.get_json(silent=True) or {}
    names = data.get("first_names")
    if names is None:
        names = [data.get("first_name")]
    if not isinstance(names, list) or not names:
        return jsonify({"error": "first_names must be a non-empty list"}), 400

    students = [
        Student(group_id=group.id, first_name=validate_required_text("First name", name, max_length=255))
        for name in names
    ]
    db.session.add_all(students)
    db.session.commit()
    current_app.logger.info("Added %s students to group %s", len(students), group.id)

    return jsonify({
        "message": "Students added successfully",
        "students": [student.to_dict() for student in students]
    }), 201


@teacher_bp.route("/groups/<int:group_id>/students/<int:student_id>", methods=["PUT"])
@login_required
def edit_student(group_id, student_id):
    group = get_owned_group(group_id)
    student = Student.query.filter_by(id=student_id, group_id=group_id).first() if group else None
    if not student:
        return jsonify({"error": "Student not found"}), 404

    data = request.get_json(silent=True) or {}
    student.first_name = validate_required_text("First name", data.get("first_name", student.first_name), max_length=255)
    db.session.commit()

    return jsonify({"message": "Student updated successfully", "student": student.to_dict()}), 200


# Issue a fresh code, e.g. when a student's code has leaked
@teacher_bp.route("/groups/<int:group_id>/students/<int:student_id>/regenerate-code", methods=["POST"])
@login_required
def regenerate_student_code(group_id, student_id):
    group = get_owned_group(group_id)
    student = Student.query.filter_by(id=student_id, group_id=group_id).first() if group else None
    if not student:
        return jsonify({"error": "Student not found"}), 404

    student.student_code = generate_unique_code(
        db.session.connection(), Student.__table__.c.student_code, current_app.config["STUDENT_CODE_LENGTH"]
    )
    db.session.commit()

    return jsonify({"message": "Student code regenerated", "student": student.to_dict()}), 200


@teacher_bp.route("/groups/<int:group_id>/students/<int:student_id>", methods=["DELETE"])
@login_required
def delete_student(group_id, student_id):
    group = get_owned_group(group_id)
    student = Student.query.filter_by(id=student_id, group_id=group_id).first() if group else None
    if not student:
        return jsonify({"error": "Student not found"}), 404

    db.session.delete(student)
    db.session.commit()

    return jsonify({"message": "Student deleted successfully"}), 200

#__________________________________________________________________________________________ * Quizzes *__________________________________________________

# Fetch all quizzes, newest first
@teacher_bp.route("/quizzes", methods=["GET"])
@login_required
def get_all_quizzes():
    quizzes = (
        QuizSession.query
        .filter_by(teacher_id=current_teacher_id())
        .order_by(QuizSession.created_at.desc(), QuizSession.id.desc())
        .all()
    )
    return jsonify({"quizzes": [quiz.to_dict() for quiz in quizzes]}), 200


# CREATE a new quiz
@teacher_bp.route("/quizzes", methods=["POST"])
@login_required
def create_quiz():
    data = request.get_json(silent=True) or {}
    teacher_id = current_teacher_id()

    title = validate_required_text("Quiz title", data.get("title"), max_length=255)
    group_ids = QuizManager.owned_group_ids(teacher_id, data.get("group_ids"))
    deadline = parse_deadline(data.get("deadline"))
    participant_limit = parse_int_field(data.get("participant_limit"), "participant_limit", minimum=1)
    duration_seconds = parse_int_field(data.get("duration_seconds"), "duration_seconds", minimum=1)

    quiz = QuizSession(
        teacher_id=teacher_id,
        title=title,
        description=clean_text(data.get("description")) or None,
        deadline=deadline,
        participant_limit=participant_limit,
        duration_seconds=duration_seconds or current_app.config["QUIZ_DEFAULT_DURATION_SECONDS"],
    )
    QuizManager.set_groups(quiz, group_ids)

    db.session.add(quiz)
    db.session.commit()
    current_app.logger.info("Quiz %s created with access code %s", quiz.id, quiz.access_code)

    return jsonify({"message": "Quiz created! Now add questions.", "quiz": quiz.to_dict()}), 201


# Fetch one quiz with its questions
@teacher_bp.route("/quizzes/<int:quiz_id>", methods=["GET"])
@login_required
def get_quiz(quiz_id):
    quiz = get_owned_quiz(quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404

    return jsonify(quiz.to_dict(include_questions=True)), 200


# EDIT a quiz
@teacher_bp.route("/quizzes/<int:quiz_id>", methods=["PUT"])
@login_required
def edit_quiz(quiz_id):
    quiz = get_owned_quiz(quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404

    data = request.get_json(silent=True) or {}

    if "title" in data:
        quiz.title = validate_required_text("Quiz title", data.get("title"), max_length=255)
    if "description" in data:
        quiz.description = clean_text(data.get("description")) or None
    if "participant_limit" in data:
        quiz.participant_limit = parse_int_field(data.get("participant_limit"), "participant_limit", minimum=1)
    if "duration_seconds" in data:
        quiz.duration_seconds = (
            parse_int_field(data.get("duration_seconds"), "duration_seconds", minimum=1)
            or current_app.config["QUIZ_DEFAULT_DURATION_SECONDS"]
        )
    if "is_active" in data:
        if not isinstance(data.get("is_active"), bool):
            raise ValidationError("is_active must be true or false")
        quiz.is_active = data.get("is_active")
    if "group_ids" in data:
        QuizManager.set_groups(quiz, QuizManager.owned_group_ids(current_teacher_id(), data.get("group_ids")))

    # Extending moves the deadline relative to now; otherwise take the given one.
    if data.get("extend_hours") or data.get("extend_minutes"):
        hours = parse_int_field(data.get("extend_hours"), "extend_hours", minimum=0) or 0
        minutes = parse_int_field(data.get("extend_minutes"), "extend_minutes", minimum=0) or 0
        quiz.deadline = extend_from_now(hours=hours, minutes=minutes, now=utcnow())
    elif "deadline" in data:
        quiz.deadline = parse_deadline(data.get("deadline"))

    # A quiz that is open again has no ranking yet.
    if not quiz.deadline_passed(utcnow()):
        QuizAttempt.query.filter_by(quiz_session_id=quiz.id).update({"ranking": None}, synchronize_session="fetch")

    db.session.commit()

    return jsonify({"message": "Quiz updated successfully!", "quiz": quiz.to_dict()}), 200


# DELETE a quiz
@teacher_bp.route("/quizzes/<int:quiz_id>", methods=["DELETE"])
@login_required
def delete_quiz(quiz_id):
    quiz = get_owned_quiz(quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404

    QuizManager.delete_quiz(quiz)

    return jsonify({"message": "Quiz deleted"}), 200

#__________________________________________________________________________________________ * Questions *__________________________________________________

@teacher_bp.route("/quizzes/<int:quiz_id>/questions", methods=["GET"])
@login_required
def get_questions(quiz_id):
    quiz = get_owned_quiz(quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404

    return jsonify({"questions": [q.to_dict() for q in quiz.questions]}), 200


# Replace all questions of a quiz, in the given order
@teacher_bp.route("/quizzes/<int:quiz_id>/questions", methods=["PUT"])
@login_required
def save_questions(quiz_id):
    quiz = get_owned_quiz(quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404

    data = request.get_json(silent=True) or {}
    questions = QuizManager.save_questions(
        quiz, data.get("questions"), default_time_limit=current_app.config["QUESTION_DEFAULT_TIME_LIMIT"]
    )

    return jsonify({"message": "Quiz saved!", "questions": [q.to_dict() for q in questions]}), 200

#__________________________________________________________________________________________ * Results *__________________________________________________

@teacher_bp.route("/quizzes/<int:quiz_id>/results", methods=["GET"])
@login_required
def get_results(quiz_id):
    quiz = get_owned_quiz(quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404

    ranked = False
    if quiz.deadline_passed(utcnow()):
        try:
            ranked = RankingManager.calculate_rankings(quiz)
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error calculating rankings for quiz %s", quiz.id)

    return jsonify({
        "quiz": quiz.to_dict(),
        "rankings_calculated": ranked,
        "results": RankingManager.results(quiz),
    }), 200


def build_leaderboard_png(quiz):
    entries = RankingManager.leaderboard_entries(quiz)
    if not entries:
        return None
    return render_leaderboard_png(quiz.title, quiz.deadline, entries)


# Download the shareable leaderboard image
@teacher_bp.route("/quizzes/<int:quiz_id>/results/image", methods=["GET"])
@login_required
def get_results_image(quiz_id):
    quiz = get_owned_quiz(quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404

    png = build_leaderboard_png(quiz)
    if png is None:
        return jsonify({"error": "No completed attempts to generate image"}), 404

    filename = image_filename(quiz.title, int(utcnow().timestamp()))
    return send_file(io.BytesIO(png), mimetype="image/png", as_attachment=True, download_name=filename)


# Publish the leaderboard image and return a shared link
@teacher_bp.route("/quizzes/<int:quiz_id>/results/share", methods=["POST"])
@login_required
def share_results_image(quiz_id):
    quiz = get_owned_quiz(quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404

    png = build_leaderboard_png(quiz)
    if png is None:
        return jsonify({"error": "No completed attempts to generate image"}), 404

    try:
        public_url, dropbox_path = upload_bytes(png, f"quiz-{quiz.id}.png", folder="leaderboards")
    except StorageUnavailable as e:
        current_app.logger.warning("Leaderboard sharing unavailable: %s", e)
        return jsonify({"error": "Image sharing is not configured"}), 503

    if not public_url:
        return jsonify({"error": "Image upload failed"}), 503

    quiz.leaderboard_image_path = dropbox_path
    db.session.commit()

    return jsonify({"message": "Shareable image generated!", "url": public_url}), 200
