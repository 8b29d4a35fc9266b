from datetime import datetime, timedelta
from unittest import mock

from conftest import answer_ids
from classes.attempt_manager import AttemptManager
from utils.helpers import utcnow
from utils.leaderboard_image import render_leaderboard_png, truncate_title, score_color, image_filename

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def finish_one(quiz, group):
    code = group.students[0].student_code
    start = utcnow()
    AttemptManager.load(quiz.access_code, code, now=start)
    AttemptManager.submit_answer(quiz.access_code, code, quiz.questions[0].id, answer_ids(quiz, 0), now=start)
    AttemptManager.finish(quiz.access_code, code, now=start + timedelta(seconds=75))


def test_render_returns_png():
    entries = [
        {"rank": 1, "first_name": "Ben", "score": 5, "total_questions": 5, "time_taken_seconds": 61},
        {"rank": 2, "first_name": "Ann", "score": 3, "total_questions": 5, "time_taken_seconds": None},
        {"rank": 4, "first_name": "Dan", "score": 0, "total_questions": 0, "time_taken_seconds": 12},
    ]
    png = render_leaderboard_png("Weekly Quiz", datetime(2026, 3, 1, 12, 0), entries)
    assert png.startswith(PNG_SIGNATURE)


def test_truncate_title():
    assert truncate_title("Short") == "Short"
    long_title = "A" * 45
    assert truncate_title(long_title) == "A" * 37 + "..."
    assert len(truncate_title(long_title)) == 40


def test_score_color_thresholds():
    assert score_color(80) == "#10b981"
    assert score_color(60) == "#3b82f6"
    assert score_color(40) == "#fbbf24"
    assert score_color(39) == "#ef4444"


def test_image_filename():
    assert image_filename("Maths: Week 3", 1700000000) == "quiz-results-maths--week-3-1700000000.png"


def test_image_endpoint_without_results(auth_client, quiz):
    response = auth_client.get(f"/api/teacher/quizzes/{quiz.id}/results/image")
    assert response.status_code == 404
    assert response.get_json()["error"] == "No completed attempts to generate image"


def test_image_endpoint_downloads_png(auth_client, quiz, group):
    finish_one(quiz, group)

    response = auth_client.get(f"/api/teacher/quizzes/{quiz.id}/results/image")
    assert response.status_code == 200
    assert response.mimetype == "image/png"
    assert response.data.startswith(PNG_SIGNATURE)
    assert "quiz-results-weekly-quiz-" in response.headers["Content-Disposition"]


def test_share_uploads_and_stores_path(auth_client, quiz, group):
    finish_one(quiz, group)

    with mock.patch("routes.teachers.upload_bytes") as upload:
        upload.return_value = ("https://dl.example.com/quiz.png?raw=1", "/ClassQuiz/leaderboards/quiz.png")
        response = auth_client.post(f"/api/teacher/quizzes/{quiz.id}/results/share")

    assert response.status_code == 200
    assert response.get_json()["url"] == "https://dl.example.com/quiz.png?raw=1"
    content, filename = upload.call_args[0]
    assert content.startswith(PNG_SIGNATURE)
    assert filename == f"quiz-{quiz.id}.png"
    assert quiz.leaderboard_image_path == "/ClassQuiz/leaderboards/quiz.png"


def test_share_failed_upload(auth_client, quiz, group):
    finish_one(quiz, group)

    with mock.patch("routes.teachers.upload_bytes", return_value=(None, None)):
        response = auth_client.post(f"/api/teacher/quizzes/{quiz.id}/results/share")
    assert response.status_code == 503


def test_share_without_storage_credentials(auth_client, quiz, group):
    finish_one(quiz, group)

    response = auth_client.post(f"/api/teacher/quizzes/{quiz.id}/results/share")
    assert response.status_code == 503
    assert response.get_json()["error"] == "Image sharing is not configured"
