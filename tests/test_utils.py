from datetime import datetime, timedelta

import pytest

from models.teachers import Teacher
from utils.codes import random_code, normalize_code
from utils.helpers import parse_datetime, extend_from_now, clean_text, parse_optional_int, format_duration
from utils.dropbox_service import build_path, delete_file_from_dropbox


def test_random_code_is_uppercase_hex():
    code = random_code(8)
    assert len(code) == 8
    assert code == code.upper()
    int(code, 16)


def test_normalize_code():
    assert normalize_code("  ab12cd ") == "AB12CD"
    assert normalize_code(None) == ""


def test_parse_datetime_converts_to_naive_utc():
    assert parse_datetime("2026-05-01T10:00:00Z") == datetime(2026, 5, 1, 10, 0)
    assert parse_datetime("2026-05-01T15:30:00+05:30") == datetime(2026, 5, 1, 10, 0)
    with pytest.raises(ValueError):
        parse_datetime("")
    with pytest.raises(ValueError):
        parse_datetime("tomorrow")


def test_extend_from_now():
    now = datetime(2026, 1, 1, 8, 0)
    assert extend_from_now(hours=2, minutes=15, now=now) == datetime(2026, 1, 1, 10, 15)


def test_clean_text_strips_tags():
    assert clean_text("<script>x</script>Hello <i>there</i> ") == "xHello there"
    assert clean_text(None) is None


def test_parse_optional_int():
    assert parse_optional_int("", "limit") is None
    assert parse_optional_int("7", "limit", minimum=1) == 7
    with pytest.raises(ValueError, match="limit must be at least 1"):
        parse_optional_int(0, "limit", minimum=1)
    with pytest.raises(ValueError, match="limit must be an integer"):
        parse_optional_int("seven", "limit")


def test_format_duration():
    assert format_duration(125) == "2m 5s"
    assert format_duration(None) is None


def test_dropbox_paths(app):
    assert build_path("leaderboards", "quiz-1.png") == "/ClassQuiz/leaderboards/quiz-1.png"
    assert delete_file_from_dropbox("/Other/quiz-1.png") is False
    # credentials are not configured under test
    assert delete_file_from_dropbox("/ClassQuiz/leaderboards/quiz-1.png") is False


def test_student_codes_are_generated(group):
    codes = [student.student_code for student in group.students]
    assert all(len(code) == 6 for code in codes)
    assert len(set(codes)) == len(codes)


def test_cli_create_teacher_and_rankings(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["create-teacher", "Admin@School.lk", "--password", "pw123456", "--full-name", "Admin"])
    assert result.exit_code == 0
    teacher = Teacher.query.filter_by(email="admin@school.lk").one()
    assert teacher.check_password("pw123456")

    result = runner.invoke(args=["create-teacher", "admin@school.lk", "--password", "newpass99"])
    assert "Password updated" in result.output
    assert teacher.check_password("newpass99")

    result = runner.invoke(args=["recalculate-rankings"])
    assert result.exit_code == 0
    assert "Rankings calculated for 0 quizzes." in result.output
