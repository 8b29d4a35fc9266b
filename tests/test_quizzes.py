from datetime import timedelta
from unittest import mock

from conftest import SAMPLE_QUESTIONS, create_teacher, create_group, create_quiz
from models import db
from models.questions import Question
from models.quiz_sessions import QuizSession
from models.quiz_attempts import QuizAttempt
from utils.helpers import utcnow


def new_quiz_payload(group_ids, **overrides):
    payload = {
        "title": "Fractions",
        "description": "Chapter 4",
        "deadline": (utcnow() + timedelta(days=2)).isoformat() + "Z",
        "group_ids": group_ids,
    }
    payload.update(overrides)
    return payload


def test_create_quiz_defaults(auth_client, group):
    response = auth_client.post("/api/teacher/quizzes", json=new_quiz_payload([group.id]))
    assert response.status_code == 201

    quiz = response.get_json()["quiz"]
    assert quiz["duration_seconds"] == 1800
    assert quiz["is_active"] is True
    assert quiz["group_ids"] == [group.id]
    assert len(quiz["access_code"]) == 8
    assert quiz["access_code"] == quiz["access_code"].upper()


def test_create_quiz_requires_group(auth_client, group):
    response = auth_client.post("/api/teacher/quizzes", json=new_quiz_payload([]))
    assert response.status_code == 400
    assert response.get_json()["error"] == "Please select at least one group"


def test_create_quiz_rejects_foreign_group(auth_client):
    other = create_teacher(email="other@example.com")
    foreign = create_group(other)
    response = auth_client.post("/api/teacher/quizzes", json=new_quiz_payload([foreign.id]))
    assert response.status_code == 400


def test_create_quiz_requires_deadline(auth_client, group):
    response = auth_client.post("/api/teacher/quizzes", json=new_quiz_payload([group.id], deadline="soon"))
    assert response.status_code == 400


def test_create_quiz_with_several_groups(auth_client, teacher, group):
    second = create_group(teacher, name="Grade 5B", students=("Sunil",))
    response = auth_client.post(
        "/api/teacher/quizzes", json=new_quiz_payload([group.id, second.id], duration_seconds=900)
    )
    quiz = response.get_json()["quiz"]
    assert quiz["group_ids"] == sorted([group.id, second.id])
    assert quiz["duration_seconds"] == 900


def test_list_quizzes_newest_first(auth_client, teacher, group):
    create_quiz(teacher, [group], title="First")
    create_quiz(teacher, [group], title="Second")

    titles = [q["title"] for q in auth_client.get("/api/teacher/quizzes").get_json()["quizzes"]]
    assert titles == ["Second", "First"]


def test_update_quiz_replaces_groups(auth_client, teacher, quiz, group):
    second = create_group(teacher, name="Grade 5B", students=())
    response = auth_client.put(f"/api/teacher/quizzes/{quiz.id}", json={
        "title": "Renamed", "group_ids": [second.id], "participant_limit": 10, "is_active": False
    })
    assert response.status_code == 200

    data = response.get_json()["quiz"]
    assert data["title"] == "Renamed"
    assert data["group_ids"] == [second.id]
    assert data["participant_limit"] == 10
    assert data["is_active"] is False


def test_extend_deadline_from_now(auth_client, teacher, group):
    quiz = create_quiz(teacher, [group], deadline=utcnow() - timedelta(hours=3))
    before = utcnow()

    response = auth_client.put(f"/api/teacher/quizzes/{quiz.id}", json={"extend_hours": 1, "extend_minutes": 30})
    assert response.status_code == 200

    db.session.refresh(quiz)
    assert before + timedelta(minutes=89) < quiz.deadline < utcnow() + timedelta(minutes=91)


def test_save_questions_keeps_order(auth_client, teacher, group):
    quiz = create_quiz(teacher, [group], questions=None)
    response = auth_client.put(f"/api/teacher/quizzes/{quiz.id}/questions", json={"questions": SAMPLE_QUESTIONS})
    assert response.status_code == 200

    questions = auth_client.get(f"/api/teacher/quizzes/{quiz.id}/questions").get_json()["questions"]
    assert [q["question_text"] for q in questions] == [q["question_text"] for q in SAMPLE_QUESTIONS]
    assert [q["order_index"] for q in questions] == [0, 1, 2]
    assert [a["answer_text"] for a in questions[1]["answers"]] == ["2", "3", "4"]
    assert questions[0]["time_limit"] == 30


def test_save_questions_replaces_previous(auth_client, quiz):
    response = auth_client.put(f"/api/teacher/quizzes/{quiz.id}/questions", json={"questions": SAMPLE_QUESTIONS[:1]})
    assert response.status_code == 200
    assert Question.query.filter_by(quiz_session_id=quiz.id).count() == 1


def test_single_question_needs_exactly_one_correct(auth_client, quiz):
    bad = {
        "question_text": "Pick one",
        "question_type": "single",
        "answers": [{"answer_text": "a", "is_correct": True}, {"answer_text": "b", "is_correct": True}],
    }
    response = auth_client.put(f"/api/teacher/quizzes/{quiz.id}/questions", json={"questions": [bad]})
    assert response.status_code == 400
    assert "exactly one correct" in response.get_json()["error"]


def test_question_validation_messages(auth_client, quiz):
    cases = [
        ({"question_text": "", "answers": []}, "Question 1 is empty"),
        ({"question_text": "Q", "answers": [{"answer_text": "a", "is_correct": True}]},
         "Question 1 needs at least 2 answers"),
        ({"question_text": "Q", "answers": [{"answer_text": "a"}, {"answer_text": "b"}]},
         "Question 1 needs at least one correct answer"),
    ]
    for question, message in cases:
        response = auth_client.put(f"/api/teacher/quizzes/{quiz.id}/questions", json={"questions": [question]})
        assert response.status_code == 400
        assert response.get_json()["error"] == message


def test_questions_locked_once_attempts_exist(auth_client, quiz, group):
    db.session.add(QuizAttempt(quiz_session_id=quiz.id, student_id=group.students[0].id, started_at=utcnow()))
    db.session.commit()

    response = auth_client.put(f"/api/teacher/quizzes/{quiz.id}/questions", json={"questions": SAMPLE_QUESTIONS})
    assert response.status_code == 409


def test_delete_quiz_cascades_and_removes_shared_image(auth_client, quiz):
    quiz.leaderboard_image_path = "/ClassQuiz/leaderboards/quiz-1.png"
    db.session.commit()
    quiz_id = quiz.id

    with mock.patch("classes.quiz_manager.delete_file_from_dropbox") as delete_file:
        response = auth_client.delete(f"/api/teacher/quizzes/{quiz_id}")

    assert response.status_code == 200
    delete_file.assert_called_once_with("/ClassQuiz/leaderboards/quiz-1.png")
    assert db.session.get(QuizSession, quiz_id) is None
    assert Question.query.filter_by(quiz_session_id=quiz_id).count() == 0


def test_other_teachers_quiz_is_hidden(auth_client):
    other = create_teacher(email="other@example.com")
    foreign = create_quiz(other, [create_group(other)])
    assert auth_client.get(f"/api/teacher/quizzes/{foreign.id}").status_code == 404
    assert auth_client.get(f"/api/teacher/quizzes/{foreign.id}/results").status_code == 404


def test_reopening_quiz_clears_rankings(auth_client, quiz, group):
    db.session.add(QuizAttempt(
        quiz_session_id=quiz.id, student_id=group.students[0].id, started_at=utcnow() - timedelta(hours=2),
        completed_at=utcnow() - timedelta(hours=1), score=3, total_questions=3, time_taken_seconds=60,
    ))
    quiz.deadline = utcnow() - timedelta(minutes=10)
    db.session.commit()

    ranked = auth_client.get(f"/api/teacher/quizzes/{quiz.id}/results").get_json()
    assert ranked["results"][0]["ranking"] == 1

    response = auth_client.put(f"/api/teacher/quizzes/{quiz.id}", json={"extend_hours": 2})
    assert response.status_code == 200

    data = auth_client.get(f"/api/teacher/quizzes/{quiz.id}/results").get_json()
    assert data["rankings_calculated"] is False
    assert [row["ranking"] for row in data["results"]] == [None]


def test_is_active_must_be_boolean(auth_client, quiz):
    response = auth_client.put(f"/api/teacher/quizzes/{quiz.id}", json={"is_active": "false"})
    assert response.status_code == 400
    assert response.get_json()["error"] == "is_active must be true or false"

    db.session.refresh(quiz)
    assert quiz.is_active is True
