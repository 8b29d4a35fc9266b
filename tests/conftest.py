import os
os.environ.setdefault("FLASK_ENV", "testing")

from datetime import timedelta

import pytest

from app import create_app
from models import db
from models.teachers import Teacher
from models.groups import Group
from models.students import Student
from models.quiz_sessions import QuizSession
from models.quiz_session_groups import QuizSessionGroup
from classes.quiz_manager import QuizManager
from utils.helpers import utcnow

TEACHER_EMAIL = "teacher@example.com"
TEACHER_PASSWORD = "secret123"

SAMPLE_QUESTIONS = [
    {
        "question_text": "What is 2 + 2?",
        "question_type": "single",
        "answers": [
            {"answer_text": "3", "is_correct": False},
            {"answer_text": "4", "is_correct": True},
            {"answer_text": "5", "is_correct": False},
        ],
    },
    {
        "question_text": "Which numbers are prime?",
        "question_type": "multiple",
        "answers": [
            {"answer_text": "2", "is_correct": True},
            {"answer_text": "3", "is_correct": True},
            {"answer_text": "4", "is_correct": False},
        ],
    },
    {
        "question_text": "Capital of France?",
        "question_type": "single",
        "answers": [
            {"answer_text": "Paris", "is_correct": True},
            {"answer_text": "Rome", "is_correct": False},
        ],
    },
]


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def create_teacher(email=TEACHER_EMAIL, password=TEACHER_PASSWORD, full_name="Ms Perera"):
    teacher = Teacher(email=email, full_name=full_name)
    teacher.set_password(password)
    db.session.add(teacher)
    db.session.commit()
    return teacher


@pytest.fixture
def teacher(app):
    return create_teacher()


@pytest.fixture
def auth_client(client, teacher):
    response = client.post("/api/auth/login", json={"email": TEACHER_EMAIL, "password": TEACHER_PASSWORD})
    assert response.status_code == 200
    return client


def create_group(teacher, name="Grade 5A", students=("Nimal", "Kamal")):
    group = Group(teacher_id=teacher.id, name=name)
    for first_name in students:
        group.students.append(Student(first_name=first_name))
    db.session.add(group)
    db.session.commit()
    return group


def create_quiz(teacher, groups, questions=SAMPLE_QUESTIONS, deadline=None, duration_seconds=600, **kwargs):
    quiz = QuizSession(
        teacher_id=teacher.id,
        title=kwargs.pop("title", "Weekly Quiz"),
        deadline=deadline or utcnow() + timedelta(days=1),
        duration_seconds=duration_seconds,
        **kwargs
    )
    for group in groups:
        quiz.group_assignments.append(QuizSessionGroup(group_id=group.id))
    db.session.add(quiz)
    db.session.commit()
    if questions:
        QuizManager.save_questions(quiz, questions)
    return quiz


def answer_ids(quiz, question_index, correct=True):
    question = quiz.questions[question_index]
    return [a.id for a in question.answers if a.is_correct == correct]


@pytest.fixture
def group(teacher):
    return create_group(teacher)


@pytest.fixture
def quiz(teacher, group):
    return create_quiz(teacher, [group])
