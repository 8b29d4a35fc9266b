from models import db
from datetime import datetime
from flask import current_app
from utils.codes import generate_unique_code


class QuizSession(db.Model):
    __tablename__ = "quiz_sessions"

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    deadline = db.Column(db.DateTime, nullable=False)
    participant_limit = db.Column(db.Integer, nullable=True)
    duration_seconds = db.Column(db.Integer, nullable=False, default=1800)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    access_code = db.Column(db.String(16), nullable=False, unique=True)
    leaderboard_image_path = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, default=db.func.now(), onupdate=db.func.now(), nullable=False)

    teacher = db.relationship("Teacher", back_populates="quiz_sessions")
    group_assignments = db.relationship(
        "QuizSessionGroup", back_populates="quiz_session", cascade="all, delete-orphan"
    )
    questions = db.relationship(
        "Question", back_populates="quiz_session", cascade="all, delete-orphan", order_by="Question.order_index"
    )
    attempts = db.relationship("QuizAttempt", back_populates="quiz_session", cascade="all, delete-orphan")

    @property
    def group_ids(self):
        return sorted(assignment.group_id for assignment in self.group_assignments)

    def deadline_passed(self, now):
        return self.deadline is not None and self.deadline <= now

    def __repr__(self):
        return f"<QuizSession {self.title} ({self.access_code})>"

    def to_dict(self, include_questions=False):
        data = {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "title": self.title,
            "description": self.description,
            "deadline": self.deadline.isoformat() if isinstance(self.deadline, datetime) else None,
            "participant_limit": self.participant_limit,
            "duration_seconds": self.duration_seconds,
            "is_active": self.is_active,
            "access_code": self.access_code,
            "group_ids": self.group_ids,
            "question_count": len(self.questions),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_questions:
            data["questions"] = [q.to_dict() for q in self.questions]
        return data


@db.event.listens_for(QuizSession, "before_insert")
def set_quiz_code(mapper, connection, target):
    if not target.access_code:
        target.access_code = generate_unique_code(
            connection, QuizSession.__table__.c.access_code, current_app.config["ACCESS_CODE_LENGTH"]
        )
