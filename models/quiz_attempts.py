from models import db


class QuizAttempt(db.Model):
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        db.UniqueConstraint("quiz_session_id", "student_id", name="uq_quiz_attempt_student"),
        db.Index("idx_quiz_attempts_ranking", "quiz_session_id", "ranking"),
    )

    id = db.Column(db.Integer, primary_key=True)
    quiz_session_id = db.Column(db.Integer, db.ForeignKey("quiz_sessions.id", ondelete="CASCADE"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    started_at = db.Column(db.DateTime, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    score = db.Column(db.Integer, nullable=True, default=0)
    total_questions = db.Column(db.Integer, nullable=True, default=0)
    time_taken_seconds = db.Column(db.Integer, nullable=True)
    ranking = db.Column(db.Integer, nullable=True)

    quiz_session = db.relationship("QuizSession", back_populates="attempts")
    student = db.relationship("Student", back_populates="attempts")
    answers = db.relationship("StudentAnswer", back_populates="attempt", lazy=True, cascade="all, delete-orphan")

    @property
    def is_completed(self):
        return self.completed_at is not None

    @property
    def percentage(self):
        if not self.total_questions:
            return 0
        return round(((self.score or 0) / self.total_questions) * 100)

    def to_dict(self):
        return {
            "id": self.id,
            "quiz_session_id": self.quiz_session_id,
            "student_id": self.student_id,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "score": self.score,
            "total_questions": self.total_questions,
            "percentage": self.percentage,
            "time_taken_seconds": self.time_taken_seconds,
            "ranking": self.ranking,
        }
