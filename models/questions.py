from models import db

QUESTION_TYPES = ("single", "multiple")


class Question(db.Model):
    __tablename__ = "questions"

    id = db.Column(db.Integer, primary_key=True)
    quiz_session_id = db.Column(db.Integer, db.ForeignKey("quiz_sessions.id", ondelete="CASCADE"), nullable=False)
    question_text = db.Column(db.Text, nullable=False)
    question_type = db.Column(db.Enum(*QUESTION_TYPES, name="question_type"), nullable=False, default="single")
    image_url = db.Column(db.Text, nullable=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    time_limit = db.Column(db.Integer, nullable=True, default=30)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)

    quiz_session = db.relationship("QuizSession", back_populates="questions")
    answers = db.relationship(
        "Answer", back_populates="question", cascade="all, delete-orphan", order_by="Answer.order_index"
    )

    @property
    def correct_answer_ids(self):
        return {answer.id for answer in self.answers if answer.is_correct}

    def to_dict(self, reveal_correct=True):
        return {
            "id": self.id,
            "quiz_session_id": self.quiz_session_id,
            "question_text": self.question_text,
            "question_type": self.question_type,
            "image_url": self.image_url,
            "order_index": self.order_index,
            "time_limit": self.time_limit,
            "answers": [answer.to_dict(reveal_correct=reveal_correct) for answer in self.answers],
        }
