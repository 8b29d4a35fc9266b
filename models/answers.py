from models import db


class Answer(db.Model):
    __tablename__ = "answers"

    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    answer_text = db.Column(db.Text, nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)

    question = db.relationship("Question", back_populates="answers")

    def to_dict(self, reveal_correct=True):
        data = {
            "id": self.id,
            "question_id": self.question_id,
            "answer_text": self.answer_text,
            "order_index": self.order_index,
        }
        if reveal_correct:
            data["is_correct"] = self.is_correct
        return data
