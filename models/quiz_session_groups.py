from models import db


class QuizSessionGroup(db.Model):
    __tablename__ = "quiz_session_groups"
    __table_args__ = (db.UniqueConstraint("quiz_session_id", "group_id", name="uq_quiz_session_group"),)

    id = db.Column(db.Integer, primary_key=True)
    quiz_session_id = db.Column(
        db.Integer, db.ForeignKey("quiz_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    group_id = db.Column(db.Integer, db.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)

    quiz_session = db.relationship("QuizSession", back_populates="group_assignments")
    group = db.relationship("Group", back_populates="quiz_assignments")

    def __repr__(self):
        return f"<QuizSessionGroup Quiz {self.quiz_session_id} Group {self.group_id}>"
