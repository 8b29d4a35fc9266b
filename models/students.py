from models import db
from flask import current_app
from utils.codes import generate_unique_code


class Student(db.Model):
    __tablename__ = "students"

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    first_name = db.Column(db.String(255), nullable=False)
    student_code = db.Column(db.String(16), nullable=False, unique=True)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)

    group = db.relationship("Group", back_populates="students")
    attempts = db.relationship("QuizAttempt", back_populates="student", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Student {self.first_name} ({self.student_code})>"

    def to_dict(self):
        return {
            "id": self.id,
            "group_id": self.group_id,
            "first_name": self.first_name,
            "student_code": self.student_code,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@db.event.listens_for(Student, "before_insert")
def set_student_code(mapper, connection, target):
    if not target.student_code:
        target.student_code = generate_unique_code(
            connection, Student.__table__.c.student_code, current_app.config["STUDENT_CODE_LENGTH"]
        )
