from models import db


class Group(db.Model):
    __tablename__ = "groups"

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, default=db.func.now(), onupdate=db.func.now(), nullable=False)

    teacher = db.relationship("Teacher", back_populates="groups")
    students = db.relationship(
        "Student", back_populates="group", cascade="all, delete-orphan", order_by="Student.first_name"
    )
    quiz_assignments = db.relationship("QuizSessionGroup", back_populates="group", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Group {self.name}>"

    def to_dict(self, include_students=False):
        data = {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "name": self.name,
            "description": self.description,
            "student_count": len(self.students),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_students:
            data["students"] = [student.to_dict() for student in self.students]
        return data
