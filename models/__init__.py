from flask_sqlalchemy import SQLAlchemy

# Initialize SQLAlchemy
db = SQLAlchemy()

# Import models
from models.teachers import Teacher

from models.groups import Group
from models.students import Student

from models.quiz_sessions import QuizSession
from models.quiz_session_groups import QuizSessionGroup
from models.questions import Question
from models.answers import Answer

from models.quiz_attempts import QuizAttempt
from models.student_answers import StudentAnswer
