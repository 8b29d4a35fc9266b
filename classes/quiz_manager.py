import logging
from models import db
from models.groups import Group
from models.questions import Question
from models.answers import Answer
from models.quiz_attempts import QuizAttempt
from models.quiz_session_groups import QuizSessionGroup
from classes.errors import ValidationError, ConflictError
from classes.validators import validate_questions
from utils.dropbox_service import delete_file_from_dropbox

logger = logging.getLogger(__name__)


class QuizManager:
    @staticmethod
    def owned_group_ids(teacher_id, group_ids):
        """Validate a group id list against the teacher's groups."""
        if not isinstance(group_ids, list) or not group_ids:
            raise ValidationError("Please select at least one group")
        try:
            wanted = {int(group_id) for group_id in group_ids}
        except (TypeError, ValueError):
            raise ValidationError("Group ids must be integers")

        owned = {
            group.id for group in
            Group.query.filter(Group.teacher_id == teacher_id, Group.id.in_(wanted)).all()
        }
        if owned != wanted:
            raise ValidationError("One or more groups were not found")
        return sorted(wanted)

    @staticmethod
    def set_groups(quiz, group_ids):
        """Replace the quiz's group assignments."""
        current = {assignment.group_id: assignment for assignment in quiz.group_assignments}
        for group_id, assignment in current.items():
            if group_id not in group_ids:
                quiz.group_assignments.remove(assignment)
        for group_id in group_ids:
            if group_id not in current:
                quiz.group_assignments.append(QuizSessionGroup(group_id=group_id))

    @staticmethod
    def save_questions(quiz, questions, default_time_limit=30):
        """Replace every question of the quiz, keeping the given order."""
        cleaned = validate_questions(questions)

        if QuizAttempt.query.filter_by(quiz_session_id=quiz.id).count():
            raise ConflictError("Questions cannot be changed after students have started the quiz")

        for question in list(quiz.questions):
            quiz.questions.remove(question)
        db.session.flush()

        for i, data in enumerate(cleaned):
            question = Question(
                question_text=data["question_text"],
                question_type=data["question_type"],
                image_url=data["image_url"],
                order_index=i,
                time_limit=data["time_limit"] or default_time_limit,
            )
            for j, answer in enumerate(data["answers"]):
                question.answers.append(Answer(
                    answer_text=answer["answer_text"],
                    is_correct=answer["is_correct"],
                    order_index=j,
                ))
            quiz.questions.append(question)

        db.session.commit()
        logger.info("Saved %s questions for quiz %s", len(cleaned), quiz.id)
        return quiz.questions

    @staticmethod
    def delete_quiz(quiz):
        image_path = quiz.leaderboard_image_path
        db.session.delete(quiz)
        db.session.commit()

        if image_path:
            delete_file_from_dropbox(image_path)
