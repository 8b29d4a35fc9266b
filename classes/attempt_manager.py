import logging
from collections import defaultdict
from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.quiz_sessions import QuizSession
from models.quiz_session_groups import QuizSessionGroup
from models.students import Student
from models.questions import Question
from models.quiz_attempts import QuizAttempt
from models.student_answers import StudentAnswer
from classes.errors import ValidationError, ForbiddenError, NotFoundError, ConflictError
from utils.codes import normalize_code
from utils.helpers import utcnow

logger = logging.getLogger(__name__)


def is_question_correct(question, selected_ids):
    """A single-choice question is right when the one pick is correct,
    a multiple-choice question when the picks equal the correct set."""
    correct_ids = question.correct_answer_ids
    selected = set(selected_ids)
    if question.question_type == "single":
        return len(selected) == 1 and selected <= correct_ids
    return bool(correct_ids) and selected == correct_ids


class AttemptManager:
    @staticmethod
    def find_student(student_code):
        code = normalize_code(student_code)
        if not code:
            raise ValidationError("Student code is required")
        student = Student.query.filter_by(student_code=code).first()
        if not student:
            raise NotFoundError("Invalid code. Check with your teacher.")
        return student

    @staticmethod
    def find_open_quiz(student_code, now=None):
        """Newest active quiz assigned to the student's group whose deadline is still ahead."""
        now = now or utcnow()
        student = AttemptManager.find_student(student_code)

        quiz = (
            QuizSession.query
            .join(QuizSessionGroup, QuizSessionGroup.quiz_session_id == QuizSession.id)
            .filter(
                QuizSessionGroup.group_id == student.group_id,
                QuizSession.is_active.is_(True),
                QuizSession.deadline >= now,
            )
            .order_by(QuizSession.created_at.desc(), QuizSession.id.desc())
            .first()
        )
        if not quiz:
            raise NotFoundError("No active quiz available for your group.")
        return student, quiz

    @staticmethod
    def find_quiz(access_code):
        code = normalize_code(access_code)
        quiz = QuizSession.query.filter_by(access_code=code).first() if code else None
        if not quiz:
            raise NotFoundError("Quiz not available")
        return quiz

    @staticmethod
    def find_quiz_student(quiz, student_code):
        """The student behind `student_code`, who must belong to one of the quiz's groups."""
        student_code = normalize_code(student_code)
        if not student_code:
            raise ValidationError("Student code is required")

        student = Student.query.filter_by(student_code=student_code).first()
        if not student or student.group_id not in quiz.group_ids:
            raise ForbiddenError("Invalid student code")
        return student

    @staticmethod
    def resolve(access_code, student_code):
        """Look up the quiz by access code and check the student may take it."""
        quiz = AttemptManager.find_quiz(access_code)
        return quiz, AttemptManager.find_quiz_student(quiz, student_code)

    @staticmethod
    def elapsed_seconds(attempt, now):
        return max(0, int((now - attempt.started_at).total_seconds()))

    @staticmethod
    def time_remaining(attempt, quiz, now=None):
        now = now or utcnow()
        duration = quiz.duration_seconds or current_app.config["QUIZ_DEFAULT_DURATION_SECONDS"]
        return max(0, duration - AttemptManager.elapsed_seconds(attempt, now))

    @staticmethod
    def is_expired(attempt, quiz, now, grace=0):
        duration = quiz.duration_seconds or current_app.config["QUIZ_DEFAULT_DURATION_SECONDS"]
        return AttemptManager.elapsed_seconds(attempt, now) > duration + grace

    @staticmethod
    def selections_by_question(attempt):
        """Selected answer ids per question, in the order they were stored."""
        selections = defaultdict(list)
        rows = StudentAnswer.query.filter_by(attempt_id=attempt.id).order_by(StudentAnswer.id).all()
        for row in rows:
            selections[row.question_id].append(row.answer_id)
        return selections

    @staticmethod
    def compute_score(attempt):
        """Score from the stored answers; the cached `score` column is never trusted."""
        selections = AttemptManager.selections_by_question(attempt)
        score = 0
        for question in attempt.quiz_session.questions:
            selected = selections.get(question.id)
            if not selected:
                continue
            # A single-choice question keeps only the first stored pick.
            if question.question_type == "single":
                selected = selected[:1]
            if is_question_correct(question, selected):
                score += 1
        return score

    @staticmethod
    def finish_attempt(attempt, now=None):
        if attempt.completed_at is not None:
            return attempt

        now = now or utcnow()
        quiz = attempt.quiz_session
        duration = quiz.duration_seconds or current_app.config["QUIZ_DEFAULT_DURATION_SECONDS"]

        attempt.score = AttemptManager.compute_score(attempt)
        attempt.total_questions = len(quiz.questions)
        attempt.completed_at = now
        attempt.time_taken_seconds = min(AttemptManager.elapsed_seconds(attempt, now), duration)
        logger.info(
            "Attempt %s finished: %s/%s in %ss",
            attempt.id, attempt.score, attempt.total_questions, attempt.time_taken_seconds
        )
        return attempt

    @staticmethod
    def expire_stale_attempts(quiz, now=None):
        """Finish unfinished attempts whose countdown has run out."""
        now = now or utcnow()
        expired = 0
        for attempt in QuizAttempt.query.filter_by(quiz_session_id=quiz.id, completed_at=None).all():
            if AttemptManager.is_expired(attempt, quiz, now):
                AttemptManager.finish_attempt(attempt, now)
                expired += 1
        return expired

    @staticmethod
    def _get_or_create_attempt(quiz, student, now):
        attempt = QuizAttempt.query.filter_by(quiz_session_id=quiz.id, student_id=student.id).first()
        if attempt:
            return attempt

        if quiz.participant_limit:
            # Serialise first joins on the quiz row so the limit holds.
            QuizSession.query.filter_by(id=quiz.id).with_for_update().one()
            taken = QuizAttempt.query.filter_by(quiz_session_id=quiz.id).count()
            if taken >= quiz.participant_limit:
                raise ForbiddenError("Quiz is full")

        attempt = QuizAttempt(
            quiz_session_id=quiz.id,
            student_id=student.id,
            started_at=now,
            total_questions=len(quiz.questions),
        )
        db.session.add(attempt)
        try:
            db.session.commit()
        except IntegrityError:
            # Another request created it first.
            db.session.rollback()
            attempt = QuizAttempt.query.filter_by(quiz_session_id=quiz.id, student_id=student.id).first()
            if not attempt:
                raise
        return attempt

    @staticmethod
    def finished_state(quiz, student, attempt):
        return {
            "finished": True,
            "quiz": AttemptManager.quiz_summary(quiz),
            "student": {"id": student.id, "first_name": student.first_name},
            "attempt": attempt.to_dict(),
            "score": attempt.score or 0,
            "total_questions": attempt.total_questions or 0,
            "percentage": attempt.percentage,
            "time_taken_seconds": attempt.time_taken_seconds or 0,
        }

    @staticmethod
    def quiz_summary(quiz):
        return {
            "id": quiz.id,
            "title": quiz.title,
            "description": quiz.description,
            "deadline": quiz.deadline.isoformat(),
            "duration_seconds": quiz.duration_seconds,
            "access_code": quiz.access_code,
        }

    @staticmethod
    def load(access_code, student_code, now=None):
        """Create or resume the student's attempt and return what the play screen needs."""
        now = now or utcnow()
        quiz = AttemptManager.find_quiz(access_code)
        if not quiz.is_active or quiz.deadline_passed(now):
            raise NotFoundError("Quiz not available")
        student = AttemptManager.find_quiz_student(quiz, student_code)

        attempt = AttemptManager._get_or_create_attempt(quiz, student, now)

        if attempt.completed_at is None and AttemptManager.is_expired(attempt, quiz, now):
            AttemptManager.finish_attempt(attempt, now)
            db.session.commit()

        if attempt.completed_at is not None:
            return AttemptManager.finished_state(quiz, student, attempt)

        selections = AttemptManager.selections_by_question(attempt)
        questions = quiz.questions
        current_index = next(
            (i for i, q in enumerate(questions) if q.id not in selections),
            len(questions),
        )

        return {
            "finished": False,
            "quiz": AttemptManager.quiz_summary(quiz),
            "student": {"id": student.id, "first_name": student.first_name},
            "attempt": attempt.to_dict(),
            "questions": [q.to_dict(reveal_correct=False) for q in questions],
            "answered_question_ids": sorted(selections.keys()),
            "current_index": current_index,
            "score": AttemptManager.compute_score(attempt),
            "time_remaining": AttemptManager.time_remaining(attempt, quiz, now),
        }

    @staticmethod
    def _open_attempt(quiz, student, lock=False):
        query = QuizAttempt.query.filter_by(quiz_session_id=quiz.id, student_id=student.id)
        if lock:
            query = query.with_for_update()
        attempt = query.first()
        if not attempt:
            raise NotFoundError("No attempt found. Load the quiz first.")
        return attempt

    @staticmethod
    def is_answered(attempt, question):
        return StudentAnswer.query.filter_by(attempt_id=attempt.id, question_id=question.id).first() is not None

    @staticmethod
    def submit_answer(access_code, student_code, question_id, answer_ids, now=None):
        now = now or utcnow()
        quiz, student = AttemptManager.resolve(access_code, student_code)
        # Row lock: answers for one attempt are written one request at a time.
        attempt = AttemptManager._open_attempt(quiz, student, lock=True)

        if attempt.completed_at is not None:
            raise ConflictError("Quiz already completed")

        grace = current_app.config.get("ANSWER_GRACE_SECONDS", 0)
        if AttemptManager.is_expired(attempt, quiz, now, grace=grace):
            AttemptManager.finish_attempt(attempt, now)
            db.session.commit()
            raise ConflictError("Time is up")

        question = Question.query.filter_by(id=question_id, quiz_session_id=quiz.id).first()
        if not question:
            raise NotFoundError("Question not found")

        if AttemptManager.is_answered(attempt, question):
            raise ConflictError("Question already answered")

        if not isinstance(answer_ids, list) or not answer_ids:
            raise ValidationError("Select an answer")
        try:
            selected = list(dict.fromkeys(int(a) for a in answer_ids))
        except (TypeError, ValueError):
            raise ValidationError("Answer ids must be integers")

        options = {answer.id: answer for answer in question.answers}
        if any(answer_id not in options for answer_id in selected):
            raise ValidationError("Answer does not belong to this question")
        if question.question_type == "single" and len(selected) != 1:
            raise ValidationError("Single choice questions take exactly one answer")

        for answer_id in selected:
            db.session.add(StudentAnswer(
                attempt_id=attempt.id,
                question_id=question.id,
                answer_id=answer_id,
                is_correct=options[answer_id].is_correct,
                answered_at=now,
            ))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("Question already answered")

        is_correct = is_question_correct(question, selected)
        logger.debug("Attempt %s answered question %s correct=%s", attempt.id, question.id, is_correct)

        return {
            "question_id": question.id,
            "selected_answer_ids": selected,
            "is_correct": is_correct,
            "correct_answer_ids": sorted(question.correct_answer_ids),
            "score": AttemptManager.compute_score(attempt),
            "time_remaining": AttemptManager.time_remaining(attempt, quiz, now),
        }

    @staticmethod
    def finish(access_code, student_code, now=None):
        now = now or utcnow()
        quiz, student = AttemptManager.resolve(access_code, student_code)
        attempt = AttemptManager._open_attempt(quiz, student)

        if attempt.completed_at is None:
            AttemptManager.finish_attempt(attempt, now)
            db.session.commit()

        return AttemptManager.finished_state(quiz, student, attempt)
