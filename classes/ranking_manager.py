import logging
from flask import current_app
from sqlalchemy import case, func, select

from models import db
from models.quiz_attempts import QuizAttempt
from models.quiz_sessions import QuizSession
from models.students import Student
from classes.attempt_manager import AttemptManager
from utils.helpers import utcnow

logger = logging.getLogger(__name__)


class RankingManager:
    @staticmethod
    def ranking_query(quiz_id):
        """Completed attempts numbered by score desc, time asc, completion asc.

        NULL scores and times sort last; spelled with CASE so MySQL accepts it.
        """
        order = (
            case((QuizAttempt.score.is_(None), 1), else_=0),
            QuizAttempt.score.desc(),
            case((QuizAttempt.time_taken_seconds.is_(None), 1), else_=0),
            QuizAttempt.time_taken_seconds.asc(),
            QuizAttempt.completed_at.asc(),
        )
        return (
            select(
                QuizAttempt.id,
                func.row_number().over(order_by=order).label("rank_position"),
            )
            .where(
                QuizAttempt.quiz_session_id == quiz_id,
                QuizAttempt.completed_at.isnot(None),
            )
        )

    @staticmethod
    def calculate_rankings(quiz, now=None):
        """Store positions 1..N in `ranking` once the deadline has passed.

        Returns False, and touches nothing, while the quiz is still open.
        """
        now = now or utcnow()
        if not quiz.deadline_passed(now):
            return False

        AttemptManager.expire_stale_attempts(quiz, now)

        QuizAttempt.query.filter_by(quiz_session_id=quiz.id).update({"ranking": None}, synchronize_session="fetch")

        missing_time = QuizAttempt.query.filter(
            QuizAttempt.quiz_session_id == quiz.id,
            QuizAttempt.completed_at.isnot(None),
            QuizAttempt.time_taken_seconds.is_(None),
        ).all()
        for attempt in missing_time:
            attempt.time_taken_seconds = max(0, int((attempt.completed_at - attempt.started_at).total_seconds()))
        db.session.flush()

        positions = current_app.config.get("RANKED_POSITIONS", 3)
        ranked = db.session.execute(RankingManager.ranking_query(quiz.id)).all()
        for attempt_id, rank_position in ranked:
            if rank_position > positions:
                break
            db.session.get(QuizAttempt, attempt_id).ranking = rank_position

        db.session.commit()
        logger.info("Rankings calculated for quiz %s (%s completed attempts)", quiz.id, len(ranked))
        return True

    @staticmethod
    def results(quiz):
        """Attempts with their students, ranked first, then by score and speed."""
        rows = (
            db.session.query(QuizAttempt, Student)
            .join(Student, Student.id == QuizAttempt.student_id)
            .filter(QuizAttempt.quiz_session_id == quiz.id)
            .order_by(
                case((QuizAttempt.ranking.is_(None), 1), else_=0),
                QuizAttempt.ranking.asc(),
                QuizAttempt.score.desc(),
                case((QuizAttempt.time_taken_seconds.is_(None), 1), else_=0),
                QuizAttempt.time_taken_seconds.asc(),
            )
            .all()
        )
        return [
            {
                **attempt.to_dict(),
                "student": {"first_name": student.first_name, "student_code": student.student_code},
            }
            for attempt, student in rows
        ]

    @staticmethod
    def leaderboard_entries(quiz, limit=None):
        limit = limit or current_app.config.get("LEADERBOARD_SIZE", 5)
        entries = []
        for index, result in enumerate(r for r in RankingManager.results(quiz) if r["completed_at"]):
            if index >= limit:
                break
            entries.append({
                "rank": result["ranking"] or index + 1,
                "first_name": result["student"]["first_name"],
                "score": result["score"] or 0,
                "total_questions": result["total_questions"] or 0,
                "time_taken_seconds": result["time_taken_seconds"],
            })
        return entries

    @staticmethod
    def recalculate_all(now=None):
        """Rank every quiz whose deadline has passed."""
        now = now or utcnow()
        ranked = 0
        for quiz in QuizSession.query.filter(QuizSession.deadline <= now).all():
            if RankingManager.calculate_rankings(quiz, now):
                ranked += 1
        return ranked
