"""
Quiz attempt sessions: start-or-resume, partial answers, submission and grading.

Per (user, quiz) there is at most one `in_progress` attempt at a time; it is
resumed until submitted. Submission moves it to `completed` exactly once, and
a later start opens a fresh attempt (a retake). Completed attempts are the
retake history and are never modified.

Quiz rules (pass threshold, max attempts, time limit) are copied onto the
attempt when it opens and grading uses that snapshot.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session as DBSession

from lms.errors import (
    AccessDenied,
    AlreadySubmitted,
    AttemptLimitReached,
    InvalidState,
    NotFound,
    ValidationError,
)
from lms.models.models import Module, Option, Question, Quiz, QuizAnswer, QuizAttempt
from lms.models.status import AttemptStatus
from lms.services.certificate_service import CertificateEligibilityMonitor
from lms.services.enrollment_service import EnrollmentLedger
from lms.services.progress_service import ProgressTracker
from lms.utils.common import insert_unique, new_id, utcnow
from lms.utils.logger import configure_logging

logger = configure_logging()


def attempt_deadline(attempt: QuizAttempt) -> datetime | None:
    if not attempt.time_limit_minutes:
        return None
    return attempt.started_at + timedelta(minutes=attempt.time_limit_minutes)


def grade(questions: list[Question], answers: list[QuizAnswer]) -> tuple[int, int]:
    """
    Return (correct_count, total_questions).

    The denominator is every question of the quiz, so unanswered questions
    count as wrong. A question's correct option is its first option flagged
    correct; a question without one can never be answered correctly.
    """
    correct_by_question: dict[str, str | None] = {}
    for q in questions:
        correct_by_question[q.id] = next((o.id for o in q.options if o.is_correct), None)

    correct = 0
    for a in answers:
        expected = correct_by_question.get(a.question_id)
        if expected is not None and a.selected_option_id == expected:
            correct += 1
    return correct, len(questions)


class QuizSessionEngine:
    def __init__(
        self,
        db: DBSession,
        ledger: EnrollmentLedger,
        progress: ProgressTracker,
        certificates: CertificateEligibilityMonitor,
    ):
        self.db = db
        self.ledger = ledger
        self.progress = progress
        self.certificates = certificates

    # ----- lookups -----

    def _quiz(self, quiz_id: str) -> Quiz:
        quiz = self.db.query(Quiz).filter(Quiz.id == quiz_id).first()
        if quiz is None:
            raise NotFound("Quiz not found")
        return quiz

    def _linked_module(self, quiz_id: str) -> Module | None:
        return (
            self.db.query(Module)
            .filter(Module.quiz_id == quiz_id)
            .order_by(Module.order_index.asc())
            .first()
        )

    def _owning_course_id(self, quiz: Quiz) -> str:
        module = self._linked_module(quiz.id)
        if module is not None:
            return module.course_id
        if quiz.course_id:
            return quiz.course_id
        raise NotFound("Quiz is not linked to any module")

    def _open_attempt(self, user_id: int, quiz_id: str) -> QuizAttempt | None:
        return (
            self.db.query(QuizAttempt)
            .filter(
                QuizAttempt.user_id == user_id,
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.status == AttemptStatus.IN_PROGRESS,
            )
            .first()
        )

    def _owned_attempt(self, attempt_id: str, user_id: int) -> QuizAttempt:
        attempt = self.db.query(QuizAttempt).filter(QuizAttempt.id == attempt_id).first()
        if attempt is None:
            raise NotFound("Quiz attempt not found")
        if attempt.user_id != user_id:
            raise AccessDenied("Quiz attempt belongs to another user")
        return attempt

    def _completed(self, user_id: int, quiz_id: str):
        return self.db.query(QuizAttempt).filter(
            QuizAttempt.user_id == user_id,
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.status == AttemptStatus.COMPLETED,
        )

    def _best_attempt(self, user_id: int, quiz_id: str) -> QuizAttempt | None:
        # Ties go to the earliest attempt that reached the best score.
        return (
            self._completed(user_id, quiz_id)
            .order_by(QuizAttempt.score.desc(), QuizAttempt.completed_at.asc())
            .first()
        )

    def _has_passed(self, user_id: int, quiz_id: str) -> bool:
        return (
            self._completed(user_id, quiz_id)
            .filter(QuizAttempt.score >= QuizAttempt.pass_threshold)
            .first()
            is not None
        )

    # ----- operations -----

    def start_or_resume(self, user_id: int, quiz_id: str) -> dict:
        """
        Resume the open attempt or open a new one.

        Returns the attempt, the questions with their options (never the
        correctness flags), saved partial answers keyed by question id and
        the best score among completed attempts.
        """
        quiz = self._quiz(quiz_id)
        self.ledger.require_active(user_id, self._owning_course_id(quiz))

        attempt = self._open_attempt(user_id, quiz_id)
        resumed = attempt is not None
        if attempt is None:
            attempt = self._open_new_attempt(user_id, quiz)

        best = self._best_attempt(user_id, quiz_id)
        return {
            "attempt_id": attempt.id,
            "quiz_id": quiz.id,
            "title": quiz.title,
            "description": quiz.description,
            "status": attempt.status,
            "resumed": resumed,
            "pass_threshold": attempt.pass_threshold,
            "max_attempts": attempt.max_attempts,
            "time_limit_minutes": attempt.time_limit_minutes,
            "started_at": attempt.started_at,
            "deadline": attempt_deadline(attempt),
            "questions": [
                {
                    "question_id": q.id,
                    "text": q.text,
                    "options": [{"option_id": o.id, "text": o.text} for o in q.options],
                }
                for q in quiz.questions
            ],
            "partial_answers": {a.question_id: a.selected_option_id for a in attempt.answers},
            "best_score": best.score if best else None,
            "best_score_at": best.completed_at if best else None,
            "has_passed": self._has_passed(user_id, quiz_id),
            "attempts_used": self._completed(user_id, quiz_id).count(),
        }

    def _open_new_attempt(self, user_id: int, quiz: Quiz) -> QuizAttempt:
        if quiz.max_attempts and self._completed(user_id, quiz.id).count() >= quiz.max_attempts:
            raise AttemptLimitReached()

        attempt = QuizAttempt(
            id=new_id("QA"),
            user_id=user_id,
            quiz_id=quiz.id,
            status=AttemptStatus.IN_PROGRESS,
            pass_threshold=quiz.pass_threshold,
            max_attempts=quiz.max_attempts or 0,
            time_limit_minutes=quiz.time_limit_minutes or 0,
            started_at=utcnow(),
        )
        if insert_unique(self.db, attempt):
            logger.info("quiz attempt started id=%s user_id=%s quiz_id=%s", attempt.id, user_id, quiz.id)
            return attempt

        # A concurrent start opened the attempt first; resume it.
        logger.warning("quiz attempt start conflict user_id=%s quiz_id=%s; resuming", user_id, quiz.id)
        existing = self._open_attempt(user_id, quiz.id)
        if existing is None:
            raise InvalidState("Quiz attempt could not be opened, retry")
        return existing

    def save_answer(self, attempt_id: str, user_id: int, question_id: str, selected_option_id: str) -> QuizAnswer:
        """Upsert the current selection for a question. Last write wins."""
        if not question_id or not selected_option_id:
            raise ValidationError("question_id and selected_option_id are required")

        attempt = self._owned_attempt(attempt_id, user_id)
        if attempt.status != AttemptStatus.IN_PROGRESS:
            raise InvalidState("Quiz attempt already submitted")
        deadline = attempt_deadline(attempt)
        if deadline is not None and utcnow() > deadline:
            raise InvalidState("Quiz time limit exceeded")

        question = self.db.query(Question).filter(Question.id == question_id).first()
        if question is None or question.quiz_id != attempt.quiz_id:
            raise NotFound("Question not found in this quiz")
        option = self.db.query(Option).filter(Option.id == selected_option_id).first()
        if option is None or option.question_id != question.id:
            raise NotFound("Option not found for this question")

        answer = self._find_answer(attempt.id, question.id)
        if answer is None:
            answer = QuizAnswer(
                id=new_id("AN"),
                attempt_id=attempt.id,
                question_id=question.id,
                selected_option_id=option.id,
            )
            if insert_unique(self.db, answer):
                logger.debug("answer saved attempt_id=%s question_id=%s", attempt.id, question.id)
                return answer
            answer = self._find_answer(attempt.id, question.id)
            if answer is None:
                raise InvalidState("Answer could not be saved, retry")

        answer.selected_option_id = option.id
        answer.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(answer)
        logger.debug("answer updated attempt_id=%s question_id=%s", attempt.id, question.id)
        return answer

    def _find_answer(self, attempt_id: str, question_id: str) -> QuizAnswer | None:
        return (
            self.db.query(QuizAnswer)
            .filter(QuizAnswer.attempt_id == attempt_id, QuizAnswer.question_id == question_id)
            .first()
        )

    def submit(self, attempt_id: str, user_id: int) -> dict:
        """
        Grade and close the attempt.

        On a pass (this attempt or any earlier one) the quiz's module is marked
        complete, which may make the course certificate-eligible.
        """
        attempt = self._owned_attempt(attempt_id, user_id)
        if not AttemptStatus(attempt.status).can_transition_to(AttemptStatus.COMPLETED):
            raise AlreadySubmitted()

        questions = (
            self.db.query(Question)
            .filter(Question.quiz_id == attempt.quiz_id)
            .order_by(Question.order_index.asc())
            .all()
        )
        correct, total = grade(questions, list(attempt.answers))
        score = correct / total if total else 0.0
        is_passed = score >= attempt.pass_threshold

        # Compare-and-set on status so two concurrent submits grade once.
        updated = (
            self.db.query(QuizAttempt)
            .filter(QuizAttempt.id == attempt.id, QuizAttempt.status == AttemptStatus.IN_PROGRESS)
            .update(
                {
                    QuizAttempt.status: AttemptStatus.COMPLETED,
                    QuizAttempt.score: score,
                    QuizAttempt.completed_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            self.db.rollback()
            raise AlreadySubmitted()
        self.db.commit()
        self.db.refresh(attempt)
        logger.info(
            "quiz attempt submitted id=%s user_id=%s quiz_id=%s score=%.4f passed=%s",
            attempt.id, user_id, attempt.quiz_id, score, is_passed,
        )

        previous_best = (
            self.db.query(func.max(QuizAttempt.score))
            .filter(
                QuizAttempt.user_id == user_id,
                QuizAttempt.quiz_id == attempt.quiz_id,
                QuizAttempt.status == AttemptStatus.COMPLETED,
                QuizAttempt.id != attempt.id,
            )
            .scalar()
        )
        is_new_best = previous_best is None or score > previous_best

        module = self._linked_module(attempt.quiz_id)
        module_completed = False
        certificate_id = None
        if module is not None and (is_passed or self._has_passed(user_id, attempt.quiz_id)):
            completion = self.progress.mark_module_complete(user_id, module.id)
            module_completed = completion.newly_completed
            if completion.newly_completed:
                cert = self.certificates.on_module_completed(user_id, completion.course_id)
                certificate_id = cert.id if cert is not None else None

        return {
            "attempt_id": attempt.id,
            "quiz_id": attempt.quiz_id,
            "score": score,
            "correct_count": correct,
            "total_questions": total,
            "is_passed": is_passed,
            "pass_threshold": attempt.pass_threshold,
            "is_new_best": is_new_best,
            "best_score": score if is_new_best else previous_best,
            "module_id": module.id if module is not None else None,
            "module_completed": module_completed,
            "certificate_id": certificate_id,
            "completed_at": attempt.completed_at,
        }
