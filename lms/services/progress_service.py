"""
Module completion tracking.

A module is complete for a user when a ModuleProgress row exists for the pair;
rows are created once and never removed. All modules are always unlocked:
`order_index` only orders the course view.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session as DBSession

from lms.errors import NotFound
from lms.models.models import Course, Enrollment, Module, ModuleProgress, QuizAttempt
from lms.models.status import AttemptStatus, EnrollmentStatus
from lms.services.enrollment_service import EnrollmentLedger
from lms.utils.common import completion_percent, insert_unique, new_id
from lms.utils.logger import configure_logging

logger = configure_logging()


@dataclass(frozen=True)
class ModuleCompletion:
    module_id: str
    course_id: str
    newly_completed: bool


class ProgressTracker:
    def __init__(self, db: DBSession, ledger: EnrollmentLedger):
        self.db = db
        self.ledger = ledger

    def _find(self, user_id: int, module_id: str) -> ModuleProgress | None:
        return (
            self.db.query(ModuleProgress)
            .filter(ModuleProgress.user_id == user_id, ModuleProgress.module_id == module_id)
            .first()
        )

    def is_completed(self, user_id: int, module_id: str) -> bool:
        return self._find(user_id, module_id) is not None

    def mark_module_complete(self, user_id: int, module_id: str) -> ModuleCompletion:
        """
        Record that the user completed the module. Idempotent.

        `newly_completed` is True only for the call that created the row; the
        caller uses it to decide whether to run the certificate check.
        """
        module = self.db.query(Module).filter(Module.id == module_id).first()
        if module is None:
            raise NotFound("Module not found")
        course_id = module.course_id
        self.ledger.require_active(user_id, course_id)

        if self._find(user_id, module_id) is not None:
            logger.info("module already completed user_id=%s module_id=%s", user_id, module_id)
            return ModuleCompletion(module_id=module_id, course_id=course_id, newly_completed=False)

        row = ModuleProgress(id=new_id("MP"), user_id=user_id, module_id=module_id)
        if not insert_unique(self.db, row):
            logger.warning("module completion conflict user_id=%s module_id=%s; already completed", user_id, module_id)
            return ModuleCompletion(module_id=module_id, course_id=course_id, newly_completed=False)

        logger.info("module completed user_id=%s module_id=%s course_id=%s", user_id, module_id, course_id)
        return ModuleCompletion(module_id=module_id, course_id=course_id, newly_completed=True)

    def _counts(self, user_id: int, course_id: str) -> tuple[int, int]:
        total = self.db.query(func.count(Module.id)).filter(Module.course_id == course_id).scalar() or 0
        done = (
            self.db.query(func.count(ModuleProgress.id))
            .join(Module, Module.id == ModuleProgress.module_id)
            .filter(ModuleProgress.user_id == user_id, Module.course_id == course_id)
            .scalar()
            or 0
        )
        return int(done), int(total)

    def completion_ratio(self, user_id: int, course_id: str) -> float:
        """Completed modules / total modules; 0.0 for a course without modules."""
        done, total = self._counts(user_id, course_id)
        if total == 0:
            return 0.0
        return done / total

    def course_progress(self, user_id: int, course_id: str) -> dict:
        """Learner view of a course: ordered modules with completion flags."""
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if course is None:
            raise NotFound("Course not found")
        self.ledger.require_active(user_id, course_id)

        completed = {
            p.module_id: p.completed_at
            for p in self.db.query(ModuleProgress)
            .join(Module, Module.id == ModuleProgress.module_id)
            .filter(ModuleProgress.user_id == user_id, Module.course_id == course_id)
            .all()
        }
        passed_quizzes = {
            quiz_id
            for (quiz_id,) in self.db.query(QuizAttempt.quiz_id)
            .filter(
                QuizAttempt.user_id == user_id,
                QuizAttempt.status == AttemptStatus.COMPLETED,
                QuizAttempt.score >= QuizAttempt.pass_threshold,
            )
            .distinct()
            .all()
        }

        modules = []
        for m in course.modules:
            modules.append(
                {
                    "module_id": m.id,
                    "title": m.title,
                    "order_index": m.order_index,
                    "quiz_id": m.quiz_id,
                    "is_completed": m.id in completed,
                    "completed_at": completed.get(m.id),
                    "is_passed": (m.quiz_id in passed_quizzes) if m.quiz_id else None,
                    "is_locked": False,
                }
            )

        total = len(modules)
        done = sum(1 for m in modules if m["is_completed"])
        ratio = done / total if total else 0.0
        return {
            "course_id": course.id,
            "title": course.title,
            "modules": modules,
            "completed_modules": done,
            "total_modules": total,
            "completion_ratio": ratio,
            "progress_percent": completion_percent(ratio),
            "is_completed": total > 0 and done == total,
        }

    def enrolled_courses(self, user_id: int) -> list[dict]:
        """Courses the user has active access to, most recently enrolled first."""
        enrollments = (
            self.db.query(Enrollment)
            .filter(Enrollment.user_id == user_id, Enrollment.status == EnrollmentStatus.SUCCESS)
            .order_by(Enrollment.enrolled_at.desc())
            .all()
        )
        out: list[dict] = []
        for e in enrollments:
            done, total = self._counts(user_id, e.course_id)
            ratio = done / total if total else 0.0
            out.append(
                {
                    "course_id": e.course_id,
                    "title": e.course.title if e.course else None,
                    "enrolled_at": e.enrolled_at,
                    "completed_modules": done,
                    "total_modules": total,
                    "progress_percent": completion_percent(ratio),
                }
            )
        return out
