"""Unit tests for module completion and course progress views."""
import pytest

from lms.errors import AccessDenied, NotFound
from lms.models.models import ModuleProgress
from lms.models.status import EnrollmentStatus


@pytest.mark.unit
class TestMarkModuleComplete:
    def test_requires_active_enrollment(self, services, learner, make_course):
        course = make_course()
        with pytest.raises(AccessDenied):
            services.progress.mark_module_complete(learner.id, course.modules[0].id)

    def test_pending_enrollment_is_not_enough(self, services, learner, make_course):
        course = make_course()
        services.ledger.grant_or_reconcile(learner.id, course.id, status=EnrollmentStatus.PENDING)
        with pytest.raises(AccessDenied):
            services.progress.mark_module_complete(learner.id, course.modules[0].id)

    def test_unknown_module(self, services, learner):
        with pytest.raises(NotFound):
            services.progress.mark_module_complete(learner.id, "MOD-MISSING")

    def test_idempotent(self, services, db_session, enroll, learner, make_course):
        course = make_course()
        enroll(learner, course)
        module_id = course.modules[0].id

        first = services.progress.mark_module_complete(learner.id, module_id)
        second = services.progress.mark_module_complete(learner.id, module_id)

        assert first.newly_completed is True
        assert first.course_id == course.id
        assert second.newly_completed is False
        assert db_session.query(ModuleProgress).filter(ModuleProgress.module_id == module_id).count() == 1

    def test_concurrent_insert_is_not_new(self, services, db_session, enroll, learner, make_course, monkeypatch):
        course = make_course()
        enroll(learner, course)
        module_id = course.modules[0].id
        services.progress.mark_module_complete(learner.id, module_id)

        # Lookup misses the row another request already wrote.
        monkeypatch.setattr(services.progress, "_find", lambda user_id, module_id: None)
        result = services.progress.mark_module_complete(learner.id, module_id)

        assert result.newly_completed is False
        assert db_session.query(ModuleProgress).filter(ModuleProgress.module_id == module_id).count() == 1


@pytest.mark.unit
class TestCompletionRatio:
    def test_course_without_modules(self, services, enroll, learner, make_course):
        course = make_course(n_modules=0)
        enroll(learner, course)
        assert services.progress.completion_ratio(learner.id, course.id) == 0.0

    def test_partial_and_full(self, services, enroll, learner, make_course):
        course = make_course(n_modules=2)
        enroll(learner, course)
        services.progress.mark_module_complete(learner.id, course.modules[0].id)
        assert services.progress.completion_ratio(learner.id, course.id) == 0.5
        services.progress.mark_module_complete(learner.id, course.modules[1].id)
        assert services.progress.completion_ratio(learner.id, course.id) == 1.0

    def test_other_users_progress_is_ignored(self, services, enroll, learner, other_learner, make_course):
        course = make_course(n_modules=2)
        enroll(learner, course)
        enroll(other_learner, course)
        services.progress.mark_module_complete(other_learner.id, course.modules[0].id)
        assert services.progress.completion_ratio(learner.id, course.id) == 0.0


@pytest.mark.unit
class TestCourseProgress:
    def test_view(self, services, enroll, learner, quiz_course):
        course, quiz = quiz_course
        enroll(learner, course)
        services.progress.mark_module_complete(learner.id, course.modules[0].id)

        view = services.progress.course_progress(learner.id, course.id)

        assert view["total_modules"] == 2
        assert view["completed_modules"] == 1
        assert view["progress_percent"] == 50
        assert view["is_completed"] is False
        first, second = view["modules"]
        assert [first["order_index"], second["order_index"]] == [1, 2]
        assert first["is_completed"] is True and first["completed_at"] is not None
        assert first["is_passed"] is None
        assert second["quiz_id"] == quiz.id
        assert second["is_passed"] is False
        assert all(m["is_locked"] is False for m in view["modules"])

    def test_requires_enrollment(self, services, learner, make_course):
        course = make_course()
        with pytest.raises(AccessDenied):
            services.progress.course_progress(learner.id, course.id)

    def test_unknown_course(self, services, learner):
        with pytest.raises(NotFound):
            services.progress.course_progress(learner.id, "CRS-MISSING")


@pytest.mark.unit
class TestEnrolledCourses:
    def test_lists_only_active(self, services, enroll, learner, make_course):
        active = make_course(n_modules=4, title="Active")
        pending = make_course(title="Pending")
        enroll(learner, active)
        services.ledger.grant_or_reconcile(learner.id, pending.id)
        services.progress.mark_module_complete(learner.id, active.modules[0].id)

        courses = services.progress.enrolled_courses(learner.id)

        assert [c["course_id"] for c in courses] == [active.id]
        assert courses[0]["title"] == "Active"
        assert courses[0]["completed_modules"] == 1
        assert courses[0]["total_modules"] == 4
        assert courses[0]["progress_percent"] == 25
