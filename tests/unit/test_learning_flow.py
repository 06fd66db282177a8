"""
End-to-end learner journey through the services: checkout, payment, modules,
quiz pass, certificate, retake.
"""
import pytest

from lms.models.models import Certificate, Enrollment, ModuleProgress, QuizAttempt
from lms.models.status import AttemptStatus, CertificateStatus, EnrollmentStatus


@pytest.mark.unit
def test_full_course_journey(services, db_session, gateway, learner, quiz_course, answer_quiz):
    course, quiz = quiz_course
    m1, m2 = course.modules

    checkout = services.ledger.start_checkout(learner.id, course.id, gateway)
    order_id = checkout.session.order_id
    assert not services.ledger.is_active_for(learner.id, course.id)

    # Provider notification, delivered twice.
    for _ in range(2):
        services.ledger.apply_payment_status(order_id, "settlement", "accept", learner.id, course.id)
    assert services.ledger.is_active_for(learner.id, course.id)

    first = services.complete_module(learner.id, m1.id)
    assert first["newly_completed"] is True
    assert first["certificate_id"] is None
    assert services.progress.course_progress(learner.id, course.id)["progress_percent"] == 50

    session = services.quizzes.start_or_resume(learner.id, quiz.id)
    answer_quiz(session["attempt_id"], learner.id, quiz, correct=5)
    result = services.quizzes.submit(session["attempt_id"], learner.id)

    assert result["score"] == 1.0
    assert result["is_passed"] is True
    assert result["module_id"] == m2.id
    assert result["module_completed"] is True
    assert result["certificate_id"] is not None

    view = services.progress.course_progress(learner.id, course.id)
    assert view["is_completed"] is True
    assert view["progress_percent"] == 100
    assert view["modules"][1]["is_passed"] is True

    # Retake with a worse score changes nothing but the attempt history.
    retake = services.quizzes.start_or_resume(learner.id, quiz.id)
    answer_quiz(retake["attempt_id"], learner.id, quiz, correct=1, wrong=4)
    worse = services.quizzes.submit(retake["attempt_id"], learner.id)
    assert worse["score"] == 0.2
    assert worse["best_score"] == 1.0
    assert worse["certificate_id"] is None

    assert db_session.query(Enrollment).filter(Enrollment.user_id == learner.id).count() == 1
    assert db_session.query(Enrollment).one().status == EnrollmentStatus.SUCCESS
    assert db_session.query(ModuleProgress).filter(ModuleProgress.user_id == learner.id).count() == 2
    attempts = db_session.query(QuizAttempt).filter(QuizAttempt.user_id == learner.id).all()
    assert len(attempts) == 2
    assert all(a.status == AttemptStatus.COMPLETED for a in attempts)
    certs = db_session.query(Certificate).filter(Certificate.user_id == learner.id).all()
    assert len(certs) == 1
    assert certs[0].status == CertificateStatus.PENDING
    assert certs[0].id == result["certificate_id"]
