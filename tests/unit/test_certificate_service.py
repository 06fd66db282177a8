"""Unit tests for certificate eligibility and the renderer hand-off."""
import pytest

from lms.errors import AlreadyCompleted, NotFound, ValidationError
from lms.models.models import Certificate
from lms.models.status import CertificateStatus


def _certs(db, user, course):
    return db.query(Certificate).filter(Certificate.user_id == user.id, Certificate.course_id == course.id).all()


@pytest.mark.unit
class TestEligibility:
    def test_no_certificate_until_every_module_is_done(self, services, db_session, enroll, learner, make_course):
        course = make_course(n_modules=3)
        enroll(learner, course)
        ids = [m.id for m in course.modules]

        assert services.complete_module(learner.id, ids[0])["certificate_id"] is None
        assert services.complete_module(learner.id, ids[1])["certificate_id"] is None
        last = services.complete_module(learner.id, ids[2])

        assert last["certificate_id"] is not None
        assert last["certificate_id"].startswith("CERT-")
        cert = services.certificates.get(learner.id, course.id)
        assert cert.status == CertificateStatus.PENDING

    def test_single_certificate(self, services, db_session, enroll, learner, make_course):
        course = make_course(n_modules=2)
        enroll(learner, course)
        for m in course.modules:
            services.complete_module(learner.id, m.id)

        again = services.complete_module(learner.id, course.modules[0].id)
        assert again["newly_completed"] is False
        assert again["certificate_id"] is None
        assert services.certificates.on_module_completed(learner.id, course.id) is None
        assert len(_certs(db_session, learner, course)) == 1

    def test_course_without_modules_never_qualifies(self, services, enroll, learner, make_course):
        course = make_course(n_modules=0)
        enroll(learner, course)
        assert services.certificates.on_module_completed(learner.id, course.id) is None

    def test_generated_certificate_is_not_replaced(self, services, db_session, enroll, learner, make_course):
        course = make_course(n_modules=1)
        enroll(learner, course)
        cert_id = services.complete_module(learner.id, course.modules[0].id)["certificate_id"]
        services.certificates.mark_generated(cert_id, "https://cdn.example.com/c.pdf")

        assert services.certificates.on_module_completed(learner.id, course.id) is None
        certs = _certs(db_session, learner, course)
        assert len(certs) == 1
        assert certs[0].status == CertificateStatus.GENERATED

    def test_concurrent_insert_returns_none(self, services, db_session, enroll, learner, make_course, monkeypatch):
        course = make_course(n_modules=1)
        enroll(learner, course)
        services.complete_module(learner.id, course.modules[0].id)

        monkeypatch.setattr(services.certificates, "get", lambda user_id, course_id: None)
        assert services.certificates.on_module_completed(learner.id, course.id) is None
        assert len(_certs(db_session, learner, course)) == 1


@pytest.mark.unit
class TestMarkGenerated:
    @pytest.fixture
    def pending_cert(self, services, enroll, learner, make_course):
        course = make_course(n_modules=1, title="Data Basics")
        enroll(learner, course)
        cert_id = services.complete_module(learner.id, course.modules[0].id)["certificate_id"]
        return cert_id, course

    def test_fills_snapshot_from_user_and_course(self, services, pending_cert):
        cert_id, course = pending_cert
        cert = services.certificates.mark_generated(cert_id, " https://cdn.example.com/c.pdf ")
        assert cert.status == CertificateStatus.GENERATED
        assert cert.certificate_url == "https://cdn.example.com/c.pdf"
        assert cert.recipient_name == "Lea Learner"
        assert cert.course_title == "Data Basics"
        assert cert.instructor_name == "Grace Mentor"
        assert cert.issued_at is not None

    def test_explicit_snapshot_wins(self, services, pending_cert):
        cert_id, _ = pending_cert
        cert = services.certificates.mark_generated(
            cert_id, "https://cdn.example.com/c.pdf", recipient_name="L. Learner", instructor_name="Dr. Grace"
        )
        assert cert.recipient_name == "L. Learner"
        assert cert.instructor_name == "Dr. Grace"

    def test_email_prefix_when_user_has_no_name(self, services, enroll, make_user, make_course):
        user = make_user(email="nameless@example.com")
        course = make_course(n_modules=1)
        enroll(user, course)
        cert_id = services.complete_module(user.id, course.modules[0].id)["certificate_id"]
        cert = services.certificates.mark_generated(cert_id, "https://cdn.example.com/n.pdf")
        assert cert.recipient_name == "nameless"

    def test_only_once(self, services, pending_cert):
        cert_id, _ = pending_cert
        services.certificates.mark_generated(cert_id, "https://cdn.example.com/c.pdf")
        with pytest.raises(AlreadyCompleted):
            services.certificates.mark_generated(cert_id, "https://cdn.example.com/other.pdf")

    def test_blank_url(self, services, pending_cert):
        cert_id, _ = pending_cert
        with pytest.raises(ValidationError):
            services.certificates.mark_generated(cert_id, "  ")

    def test_unknown_certificate(self, services):
        with pytest.raises(NotFound):
            services.certificates.mark_generated("CERT-MISSING", "https://cdn.example.com/c.pdf")

    def test_pending_queue(self, services, pending_cert, learner):
        cert_id, _ = pending_cert
        assert [c.id for c in services.certificates.list_pending()] == [cert_id]
        services.certificates.mark_generated(cert_id, "https://cdn.example.com/c.pdf")
        assert services.certificates.list_pending() == []
        assert [c.id for c in services.certificates.list_for_user(learner.id)] == [cert_id]
