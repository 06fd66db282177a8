"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides an in-memory database plus seed
factories (users, courses, modules, quizzes) for unit and integration tests.
"""
import itertools
import os
import sys
import tempfile
from decimal import Decimal
from pathlib import Path

# Settings are read at import time; point them at throwaway locations first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="lms-test-logs-"))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


# ----- In-memory DB (one shared connection so every session sees the same data) -----
@pytest.fixture
def in_memory_engine():
    """Create an in-memory SQLite engine with the full schema."""
    import lms.models  # noqa: F401
    from lms.config import Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(in_memory_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def services(db_session):
    from lms.bootstrap import build_services
    return build_services(db_session)


@pytest.fixture
def gateway():
    from lms.services.payment_gateway import SandboxPaymentGateway
    return SandboxPaymentGateway()


# ----- Seed factories -----
@pytest.fixture
def make_user(db_session):
    from lms.models.models import User
    counter = itertools.count(1)

    def _make(email=None, full_name=None, is_admin=False):
        n = next(counter)
        user = User(
            email=email or f"learner{n}@example.com",
            full_name=full_name,
            is_admin=is_admin,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_quiz(db_session):
    """Quiz with `n_questions` questions; each has a wrong option first, then the right one."""
    from lms.models.models import Option, Question, Quiz
    from lms.utils.common import new_id

    def _make(
        n_questions=4,
        pass_threshold=0.75,
        course_id=None,
        max_attempts=0,
        time_limit_minutes=0,
        title="Checkpoint quiz",
    ):
        quiz = Quiz(
            id=new_id("QZ"),
            course_id=course_id,
            title=title,
            description="Answer every question",
            pass_threshold=pass_threshold,
            max_attempts=max_attempts,
            time_limit_minutes=time_limit_minutes,
        )
        db_session.add(quiz)
        for i in range(1, n_questions + 1):
            question = Question(id=new_id("QN"), quiz_id=quiz.id, text=f"Question {i}", order_index=i)
            db_session.add(question)
            db_session.add(Option(id=new_id("OP"), question_id=question.id, text="wrong", is_correct=False, order_index=1))
            db_session.add(Option(id=new_id("OP"), question_id=question.id, text="right", is_correct=True, order_index=2))
        db_session.commit()
        db_session.refresh(quiz)
        return quiz

    return _make


@pytest.fixture
def make_course(db_session):
    """Course with `n_modules` modules; `quizzes` maps a 1-based module position to a quiz id."""
    from lms.models.models import Course, Module
    from lms.utils.common import new_id

    def _make(n_modules=2, price="150000", discount="0", quizzes=None, title="Python Foundations"):
        quizzes = quizzes or {}
        course = Course(
            id=new_id("CRS"),
            title=title,
            price=Decimal(price),
            discount_amount=Decimal(discount),
            mentor_name="Grace Mentor",
        )
        db_session.add(course)
        for i in range(1, n_modules + 1):
            db_session.add(
                Module(
                    id=new_id("MOD"),
                    course_id=course.id,
                    title=f"Module {i}",
                    order_index=i,
                    quiz_id=quizzes.get(i),
                )
            )
        db_session.commit()
        db_session.refresh(course)
        return course

    return _make


@pytest.fixture
def enroll(services):
    """Grant an active enrollment, as an administrator would."""
    from lms.models.status import EnrollmentStatus
    from lms.utils.common import utcnow

    def _enroll(user, course):
        enrollment, _ = services.ledger.grant_or_reconcile(
            user.id, course.id, status=EnrollmentStatus.SUCCESS, enrolled_at=utcnow()
        )
        return enrollment

    return _enroll


@pytest.fixture
def answer_quiz(services):
    """Answer the first `correct` questions right and the next `wrong` ones wrong."""

    def _answer(attempt_id, user_id, quiz, correct, wrong=0):
        questions = list(quiz.questions)
        for q in questions[:correct]:
            right = next(o for o in q.options if o.is_correct)
            services.quizzes.save_answer(attempt_id, user_id, q.id, right.id)
        for q in questions[correct:correct + wrong]:
            bad = next(o for o in q.options if not o.is_correct)
            services.quizzes.save_answer(attempt_id, user_id, q.id, bad.id)

    return _answer


# ----- Common scenario -----
@pytest.fixture
def learner(make_user):
    return make_user(email="lea@example.com", full_name="Lea Learner")


@pytest.fixture
def other_learner(make_user):
    return make_user(email="omar@example.com", full_name="Omar Other")


@pytest.fixture
def quiz_course(make_quiz, make_course):
    """Two-module course; module 2 is gated by a five-question quiz with a 0.7 threshold."""
    quiz = make_quiz(n_questions=5, pass_threshold=0.7)
    course = make_course(n_modules=2, quizzes={2: quiz.id})
    return course, quiz
