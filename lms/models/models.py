from lms.config import Base
from lms.models.status import AttemptStatus, CertificateStatus, EnrollmentStatus
from lms.utils.common import utcnow
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship


def _status_enum(enum_cls, name: str) -> SQLEnum:
    # Persist the lowercase values ("in_progress"), not the member names.
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda e: [m.value for m in e],
        validate_strings=True,
    )


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)


class Course(Base):
    __tablename__ = "courses"
    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    price = Column(Numeric(10, 2), default=0, nullable=False)
    discount_amount = Column(Numeric(10, 2), default=0, nullable=False)
    mentor_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    modules = relationship("Module", backref="course", order_by="Module.order_index")


class Quiz(Base):
    __tablename__ = "quizzes"
    id = Column(String, primary_key=True, index=True)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    pass_threshold = Column(Float, default=0.75, nullable=False)
    max_attempts = Column(Integer, default=0, nullable=False)  # 0 = unlimited
    time_limit_minutes = Column(Integer, default=0, nullable=False)  # 0 = unlimited
    created_at = Column(DateTime, default=utcnow, nullable=False)

    questions = relationship("Question", backref="quiz", order_by="Question.order_index")


class Module(Base):
    __tablename__ = "modules"
    id = Column(String, primary_key=True, index=True)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    title = Column(String, nullable=False)
    # Advisory only: every module is always unlocked.
    order_index = Column(Integer, nullable=False, default=1)
    quiz_id = Column(String, ForeignKey("quizzes.id"), index=True, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    quiz = relationship("Quiz", foreign_keys=[quiz_id])


class Question(Base):
    __tablename__ = "questions"
    id = Column(String, primary_key=True, index=True)
    quiz_id = Column(String, ForeignKey("quizzes.id"), index=True, nullable=False)
    text = Column(Text, nullable=False)
    order_index = Column(Integer, nullable=False, default=1)

    options = relationship("Option", backref="question", order_by="Option.order_index")


class Option(Base):
    __tablename__ = "options"
    id = Column(String, primary_key=True, index=True)
    question_id = Column(String, ForeignKey("questions.id"), index=True, nullable=False)
    text = Column(Text, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)  # never exposed to learners
    order_index = Column(Integer, nullable=False, default=1)


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
    )
    id = Column(String, primary_key=True, index=True)  # EN-...
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    external_ref = Column(String, index=True, nullable=True)  # payment order id; null for admin grants
    status = Column(_status_enum(EnrollmentStatus, "enrollment_status"), default=EnrollmentStatus.PENDING, nullable=False)
    amount_paid = Column(Numeric(10, 2), default=0, nullable=False)
    enrolled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", backref="enrollments", foreign_keys=[user_id])
    course = relationship("Course", foreign_keys=[course_id])


class ModuleProgress(Base):
    """Presence of a row means the user completed the module."""
    __tablename__ = "module_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "module_id", name="uq_module_progress_user_module"),
    )
    id = Column(String, primary_key=True, index=True)  # MP-...
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    module_id = Column(String, ForeignKey("modules.id"), index=True, nullable=False)
    completed_at = Column(DateTime, default=utcnow, nullable=False)

    module = relationship("Module", foreign_keys=[module_id])


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        # At most one open attempt per (user, quiz); completed attempts accumulate.
        Index(
            "uq_quiz_attempts_open",
            "user_id",
            "quiz_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
    )
    id = Column(String, primary_key=True, index=True)  # QA-...
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    quiz_id = Column(String, ForeignKey("quizzes.id"), index=True, nullable=False)
    status = Column(_status_enum(AttemptStatus, "quiz_attempt_status"), default=AttemptStatus.IN_PROGRESS, nullable=False)
    score = Column(Float, nullable=True)  # set on completion only
    # Quiz rules snapshotted when the attempt opens.
    pass_threshold = Column(Float, nullable=False)
    max_attempts = Column(Integer, default=0, nullable=False)
    time_limit_minutes = Column(Integer, default=0, nullable=False)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    answers = relationship("QuizAnswer", backref="attempt", cascade="all, delete-orphan")


class QuizAnswer(Base):
    __tablename__ = "quiz_answers"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_quiz_answers_attempt_question"),
    )
    id = Column(String, primary_key=True, index=True)  # AN-...
    attempt_id = Column(String, ForeignKey("quiz_attempts.id"), index=True, nullable=False)
    question_id = Column(String, ForeignKey("questions.id"), nullable=False)
    selected_option_id = Column(String, ForeignKey("options.id"), nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Certificate(Base):
    __tablename__ = "certificates"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_certificates_user_course"),
    )
    id = Column(String, primary_key=True, index=True)  # CERT-...
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    status = Column(_status_enum(CertificateStatus, "certificate_status"), default=CertificateStatus.PENDING, nullable=False)
    # Snapshot fields, filled in by the renderer.
    recipient_name = Column(String, nullable=True)
    course_title = Column(String, nullable=True)
    instructor_name = Column(String, nullable=True)
    issued_at = Column(DateTime, nullable=True)
    total_hours = Column(Integer, default=0, nullable=False)
    certificate_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", backref="certificates", foreign_keys=[user_id])
    course = relationship("Course", foreign_keys=[course_id])
