from sqlalchemy import create_engine, event, Column, Integer, String, Float, Text, Date, DateTime, Boolean, ForeignKey, Enum, Index, CheckConstraint, UniqueConstraint, Table, JSON
from sqlalchemy.orm import relationship, declarative_base, sessionmaker
from fastapi import Request
from typing import Optional
import uuid
import enum

from tutor_platform.utilities import utcnow

"""
Database models for the tutor platform.
Includes models for users, OTP records, role profiles, tutor certificates,
feedback and the subject/grade catalog.
Uses SQLAlchemy ORM with PostgreSQL/SQLite backend.
"""

# Base class for ORM models
Base = declarative_base()

# Enum for user roles
class UserRole(enum.Enum):
    STUDENT = "STUDENT"
    TUTOR = "TUTOR"
    PARENT = "PARENT"
    ADMIN = "ADMIN"

class UserStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"

class Gender(enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"

class TutorProfileStatus(enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

class EducationStatus(enum.Enum):
    STUDYING = "STUDYING"
    GRADUATED = "GRADUATED"
    NOT_GRADUATED = "NOT_GRADUATED"

class EntityStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"

class FeedbackStatus(enum.Enum):
    VISIBLE = "VISIBLE"
    HIDDEN = "HIDDEN"
    REPORTED = "REPORTED"

class FeedbackAuthorRole(enum.Enum):
    STUDENT = "STUDENT"
    PARENT = "PARENT"

class OtpPurpose(enum.Enum):
    REGISTRATION = "REGISTRATION"
    FORGOT_PASSWORD = "FORGOT_PASSWORD"

def is_valid_uuid(uuid_str: str) -> bool:
    """Validate UUID string format."""
    if not uuid_str:
        return False
    try:
        # Validate length and format
        if len(uuid_str) != 36:
            return False
        # Try to parse as UUID to validate format
        uuid_obj = uuid.UUID(uuid_str)
        return str(uuid_obj) == uuid_str.lower()
    except (ValueError, AttributeError, TypeError):
        return False

def generate_uuid() -> str:
    """Generate a string UUID."""
    return str(uuid.uuid4()).lower()

# Subject Model for normalized subject storage
class Subject(Base):
    """Represents academic subjects that can be taught."""
    __tablename__ = 'subjects'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(Enum(EntityStatus), default=EntityStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Subject(id={self.id}, code={self.code}, name={self.name})>"

class Grade(Base):
    """School grade levels (1-12) a tutor can teach."""
    __tablename__ = 'grades'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(50), nullable=False)
    order_number = Column(Integer, nullable=False, unique=True)
    status = Column(Enum(EntityStatus), default=EntityStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint('order_number >= 1 AND order_number <= 12', name='check_grade_order_range'),
    )

    def __repr__(self):
        return f"<Grade(id={self.id}, code={self.code}, order_number={self.order_number})>"

# Junction table for tutor-subject relationship
tutor_subjects = Table('tutor_subjects', Base.metadata,
    Column('tutor_profile_id', String(36), ForeignKey('tutor_profiles.id', ondelete='CASCADE'), primary_key=True),
    Column('subject_id', String(36), ForeignKey('subjects.id', ondelete='CASCADE'), primary_key=True)
)

# Junction table for tutor-grade relationship
tutor_grades = Table('tutor_grades', Base.metadata,
    Column('tutor_profile_id', String(36), ForeignKey('tutor_profiles.id', ondelete='CASCADE'), primary_key=True),
    Column('grade_id', String(36), ForeignKey('grades.id', ondelete='CASCADE'), primary_key=True)
)

# User Model
class User(Base):
    """User account with role-based access control and profile relationships."""
    __tablename__ = 'users'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)  # Always stored lower-cased
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    role = Column(Enum(UserRole), nullable=False, index=True)
    status = Column(Enum(UserStatus), default=UserStatus.ACTIVE, nullable=False, index=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    student_profile = relationship("StudentProfile", back_populates="user", uselist=False, cascade='all, delete-orphan')
    tutor_profile = relationship("TutorProfile", back_populates="user", uselist=False, cascade='all, delete-orphan')
    parent_profile = relationship("ParentProfile", back_populates="user", uselist=False, cascade='all, delete-orphan')

    @classmethod
    def get_by_id(cls, db, user_id: str) -> Optional['User']:
        """Get user by UUID string."""
        if not is_valid_uuid(user_id):
            return None
        return db.query(cls).filter(cls.id == user_id).first()

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def __repr__(self):
        """String representation of the User object."""
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

class OtpRecord(Base):
    """
    Short-lived verification code keyed by email and purpose.

    For registration the record also carries the staged account payload, so no
    User row exists until the code is verified.
    """
    __tablename__ = 'otp_records'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), nullable=False)
    code = Column(String(10), nullable=False)
    purpose = Column(Enum(OtpPurpose), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    verified = Column(Boolean, default=False, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    staged_payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index('idx_otp_email_purpose', 'email', 'purpose'),
    )

    def __repr__(self):
        return f"<OtpRecord(id={self.id}, email={self.email}, purpose={self.purpose}, verified={self.verified})>"

class ParentProfile(Base):
    __tablename__ = 'parent_profiles'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False)
    avatar_url = Column(String(500))
    address = Column(String(255))
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="parent_profile", lazy='joined')
    children = relationship("StudentProfile", back_populates="parent")

    def __repr__(self):
        return f"<ParentProfile(id={self.id}, user_id={self.user_id})>"

# Student Profile Model
class StudentProfile(Base):
    __tablename__ = 'student_profiles'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    parent_id = Column(String(36), ForeignKey('parent_profiles.id', ondelete='SET NULL'), nullable=True, index=True)
    full_name = Column(String(255), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(Enum(Gender), nullable=True)
    grade = Column(String(50), nullable=True, index=True)
    school = Column(String(255))
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="student_profile", lazy='joined')
    parent = relationship("ParentProfile", back_populates="children")

    def __repr__(self):
        """String representation of the StudentProfile object."""
        return f"<StudentProfile(id={self.id}, user_id={self.user_id}, grade={self.grade})>"

# Tutor Profile Model
class TutorProfile(Base):
    """
    Tutor profile built up over the four onboarding steps.

    completed_steps is a JSON list used as a set; is_profile_complete is only
    ever set by services.onboarding, which keeps it equal to
    "completed_steps covers 1..4".
    """
    __tablename__ = 'tutor_profiles'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)

    # Step 1: basic profile
    full_name = Column(String(255), nullable=False)
    avatar_url = Column(String(500))
    gender = Column(Enum(Gender), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    place_of_birth = Column(String(255))
    address = Column(String(255))
    teaching_area = Column(String(255))
    bio = Column(Text)
    hourly_rate = Column(Float, nullable=False)

    # Step 2: identity document
    identity_number = Column(String(50))
    identity_images = Column(JSON, default=list, nullable=False)

    # Teaching info
    available_days = Column(JSON, default=list, nullable=False)
    available_time_slots = Column(JSON, default=list, nullable=False)

    # Onboarding progress
    current_step = Column(Integer, default=1, nullable=False)
    completed_steps = Column(JSON, default=list, nullable=False)
    is_profile_complete = Column(Boolean, default=False, nullable=False)
    profile_status = Column(Enum(TutorProfileStatus), default=TutorProfileStatus.DRAFT, nullable=False, index=True)

    # Aggregated feedback
    average_rating = Column(Float, default=0, nullable=False)
    total_feedback = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Table-level constraints
    __table_args__ = (
        CheckConstraint('hourly_rate >= 0', name='check_hourly_rate_positive'),
        CheckConstraint('average_rating >= 0 AND average_rating <= 5', name='check_rating_range'),
        CheckConstraint('current_step >= 1 AND current_step <= 4', name='check_current_step_range'),
    )

    subjects = relationship("Subject", secondary=tutor_subjects, lazy='selectin')
    grades = relationship("Grade", secondary=tutor_grades, lazy='selectin')

    # Relationships
    user = relationship("User", back_populates="tutor_profile", lazy='joined')
    certificates = relationship("Certificate", back_populates="tutor", cascade='all, delete-orphan')
    feedbacks = relationship("Feedback", back_populates="tutor", cascade='all, delete-orphan')

    @property
    def is_public(self) -> bool:
        return self.is_profile_complete and self.profile_status == TutorProfileStatus.APPROVED

    def __repr__(self):
        """String representation of the TutorProfile object."""
        return f"<TutorProfile(id={self.id}, user_id={self.user_id}, current_step={self.current_step})>"

class Certificate(Base):
    __tablename__ = 'certificates'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    tutor_id = Column(String(36), ForeignKey('tutor_profiles.id', ondelete='CASCADE'), nullable=False, index=True)
    school_name = Column(String(255), nullable=False)
    major = Column(String(255), nullable=False)
    education_status = Column(Enum(EducationStatus), nullable=False)
    images = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    tutor = relationship("TutorProfile", back_populates="certificates")

    def __repr__(self):
        return f"<Certificate(id={self.id}, tutor_id={self.tutor_id}, school_name={self.school_name})>"

class Feedback(Base):
    __tablename__ = 'feedbacks'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    tutor_id = Column(String(36), ForeignKey('tutor_profiles.id', ondelete='CASCADE'), nullable=False, index=True)
    author_user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    author_role = Column(Enum(FeedbackAuthorRole), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    status = Column(Enum(FeedbackStatus), default=FeedbackStatus.VISIBLE, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('tutor_id', 'author_user_id', name='uq_feedback_tutor_author'),
        CheckConstraint('rating >= 1 AND rating <= 5', name='check_feedback_rating_range'),
    )

    tutor = relationship("TutorProfile", back_populates="feedbacks")
    author = relationship("User", lazy='joined')

    def __repr__(self):
        return f"<Feedback(id={self.id}, tutor_id={self.tutor_id}, rating={self.rating})>"

class OrphanedImage(Base):
    """Media-host objects whose deletion failed; retried by the reconciliation sweep."""
    __tablename__ = 'orphaned_images'
    id = Column(String(36), primary_key=True, default=generate_uuid)
    public_id = Column(String(500), nullable=False, unique=True)
    reason = Column(Text)
    attempts = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<OrphanedImage(public_id={self.public_id}, attempts={self.attempts})>"

# Add indexes for frequently queried columns
Index('idx_user_email_role', User.email, User.role)
Index('idx_tutor_rating', TutorProfile.average_rating)
Index('idx_tutor_hourly_rate', TutorProfile.hourly_rate)

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE clauses unless this pragma is on for every connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

class Database:
    """
    Owns the engine and session factory for one application instance.

    Built by the application factory at startup and disposed at shutdown, so
    importing this module never opens a connection.
    """

    def __init__(self, url: str):
        if url.startswith("sqlite"):
            self.engine = create_engine(url, echo=False, connect_args={"check_same_thread": False})
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_engine(
                url,
                echo=False,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_pre_ping=True
            )
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def create_all(self):
        Base.metadata.create_all(self.engine)

    def dispose(self):
        self.engine.dispose()

# Dependency to get DB session
def get_db(request: Request):
    """Provides a transactional scope around a series of operations."""
    db = request.app.state.database.SessionLocal()
    try:
        yield db
    finally:
        db.close()
