from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple
from tutor_platform.database.database import Feedback, FeedbackStatus, FeedbackAuthorRole, StudentProfile, ParentProfile

def get_by_id(db: Session, feedback_id: str) -> Optional[Feedback]:
    return db.query(Feedback).filter(Feedback.id == feedback_id).first()

def find_by_tutor_and_author(db: Session, tutor_id: str, author_user_id: str) -> Optional[Feedback]:
    return db.query(Feedback).filter(
        Feedback.tutor_id == tutor_id,
        Feedback.author_user_id == author_user_id,
    ).first()

def exists_by_tutor_and_author(db: Session, tutor_id: str, author_user_id: str) -> bool:
    return find_by_tutor_and_author(db, tutor_id, author_user_id) is not None

def create(db: Session, tutor_id: str, author_user_id: str, author_role: FeedbackAuthorRole,
           rating: int, comment: Optional[str]) -> Feedback:
    feedback = Feedback(
        tutor_id=tutor_id,
        author_user_id=author_user_id,
        author_role=author_role,
        rating=rating,
        comment=comment,
    )
    db.add(feedback)
    db.flush()
    return feedback

def find_by_tutor_id(db: Session, tutor_id: str, page: int, limit: int,
                     status: Optional[FeedbackStatus] = None) -> Tuple[List[Feedback], int]:
    """Feedback for one tutor, newest first."""
    query = db.query(Feedback).filter(Feedback.tutor_id == tutor_id)
    if status:
        query = query.filter(Feedback.status == status)
    total = query.count()
    feedbacks = query.order_by(Feedback.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return feedbacks, total

def find_all(db: Session, page: int, limit: int, status: Optional[FeedbackStatus] = None) -> Tuple[List[Feedback], int]:
    query = db.query(Feedback)
    if status:
        query = query.filter(Feedback.status == status)
    total = query.count()
    feedbacks = query.order_by(Feedback.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return feedbacks, total

def author_full_name(db: Session, feedback: Feedback) -> Optional[str]:
    """Display name of the author, taken from their student or parent profile."""
    if feedback.author_role == FeedbackAuthorRole.STUDENT:
        profile = db.query(StudentProfile.full_name).filter(StudentProfile.user_id == feedback.author_user_id).first()
    else:
        profile = db.query(ParentProfile.full_name).filter(ParentProfile.user_id == feedback.author_user_id).first()
    return profile[0] if profile else None

def calculate_average_rating(db: Session, tutor_id: str) -> Tuple[float, int]:
    """
    Average rating over VISIBLE feedback, rounded half-up to one decimal, with the count.

    Returns (0, 0) when the tutor has no visible feedback.
    """
    average, count = db.query(func.avg(Feedback.rating), func.count(Feedback.id)).filter(
        Feedback.tutor_id == tutor_id,
        Feedback.status == FeedbackStatus.VISIBLE,
    ).one()

    if not count:
        return 0.0, 0

    rounded = Decimal(str(average)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return float(rounded), count
