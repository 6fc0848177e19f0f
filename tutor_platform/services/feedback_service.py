from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple

from tutor_platform.database.database import User, UserRole, Feedback, FeedbackStatus, FeedbackAuthorRole, TutorProfile
from tutor_platform.exceptions import Conflict, Forbidden, NotFound
from tutor_platform.logger import logger
from tutor_platform.repositories import feedback_repository, tutor_repository
from tutor_platform.schemas.tutor_schema import FeedbackCreate, FeedbackResponse
from tutor_platform.services.tutor_service import get_public_tutor

AUTHOR_ROLES = {
    UserRole.STUDENT: FeedbackAuthorRole.STUDENT,
    UserRole.PARENT: FeedbackAuthorRole.PARENT,
}

def refresh_tutor_rating(db: Session, tutor: TutorProfile):
    """Recompute the cached average and count from VISIBLE feedback. Pending changes must be flushed first."""
    average, count = feedback_repository.calculate_average_rating(db, tutor.id)
    tutor_repository.update_rating(db, tutor, average, count)

def to_response(db: Session, feedback: Feedback) -> FeedbackResponse:
    response = FeedbackResponse.model_validate(feedback)
    response.author_name = feedback_repository.author_full_name(db, feedback)
    return response

def create_feedback(db: Session, author: User, tutor_id: str, data: FeedbackCreate) -> Feedback:
    """
    Raises:
    - Forbidden: the author is not a student or parent
    - NotFound: the tutor is not publicly visible
    - Conflict: the author already reviewed this tutor
    """
    author_role = AUTHOR_ROLES.get(author.role)
    if author_role is None:
        raise Forbidden("Only students and parents can leave feedback")

    tutor = get_public_tutor(db, tutor_id)
    if feedback_repository.exists_by_tutor_and_author(db, tutor.id, author.id):
        raise Conflict("You have already left feedback for this tutor")

    try:
        feedback = feedback_repository.create(
            db,
            tutor_id=tutor.id,
            author_user_id=author.id,
            author_role=author_role,
            rating=data.rating,
            comment=data.comment,
        )
        refresh_tutor_rating(db, tutor)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("You have already left feedback for this tutor")

    logger.info(f"Feedback {feedback.id} ({feedback.rating}) left for tutor {tutor.id}, average now {tutor.average_rating}")
    return feedback

def get_tutor_feedbacks(db: Session, tutor_id: str, page: int, limit: int) -> Tuple[List[Feedback], int]:
    """Visible feedback of a publicly visible tutor, newest first."""
    tutor = get_public_tutor(db, tutor_id)
    return feedback_repository.find_by_tutor_id(db, tutor.id, page, limit, status=FeedbackStatus.VISIBLE)

def list_feedbacks(db: Session, page: int, limit: int, status: Optional[FeedbackStatus] = None) -> Tuple[List[Feedback], int]:
    return feedback_repository.find_all(db, page, limit, status=status)

def update_feedback_status(db: Session, feedback_id: str, status: FeedbackStatus) -> Feedback:
    """Moderation. Hiding or reporting feedback takes it out of the tutor's rating."""
    feedback = feedback_repository.get_by_id(db, feedback_id)
    if not feedback:
        raise NotFound("Feedback not found")

    feedback.status = status
    db.flush()
    refresh_tutor_rating(db, feedback.tutor)
    db.commit()

    logger.info(f"Feedback {feedback.id} set to {status.value}")
    return feedback
