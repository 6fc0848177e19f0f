from sqlalchemy.orm import Session
from typing import List, Optional, Tuple
from tutor_platform.database.database import TutorProfile, TutorProfileStatus, Subject, Grade

# Public sort keys accepted by the search endpoint
SORT_COLUMNS = {
    "createdAt": TutorProfile.created_at,
    "averageRating": TutorProfile.average_rating,
    "hourlyRate": TutorProfile.hourly_rate,
    "fullName": TutorProfile.full_name,
}

def _public_query(db: Session):
    """Only complete, APPROVED profiles are ever listed publicly."""
    return db.query(TutorProfile).filter(
        TutorProfile.is_profile_complete.is_(True),
        TutorProfile.profile_status == TutorProfileStatus.APPROVED,
    )

def get_by_id(db: Session, tutor_id: str) -> Optional[TutorProfile]:
    return db.query(TutorProfile).filter(TutorProfile.id == tutor_id).first()

def get_by_user_id(db: Session, user_id: str) -> Optional[TutorProfile]:
    return db.query(TutorProfile).filter(TutorProfile.user_id == user_id).first()

def get_public_by_id(db: Session, tutor_id: str) -> Optional[TutorProfile]:
    return _public_query(db).filter(TutorProfile.id == tutor_id).first()

def create(db: Session, **fields) -> TutorProfile:
    tutor = TutorProfile(**fields)
    db.add(tutor)
    db.flush()
    return tutor

def search_tutors(db: Session, page: int, limit: int, name: Optional[str] = None,
                  subjects: Optional[List[str]] = None, grades: Optional[List[str]] = None,
                  teaching_area: Optional[str] = None, sort_by: str = "createdAt",
                  sort_order: str = "desc") -> Tuple[List[TutorProfile], int]:
    """
    Filter public tutors.

    name and teaching_area are case-insensitive substring matches; subjects and
    grades match tutors teaching any of the given ids.
    """
    query = _public_query(db)

    if name:
        query = query.filter(TutorProfile.full_name.ilike(f"%{name}%"))
    if subjects:
        query = query.filter(TutorProfile.subjects.any(Subject.id.in_(subjects)))
    if grades:
        query = query.filter(TutorProfile.grades.any(Grade.id.in_(grades)))
    if teaching_area:
        query = query.filter(TutorProfile.teaching_area.ilike(f"%{teaching_area}%"))

    column = SORT_COLUMNS.get(sort_by, TutorProfile.created_at)
    order = column.asc() if sort_order == "asc" else column.desc()

    total = query.count()
    tutors = query.order_by(order, TutorProfile.id).offset((page - 1) * limit).limit(limit).all()
    return tutors, total

def find_all_approved(db: Session, page: int, limit: int) -> Tuple[List[TutorProfile], int]:
    query = _public_query(db)
    total = query.count()
    tutors = query.order_by(
        TutorProfile.average_rating.desc(),
        TutorProfile.created_at.desc(),
    ).offset((page - 1) * limit).limit(limit).all()
    return tutors, total

def find_by_status(db: Session, status: TutorProfileStatus, page: int, limit: int) -> Tuple[List[TutorProfile], int]:
    """Moderation queue listing, oldest first."""
    query = db.query(TutorProfile).filter(TutorProfile.profile_status == status)
    total = query.count()
    tutors = query.order_by(TutorProfile.updated_at.asc()).offset((page - 1) * limit).limit(limit).all()
    return tutors, total

def update_rating(db: Session, tutor: TutorProfile, average_rating: float, total_feedback: int) -> TutorProfile:
    tutor.average_rating = average_rating
    tutor.total_feedback = total_feedback
    return tutor
