from sqlalchemy.orm import Session
from typing import List, Optional, Tuple

from tutor_platform.database.database import User, UserRole, StudentProfile
from tutor_platform.exceptions import Conflict, Forbidden, NotFound
from tutor_platform.logger import logger
from tutor_platform.repositories import profile_repository
from tutor_platform.schemas.profile_schema import StudentProfileCreate, StudentProfileUpdate

def _check_parent(db: Session, parent_id: Optional[str]):
    if parent_id and not profile_repository.get_parent_by_id(db, parent_id):
        raise NotFound("Parent not found")

def get_student(db: Session, student_id: str) -> StudentProfile:
    student = profile_repository.get_student_by_id(db, student_id)
    if not student:
        raise NotFound("Student profile not found")
    return student

def get_student_by_user_id(db: Session, user_id: str) -> StudentProfile:
    student = profile_repository.get_student_by_user_id(db, user_id)
    if not student:
        raise NotFound("Student profile not found")
    return student

def create_student(db: Session, user: User, data: StudentProfileCreate) -> StudentProfile:
    """
    Raises:
    - Forbidden: the user is not a student
    - Conflict: the user already has a student profile
    - NotFound: parent_id does not exist
    """
    if user.role != UserRole.STUDENT:
        raise Forbidden("Only students can create a student profile")
    if profile_repository.get_student_by_user_id(db, user.id):
        raise Conflict("Student profile already exists")
    _check_parent(db, data.parent_id)

    student = profile_repository.create_student(db, user_id=user.id, **data.model_dump())
    db.commit()
    logger.info(f"Student profile {student.id} created for user {user.id}")
    return student

def list_students(db: Session, page: int, limit: int, grade: Optional[str] = None,
                  search: Optional[str] = None) -> Tuple[List[StudentProfile], int]:
    return profile_repository.find_students(db, page, limit, grade=grade, search=search)

def list_by_parent(db: Session, parent_id: str) -> List[StudentProfile]:
    return profile_repository.find_students_by_parent_id(db, parent_id)

def _owned(db: Session, student_id: str, user_id: str) -> StudentProfile:
    student = get_student(db, student_id)
    if student.user_id != user_id:
        raise Forbidden("Not authorized to modify this student profile")
    return student

def update_student(db: Session, student_id: str, user_id: str, data: StudentProfileUpdate) -> StudentProfile:
    student = _owned(db, student_id, user_id)
    changes = data.model_dump(exclude_unset=True)
    if "parent_id" in changes:
        _check_parent(db, changes["parent_id"])

    for field, value in changes.items():
        if value is None and field == "full_name":
            continue
        setattr(student, field, value)
    db.commit()
    return student

def delete_student(db: Session, student_id: str, user_id: str):
    student = _owned(db, student_id, user_id)
    db.delete(student)
    db.commit()
    logger.info(f"Student profile {student_id} deleted")
