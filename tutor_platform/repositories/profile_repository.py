"""Data access for student and parent profiles."""
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple
from tutor_platform.database.database import StudentProfile, ParentProfile

################
### STUDENTS ###
################

def get_student_by_id(db: Session, student_id: str) -> Optional[StudentProfile]:
    return db.query(StudentProfile).filter(StudentProfile.id == student_id).first()

def get_student_by_user_id(db: Session, user_id: str) -> Optional[StudentProfile]:
    return db.query(StudentProfile).filter(StudentProfile.user_id == user_id).first()

def find_students_by_parent_id(db: Session, parent_id: str) -> List[StudentProfile]:
    return db.query(StudentProfile).filter(StudentProfile.parent_id == parent_id).order_by(StudentProfile.full_name).all()

def create_student(db: Session, **fields) -> StudentProfile:
    student = StudentProfile(**fields)
    db.add(student)
    db.flush()
    return student

def find_students(db: Session, page: int, limit: int, grade: Optional[str] = None,
                  search: Optional[str] = None) -> Tuple[List[StudentProfile], int]:
    query = db.query(StudentProfile)
    if grade:
        query = query.filter(StudentProfile.grade == grade)
    if search:
        query = query.filter(StudentProfile.full_name.ilike(f"%{search}%"))
    total = query.count()
    students = query.order_by(StudentProfile.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return students, total

###############
### PARENTS ###
###############

def get_parent_by_id(db: Session, parent_id: str) -> Optional[ParentProfile]:
    return db.query(ParentProfile).filter(ParentProfile.id == parent_id).first()

def get_parent_by_user_id(db: Session, user_id: str) -> Optional[ParentProfile]:
    return db.query(ParentProfile).filter(ParentProfile.user_id == user_id).first()

def create_parent(db: Session, **fields) -> ParentProfile:
    parent = ParentProfile(**fields)
    db.add(parent)
    db.flush()
    return parent
