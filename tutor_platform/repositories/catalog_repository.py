"""Data access for the subject and grade catalog."""
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List, Optional
from tutor_platform.database.database import Subject, Grade, EntityStatus

def find_active_subjects(db: Session) -> List[Subject]:
    return db.query(Subject).filter(Subject.status == EntityStatus.ACTIVE).order_by(Subject.name.asc()).all()

def search_subjects(db: Session, keyword: str) -> List[Subject]:
    pattern = f"%{keyword}%"
    return db.query(Subject).filter(
        Subject.status == EntityStatus.ACTIVE,
        or_(Subject.name.ilike(pattern), Subject.code.ilike(pattern)),
    ).order_by(Subject.name.asc()).all()

def get_subject_by_id(db: Session, subject_id: str) -> Optional[Subject]:
    return db.query(Subject).filter(Subject.id == subject_id).first()

def find_subjects_by_ids(db: Session, subject_ids: List[str]) -> List[Subject]:
    if not subject_ids:
        return []
    return db.query(Subject).filter(Subject.id.in_(subject_ids)).all()

def find_active_grades(db: Session) -> List[Grade]:
    return db.query(Grade).filter(Grade.status == EntityStatus.ACTIVE).order_by(Grade.order_number.asc()).all()

def get_grade_by_id(db: Session, grade_id: str) -> Optional[Grade]:
    return db.query(Grade).filter(Grade.id == grade_id).first()

def find_grades_by_ids(db: Session, grade_ids: List[str]) -> List[Grade]:
    if not grade_ids:
        return []
    return db.query(Grade).filter(Grade.id.in_(grade_ids)).all()
