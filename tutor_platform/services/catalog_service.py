"""
Subject and grade catalog.

The active lists change rarely, so they are cached in Redis when it is enabled.
"""
from sqlalchemy.orm import Session
from typing import List, Optional

from tutor_platform.database.database import Subject, Grade
from tutor_platform.database.redis import RedisClient
from tutor_platform.exceptions import NotFound
from tutor_platform.logger import logger
from tutor_platform.repositories import catalog_repository
from tutor_platform.schemas.catalog_schema import SubjectResponse, GradeResponse

SUBJECTS_CACHE_KEY = "catalog:subjects"
GRADES_CACHE_KEY = "catalog:grades"

def _cached(redis: Optional[RedisClient], key: str, expiration: int, load) -> List[dict]:
    if redis:
        cached = redis.get_json(key)
        if cached is not None:
            return cached

    data = load()

    if redis:
        redis.set_json(key, data, expiration)
    return data

def list_subjects(db: Session, redis: Optional[RedisClient], expiration: int) -> List[dict]:
    return _cached(redis, SUBJECTS_CACHE_KEY, expiration,
                   lambda: [SubjectResponse.model_validate(s).to_json() for s in catalog_repository.find_active_subjects(db)])

def search_subjects(db: Session, keyword: str) -> List[dict]:
    keyword = (keyword or "").strip()
    if not keyword:
        return [SubjectResponse.model_validate(s).to_json() for s in catalog_repository.find_active_subjects(db)]
    return [SubjectResponse.model_validate(s).to_json() for s in catalog_repository.search_subjects(db, keyword)]

def get_subject(db: Session, subject_id: str) -> dict:
    subject = catalog_repository.get_subject_by_id(db, subject_id)
    if not subject:
        raise NotFound("Subject not found")
    return SubjectResponse.model_validate(subject).to_json()

def list_grades(db: Session, redis: Optional[RedisClient], expiration: int) -> List[dict]:
    return _cached(redis, GRADES_CACHE_KEY, expiration,
                   lambda: [GradeResponse.model_validate(g).to_json() for g in catalog_repository.find_active_grades(db)])

def get_grade(db: Session, grade_id: str) -> dict:
    grade = catalog_repository.get_grade_by_id(db, grade_id)
    if not grade:
        raise NotFound("Grade not found")
    return GradeResponse.model_validate(grade).to_json()

###############
### SEEDING ###
###############

DEFAULT_SUBJECTS = [
    ("MATH", "Mathematics"),
    ("PHYSICS", "Physics"),
    ("CHEMISTRY", "Chemistry"),
    ("BIOLOGY", "Biology"),
    ("LITERATURE", "Literature"),
    ("ENGLISH", "English"),
    ("HISTORY", "History"),
    ("GEOGRAPHY", "Geography"),
    ("CIVICS", "Civic Education"),
    ("INFORMATICS", "Informatics"),
]

def seed_catalog(db: Session) -> int:
    """Insert the default subjects and grades 1-12 that are missing, matched by code. Returns the number added."""
    existing_subjects = {code for (code,) in db.query(Subject.code).all()}
    existing_grades = {code for (code,) in db.query(Grade.code).all()}

    added = 0
    for code, name in DEFAULT_SUBJECTS:
        if code not in existing_subjects:
            db.add(Subject(code=code, name=name, description=f"{name} from basic to advanced level"))
            added += 1
    for number in range(1, 13):
        code = f"GRADE_{number}"
        if code not in existing_grades:
            db.add(Grade(code=code, name=f"Grade {number}", order_number=number))
            added += 1

    db.commit()
    if added:
        logger.info(f"Seeded {added} catalog entries")
    return added
