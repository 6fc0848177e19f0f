from sqlalchemy.orm import Session
from typing import List, Optional
from tutor_platform.database.database import Certificate

def get_by_id(db: Session, certificate_id: str) -> Optional[Certificate]:
    return db.query(Certificate).filter(Certificate.id == certificate_id).first()

def find_by_tutor_id(db: Session, tutor_id: str) -> List[Certificate]:
    return db.query(Certificate).filter(Certificate.tutor_id == tutor_id).order_by(Certificate.created_at.asc()).all()

def create(db: Session, tutor_id: str, school_name: str, major: str, education_status, images: List[str]) -> Certificate:
    certificate = Certificate(
        tutor_id=tutor_id,
        school_name=school_name,
        major=major,
        education_status=education_status,
        images=list(images),
    )
    db.add(certificate)
    db.flush()
    return certificate

def delete(db: Session, certificate: Certificate) -> None:
    db.delete(certificate)
