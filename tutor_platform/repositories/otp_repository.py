from datetime import datetime
from sqlalchemy.orm import Session
from typing import Optional
from tutor_platform.database.database import OtpRecord, OtpPurpose

def create(db: Session, email: str, code: str, purpose: OtpPurpose, expires_at: datetime,
           staged_payload: Optional[dict] = None) -> OtpRecord:
    record = OtpRecord(
        email=email,
        code=code,
        purpose=purpose,
        expires_at=expires_at,
        staged_payload=staged_payload,
    )
    db.add(record)
    db.flush()
    return record

def delete_for(db: Session, email: str, purpose: OtpPurpose) -> int:
    """Remove every record for this email and purpose, verified or not."""
    return db.query(OtpRecord).filter(
        OtpRecord.email == email,
        OtpRecord.purpose == purpose,
    ).delete(synchronize_session=False)

def find_latest(db: Session, email: str, purpose: OtpPurpose) -> Optional[OtpRecord]:
    return db.query(OtpRecord).filter(
        OtpRecord.email == email,
        OtpRecord.purpose == purpose,
    ).order_by(OtpRecord.created_at.desc()).first()

def find_latest_unverified(db: Session, email: str, purpose: OtpPurpose) -> Optional[OtpRecord]:
    return db.query(OtpRecord).filter(
        OtpRecord.email == email,
        OtpRecord.purpose == purpose,
        OtpRecord.verified.is_(False),
    ).order_by(OtpRecord.created_at.desc()).first()

def created_since(db: Session, email: str, purpose: OtpPurpose, since: datetime) -> bool:
    query = db.query(OtpRecord).filter(
        OtpRecord.email == email,
        OtpRecord.purpose == purpose,
        OtpRecord.created_at >= since,
    )
    return db.query(query.exists()).scalar()

def increment_attempts(db: Session, record: OtpRecord) -> int:
    """
    Bump the attempt counter in the database and return the new value.

    Done as a single UPDATE so two concurrent wrong guesses both count.
    """
    db.query(OtpRecord).filter(OtpRecord.id == record.id).update(
        {OtpRecord.attempts: OtpRecord.attempts + 1},
        synchronize_session=False,
    )
    db.flush()
    db.refresh(record)
    return record.attempts

def delete_expired(db: Session, now: datetime) -> int:
    return db.query(OtpRecord).filter(OtpRecord.expires_at < now).delete(synchronize_session=False)
