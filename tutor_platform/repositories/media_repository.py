from sqlalchemy.orm import Session
from typing import List
from tutor_platform.database.database import OrphanedImage

def record_orphan(db: Session, public_id: str, reason: str) -> OrphanedImage:
    """Remember a media object we failed to delete. Recording the same id again bumps its attempt count."""
    orphan = db.query(OrphanedImage).filter(OrphanedImage.public_id == public_id).first()
    if orphan:
        orphan.attempts += 1
        orphan.reason = reason
        return orphan

    orphan = OrphanedImage(public_id=public_id, reason=reason)
    db.add(orphan)
    db.flush()
    return orphan

def find_orphans(db: Session, limit: int = 100) -> List[OrphanedImage]:
    return db.query(OrphanedImage).order_by(OrphanedImage.created_at.asc()).limit(limit).all()

def delete_orphan(db: Session, orphan: OrphanedImage) -> None:
    db.delete(orphan)
