from sqlalchemy.orm import Session

from tutor_platform.database.database import User, UserRole, ParentProfile
from tutor_platform.exceptions import Conflict, Forbidden, NotFound
from tutor_platform.logger import logger
from tutor_platform.repositories import profile_repository
from tutor_platform.schemas.profile_schema import ParentProfileCreate, ParentProfileUpdate

def get_parent(db: Session, parent_id: str) -> ParentProfile:
    parent = profile_repository.get_parent_by_id(db, parent_id)
    if not parent:
        raise NotFound("Parent profile not found")
    return parent

def get_parent_by_user_id(db: Session, user_id: str) -> ParentProfile:
    parent = profile_repository.get_parent_by_user_id(db, user_id)
    if not parent:
        raise NotFound("Parent profile not found")
    return parent

def create_parent(db: Session, user: User, data: ParentProfileCreate) -> ParentProfile:
    if user.role != UserRole.PARENT:
        raise Forbidden("Only parents can create a parent profile")
    if profile_repository.get_parent_by_user_id(db, user.id):
        raise Conflict("Parent profile already exists")

    parent = profile_repository.create_parent(db, user_id=user.id, **data.model_dump())
    db.commit()
    logger.info(f"Parent profile {parent.id} created for user {user.id}")
    return parent

def update_parent(db: Session, user_id: str, data: ParentProfileUpdate) -> ParentProfile:
    parent = get_parent_by_user_id(db, user_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field == "full_name":
            continue
        setattr(parent, field, value)
    db.commit()
    return parent
