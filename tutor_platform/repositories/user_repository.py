from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional, Tuple, List
from tutor_platform.database.database import User, UserRole, UserStatus
from tutor_platform.utilities import utcnow

def normalize_email(email: str) -> str:
    return email.strip().lower()

def get_by_id(db: Session, user_id: str) -> Optional[User]:
    return User.get_by_id(db, user_id)

def get_by_email(db: Session, email: str) -> Optional[User]:
    """Case-insensitive lookup; emails are stored lower-cased."""
    return db.query(User).filter(User.email == normalize_email(email)).first()

def email_exists(db: Session, email: str, exclude_id: Optional[str] = None) -> bool:
    query = db.query(User).filter(User.email == normalize_email(email))
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return db.query(query.exists()).scalar()

def create(db: Session, email: str, password_hash: str, phone: str, role: UserRole, status: UserStatus = UserStatus.ACTIVE) -> User:
    """Add a user to the session. The caller commits."""
    user = User(
        email=normalize_email(email),
        password_hash=password_hash,
        phone=phone,
        role=role,
        status=status,
    )
    db.add(user)
    db.flush()
    return user

def update_last_login(db: Session, user: User) -> None:
    user.last_login_at = utcnow()

def find_all(db: Session, page: int, limit: int, role: Optional[UserRole] = None,
             status: Optional[UserStatus] = None, search: Optional[str] = None) -> Tuple[List[User], int]:
    """Page through users, newest first."""
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if status:
        query = query.filter(User.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(User.email.ilike(pattern), User.phone.ilike(pattern)))

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return users, total
