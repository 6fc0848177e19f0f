"""
Account lifecycle: OTP-gated self registration, self-service profile edits
and admin user management.
"""
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple

from tutor_platform.auth_tools import hash_password
from tutor_platform.config import Settings
from tutor_platform.database.database import User, UserRole, UserStatus, OtpPurpose
from tutor_platform.exceptions import Conflict, NotFound, UpstreamError, ValidationFailed
from tutor_platform.logger import logger, audit_logger
from tutor_platform.repositories import user_repository
from tutor_platform.schemas.user_schema import (
    RegisterRequest, RegistrationPayload, RegistrationResult, UserUpdate, AdminUserCreate, AdminUserUpdate
)
from tutor_platform.services import otp_service
from tutor_platform.services.email_service import EmailService

####################
### REGISTRATION ###
####################

def register(db: Session, settings: Settings, email_service: EmailService, data: RegisterRequest) -> dict:
    """
    Stage a registration and email the verification code. No user is created yet.

    Raises:
    - Conflict: the email is already registered
    """
    email = user_repository.normalize_email(data.email)
    if user_repository.email_exists(db, email):
        raise Conflict("Email already exists")

    payload = RegistrationPayload(
        email=email,
        password_hash=hash_password(data.password),
        phone=data.phone,
        role=data.role,
    )
    record = otp_service.issue_otp(db, settings, email_service, email, OtpPurpose.REGISTRATION, payload.to_record())

    return {"email": email, "expiresAt": record.expires_at.isoformat()}

def _load_payload(staged_payload: Optional[dict]) -> RegistrationPayload:
    if not staged_payload:
        raise ValidationFailed("Registration data not found. Please register again.")
    try:
        return RegistrationPayload.model_validate(staged_payload)
    except ValidationError:
        raise ValidationFailed("Registration data is invalid or outdated. Please register again.")

def verify_registration(db: Session, settings: Settings, email_service: EmailService, email: str, code: str) -> RegistrationResult:
    """
    Check the code and create the ACTIVE user from the staged payload.

    Marking the code verified and inserting the user happen in one commit.
    The welcome email is best effort.
    """
    email = user_repository.normalize_email(email)
    record = otp_service.verify_otp(db, settings, email, code, OtpPurpose.REGISTRATION)
    payload = _load_payload(record.staged_payload)

    if user_repository.email_exists(db, payload.email):
        raise Conflict("Email already exists")

    try:
        user = user_repository.create(
            db,
            email=payload.email,
            password_hash=payload.password_hash,
            phone=payload.phone,
            role=payload.role,
            status=UserStatus.ACTIVE,
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Email already exists")

    logger.info(f"User {user.email} registered as {user.role.value}")
    audit_logger.log_security_event("registration_verified", user.id, {"email": user.email, "role": user.role.value})

    try:
        email_service.send_welcome_email(user.email)
    except UpstreamError as e:
        logger.warning(f"Welcome email to {user.email} failed: {e.message}")

    return RegistrationResult(user_id=user.id, email=user.email, phone=user.phone, role=user.role, status=user.status)

def resend_registration_otp(db: Session, settings: Settings, email_service: EmailService, email: str) -> dict:
    """
    Raises:
    - Conflict: the email already belongs to a verified user
    - RateLimited: a code was sent less than a cooldown ago
    """
    email = user_repository.normalize_email(email)
    if user_repository.email_exists(db, email):
        raise Conflict("Email already registered")

    record = otp_service.resend_otp(db, settings, email_service, email, OtpPurpose.REGISTRATION)
    return {"email": email, "expiresAt": record.expires_at.isoformat()}

###############
### ACCOUNT ###
###############

def get_user(db: Session, user_id: str) -> User:
    user = user_repository.get_by_id(db, user_id)
    if not user:
        raise NotFound("User not found")
    return user

def _apply_email_change(db: Session, user: User, email: Optional[str]):
    if email is None:
        return
    email = user_repository.normalize_email(email)
    if email != user.email and user_repository.email_exists(db, email, exclude_id=user.id):
        raise Conflict("Email already exists")
    user.email = email

def update_me(db: Session, user_id: str, data: UserUpdate) -> User:
    """Role and status are not editable here."""
    user = get_user(db, user_id)
    _apply_email_change(db, user, data.email)
    if data.phone is not None:
        user.phone = data.phone
    db.commit()
    return user

#############
### ADMIN ###
#############

def create_user(db: Session, data: AdminUserCreate) -> User:
    if user_repository.email_exists(db, data.email):
        raise Conflict("Email already exists")
    user = user_repository.create(
        db,
        email=data.email,
        password_hash=hash_password(data.password),
        phone=data.phone,
        role=data.role,
        status=data.status,
    )
    db.commit()
    logger.info(f"Admin created user {user.email} ({user.role.value})")
    return user

def list_users(db: Session, page: int, limit: int, role: Optional[UserRole] = None,
               status: Optional[UserStatus] = None, search: Optional[str] = None) -> Tuple[List[User], int]:
    return user_repository.find_all(db, page, limit, role=role, status=status, search=search)

def update_user(db: Session, user_id: str, data: AdminUserUpdate) -> User:
    user = get_user(db, user_id)
    _apply_email_change(db, user, data.email)
    if data.password is not None:
        user.password_hash = hash_password(data.password)
    if data.phone is not None:
        user.phone = data.phone
    if data.role is not None:
        user.role = data.role
    if data.status is not None:
        user.status = data.status
    db.commit()
    logger.info(f"Admin updated user {user.email}")
    return user

def delete_user(db: Session, user_id: str, acting_user_id: str):
    user = get_user(db, user_id)
    if user.id == acting_user_id:
        raise ValidationFailed("You cannot delete your own account")
    db.delete(user)
    db.commit()
    logger.info(f"Admin deleted user {user.email}")

def bootstrap_admin(db: Session, settings: Settings) -> Optional[User]:
    """Create the configured admin account on startup if it does not exist yet."""
    if not settings.admin_email or not settings.admin_password:
        return None
    existing = user_repository.get_by_email(db, settings.admin_email)
    if existing:
        return existing
    user = user_repository.create(
        db,
        email=settings.admin_email,
        password_hash=hash_password(settings.admin_password),
        phone="0000000000",
        role=UserRole.ADMIN,
        status=UserStatus.ACTIVE,
    )
    db.commit()
    logger.info(f"Bootstrapped admin account {user.email}")
    return user
