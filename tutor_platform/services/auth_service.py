from sqlalchemy.orm import Session
from typing import Optional

from tutor_platform.auth_tools import create_access_token, hash_password, verify_password
from tutor_platform.config import Settings
from tutor_platform.database.database import User, UserRole, OtpPurpose
from tutor_platform.exceptions import Forbidden, NotFound, Unauthorized, ValidationFailed
from tutor_platform.logger import logger, audit_logger
from tutor_platform.repositories import user_repository
from tutor_platform.schemas.authentication_schema import LoginResponse, ProfileStatus
from tutor_platform.schemas.user_schema import UserResponse
from tutor_platform.services import otp_service
from tutor_platform.services.email_service import EmailService

def profile_status(user: User) -> Optional[ProfileStatus]:
    """Where the user stands on their role profile. Admins have none."""
    if user.role == UserRole.TUTOR:
        tutor = user.tutor_profile
        if not tutor:
            return ProfileStatus(completed=False, current_step=1, completed_steps=[])
        return ProfileStatus(
            completed=tutor.is_profile_complete,
            current_step=tutor.current_step,
            completed_steps=sorted(tutor.completed_steps or []),
        )
    if user.role == UserRole.STUDENT:
        return ProfileStatus(completed=user.student_profile is not None)
    if user.role == UserRole.PARENT:
        return ProfileStatus(completed=user.parent_profile is not None)
    return None

def login(db: Session, settings: Settings, email: str, password: str) -> LoginResponse:
    """
    Raises:
    - Unauthorized: unknown email or wrong password (same message for both)
    - Forbidden: the account is not ACTIVE
    """
    user = user_repository.get_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        audit_logger.log_security_event("login_failed", user.id if user else None, {"email": email})
        raise Unauthorized("Invalid email or password")

    if not user.is_active:
        audit_logger.log_security_event("login_blocked", user.id, {"status": user.status.value})
        raise Forbidden("Account is not active")

    user_repository.update_last_login(db, user)
    db.commit()

    logger.info(f"User {user.email} logged in")
    audit_logger.log_security_event("login_success", user.id, {"email": user.email})

    return LoginResponse(
        access_token=create_access_token(user, settings),
        user=UserResponse.model_validate(user),
        profile_status=profile_status(user),
    )

def change_password(db: Session, user: User, current_password: str, new_password: str):
    """
    Raises:
    - Unauthorized: current password is wrong
    - ValidationFailed: new password equals the current one
    """
    if not verify_password(current_password, user.password_hash):
        raise Unauthorized("Current password is incorrect")
    if current_password == new_password:
        raise ValidationFailed("New password must be different from the current password")

    user.password_hash = hash_password(new_password)
    db.commit()
    audit_logger.log_security_event("password_changed", user.id, {})

def forgot_password(db: Session, settings: Settings, email_service: EmailService, email: str) -> dict:
    user = user_repository.get_by_email(db, email)
    if not user:
        raise NotFound("User not found")

    otp_service.check_cooldown(db, settings, user.email, OtpPurpose.FORGOT_PASSWORD)
    record = otp_service.issue_otp(db, settings, email_service, user.email, OtpPurpose.FORGOT_PASSWORD)
    return {"email": user.email, "expiresAt": record.expires_at.isoformat()}

def reset_password(db: Session, settings: Settings, email: str, code: str, new_password: str):
    """Same expiry and attempt rules as registration codes."""
    user = user_repository.get_by_email(db, email)
    if not user:
        raise NotFound("User not found")

    otp_service.verify_otp(db, settings, user.email, code, OtpPurpose.FORGOT_PASSWORD)
    user.password_hash = hash_password(new_password)
    db.commit()

    logger.info(f"Password reset for {user.email}")
    audit_logger.log_security_event("password_reset", user.id, {})
