"""
One-time codes for registration and password reset.

A code lives in an OtpRecord keyed by (email, purpose). Issuing a code replaces
every earlier record for the pair, so at most one code is ever valid.
"""
from datetime import timedelta
from sqlalchemy.orm import Session
from typing import Optional
import secrets

from tutor_platform.config import Settings
from tutor_platform.database.database import OtpRecord, OtpPurpose
from tutor_platform.exceptions import Expired, InvalidCode, NotFound, RateLimited, TooManyAttempts, UpstreamError
from tutor_platform.logger import logger
from tutor_platform.repositories import otp_repository
from tutor_platform.services.email_service import EmailService
from tutor_platform.utilities import utcnow

def generate_code() -> str:
    """Random 4-digit code, 1000-9999."""
    return str(1000 + secrets.randbelow(9000))

def cleanup_expired_otps(db: Session) -> int:
    deleted = otp_repository.delete_expired(db, utcnow())
    db.commit()
    if deleted:
        logger.info(f"Cleaned up {deleted} expired OTP records")
    return deleted

def check_cooldown(db: Session, settings: Settings, email: str, purpose: OtpPurpose):
    """Raises RateLimited if a code for this email and purpose was issued within the cooldown window."""
    since = utcnow() - timedelta(seconds=settings.otp_resend_cooldown_seconds)
    if otp_repository.created_since(db, email, purpose, since):
        raise RateLimited(f"Please wait {settings.otp_resend_cooldown_seconds} seconds before requesting a new OTP")

def issue_otp(db: Session, settings: Settings, email_service: EmailService, email: str,
              purpose: OtpPurpose, staged_payload: Optional[dict] = None) -> OtpRecord:
    """
    Replace any pending code for (email, purpose) with a fresh one and email it.

    The record is only committed once the email went out, so a failed send
    leaves nothing behind and the client can retry immediately.
    """
    otp_repository.delete_expired(db, utcnow())
    otp_repository.delete_for(db, email, purpose)

    code = generate_code()
    record = otp_repository.create(
        db,
        email=email,
        code=code,
        purpose=purpose,
        expires_at=utcnow() + timedelta(minutes=settings.otp_expire_minutes),
        staged_payload=staged_payload,
    )

    try:
        if purpose == OtpPurpose.FORGOT_PASSWORD:
            email_service.send_password_reset_email(email, code)
        else:
            email_service.send_otp_email(email, code)
    except UpstreamError:
        db.rollback()
        raise

    db.commit()
    logger.info(f"Issued {purpose.value} OTP for {email}")
    return record

def verify_otp(db: Session, settings: Settings, email: str, code: str, purpose: OtpPurpose) -> OtpRecord:
    """
    Check a code against the latest unverified record.

    On success the record is marked verified but not committed; the caller
    commits it together with whatever the code unlocks. A wrong code is
    committed straight away so the attempt always counts.

    Raises:
    - NotFound: no pending code (never issued, or already used)
    - Expired: the code is past its expiry
    - TooManyAttempts: the attempt limit was reached, even if the code is right
    - InvalidCode: wrong code
    """
    record = otp_repository.find_latest_unverified(db, email, purpose)
    if not record:
        raise NotFound("OTP not found or already verified")

    if utcnow() > record.expires_at:
        raise Expired("OTP has expired")

    if record.attempts >= settings.otp_max_attempts:
        raise TooManyAttempts("Maximum verification attempts exceeded")

    if not secrets.compare_digest(record.code, code):
        attempts = otp_repository.increment_attempts(db, record)
        db.commit()
        remaining = max(settings.otp_max_attempts - attempts, 0)
        logger.info(f"Wrong {purpose.value} OTP for {email}, {remaining} attempts remaining")
        raise InvalidCode(f"Invalid OTP. {remaining} attempts remaining")

    record.verified = True
    db.flush()
    return record

def resend_otp(db: Session, settings: Settings, email_service: EmailService, email: str,
               purpose: OtpPurpose = OtpPurpose.REGISTRATION) -> OtpRecord:
    """Issue a new code, keeping the staged payload of the previous record if there is one."""
    check_cooldown(db, settings, email, purpose)

    latest = otp_repository.find_latest(db, email, purpose)
    staged_payload = latest.staged_payload if latest else None

    return issue_otp(db, settings, email_service, email, purpose, staged_payload)
