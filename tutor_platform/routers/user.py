"""
User router: OTP-verified self registration and the user's own account.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from tutor_platform.auth_tools import get_current_account
from tutor_platform.config import Settings, get_settings
from tutor_platform.database.database import User, get_db
from tutor_platform.rate_limit import limiter
from tutor_platform.schemas.user_schema import RegisterRequest, VerifyOtpRequest, ResendOtpRequest, UserResponse, UserUpdate
from tutor_platform.services import user_service
from tutor_platform.services.email_service import EmailService, get_email_service
from tutor_platform.utilities import success_response

router = APIRouter(prefix='/users')

@router.post('/register', status_code=201)
@limiter.limit("10/minute")
def register(request: Request, body: RegisterRequest, db: Session = Depends(get_db),
             settings: Settings = Depends(get_settings), email_service: EmailService = Depends(get_email_service)):
    """
    Start a registration. The account is only created once the emailed code is verified.

    Raises:
    - 409: email already registered
    """
    data = user_service.register(db, settings, email_service, body)
    return success_response(data, "OTP sent to your email. Please verify to complete registration.")

@router.post('/verify-otp', status_code=201)
@limiter.limit("20/minute")
def verify_otp(request: Request, body: VerifyOtpRequest, db: Session = Depends(get_db),
               settings: Settings = Depends(get_settings), email_service: EmailService = Depends(get_email_service)):
    """
    Verify the registration code and create the account.

    Raises:
    - 400: wrong or expired code, missing registration data
    - 404: no pending code for this email
    - 409: email registered in the meantime
    - 429: too many wrong attempts
    """
    result = user_service.verify_registration(db, settings, email_service, body.email, body.otp)
    return success_response(result.to_json(), "Registration completed successfully")

@router.post('/resend-otp')
@limiter.limit("5/minute")
def resend_otp(request: Request, body: ResendOtpRequest, db: Session = Depends(get_db),
               settings: Settings = Depends(get_settings), email_service: EmailService = Depends(get_email_service)):
    data = user_service.resend_registration_otp(db, settings, email_service, body.email)
    return success_response(data, "OTP resent successfully")

@router.get('/me')
def get_me(request: Request, user: User = Depends(get_current_account)):
    return success_response(UserResponse.model_validate(user).to_json(), "User retrieved successfully")

@router.put('/me')
def update_me(request: Request, body: UserUpdate, user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    """Update email or phone. Role and status can only be changed by an admin."""
    user = user_service.update_me(db, user.id, body)
    return success_response(UserResponse.model_validate(user).to_json(), "User updated successfully")
