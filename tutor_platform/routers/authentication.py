"""
Authentication router: email/password login with JWT access tokens, password
change and the OTP-based password reset flow.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from tutor_platform.auth_tools import get_current_account
from tutor_platform.config import Settings, get_settings
from tutor_platform.database.database import User, get_db
from tutor_platform.rate_limit import limiter
from tutor_platform.schemas.authentication_schema import (
    LoginRequest, ChangePasswordRequest, ForgotPasswordRequest, ResetPasswordRequest
)
from tutor_platform.schemas.user_schema import UserResponse
from tutor_platform.services import auth_service
from tutor_platform.services.email_service import EmailService, get_email_service
from tutor_platform.utilities import success_response

router = APIRouter(prefix='/auth')

@router.post('/login')
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """
    Log in with email and password.

    Returns:
    - dict: access token, the user and their profile completion status

    Raises:
    - 401: wrong email or password
    - 403: account is not active
    """
    result = auth_service.login(db, settings, body.email, body.password)
    return success_response(result.to_json(), "Login successful")

@router.get('/me')
def me(request: Request, user: User = Depends(get_current_account)):
    """The logged in user together with their profile completion status."""
    data = UserResponse.model_validate(user).to_json()
    status = auth_service.profile_status(user)
    data["profileStatus"] = status.to_json() if status else None
    return success_response(data, "User retrieved successfully")

@router.post('/change-password')
def change_password(request: Request, body: ChangePasswordRequest, user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    auth_service.change_password(db, user, body.current_password, body.new_password)
    return success_response(message="Password changed successfully")

@router.post('/logout')
def logout(request: Request, user: User = Depends(get_current_account)):
    """Tokens are stateless, the client discards its copy. Kept so clients have a single logout call."""
    return success_response(message="Logged out successfully")

@router.post('/forgot-password')
@limiter.limit("5/minute")
def forgot_password(request: Request, body: ForgotPasswordRequest, db: Session = Depends(get_db),
                    settings: Settings = Depends(get_settings), email_service: EmailService = Depends(get_email_service)):
    """Email a password reset code. Same 60 second cooldown as registration codes."""
    data = auth_service.forgot_password(db, settings, email_service, body.email)
    return success_response(data, "Password reset OTP sent to your email")

@router.post('/reset-password')
@limiter.limit("10/minute")
def reset_password(request: Request, body: ResetPasswordRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    auth_service.reset_password(db, settings, body.email, body.otp, body.new_password)
    return success_response(message="Password reset successfully")
