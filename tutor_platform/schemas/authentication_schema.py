from pydantic import EmailStr, Field
from typing import List, Optional
from tutor_platform.schemas.base import ApiModel
from tutor_platform.schemas.user_schema import UserResponse

class LoginRequest(ApiModel):
    """Login request data"""
    email: EmailStr
    password: str

class ChangePasswordRequest(ApiModel):
    current_password: str
    new_password: str = Field(min_length=6)

class ForgotPasswordRequest(ApiModel):
    email: EmailStr

class ResetPasswordRequest(ApiModel):
    email: EmailStr
    otp: str = Field(pattern=r"^[0-9]{4}$")
    new_password: str = Field(min_length=6)

class ProfileStatus(ApiModel):
    """Onboarding status returned on login so the client knows where to resume."""
    completed: bool
    current_step: Optional[int] = None
    completed_steps: List[int] = []

class LoginResponse(ApiModel):
    """Login response data"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
    profile_status: Optional[ProfileStatus] = None

class DecodedAccessToken(ApiModel):
    """
    Decoded access token data
        Args:
        - sub (str): User ID
        - email (str): User email
        - role (str): User role
        - exp (int): Token expiration time
    """
    sub: str
    email: str
    role: str
    exp: int
