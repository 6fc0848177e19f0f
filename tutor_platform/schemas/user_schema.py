from pydantic import EmailStr, StringConstraints, field_validator
from typing import Annotated, Literal, Optional
from datetime import datetime
from tutor_platform.database.database import UserRole, UserStatus
from tutor_platform.schemas.base import ApiModel

Phone = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=20, pattern=r'^[0-9+\-\s()]+$')]
Password = Annotated[str, StringConstraints(min_length=6)]

# Roles a visitor may pick for themselves; ADMIN accounts are only made by other admins
SELF_SERVICE_ROLES = (UserRole.STUDENT, UserRole.TUTOR, UserRole.PARENT)

def _parse_role(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value

############################
### REGISTRATION SCHEMAS ###
############################

class RegisterRequest(ApiModel):
    """Registration data, staged until the emailed code is verified"""
    email: EmailStr
    password: Password
    phone: Phone
    role: UserRole

    @field_validator('role', mode='before')
    def normalize_role(cls, v):
        return _parse_role(v)

    @field_validator('role')
    def self_service_role(cls, v):
        if v not in SELF_SERVICE_ROLES:
            raise ValueError('role must be one of STUDENT, TUTOR, PARENT')
        return v

class VerifyOtpRequest(ApiModel):
    email: EmailStr
    otp: Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^[0-9]{4}$")]

class ResendOtpRequest(ApiModel):
    email: EmailStr

class RegistrationPayload(ApiModel):
    """
    Account data held on a REGISTRATION OtpRecord until verification.

    Stored as JSON; `purpose` and `version` let the verifier reject records
    written by anything else.
    """
    purpose: Literal["REGISTRATION"] = "REGISTRATION"
    version: Literal[1] = 1
    email: str
    password_hash: str
    phone: str
    role: UserRole

    def to_record(self) -> dict:
        return self.model_dump(mode="json")

class RegistrationResult(ApiModel):
    user_id: str
    email: str
    phone: str
    role: UserRole
    status: UserStatus

############################
### USER ACCOUNT SCHEMAS ###
############################

class UserResponse(ApiModel):
    """User response data, never includes the password hash"""
    id: str
    email: str
    phone: str
    role: UserRole
    status: UserStatus
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

class UserUpdate(ApiModel):
    """Fields a user may change on their own account"""
    email: Optional[EmailStr] = None
    phone: Optional[Phone] = None

class AdminUserCreate(ApiModel):
    """Admin-side account creation, no OTP involved"""
    email: EmailStr
    password: Password
    phone: Phone
    role: UserRole
    status: UserStatus = UserStatus.ACTIVE

    @field_validator('role', mode='before')
    def normalize_role(cls, v):
        return _parse_role(v)

class AdminUserUpdate(ApiModel):
    email: Optional[EmailStr] = None
    password: Optional[Password] = None
    phone: Optional[Phone] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None

    @field_validator('role', mode='before')
    def normalize_role(cls, v):
        return _parse_role(v)

