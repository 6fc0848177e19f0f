from pydantic import EmailStr, Field, StringConstraints, field_validator
from typing import Annotated, List, Literal, Optional
from datetime import date, datetime
from tutor_platform.database.database import Gender, TutorProfileStatus, EducationStatus, FeedbackStatus, FeedbackAuthorRole
from tutor_platform.schemas.base import ApiModel, sanitize
from tutor_platform.schemas.catalog_schema import SubjectResponse, GradeResponse

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
# Days of the week, 2 = Monday ... 8 = Sunday
WeekDay = Annotated[int, Field(ge=2, le=8)]
TimeSlot = Literal["morning", "afternoon", "evening", "night"]

def _upper(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value

##############################
### TUTOR PROFILE REQUESTS ###
##############################

class TutorProfileCreate(ApiModel):
    """
    Step 1 of onboarding.

    `email` identifies the caller when no bearer token is sent.
    """
    email: Optional[EmailStr] = None
    full_name: Name
    date_of_birth: date
    gender: Gender
    hourly_rate: float = Field(ge=0)
    place_of_birth: Optional[str] = None
    teaching_area: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator('gender', mode='before')
    def normalize_gender(cls, v):
        return _upper(v)

    @field_validator('full_name', 'place_of_birth', 'teaching_area', 'address', 'bio')
    def sanitize_text(cls, v):
        return sanitize(v)

class TutorProfileUpdate(ApiModel):
    """
    Any subset of the profile fields.

    identity_number completes step 2; non-empty subjects or grades complete step 4.
    """
    email: Optional[EmailStr] = None
    full_name: Optional[Name] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    place_of_birth: Optional[str] = None
    teaching_area: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    identity_number: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]] = None
    identity_images: Optional[List[str]] = None
    subjects: Optional[List[str]] = None
    grades: Optional[List[str]] = None
    available_days: Optional[List[WeekDay]] = None
    available_time_slots: Optional[List[TimeSlot]] = None

    @field_validator('gender', mode='before')
    def normalize_gender(cls, v):
        return _upper(v)

    @field_validator('full_name', 'place_of_birth', 'teaching_area', 'address', 'bio')
    def sanitize_text(cls, v):
        return sanitize(v)

    @field_validator('available_days', 'available_time_slots', 'subjects', 'grades')
    def unique_items(cls, v):
        if v is None:
            return v
        return list(dict.fromkeys(v))

class TutorStatusUpdate(ApiModel):
    """Admin decision on a submitted profile"""
    status: TutorProfileStatus
    reason: Optional[str] = None

    @field_validator('status', mode='before')
    def normalize_status(cls, v):
        return _upper(v)

    @field_validator('status')
    def decision_only(cls, v):
        if v not in (TutorProfileStatus.APPROVED, TutorProfileStatus.REJECTED):
            raise ValueError('status must be APPROVED or REJECTED')
        return v

    @field_validator('reason')
    def sanitize_reason(cls, v):
        return sanitize(v)

############################
### CERTIFICATE REQUESTS ###
############################

class CertificateCreate(ApiModel):
    school_name: Name
    major: Name
    education_status: EducationStatus

    @field_validator('education_status', mode='before')
    def normalize_status(cls, v):
        return _upper(v)

    @field_validator('school_name', 'major')
    def sanitize_text(cls, v):
        return sanitize(v)

class CertificateUpdate(ApiModel):
    school_name: Optional[Name] = None
    major: Optional[Name] = None
    education_status: Optional[EducationStatus] = None

    @field_validator('education_status', mode='before')
    def normalize_status(cls, v):
        return _upper(v)

    @field_validator('school_name', 'major')
    def sanitize_text(cls, v):
        return sanitize(v)

class RemoveImagesRequest(ApiModel):
    image_urls: List[str] = Field(min_length=1)

class RemoveImageRequest(ApiModel):
    image_url: str = Field(min_length=1)

#########################
### FEEDBACK REQUESTS ###
#########################

class FeedbackCreate(ApiModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[Annotated[str, StringConstraints(max_length=1000)]] = None

    @field_validator('comment')
    def sanitize_comment(cls, v):
        return sanitize(v)

class FeedbackStatusUpdate(ApiModel):
    status: FeedbackStatus

    @field_validator('status', mode='before')
    def normalize_status(cls, v):
        return _upper(v)

#################
### RESPONSES ###
#################

class CertificateResponse(ApiModel):
    id: str
    tutor_id: str
    school_name: str
    major: str
    education_status: EducationStatus
    images: List[str] = []
    created_at: datetime
    updated_at: datetime

class TutorPublicResponse(ApiModel):
    """What anyone may see about an approved tutor"""
    id: str
    user_id: str
    full_name: str
    avatar_url: Optional[str] = None
    gender: Gender
    date_of_birth: date
    place_of_birth: Optional[str] = None
    address: Optional[str] = None
    teaching_area: Optional[str] = None
    bio: Optional[str] = None
    hourly_rate: float
    available_days: List[int] = []
    available_time_slots: List[str] = []
    subjects: List[SubjectResponse] = []
    grades: List[GradeResponse] = []
    average_rating: float
    total_feedback: int
    created_at: datetime

class TutorProfileResponse(TutorPublicResponse):
    """Owner and admin view, including identity and onboarding state"""
    identity_number: Optional[str] = None
    identity_images: List[str] = []
    current_step: int
    completed_steps: List[int] = []
    is_profile_complete: bool
    profile_status: TutorProfileStatus
    updated_at: datetime

class TutorDetailResponse(TutorPublicResponse):
    certificates: List[CertificateResponse] = []

class ProfileProgressResponse(ApiModel):
    has_profile: bool
    current_step: int
    completed_steps: List[int]
    is_profile_complete: bool
    profile: Optional[TutorProfileResponse] = None

class FeedbackResponse(ApiModel):
    id: str
    tutor_id: str
    author_user_id: str
    author_role: FeedbackAuthorRole
    author_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    status: FeedbackStatus
    created_at: datetime
