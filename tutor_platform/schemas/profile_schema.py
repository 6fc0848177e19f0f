from pydantic import StringConstraints, field_validator
from typing import Annotated, Optional
from datetime import date, datetime
from tutor_platform.database.database import Gender
from tutor_platform.schemas.base import ApiModel, sanitize

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]

def _upper(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value

#######################
### STUDENT SCHEMAS ###
#######################

class StudentProfileCreate(ApiModel):
    full_name: Name
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    grade: Optional[str] = None
    school: Optional[str] = None
    parent_id: Optional[str] = None

    @field_validator('gender', mode='before')
    def normalize_gender(cls, v):
        return _upper(v)

    @field_validator('full_name', 'grade', 'school')
    def sanitize_text(cls, v):
        return sanitize(v)

class StudentProfileUpdate(ApiModel):
    full_name: Optional[Name] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    grade: Optional[str] = None
    school: Optional[str] = None
    parent_id: Optional[str] = None

    @field_validator('gender', mode='before')
    def normalize_gender(cls, v):
        return _upper(v)

    @field_validator('full_name', 'grade', 'school')
    def sanitize_text(cls, v):
        return sanitize(v)

class StudentProfileResponse(ApiModel):
    id: str
    user_id: str
    parent_id: Optional[str] = None
    full_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    grade: Optional[str] = None
    school: Optional[str] = None
    created_at: datetime
    updated_at: datetime

######################
### PARENT SCHEMAS ###
######################

class ParentProfileCreate(ApiModel):
    full_name: Name
    avatar_url: Optional[str] = None
    address: Optional[str] = None

    @field_validator('full_name', 'address')
    def sanitize_text(cls, v):
        return sanitize(v)

class ParentProfileUpdate(ApiModel):
    full_name: Optional[Name] = None
    avatar_url: Optional[str] = None
    address: Optional[str] = None

    @field_validator('full_name', 'address')
    def sanitize_text(cls, v):
        return sanitize(v)

class ParentProfileResponse(ApiModel):
    id: str
    user_id: str
    full_name: str
    avatar_url: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime
