from typing import Optional
from tutor_platform.database.database import EntityStatus
from tutor_platform.schemas.base import ApiModel

class SubjectResponse(ApiModel):
    """Subject response data"""
    id: str
    code: str
    name: str
    description: Optional[str] = None
    status: EntityStatus

class GradeResponse(ApiModel):
    """Grade response data"""
    id: str
    code: str
    name: str
    order_number: int
    status: EntityStatus
