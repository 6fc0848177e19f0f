from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import Optional

from tutor_platform.config import Settings, get_settings
from tutor_platform.database.database import get_db
from tutor_platform.database.redis import RedisClient, get_redis
from tutor_platform.services import catalog_service
from tutor_platform.utilities import success_response

router = APIRouter(prefix='/grades')

@router.get('')
def list_grades(request: Request, db: Session = Depends(get_db), redis: Optional[RedisClient] = Depends(get_redis),
                settings: Settings = Depends(get_settings)):
    """Active grades ordered 1 to 12."""
    grades = catalog_service.list_grades(db, redis, settings.cache_expire_seconds)
    return success_response(grades, "Grades retrieved successfully")

@router.get('/{grade_id}')
def get_grade(request: Request, grade_id: str, db: Session = Depends(get_db)):
    return success_response(catalog_service.get_grade(db, grade_id), "Grade retrieved successfully")
