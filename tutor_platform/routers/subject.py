from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import Optional

from tutor_platform.config import Settings, get_settings
from tutor_platform.database.database import get_db
from tutor_platform.database.redis import RedisClient, get_redis
from tutor_platform.services import catalog_service
from tutor_platform.utilities import success_response

router = APIRouter(prefix='/subjects')

@router.get('')
def list_subjects(request: Request, db: Session = Depends(get_db), redis: Optional[RedisClient] = Depends(get_redis),
                  settings: Settings = Depends(get_settings)):
    """Active subjects sorted by name."""
    subjects = catalog_service.list_subjects(db, redis, settings.cache_expire_seconds)
    return success_response(subjects, "Subjects retrieved successfully")

@router.get('/search')
def search_subjects(request: Request, q: str = "", db: Session = Depends(get_db)):
    """Active subjects whose name or code contains `q`."""
    return success_response(catalog_service.search_subjects(db, q), "Subjects retrieved successfully")

@router.get('/{subject_id}')
def get_subject(request: Request, subject_id: str, db: Session = Depends(get_db)):
    return success_response(catalog_service.get_subject(db, subject_id), "Subject retrieved successfully")
