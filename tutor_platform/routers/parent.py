from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from tutor_platform.auth_tools import get_current_account, get_current_user
from tutor_platform.database.database import User, get_db
from tutor_platform.schemas.authentication_schema import DecodedAccessToken
from tutor_platform.schemas.profile_schema import (
    ParentProfileCreate, ParentProfileUpdate, ParentProfileResponse, StudentProfileResponse
)
from tutor_platform.services import parent_service, student_service
from tutor_platform.utilities import success_response

router = APIRouter(prefix='/parents')

@router.post('', status_code=201)
def create_parent(request: Request, body: ParentProfileCreate, user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    parent = parent_service.create_parent(db, user, body)
    return success_response(ParentProfileResponse.model_validate(parent).to_json(), "Parent profile created successfully")

@router.get('/me')
def get_my_profile(request: Request, user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    parent = parent_service.get_parent_by_user_id(db, user.id)
    return success_response(ParentProfileResponse.model_validate(parent).to_json(), "Parent profile retrieved successfully")

@router.put('/me')
def update_my_profile(request: Request, body: ParentProfileUpdate, user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    parent = parent_service.update_parent(db, user.id, body)
    return success_response(ParentProfileResponse.model_validate(parent).to_json(), "Parent profile updated successfully")

@router.get('/me/students')
def get_my_children(request: Request, user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    """Student profiles linked to the logged in parent."""
    parent = parent_service.get_parent_by_user_id(db, user.id)
    students = student_service.list_by_parent(db, parent.id)
    return success_response([StudentProfileResponse.model_validate(s).to_json() for s in students], "Students retrieved successfully")

@router.get('/{parent_id}')
def get_parent(request: Request, parent_id: str, current_user: DecodedAccessToken = Depends(get_current_user), db: Session = Depends(get_db)):
    parent = parent_service.get_parent(db, parent_id)
    return success_response(ParentProfileResponse.model_validate(parent).to_json(), "Parent profile retrieved successfully")
