"""
Student router handling student profiles.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import Optional

from tutor_platform.auth_tools import get_current_account, get_current_user
from tutor_platform.database.database import User, get_db
from tutor_platform.schemas.authentication_schema import DecodedAccessToken
from tutor_platform.schemas.profile_schema import StudentProfileCreate, StudentProfileUpdate, StudentProfileResponse
from tutor_platform.services import student_service
from tutor_platform.utilities import success_response, paginated_response, normalize_pagination

router = APIRouter(prefix='/students')

def _student_json(student) -> dict:
    return StudentProfileResponse.model_validate(student).to_json()

@router.post('', status_code=201)
def create_student(request: Request, body: StudentProfileCreate, user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    """
    Create the logged in student's profile.

    Raises:
    - 403: the user is not a student
    - 404: parentId does not exist
    - 409: the profile already exists
    """
    student = student_service.create_student(db, user, body)
    return success_response(_student_json(student), "Student profile created successfully")

@router.get('')
def list_students(
        request: Request,
        page: int = 1,
        limit: int = 10,
        grade: Optional[str] = None,
        search: Optional[str] = None,
        current_user: DecodedAccessToken = Depends(get_current_user),
        db: Session = Depends(get_db)
    ):
    page, limit = normalize_pagination(page, limit)
    students, total = student_service.list_students(db, page, limit, grade=grade, search=search)
    return paginated_response([_student_json(s) for s in students], page, limit, total, "Students retrieved successfully")

@router.get('/me')
def get_my_profile(request: Request, user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    student = student_service.get_student_by_user_id(db, user.id)
    return success_response(_student_json(student), "Student profile retrieved successfully")

@router.get('/user/{user_id}')
def get_by_user_id(request: Request, user_id: str, current_user: DecodedAccessToken = Depends(get_current_user), db: Session = Depends(get_db)):
    student = student_service.get_student_by_user_id(db, user_id)
    return success_response(_student_json(student), "Student profile retrieved successfully")

@router.get('/parent/{parent_id}')
def get_by_parent_id(request: Request, parent_id: str, current_user: DecodedAccessToken = Depends(get_current_user), db: Session = Depends(get_db)):
    students = student_service.list_by_parent(db, parent_id)
    return success_response([_student_json(s) for s in students], "Students retrieved successfully")

@router.get('/{student_id}')
def get_student(request: Request, student_id: str, current_user: DecodedAccessToken = Depends(get_current_user), db: Session = Depends(get_db)):
    student = student_service.get_student(db, student_id)
    return success_response(_student_json(student), "Student profile retrieved successfully")

@router.put('/{student_id}')
def update_student(request: Request, student_id: str, body: StudentProfileUpdate,
                   user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    """Only the owner may update a profile (403 otherwise)."""
    student = student_service.update_student(db, student_id, user.id, body)
    return success_response(_student_json(student), "Student profile updated successfully")

@router.delete('/{student_id}')
def delete_student(request: Request, student_id: str, user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    student_service.delete_student(db, student_id, user.id)
    return success_response(message="Student profile deleted successfully")
