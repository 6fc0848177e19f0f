"""
Admin router providing administrative endpoints for managing users, reviewing
tutor profiles, moderating feedback and cleaning up orphaned media.
Requires admin authentication for all endpoints.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional

from tutor_platform.auth_tools import admin_only
from tutor_platform.database.database import get_db, User, UserRole, UserStatus, TutorProfile, TutorProfileStatus, Feedback, FeedbackStatus
from tutor_platform.rate_limit import limiter
from tutor_platform.schemas.authentication_schema import DecodedAccessToken
from tutor_platform.schemas.tutor_schema import TutorProfileResponse, TutorStatusUpdate, FeedbackStatusUpdate
from tutor_platform.schemas.user_schema import AdminUserCreate, AdminUserUpdate, UserResponse
from tutor_platform.services import user_service, tutor_service, feedback_service
from tutor_platform.services.media_service import MediaService, get_media_service
from tutor_platform.utilities import success_response, paginated_response, normalize_pagination

router = APIRouter(prefix='/admin', dependencies=[Depends(admin_only)])

@router.get('/dashboard')
@limiter.limit("10/minute")
def admin_dashboard(request: Request, db: Session = Depends(get_db)):
    """
    Counts of users per role, tutor profiles per status and feedback per status.
    Rate limited to 10 requests per minute.
    """
    users = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    tutors = dict(db.query(TutorProfile.profile_status, func.count(TutorProfile.id)).group_by(TutorProfile.profile_status).all())
    feedbacks = dict(db.query(Feedback.status, func.count(Feedback.id)).group_by(Feedback.status).all())

    data = {
        "users": {role.value: users.get(role, 0) for role in UserRole},
        "tutorProfiles": {status.value: tutors.get(status, 0) for status in TutorProfileStatus},
        "feedbacks": {status.value: feedbacks.get(status, 0) for status in FeedbackStatus},
    }
    return success_response(data, "Dashboard retrieved successfully")

#############
### USERS ###
#############

@router.post('/users', status_code=201)
def create_user(request: Request, body: AdminUserCreate, db: Session = Depends(get_db)):
    """Create an account directly, without OTP verification. Any role, including ADMIN."""
    user = user_service.create_user(db, body)
    return success_response(UserResponse.model_validate(user).to_json(), "User created successfully")

@router.get('/users')
def list_users(
        request: Request,
        page: int = 1,
        limit: int = 10,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
        search: Optional[str] = None,
        db: Session = Depends(get_db)
    ):
    """Users, newest first. `search` matches email or phone."""
    page, limit = normalize_pagination(page, limit)
    users, total = user_service.list_users(db, page, limit, role=role, status=status, search=search)
    return paginated_response([UserResponse.model_validate(u).to_json() for u in users], page, limit, total,
                              "Users retrieved successfully")

@router.get('/users/{user_id}')
def get_user(request: Request, user_id: str, db: Session = Depends(get_db)):
    user = user_service.get_user(db, user_id)
    return success_response(UserResponse.model_validate(user).to_json(), "User retrieved successfully")

@router.put('/users/{user_id}')
def update_user(request: Request, user_id: str, body: AdminUserUpdate, db: Session = Depends(get_db)):
    user = user_service.update_user(db, user_id, body)
    return success_response(UserResponse.model_validate(user).to_json(), "User updated successfully")

@router.delete('/users/{user_id}')
def delete_user(request: Request, user_id: str, db: Session = Depends(get_db),
                current_user: DecodedAccessToken = Depends(admin_only)):
    """Delete a user and their profiles. Admins cannot delete themselves."""
    user_service.delete_user(db, user_id, current_user.sub)
    return success_response(message="User deleted successfully")

##############
### TUTORS ###
##############

@router.get('/tutors')
def list_tutors_by_status(request: Request, status: TutorProfileStatus = TutorProfileStatus.SUBMITTED,
                          page: int = 1, limit: int = 10, db: Session = Depends(get_db)):
    """Review queue, oldest first. Defaults to SUBMITTED profiles."""
    page, limit = normalize_pagination(page, limit)
    tutors, total = tutor_service.list_by_status(db, status, page, limit)
    return paginated_response([TutorProfileResponse.model_validate(t).to_json() for t in tutors], page, limit, total,
                              "Tutor profiles retrieved successfully")

@router.put('/tutors/{tutor_id}/status')
def update_tutor_status(request: Request, tutor_id: str, body: TutorStatusUpdate, db: Session = Depends(get_db)):
    """
    Approve or reject a tutor profile.

    Raises:
    - 400: approving a profile that has not finished onboarding
    - 404: unknown tutor profile
    """
    tutor = tutor_service.update_profile_status(db, tutor_id, body)
    return success_response(TutorProfileResponse.model_validate(tutor).to_json(), "Tutor profile status updated successfully")

#################
### FEEDBACKS ###
#################

@router.get('/feedbacks')
def list_feedbacks(request: Request, status: Optional[FeedbackStatus] = None, page: int = 1, limit: int = 10,
                   db: Session = Depends(get_db)):
    page, limit = normalize_pagination(page, limit)
    feedbacks, total = feedback_service.list_feedbacks(db, page, limit, status=status)
    data = [feedback_service.to_response(db, f).to_json() for f in feedbacks]
    return paginated_response(data, page, limit, total, "Feedbacks retrieved successfully")

@router.put('/feedbacks/{feedback_id}/status')
def update_feedback_status(request: Request, feedback_id: str, body: FeedbackStatusUpdate, db: Session = Depends(get_db)):
    """Show, hide or flag a feedback. The tutor's rating is recomputed."""
    feedback = feedback_service.update_feedback_status(db, feedback_id, body.status)
    return success_response(feedback_service.to_response(db, feedback).to_json(), "Feedback status updated successfully")

#############
### MEDIA ###
#############

@router.post('/media/reconcile')
def reconcile_media(request: Request, db: Session = Depends(get_db), media: MediaService = Depends(get_media_service)):
    """Retry deleting images whose earlier deletion failed."""
    result = media.reconcile_orphans(db)
    return success_response(result, "Orphaned images reconciled")
