"""
Tutor router: public search and detail pages, the onboarding wizard,
certificates and feedback.

The onboarding endpoints accept either a bearer token or the `email` of a
freshly verified account, so a tutor can finish the wizard before logging in.
"""
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.orm import Session
from typing import List, Literal, Optional

from tutor_platform.auth_tools import get_current_account, get_optional_user, resolve_acting_user
from tutor_platform.config import Settings, get_settings
from tutor_platform.database.database import User, get_db
from tutor_platform.schemas.authentication_schema import DecodedAccessToken
from tutor_platform.schemas.tutor_schema import (
    TutorProfileCreate, TutorProfileUpdate, TutorPublicResponse, TutorProfileResponse, TutorDetailResponse,
    ProfileProgressResponse, CertificateCreate, CertificateUpdate, CertificateResponse, RemoveImagesRequest,
    FeedbackCreate
)
from tutor_platform.services import tutor_service, feedback_service
from tutor_platform.services.media_service import MediaService, get_media_service, read_images
from tutor_platform.utilities import success_response, paginated_response, normalize_pagination, split_csv

router = APIRouter(prefix='/tutors')

##############
### PUBLIC ###
##############

@router.get('/search')
def search_tutors(
        request: Request,
        name: Optional[str] = None,
        subjects: Optional[str] = None,
        grades: Optional[str] = None,
        teaching_area: Optional[str] = Query(None, alias="teachingArea"),
        sort_by: Literal["createdAt", "averageRating", "hourlyRate", "fullName"] = Query("createdAt", alias="sortBy"),
        sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
        page: int = 1,
        limit: int = 10,
        db: Session = Depends(get_db)
    ):
    """
    Search approved tutors.

    Parameters:
    - name: case-insensitive part of the tutor's name
    - subjects, grades: comma-separated ids; a tutor matches if they teach any of them
    - teachingArea: case-insensitive part of the teaching area
    - sortBy, sortOrder: ordering
    - page, limit: pagination (limit at most 100)
    """
    page, limit = normalize_pagination(page, limit)
    tutors, total = tutor_service.search_tutors(
        db, page, limit,
        name=name.strip() if name else None,
        subjects=split_csv(subjects),
        grades=split_csv(grades),
        teaching_area=teaching_area.strip() if teaching_area else None,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    data = [TutorPublicResponse.model_validate(t).to_json() for t in tutors]
    return paginated_response(data, page, limit, total, "Tutors retrieved successfully")

@router.get('')
def list_tutors(request: Request, page: int = 1, limit: int = 10, db: Session = Depends(get_db)):
    """Approved tutors, best rated first."""
    page, limit = normalize_pagination(page, limit)
    tutors, total = tutor_service.list_approved_tutors(db, page, limit)
    data = [TutorPublicResponse.model_validate(t).to_json() for t in tutors]
    return paginated_response(data, page, limit, total, "Tutors retrieved successfully")

###############
### PROFILE ###
###############

@router.get('/profile/progress')
def get_profile_progress(request: Request, user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    progress = tutor_service.get_profile_progress(db, user.id)
    profile = progress.pop("profile")
    response = ProfileProgressResponse(
        **progress,
        profile=TutorProfileResponse.model_validate(profile) if profile else None,
    )
    return success_response(response.to_json(), "Profile progress retrieved successfully")

@router.get('/profile')
def get_my_profile(
        request: Request,
        email: Optional[str] = None,
        current_user: Optional[DecodedAccessToken] = Depends(get_optional_user),
        db: Session = Depends(get_db)
    ):
    user = resolve_acting_user(db, current_user, email)
    tutor = tutor_service.get_tutor_by_user_id(db, user.id)
    return success_response(TutorProfileResponse.model_validate(tutor).to_json(), "Tutor profile retrieved successfully")

@router.post('/profile', status_code=201)
def create_profile(
        request: Request,
        body: TutorProfileCreate,
        current_user: Optional[DecodedAccessToken] = Depends(get_optional_user),
        db: Session = Depends(get_db)
    ):
    """
    Onboarding step 1: basic information.

    Raises:
    - 400: neither token nor email given, or the profile already exists
    - 403: the account is not a tutor or not active
    - 404: no user with this email
    """
    user = resolve_acting_user(db, current_user, body.email)
    tutor = tutor_service.create_profile(db, user, body)
    return success_response(TutorProfileResponse.model_validate(tutor).to_json(), "Tutor profile created successfully")

@router.put('/profile')
def update_profile(
        request: Request,
        body: TutorProfileUpdate,
        current_user: Optional[DecodedAccessToken] = Depends(get_optional_user),
        db: Session = Depends(get_db)
    ):
    """
    Onboarding steps 2 and 4, or any later profile edit.

    identityNumber completes step 2; non-empty subjects or grades complete step 4.
    """
    user = resolve_acting_user(db, current_user, body.email)
    tutor = tutor_service.update_profile(db, user, body)
    return success_response(TutorProfileResponse.model_validate(tutor).to_json(), "Tutor profile updated successfully")

@router.get('/profile/{user_id}')
def get_profile_by_user_id(request: Request, user_id: str, db: Session = Depends(get_db)):
    tutor = tutor_service.get_public_profile_by_user_id(db, user_id)
    return success_response(TutorPublicResponse.model_validate(tutor).to_json(), "Tutor profile retrieved successfully")

####################
### CERTIFICATES ###
####################

@router.post('/certificates', status_code=201)
async def add_certificate(
        request: Request,
        school_name: str = Form(..., alias="schoolName"),
        major: str = Form(...),
        education_status: str = Form(..., alias="educationStatus"),
        email: Optional[str] = Form(None),
        images: List[UploadFile] = File(default=[]),
        current_user: Optional[DecodedAccessToken] = Depends(get_optional_user),
        db: Session = Depends(get_db),
        settings: Settings = Depends(get_settings),
        media: MediaService = Depends(get_media_service)
    ):
    """
    Onboarding step 3: a certificate with up to 5 images (JPEG, PNG, GIF or WebP, 10MB each).

    Raises:
    - 400: invalid form data or files
    - 413: a file is too large
    - 500: the media host rejected an upload; nothing is saved
    """
    data = CertificateCreate(school_name=school_name, major=major, education_status=education_status)
    files = await read_images(images, settings)
    user = resolve_acting_user(db, current_user, email)
    certificate = tutor_service.add_certificate(db, media, user, data, files)
    return success_response(CertificateResponse.model_validate(certificate).to_json(), "Certificate added successfully")

@router.get('/certificates')
def list_my_certificates(request: Request, user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    certificates = tutor_service.list_my_certificates(db, user)
    return success_response([CertificateResponse.model_validate(c).to_json() for c in certificates],
                            "Certificates retrieved successfully")

@router.put('/certificates/{certificate_id}')
async def update_certificate(
        request: Request,
        certificate_id: str,
        school_name: Optional[str] = Form(None, alias="schoolName"),
        major: Optional[str] = Form(None),
        education_status: Optional[str] = Form(None, alias="educationStatus"),
        images: List[UploadFile] = File(default=[]),
        user: User = Depends(get_current_account),
        db: Session = Depends(get_db),
        settings: Settings = Depends(get_settings),
        media: MediaService = Depends(get_media_service)
    ):
    """Update certificate fields; uploaded images are added to the existing ones."""
    fields = {"school_name": school_name, "major": major, "education_status": education_status}
    data = CertificateUpdate(**{k: v for k, v in fields.items() if v is not None})
    files = await read_images(images, settings)
    certificate = tutor_service.update_certificate(db, media, user, certificate_id, data, files)
    return success_response(CertificateResponse.model_validate(certificate).to_json(), "Certificate updated successfully")

@router.delete('/certificates/{certificate_id}')
def delete_certificate(request: Request, certificate_id: str, user: User = Depends(get_current_account),
                       db: Session = Depends(get_db), media: MediaService = Depends(get_media_service)):
    """Delete a certificate and its images. Images that could not be deleted are reported and retried later."""
    failed = tutor_service.delete_certificate(db, media, user, certificate_id)
    return success_response({"failedImages": failed}, "Certificate deleted successfully")

@router.delete('/certificates/{certificate_id}/images')
def remove_certificate_images(request: Request, certificate_id: str, body: RemoveImagesRequest,
                              user: User = Depends(get_current_account), db: Session = Depends(get_db),
                              media: MediaService = Depends(get_media_service)):
    certificate, failed = tutor_service.remove_certificate_images(db, media, user, certificate_id, body.image_urls)
    data = CertificateResponse.model_validate(certificate).to_json()
    data["failedImages"] = failed
    return success_response(data, "Images removed successfully")

######################
### DETAIL/REVIEWS ###
######################

@router.get('/{tutor_id}/detail')
def get_tutor_detail(request: Request, tutor_id: str, db: Session = Depends(get_db)):
    """An approved tutor with their certificates."""
    tutor, certificates = tutor_service.get_tutor_detail(db, tutor_id)
    detail = TutorDetailResponse.model_validate(tutor)
    detail.certificates = [CertificateResponse.model_validate(c) for c in certificates]
    return success_response(detail.to_json(), "Tutor detail retrieved successfully")

@router.get('/{tutor_id}/feedbacks')
def get_tutor_feedbacks(request: Request, tutor_id: str, page: int = 1, limit: int = 10, db: Session = Depends(get_db)):
    page, limit = normalize_pagination(page, limit)
    feedbacks, total = feedback_service.get_tutor_feedbacks(db, tutor_id, page, limit)
    data = [feedback_service.to_response(db, f).to_json() for f in feedbacks]
    return paginated_response(data, page, limit, total, "Feedbacks retrieved successfully")

@router.post('/{tutor_id}/feedbacks', status_code=201)
def create_feedback(request: Request, tutor_id: str, body: FeedbackCreate,
                    user: User = Depends(get_current_account), db: Session = Depends(get_db)):
    """
    Review a tutor. Students and parents only, once per tutor.

    Raises:
    - 403: the user is not a student or parent
    - 404: the tutor is not publicly visible
    - 409: the user already reviewed this tutor
    """
    feedback = feedback_service.create_feedback(db, user, tutor_id, body)
    return success_response(feedback_service.to_response(db, feedback).to_json(), "Feedback submitted successfully")
