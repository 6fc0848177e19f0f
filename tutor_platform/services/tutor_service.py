"""
Tutor profiles: onboarding writes, public search and detail views, and
certificate management.
"""
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple

from tutor_platform.database.database import User, UserRole, TutorProfile, TutorProfileStatus, Certificate
from tutor_platform.exceptions import Forbidden, NotFound, UpstreamError, ValidationFailed
from tutor_platform.logger import logger
from tutor_platform.repositories import tutor_repository, certificate_repository, catalog_repository
from tutor_platform.schemas.tutor_schema import (
    TutorProfileCreate, TutorProfileUpdate, CertificateCreate, CertificateUpdate, TutorStatusUpdate
)
from tutor_platform.services import onboarding
from tutor_platform.services.media_service import MediaService, ImageFile

# Plain columns copied from an update request; subjects and grades are resolved separately
PROFILE_FIELDS = (
    "full_name", "date_of_birth", "gender", "hourly_rate", "place_of_birth", "teaching_area",
    "address", "bio", "avatar_url", "identity_number", "identity_images",
    "available_days", "available_time_slots",
)

def get_tutor_by_user_id(db: Session, user_id: str) -> TutorProfile:
    tutor = tutor_repository.get_by_user_id(db, user_id)
    if not tutor:
        raise NotFound("Tutor profile not found")
    return tutor

def get_public_tutor(db: Session, tutor_id: str) -> TutorProfile:
    tutor = tutor_repository.get_public_by_id(db, tutor_id)
    if not tutor:
        raise NotFound("Tutor not found or not available")
    return tutor

###############
### PROFILE ###
###############

def create_profile(db: Session, user: User, data: TutorProfileCreate) -> TutorProfile:
    """
    Step 1 of onboarding.

    Raises:
    - Forbidden: the user is not a tutor
    - ValidationFailed: the user already has a profile
    """
    if user.role != UserRole.TUTOR:
        raise Forbidden("Only tutors can create a tutor profile")
    if tutor_repository.get_by_user_id(db, user.id):
        raise ValidationFailed("Tutor profile already exists")

    tutor = tutor_repository.create(
        db,
        user_id=user.id,
        profile_status=TutorProfileStatus.DRAFT,
        current_step=onboarding.STEP_BASIC_INFO,
        completed_steps=[],
        **data.model_dump(exclude={"email"}),
    )
    onboarding.complete_step(tutor, onboarding.STEP_BASIC_INFO)
    db.commit()

    logger.info(f"Tutor profile {tutor.id} created for user {user.id}")
    return tutor

def _resolve_catalog(db: Session, ids: List[str], finder, label: str):
    items = finder(db, ids)
    missing = set(ids) - {item.id for item in items}
    if missing:
        raise ValidationFailed(f"Unknown {label}", errors=[{"field": label, "message": f"Unknown id {i}"} for i in sorted(missing)])
    return items

def update_profile(db: Session, user: User, data: TutorProfileUpdate) -> TutorProfile:
    """
    Apply the provided fields and advance onboarding.

    identity_number completes step 2. Non-empty subjects or grades complete
    step 4, which takes precedence when both arrive in one request.
    """
    tutor = get_tutor_by_user_id(db, user.id)

    provided = data.model_dump(include=set(PROFILE_FIELDS), exclude_unset=True)
    for field, value in provided.items():
        if value is not None:
            setattr(tutor, field, value)

    if data.subjects is not None:
        tutor.subjects = _resolve_catalog(db, data.subjects, catalog_repository.find_subjects_by_ids, "subjects")
    if data.grades is not None:
        tutor.grades = _resolve_catalog(db, data.grades, catalog_repository.find_grades_by_ids, "grades")

    step = None
    if data.identity_number is not None:
        step = onboarding.STEP_IDENTITY
    # teaching info wins; an identity number sent alongside it is saved but
    # step 2 is only recorded when it is submitted on its own
    if data.subjects or data.grades:
        step = onboarding.STEP_TEACHING_INFO

    if step is not None:
        onboarding.complete_step(tutor, step)
    else:
        onboarding.refresh_completion(tutor)

    db.commit()
    logger.info(f"Tutor profile {tutor.id} updated, steps {tutor.completed_steps}")
    return tutor

def get_profile_progress(db: Session, user_id: str) -> dict:
    tutor = tutor_repository.get_by_user_id(db, user_id)
    result = onboarding.progress(tutor)
    result["profile"] = tutor
    return result

def get_public_profile_by_user_id(db: Session, user_id: str) -> TutorProfile:
    tutor = tutor_repository.get_by_user_id(db, user_id)
    if not tutor or not tutor.is_public:
        raise NotFound("Tutor not found or not available")
    return tutor

def update_profile_status(db: Session, tutor_id: str, data: TutorStatusUpdate) -> TutorProfile:
    """
    Admin approval or rejection.

    Raises:
    - ValidationFailed: approving a profile whose onboarding is not finished
    """
    tutor = tutor_repository.get_by_id(db, tutor_id)
    if not tutor:
        raise NotFound("Tutor profile not found")
    if data.status == TutorProfileStatus.APPROVED and not tutor.is_profile_complete:
        raise ValidationFailed("Cannot approve an incomplete profile")

    previous = tutor.profile_status
    tutor.profile_status = data.status
    db.commit()

    logger.info(f"Tutor profile {tutor.id}: {previous.value} -> {data.status.value}"
                + (f" ({data.reason})" if data.reason else ""))
    return tutor

###############
### LISTING ###
###############

def search_tutors(db: Session, page: int, limit: int, **filters) -> Tuple[List[TutorProfile], int]:
    return tutor_repository.search_tutors(db, page, limit, **filters)

def list_approved_tutors(db: Session, page: int, limit: int) -> Tuple[List[TutorProfile], int]:
    return tutor_repository.find_all_approved(db, page, limit)

def get_tutor_detail(db: Session, tutor_id: str) -> Tuple[TutorProfile, List[Certificate]]:
    tutor = get_public_tutor(db, tutor_id)
    return tutor, certificate_repository.find_by_tutor_id(db, tutor.id)

def list_by_status(db: Session, status: TutorProfileStatus, page: int, limit: int) -> Tuple[List[TutorProfile], int]:
    return tutor_repository.find_by_status(db, status, page, limit)

####################
### CERTIFICATES ###
####################

def _upload(db: Session, media: MediaService, images: List[ImageFile]) -> List[str]:
    if not images:
        return []
    try:
        return media.upload_images(db, images)
    except UpstreamError:
        # keep the orphan records written while undoing the partial upload
        db.commit()
        raise

def _commit_or_compensate(db: Session, media: MediaService, uploaded: List[str]):
    """Commit; if that fails, delete the images uploaded for this request."""
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        if uploaded:
            logger.warning(f"Database write failed, removing {len(uploaded)} uploaded images")
            media.delete_images(db, uploaded)
            db.commit()
        raise

def _owned_certificate(db: Session, certificate_id: str, tutor: TutorProfile) -> Certificate:
    certificate = certificate_repository.get_by_id(db, certificate_id)
    if not certificate:
        raise NotFound("Certificate not found")
    if certificate.tutor_id != tutor.id:
        raise Forbidden("Not authorized to modify this certificate")
    return certificate

def add_certificate(db: Session, media: MediaService, user: User, data: CertificateCreate,
                    images: Optional[List[ImageFile]] = None) -> Certificate:
    """
    Upload the images, then insert the certificate and complete step 3 in one commit.

    Nothing is persisted if an upload fails; uploaded images are removed again
    if the database write fails.
    """
    tutor = get_tutor_by_user_id(db, user.id)
    urls = _upload(db, media, images)

    certificate = certificate_repository.create(
        db,
        tutor_id=tutor.id,
        school_name=data.school_name,
        major=data.major,
        education_status=data.education_status,
        images=urls,
    )
    onboarding.complete_step(tutor, onboarding.STEP_CERTIFICATE)
    _commit_or_compensate(db, media, urls)

    logger.info(f"Certificate {certificate.id} added to tutor {tutor.id} with {len(urls)} images")
    return certificate

def list_my_certificates(db: Session, user: User) -> List[Certificate]:
    tutor = get_tutor_by_user_id(db, user.id)
    return certificate_repository.find_by_tutor_id(db, tutor.id)

def update_certificate(db: Session, media: MediaService, user: User, certificate_id: str,
                       data: CertificateUpdate, images: Optional[List[ImageFile]] = None) -> Certificate:
    """Update fields and append any newly uploaded images."""
    tutor = get_tutor_by_user_id(db, user.id)
    certificate = _owned_certificate(db, certificate_id, tutor)

    urls = _upload(db, media, images)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(certificate, field, value)
    certificate.images = list(certificate.images or []) + urls
    _commit_or_compensate(db, media, urls)
    return certificate

def delete_certificate(db: Session, media: MediaService, user: User, certificate_id: str) -> List[str]:
    """Delete the images, then the row. Returns the public ids whose deletion failed."""
    tutor = get_tutor_by_user_id(db, user.id)
    certificate = _owned_certificate(db, certificate_id, tutor)

    failures = media.delete_images(db, list(certificate.images or []))
    certificate_repository.delete(db, certificate)
    db.commit()

    logger.info(f"Certificate {certificate_id} deleted, {len(failures)} image deletions failed")
    return [failure.public_id for failure in failures]

def remove_certificate_images(db: Session, media: MediaService, user: User, certificate_id: str,
                              image_urls: List[str]) -> Tuple[Certificate, List[str]]:
    """Delete the listed images of a certificate. URLs that are not on the certificate are ignored."""
    tutor = get_tutor_by_user_id(db, user.id)
    certificate = _owned_certificate(db, certificate_id, tutor)

    current = list(certificate.images or [])
    requested = set(image_urls)
    to_remove = [url for url in current if url in requested]

    failures = media.delete_images(db, to_remove)
    certificate.images = [url for url in current if url not in to_remove]
    db.commit()
    return certificate, [failure.public_id for failure in failures]
