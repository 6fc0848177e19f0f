"""
Generic image uploads for avatars and identity documents.
"""
from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.orm import Session
from typing import List

from tutor_platform.auth_tools import get_current_account
from tutor_platform.config import Settings, get_settings
from tutor_platform.database.database import User, get_db
from tutor_platform.exceptions import Forbidden, ValidationFailed
from tutor_platform.schemas.tutor_schema import RemoveImageRequest, RemoveImagesRequest
from tutor_platform.services.media_service import MediaService, extract_public_id, get_media_service, read_images
from tutor_platform.utilities import success_response

router = APIRouter(prefix='/upload')

def _user_folder(settings: Settings, user: User) -> str:
    return f"{settings.user_upload_folder}/{user.id}"

def _check_owned(urls: List[str], folder: str):
    """Only images from the caller's own upload folder may be deleted here."""
    for url in urls:
        public_id = extract_public_id(url)
        if not public_id or not public_id.startswith(folder + "/"):
            raise Forbidden("You can only delete images you uploaded")

@router.post('/image', status_code=201)
async def upload_image(request: Request, image: UploadFile = File(...), user: User = Depends(get_current_account),
                       settings: Settings = Depends(get_settings), media: MediaService = Depends(get_media_service)):
    files = await read_images([image], settings)
    if not files:
        raise ValidationFailed("No file uploaded")
    url = media.upload_image(files[0], _user_folder(settings, user))
    return success_response({"url": url}, "Image uploaded successfully")

@router.post('/images', status_code=201)
async def upload_images(request: Request, images: List[UploadFile] = File(...), user: User = Depends(get_current_account),
                        db: Session = Depends(get_db), settings: Settings = Depends(get_settings),
                        media: MediaService = Depends(get_media_service)):
    """Up to 5 images; if one upload fails the others are removed again."""
    files = await read_images(images, settings)
    if not files:
        raise ValidationFailed("No files uploaded")
    try:
        urls = media.upload_images(db, files, _user_folder(settings, user))
    finally:
        # orphans recorded while undoing a partial upload
        db.commit()
    return success_response({"urls": urls}, "Images uploaded successfully")

@router.delete('/image')
def delete_image(request: Request, body: RemoveImageRequest, user: User = Depends(get_current_account),
                 db: Session = Depends(get_db), settings: Settings = Depends(get_settings),
                 media: MediaService = Depends(get_media_service)):
    _check_owned([body.image_url], _user_folder(settings, user))
    failed = media.delete_images(db, [body.image_url])
    db.commit()
    return success_response({"failedImages": [f.public_id for f in failed]}, "Image deleted successfully")

@router.delete('/images')
def delete_images(request: Request, body: RemoveImagesRequest, user: User = Depends(get_current_account),
                  db: Session = Depends(get_db), settings: Settings = Depends(get_settings),
                  media: MediaService = Depends(get_media_service)):
    _check_owned(body.image_urls, _user_folder(settings, user))
    failed = media.delete_images(db, body.image_urls)
    db.commit()
    return success_response({"failedImages": [f.public_id for f in failed]}, "Images deleted successfully")
