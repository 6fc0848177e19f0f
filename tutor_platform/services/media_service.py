"""
Image hosting on Cloudinary.

Uploads fail loudly. Deletions never do: a failed deletion is logged and
recorded as an OrphanedImage so the reconciliation sweep can retry it later.
"""
from dataclasses import dataclass
from fastapi import Request, UploadFile
from sqlalchemy.orm import Session
from typing import List, Optional
import re

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from tutor_platform.config import Settings
from tutor_platform.exceptions import PayloadTooLarge, UpstreamError, ValidationFailed
from tutor_platform.logger import logger
from tutor_platform.repositories import media_repository

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
ALLOWED_FORMATS = ["jpg", "jpeg", "png", "gif", "webp"]

# https://res.cloudinary.com/<cloud>/image/upload/v1234567890/folder/name.jpg -> folder/name
PUBLIC_ID_PATTERN = re.compile(r"/v\d+/(.+)\.\w+$")

@dataclass
class ImageFile:
    filename: str
    content_type: str
    content: bytes

@dataclass
class DeletionFailure:
    public_id: str
    error: str

def extract_public_id(url: str) -> Optional[str]:
    if not url:
        return None
    match = PUBLIC_ID_PATTERN.search(url)
    return match.group(1) if match else None

async def read_images(files: List[UploadFile], settings: Settings) -> List[ImageFile]:
    """
    Read and validate uploaded image files.

    Raises:
    - ValidationFailed: too many files or a file that is not JPEG/PNG/GIF/WebP
    - PayloadTooLarge: a file is larger than MAX_UPLOAD_SIZE_MB
    """
    files = [f for f in files or [] if f is not None and f.filename]
    if len(files) > settings.max_upload_files:
        raise ValidationFailed(f"Too many files. Maximum {settings.max_upload_files} files allowed.")

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    images = []
    for upload in files:
        if upload.content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationFailed("Invalid file type. Only JPEG, PNG, GIF and WebP images are allowed.")
        content = await upload.read()
        if len(content) > max_bytes:
            raise PayloadTooLarge(f"File too large. Maximum size is {settings.max_upload_size_mb}MB.")
        images.append(ImageFile(upload.filename, upload.content_type, content))
    return images

class MediaService:
    def __init__(self, settings: Settings):
        self.settings = settings

    def _credentials(self) -> dict:
        return {
            "cloud_name": self.settings.cloudinary_cloud_name,
            "api_key": self.settings.cloudinary_api_key,
            "api_secret": self.settings.cloudinary_api_secret,
        }

    def _upload(self, image: ImageFile, folder: str) -> dict:
        return cloudinary.uploader.upload(
            image.content,
            folder=folder,
            resource_type="image",
            allowed_formats=ALLOWED_FORMATS,
            **self._credentials(),
        )

    def _destroy(self, public_id: str) -> dict:
        return cloudinary.uploader.destroy(public_id, resource_type="image", **self._credentials())

    def upload_image(self, image: ImageFile, folder: Optional[str] = None) -> str:
        """
        Upload one image and return its URL.

        Raises:
        - UpstreamError: Cloudinary rejected the upload
        """
        folder = folder or self.settings.cloudinary_upload_folder
        try:
            result = self._upload(image, folder)
        except CloudinaryError as e:
            logger.error(f"Cloudinary upload of {image.filename} failed: {str(e)}")
            raise UpstreamError(f"Failed to upload image: {str(e)}")
        return result.get("secure_url") or result["url"]

    def upload_images(self, db: Session, images: List[ImageFile], folder: Optional[str] = None) -> List[str]:
        """
        Upload several images. If one fails, the ones already uploaded in this
        call are deleted again and the error is re-raised.
        """
        urls = []
        try:
            for image in images:
                urls.append(self.upload_image(image, folder))
        except UpstreamError:
            self.delete_images(db, urls)
            raise
        return urls

    def delete_image(self, public_id: str) -> None:
        """Raises UpstreamError if Cloudinary could not delete the object."""
        try:
            result = self._destroy(public_id)
        except CloudinaryError as e:
            raise UpstreamError(str(e))
        # "not found" means there is nothing left to clean up
        if result.get("result") not in ("ok", "not found"):
            raise UpstreamError(f"Unexpected result: {result.get('result')}")

    def delete_images(self, db: Session, urls: List[str]) -> List[DeletionFailure]:
        """
        Delete the images behind the given URLs.

        Failures are collected, logged and recorded as orphans in the session;
        the caller commits. Returns the failures.
        """
        failures = []
        for url in urls:
            public_id = extract_public_id(url)
            if not public_id:
                logger.warning(f"Could not extract public id from {url}, skipping")
                continue
            try:
                self.delete_image(public_id)
            except UpstreamError as e:
                logger.warning(f"Failed to delete image {public_id}: {e.message}")
                media_repository.record_orphan(db, public_id, e.message)
                failures.append(DeletionFailure(public_id, e.message))
        return failures

    def reconcile_orphans(self, db: Session) -> dict:
        """Retry deletion of recorded orphans; drop the ones that succeed."""
        deleted, remaining = 0, 0
        for orphan in media_repository.find_orphans(db):
            try:
                self.delete_image(orphan.public_id)
            except UpstreamError as e:
                orphan.attempts += 1
                orphan.reason = e.message
                remaining += 1
                continue
            media_repository.delete_orphan(db, orphan)
            deleted += 1
        db.commit()
        logger.info(f"Orphan reconciliation: {deleted} deleted, {remaining} remaining")
        return {"deleted": deleted, "remaining": remaining}

def get_media_service(request: Request) -> MediaService:
    """Dependency returning the app's media service."""
    return request.app.state.media_service
