"""
Media library: image uploads for product group tiles
"""

import io
import logging
import os
import uuid
from typing import List

from PIL import Image, UnidentifiedImageError
from sqlalchemy.orm import Session

from restopos.core.config import settings
from restopos.schemas.media import MediaResponse
from restopos.services.catalog_repositories import MediaRepo
from restopos.services.exceptions import RecordNotFound, ValidationFailed
from restopos.services.firebase_client import get_storage_bucket
from restopos.services.repositories import use_firestore

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
UPLOAD_PREFIX = "uploads"


class MediaService:
    """Service for the media library"""

    @staticmethod
    def validate_image(content: bytes, content_type: str) -> str:
        """Check size, declared type and that the bytes decode as an image; returns the extension"""
        if not content:
            raise ValidationFailed("File is empty", "empty_file")
        if len(content) > settings.MAX_UPLOAD_SIZE:
            raise ValidationFailed(
                f"File too large. Max size: {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB",
                "file_too_large"
            )
        extension = ALLOWED_IMAGE_TYPES.get((content_type or "").lower())
        if not extension:
            raise ValidationFailed("Only JPEG, PNG, WEBP and GIF images are allowed", "invalid_file_type")

        try:
            with Image.open(io.BytesIO(content)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            logger.warning(f"Rejected upload that is not a valid image: {e}")
            raise ValidationFailed("File is not a valid image", "invalid_image") from e

        return extension

    @staticmethod
    def _local_path(storage_path: str) -> str:
        return os.path.join(settings.MEDIA_DIR, *storage_path.split("/"))

    @staticmethod
    def _remove_stored(storage_path: str) -> None:
        if not use_firestore():
            local_path = MediaService._local_path(storage_path)
            if os.path.exists(local_path):
                os.remove(local_path)
        else:
            blob = get_storage_bucket().blob(storage_path)
            if blob.exists():
                blob.delete()

    @staticmethod
    def upload(db: Session, file_name: str, content: bytes, content_type: str) -> MediaResponse:
        """Store an image and register it in the library"""
        extension = MediaService.validate_image(content, content_type)
        storage_path = f"{UPLOAD_PREFIX}/{uuid.uuid4().hex}.{extension}"

        if not use_firestore():
            local_path = MediaService._local_path(storage_path)
            os.makedirs(os.path.dirname(local_path), exist_ok=True)
            with open(local_path, "wb") as f:
                f.write(content)
            file_url = f"{settings.BASE_URL.rstrip('/')}/media/{storage_path}"
        else:
            blob = get_storage_bucket().blob(storage_path)
            blob.upload_from_string(content, content_type=content_type)
            blob.make_public()
            file_url = blob.public_url

        fields = {
            "file_name": file_name or os.path.basename(storage_path),
            "file_url": file_url,
            "storage_path": storage_path,
            "file_size": len(content),
            "mime_type": content_type,
        }
        try:
            if not use_firestore():
                media = MediaRepo.create_sql(db, fields)
            else:
                media = MediaRepo.create_fs(fields)
        except Exception:
            # no library entry, so drop the stored object with it
            logger.error(f"Could not register {storage_path}; removing stored file")
            MediaService._remove_stored(storage_path)
            raise

        logger.info(f"Media uploaded: {file_name} -> {storage_path} ({len(content)} bytes)")
        return MediaResponse.model_validate(media)

    @staticmethod
    def list_media(db: Session) -> List[MediaResponse]:
        if not use_firestore():
            return [MediaResponse.model_validate(m) for m in MediaRepo.list_sql(db)]
        return [MediaResponse.model_validate(m) for m in MediaRepo.list_fs()]

    @staticmethod
    def delete(db: Session, media_id: str) -> None:
        """Remove the stored object, then the library entry"""
        if not use_firestore():
            media = MediaRepo.get_sql(db, media_id)
            if not media:
                raise RecordNotFound("Media file")
            MediaService._remove_stored(media.storage_path)
            MediaRepo.delete_sql(db, media)
        else:
            media = MediaRepo.get_fs(media_id)
            if not media:
                raise RecordNotFound("Media file")
            MediaService._remove_stored(media["storage_path"])
            MediaRepo.delete_fs(media_id)

        logger.info(f"Media {media_id} deleted")
