"""
Media store for user-supplied images.

Clients upload images inline as base64, either bare or as a data URL
("data:image/png;base64,...."). MediaStore decodes the payload, verifies
it is a real image with Pillow and stores it through Django's
default_storage, returning the public URL that gets persisted on the
user, conversation or message.

Usage:
    from toolkit.services.media import MediaStore

    url = MediaStore.upload(request.data["profilePic"])

Failure semantics:
    Any failure (undecodable payload, not an image, storage error) raises
    UpstreamServiceError with error_code UPLOAD_FAILED. Callers upload
    before writing anything, so a failed upload aborts the whole mutation.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
import uuid

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from PIL import Image, UnidentifiedImageError

from core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w/+.-]+)?;base64,(?P<data>.*)$", re.S)

# Pillow format name -> stored file extension
EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "GIF": "gif",
    "WEBP": "webp",
}

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class MediaStore:
    """Decode, verify and persist base64 images."""

    upload_dir = "uploads"

    @classmethod
    def upload(cls, payload: str) -> str:
        """
        Store a base64 image and return its public URL.

        Raises:
            UpstreamServiceError: If the payload cannot be stored
        """
        raw = cls._decode(payload)
        extension = cls._verify_image(raw)

        name = f"{cls.upload_dir}/{uuid.uuid4().hex}.{extension}"
        try:
            stored_name = default_storage.save(name, ContentFile(raw))
            url = default_storage.url(stored_name)
        except OSError as e:
            logger.exception(f"Storage backend rejected upload {name}")
            raise UpstreamServiceError(
                "Image upload failed",
                error_code="UPLOAD_FAILED",
                details={"reason": "storage"},
            ) from e

        logger.info(f"Stored image {stored_name} ({len(raw)} bytes)")
        return url

    @staticmethod
    def _decode(payload: str) -> bytes:
        if not isinstance(payload, str) or not payload.strip():
            raise UpstreamServiceError(
                "Image upload failed",
                error_code="UPLOAD_FAILED",
                details={"reason": "empty payload"},
            )

        match = DATA_URL_PATTERN.match(payload.strip())
        encoded = match.group("data") if match else payload.strip()

        try:
            raw = base64.b64decode(encoded, validate=False)
        except (binascii.Error, ValueError) as e:
            logger.warning(f"Rejected undecodable image payload: {e}")
            raise UpstreamServiceError(
                "Image upload failed",
                error_code="UPLOAD_FAILED",
                details={"reason": "invalid base64"},
            ) from e

        if not raw or len(raw) > MAX_UPLOAD_BYTES:
            raise UpstreamServiceError(
                "Image upload failed",
                error_code="UPLOAD_FAILED",
                details={"reason": "size"},
            )
        return raw

    @staticmethod
    def _verify_image(raw: bytes) -> str:
        try:
            with Image.open(io.BytesIO(raw)) as image:
                image.verify()
                image_format = image.format
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            logger.warning(f"Rejected non-image upload: {e}")
            raise UpstreamServiceError(
                "Image upload failed",
                error_code="UPLOAD_FAILED",
                details={"reason": "not an image"},
            ) from e

        extension = EXTENSIONS.get(image_format)
        if extension is None:
            raise UpstreamServiceError(
                "Image upload failed",
                error_code="UPLOAD_FAILED",
                details={"reason": f"unsupported format {image_format}"},
            )
        return extension
