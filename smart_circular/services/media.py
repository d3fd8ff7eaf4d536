import os
import uuid
import logging
from functools import lru_cache
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError
from supabase import create_client, Client

from smart_circular.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/jpg"}


class StorageUnavailable(RuntimeError):
    """Raised when no image storage bucket is configured."""


@lru_cache(maxsize=1)
def get_storage_client() -> Client:
    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        raise StorageUnavailable("Image storage is not configured (SUPABASE_URL / SUPABASE_KEY).")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


def detect_image_type_from_bytes(file_bytes: bytes) -> Optional[str]:
    """Return a short image type string like 'jpeg' or 'png', or None if unknown."""
    try:
        with Image.open(BytesIO(file_bytes)) as img:
            fmt = (img.format or "").lower()
    except (UnidentifiedImageError, OSError):
        return None
    return fmt if fmt in ("jpeg", "png") else None


def effective_content_type(declared: Optional[str], file_bytes: bytes) -> Optional[str]:
    """Trust the declared type when it is an allowed image type, otherwise sniff the bytes."""
    if declared in ALLOWED_CONTENT_TYPES:
        return declared
    detected = detect_image_type_from_bytes(file_bytes)
    return f"image/{detected}" if detected else None


def upload_image_to_storage(file_bytes: bytes, filename: Optional[str], content_type: str) -> str:
    """Uploads an image to the Supabase bucket and returns the public URL.
    Note: the bucket ACL must be configured as Public in Supabase."""
    _, ext = os.path.splitext(filename or "")
    ext = ext.lower()
    if not ext:
        if content_type in ("image/jpeg", "image/jpg"):
            ext = ".jpg"
        elif content_type == "image/png":
            ext = ".png"

    file_name = f"{uuid.uuid4().hex}{ext}"

    bucket = get_storage_client().storage.from_(settings.STORAGE_BUCKET)

    try:
        bucket.upload(file_name, file_bytes, {"content-type": content_type})
    except Exception:
        logger.exception("Supabase upload failed")
        raise RuntimeError("Failed to upload image to cloud storage")

    try:
        pub_res = bucket.get_public_url(file_name)
        public_image_url = None
        if isinstance(pub_res, dict):
            public_image_url = pub_res.get("publicURL") or pub_res.get("public_url") or (pub_res.get("data") or {}).get("publicUrl")
        else:
            public_image_url = str(pub_res)
        if not public_image_url:
            raise ValueError("No public URL returned")
    except Exception:
        logger.exception("Failed to obtain public URL from Supabase")
        raise RuntimeError("Failed to obtain public image URL")

    logger.info("Stored evidence image %s (%d bytes)", file_name, len(file_bytes))
    return public_image_url
