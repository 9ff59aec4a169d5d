# intake/services/photo_storage.py
"""
Photo storage: writes check-in / check-out evidence to the photo bucket.

Bucket layout: {PHOTO_STORAGE_DIR}/{vehicle_id}/{phase}_{timestamp_ms}.{ext}
Public URL:    {PHOTO_PUBLIC_BASE_URL}/{vehicle_id}/{phase}_{timestamp_ms}.{ext}
"""

import base64
import binascii
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from intake.config import settings
from intake.exceptions import StorageError, ValidationError
from intake.utils.logger import get_logger

logger = get_logger(__name__)

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/heic": "heic",
}


@dataclass
class StoredPhoto:
    path: str
    public_url: str


def decode_photo(photo_base64: Optional[str], content_type: Optional[str]) -> tuple[bytes, str]:
    """
    Decode a base64 image (plain or data: URL). Returns (bytes, extension).
    Rejects non-image content types and empty or malformed payloads.
    """
    if not photo_base64:
        raise ValidationError("Error: photo is required")
    payload = photo_base64
    if payload.startswith("data:"):
        header, _, payload = payload.partition(",")
        content_type = content_type or header[5:].split(";")[0]

    content_type = (content_type or "").lower().strip()
    if not content_type.startswith("image/"):
        raise ValidationError(f"Error: unsupported photo type '{content_type or 'unknown'}'")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Error: photo is not valid base64")
    if not data:
        raise ValidationError("Error: photo is empty")
    return data, EXTENSIONS.get(content_type, "jpg")


def photo_timestamp(now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    return int(now.timestamp() * 1000)


class PhotoStorage:
    def __init__(self, root: str, public_base_url: str):
        self.root = root
        self.public_base_url = public_base_url.rstrip("/")

    def build_path(self, owner_id: str, phase: str, ext: str, now: Optional[datetime] = None) -> str:
        return f"{owner_id}/{phase}_{photo_timestamp(now)}.{ext}"

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path}"

    def upload(self, owner_id: str, phase: str, data: bytes, ext: str,
               now: Optional[datetime] = None) -> StoredPhoto:
        path = self.build_path(owner_id, phase, ext, now)
        filepath = os.path.join(self.root, *path.split("/"))
        try:
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
            with open(filepath, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error(f"[PHOTO] Failed to store {path}: {e}")
            raise StorageError()
        logger.info(f"[PHOTO] Saved {path} ({len(data)} bytes)")
        return StoredPhoto(path=path, public_url=self.public_url(path))


_storage: Optional[PhotoStorage] = None


def get_photo_storage() -> PhotoStorage:
    global _storage
    if _storage is None:
        _storage = PhotoStorage(settings.PHOTO_STORAGE_DIR, settings.PHOTO_PUBLIC_BASE_URL)
    return _storage
