from __future__ import annotations

import mimetypes
import os
import time
from dataclasses import dataclass

from app.core.config import settings
from app.core.errors import ValidationFailed


@dataclass(frozen=True, slots=True)
class ImageFile:
    filename: str
    media_type: str
    data: bytes


@dataclass(frozen=True, slots=True)
class ImageUrl:
    url: str


ImageSource = ImageFile | ImageUrl


@dataclass(frozen=True, slots=True)
class UploadedImage:
    object_key: str
    public_url: str


def validate_image_file(image: ImageFile) -> None:
    size_bytes = len(image.data)
    if size_bytes <= 0:
        raise ValidationFailed("Image file is empty", {"image": "empty"})

    max_bytes = int(settings.max_upload_size_mb) * 1024 * 1024
    if size_bytes > max_bytes:
        raise ValidationFailed(f"Image too large (max {settings.max_upload_size_mb} MB)", {"image": "too_large"})

    if not (image.media_type or "").lower().startswith("image/"):
        raise ValidationFailed("Only image files can be attached", {"image": "not_an_image"})


def clean_image_url(image: ImageUrl) -> str:
    url = (image.url or "").strip()
    if not url:
        raise ValidationFailed("Image URL is empty", {"image_url": "empty"})
    return image.url


def image_object_key(user_id: str, image: ImageFile, *, now: float | None = None) -> str:
    ext = os.path.splitext(image.filename or "")[1].lower()
    if not ext:
        ext = mimetypes.guess_extension(image.media_type) or ""
    stamp = int((now if now is not None else time.time()) * 1000)
    return f"{user_id}/{stamp}{ext}"
