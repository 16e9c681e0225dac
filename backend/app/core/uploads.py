"""
Image upload storage.

Files are written under ``UPLOAD_DIR/<category>[/<subdir>]/`` and served by the
static mount at ``UPLOAD_URL_PATH``. The URL stored in the database is the
public path, e.g. ``/uploads/blog/image-1700000000-4f3a9c1e.webp``.
"""

import io
import logging
import shutil
import time
import uuid
from pathlib import Path
from typing import Dict, Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from app.core.config import settings
from app.core.error_responses import ErrorMessages, raise_bad_request

logger = logging.getLogger(__name__)

# Formats Pillow must detect in the bytes, whatever the declared content type
DECODABLE_FORMATS = {"JPEG", "MPO", "PNG", "WEBP"}
STORED_FORMAT = "webp"


def upload_root() -> Path:
    return Path(settings.UPLOAD_DIR)


def _target_dir(category: str, subdir: Optional[str] = None) -> Path:
    directory = upload_root() / category
    if subdir:
        directory = directory / subdir
    return directory


def format_size_mb(num_bytes: int) -> str:
    """Size in megabytes with two decimals, e.g. ``"0.25"``."""
    return f"{num_bytes / (1024 * 1024):.2f}"


def optimize_image(data: bytes) -> bytes:
    """
    Decode an uploaded image and re-encode it for storage.

    Images wider than ``UPLOAD_IMAGE_MAX_WIDTH`` are scaled down keeping
    their aspect ratio; everything is saved as WebP at
    ``UPLOAD_IMAGE_QUALITY``.

    Raises:
        HTTPException: 400 when the bytes are not a JPEG, PNG or WebP image
    """
    max_width = settings.UPLOAD_IMAGE_MAX_WIDTH
    try:
        with Image.open(io.BytesIO(data)) as source:
            if source.format not in DECODABLE_FORMATS:
                raise UnidentifiedImageError(f"unsupported format {source.format}")
            source.load()
            image = source
            if image.width > max_width:
                height = max(1, round(image.height * max_width / image.width))
                image = image.resize((max_width, height), Image.Resampling.LANCZOS)
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA" if image.has_transparency_data else "RGB")
            output = io.BytesIO()
            image.save(output, "WEBP", quality=settings.UPLOAD_IMAGE_QUALITY)
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        logger.warning(f"Rejected undecodable image upload: {e}")
        raise_bad_request(ErrorMessages.INVALID_FILE_TYPE)
    return output.getvalue()


def save_image(
    file: Optional[UploadFile], category: str, subdir: Optional[str] = None
) -> Dict[str, str]:
    """
    Validate and store an uploaded image.

    Args:
        file: Multipart file from the request
        category: Top-level folder (``blog``, ``gallery``, ``services``)
        subdir: Optional nested folder, e.g. ``gallery-12``

    Returns:
        ``{"imageUrl", "format", "size"}`` describing the stored file

    Raises:
        HTTPException: 400 when no file was sent, the type is not allowed,
            the bytes do not decode as an image or the file exceeds
            ``UPLOAD_MAX_BYTES``
    """
    if file is None or not file.filename:
        raise_bad_request(ErrorMessages.NO_FILE_UPLOADED)

    content_type = (file.content_type or "").lower()
    if content_type not in settings.UPLOAD_ALLOWED_TYPES:
        logger.warning(f"Rejected file upload: {file.filename} ({content_type})")
        raise_bad_request(ErrorMessages.INVALID_FILE_TYPE)

    data = file.file.read(settings.UPLOAD_MAX_BYTES + 1)
    if len(data) > settings.UPLOAD_MAX_BYTES:
        raise_bad_request(ErrorMessages.file_too_large(settings.UPLOAD_MAX_BYTES))

    data = optimize_image(data)
    filename = f"image-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.{STORED_FORMAT}"

    directory = _target_dir(category, subdir)
    directory.mkdir(parents=True, exist_ok=True)
    (directory / filename).write_bytes(data)

    relative = "/".join(part for part in (category, subdir, filename) if part)
    url = f"{settings.UPLOAD_URL_PATH.rstrip('/')}/{relative}"
    logger.info(f"Stored upload {url} ({len(data)} bytes)")
    return {"imageUrl": url, "format": STORED_FORMAT, "size": format_size_mb(len(data))}


def _path_for_url(url: str) -> Optional[Path]:
    prefix = settings.UPLOAD_URL_PATH.rstrip("/") + "/"
    if not url or not url.startswith(prefix):
        return None
    relative = url[len(prefix):]
    root = upload_root().resolve()
    path = (root / relative).resolve()
    # Refuse paths escaping the upload root
    if root != path and root not in path.parents:
        return None
    return path


def delete_image(url: Optional[str]) -> bool:
    """Remove a stored image by its public URL. Returns True if a file was deleted."""
    path = _path_for_url(url or "")
    if path is None or not path.is_file():
        return False
    path.unlink()
    logger.info(f"Deleted upload {url}")
    return True


def delete_directory(category: str, subdir: str) -> bool:
    """Remove an upload folder such as ``gallery/gallery-12`` with its contents."""
    directory = _target_dir(category, subdir)
    if not directory.is_dir():
        return False
    shutil.rmtree(directory)
    logger.info(f"Deleted upload directory {directory}")
    return True
