from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from typing import Optional

import cloudinary.exceptions
import cloudinary.uploader
from fastapi import UploadFile

from account_api.core.config import Settings

logger = logging.getLogger(__name__)


def _safe_filename(original: str) -> str:
    # no path traversal, no NULs
    base = Path(original).name.strip() or "upload"
    return base.replace("\x00", "")


class MediaUploader:
    """
    Multipart file -> local temp file -> Cloudinary URL.
    `upload` returns None instead of raising so callers decide what a failed
    upload means for them.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.temp_dir = Path(settings.upload_temp_dir)

    def save_temp(self, upload: UploadFile) -> Path:
        dest_path = self.temp_dir / f"{uuid.uuid4().hex}_{_safe_filename(upload.filename or 'upload')}"
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with dest_path.open("wb") as f:
                shutil.copyfileobj(upload.file, f)
        finally:
            upload.file.close()
        return dest_path

    def _credentials(self) -> dict:
        return {
            "cloud_name": self.settings.cloudinary_cloud_name,
            "api_key": self.settings.cloudinary_api_key,
            "api_secret": self.settings.cloudinary_api_secret,
        }

    def upload(self, local_path: Optional[Path]) -> str | None:
        if not local_path:
            return None
        try:
            result = cloudinary.uploader.upload(
                str(local_path),
                resource_type="auto",
                **self._credentials(),
            )
        except (cloudinary.exceptions.Error, ValueError, OSError) as exc:
            # the SDK raises a plain ValueError for missing credentials
            logger.warning("cloudinary upload failed for %s: %s", Path(local_path).name, exc)
            return None
        finally:
            Path(local_path).unlink(missing_ok=True)

        url = (result or {}).get("secure_url") or (result or {}).get("url")
        if url:
            logger.info("file uploaded to cloudinary: %s", url)
        else:
            logger.warning("cloudinary returned no url for %s", Path(local_path).name)
        return url or None

    def upload_file(self, upload: Optional[UploadFile]) -> str | None:
        """save_temp + upload; None when no file was sent or the upload failed."""
        if upload is None or not upload.filename:
            return None
        return self.upload(self.save_temp(upload))
