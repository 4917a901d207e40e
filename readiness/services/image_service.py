# readiness/services/image_service.py
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from pydantic import BaseModel

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB
PUBLIC_PREFIX = "/uploads/images"


class ImageUploadResult(BaseModel):
    success: bool
    url: str = ""
    file_name: str = ""
    error: str = ""


class ImageService:
    def __init__(self, uploads_path: Path):
        self.uploads_path = Path(uploads_path)
        self.uploads_path.mkdir(parents=True, exist_ok=True)

    def upload_image(self, original_name: str, data: bytes) -> ImageUploadResult:
        if not data:
            return ImageUploadResult(success=False, error="No file provided")

        if len(data) > MAX_FILE_SIZE:
            return ImageUploadResult(success=False, error="File size exceeds 5MB limit")

        extension = Path(original_name or "").suffix.lower()
        if extension not in ALLOWED_EXTENSIONS:
            return ImageUploadResult(success=False, error="Invalid file type. Allowed: jpg, jpeg, png, gif, webp")

        file_name = f"{datetime.now(timezone.utc):%Y%m%d}_{uuid.uuid4().hex}{extension}"
        try:
            (self.uploads_path / file_name).write_bytes(data)
        except OSError as e:
            logger.error("Error uploading image %s: %s", original_name, e)
            return ImageUploadResult(success=False, error="Error uploading file")

        relative_path = f"{PUBLIC_PREFIX}/{file_name}"
        logger.info("Uploaded image: %s to %s", original_name, relative_path)
        return ImageUploadResult(success=True, url=relative_path, file_name=file_name)

    def delete_image(self, url: str) -> bool:
        if not url:
            return False

        file_path = self.uploads_path / Path(url).name
        try:
            if file_path.is_file():
                file_path.unlink()
                logger.info("Deleted image: %s", file_path)
                return True
        except OSError as e:
            logger.error("Error deleting image %s: %s", url, e)
        return False

    def get_all_images(self) -> List[str]:
        if not self.uploads_path.is_dir():
            return []
        names = [
            f.name for f in self.uploads_path.iterdir()
            if f.is_file() and f.suffix.lower() in ALLOWED_EXTENSIONS
        ]
        return [f"{PUBLIC_PREFIX}/{n}" for n in sorted(names, reverse=True)]
