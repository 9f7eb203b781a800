"""
Image storage for product photos.

Images are written to a local upload directory that the app serves as
static files. Each stored image is identified by its filename (public_id),
which is all that is needed to delete it later.
"""
import asyncio
import logging
import uuid
from pathlib import Path
from typing import List, Optional

from fastapi import UploadFile

from yardsale.core.config import settings
from yardsale.core.exceptions import StorageFailure, ValidationFailed

logger = logging.getLogger(__name__)

# Supported image extensions
SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}


class ImageStorage:
    """Local-disk image store."""
    
    def __init__(
        self,
        upload_dir: Optional[str] = None,
        url_prefix: Optional[str] = None,
        max_size_mb: Optional[int] = None
    ):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")
        self.max_size = (max_size_mb or settings.MAX_IMAGE_SIZE_MB) * 1024 * 1024
    
    @staticmethod
    def validate_extension(filename: Optional[str]) -> str:
        """
        Validate and return the file extension.
        
        Raises:
            ValidationFailed: If the filename is missing or the type is not supported
        """
        if not filename:
            raise ValidationFailed("Image filename is required")
        
        ext = ""
        if "." in filename:
            ext = "." + filename.rsplit(".", 1)[-1].lower()
        
        if ext not in SUPPORTED_EXTENSIONS:
            raise ValidationFailed(
                f"Unsupported image type. Supported types: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
            )
        
        return ext
    
    async def read_image(self, file: UploadFile) -> bytes:
        """
        Read an uploaded image and check its size.
        
        Raises:
            ValidationFailed: If the image is empty or too large
        """
        # One byte past the limit is enough to tell the file is too large
        contents = await file.read(self.max_size + 1)
        
        if len(contents) == 0:
            raise ValidationFailed(f"Uploaded image '{file.filename}' is empty")
        
        if len(contents) > self.max_size:
            raise ValidationFailed(
                f"Image '{file.filename}' exceeds maximum allowed size of "
                f"{self.max_size // (1024 * 1024)}MB"
            )
        
        return contents
    
    async def save_images(self, files: List[UploadFile]) -> List[dict]:
        """
        Validate every upload, then write them all to the upload directory.
        
        Nothing is written unless all files pass validation. If a write fails
        part-way, images already written by this call are removed.
        
        Returns:
            List of {"url", "public_id"} dicts in upload order
        """
        prepared = []
        for file in files:
            ext = self.validate_extension(file.filename)
            contents = await self.read_image(file)
            prepared.append((f"{uuid.uuid4().hex}{ext}", contents))
        
        saved: List[dict] = []
        try:
            await asyncio.to_thread(self.upload_dir.mkdir, parents=True, exist_ok=True)
            for public_id, contents in prepared:
                await asyncio.to_thread((self.upload_dir / public_id).write_bytes, contents)
                saved.append({
                    "url": f"{self.url_prefix}/{public_id}",
                    "public_id": public_id
                })
        except OSError as e:
            logger.error(f"Failed to store uploaded image: {e}")
            await self.delete_images_quietly([image["public_id"] for image in saved])
            raise StorageFailure("Failed to store uploaded images")
        
        logger.info(f"Stored {len(saved)} image(s) in {self.upload_dir}")
        return saved
    
    async def ensure_upload_dir(self) -> None:
        """Create the upload directory so static serving works before the first upload."""
        await asyncio.to_thread(self.upload_dir.mkdir, parents=True, exist_ok=True)
        logger.info(f"Serving uploaded images from {self.upload_dir}")
    
    def _path_for(self, public_id: str) -> Path:
        # public_id is a bare filename; anything else could escape the upload dir
        if not public_id or Path(public_id).name != public_id:
            raise ValidationFailed(f"Invalid image id: {public_id!r}")
        return self.upload_dir / public_id
    
    async def delete_image(self, public_id: str) -> None:
        """
        Delete a stored image. Missing files are treated as already deleted.
        
        Raises:
            StorageFailure: If the file exists but cannot be removed
        """
        path = self._path_for(public_id)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete image {public_id}: {e}")
            raise StorageFailure(f"Failed to delete image {public_id}")
    
    async def delete_images_quietly(self, public_ids: List[str]) -> None:
        """Best-effort cleanup: log failures and keep going."""
        for public_id in public_ids:
            try:
                await self.delete_image(public_id)
            except (StorageFailure, ValidationFailed) as e:
                logger.warning(f"Could not clean up image {public_id}: {e.detail}")


# Default store used by the API
image_storage = ImageStorage()


def get_image_storage() -> ImageStorage:
    """Dependency to get the image store."""
    return image_storage
