# core/utils/image.py
import logging
import os
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from core.config import get_settings
from core.errors import ValidationError

logger = logging.getLogger(__name__)

# Pillow format name -> (content type, extension)
SUPPORTED_FORMATS = {
    'JPEG': ('image/jpeg', '.jpg'),
    'PNG': ('image/png', '.png'),
    'WEBP': ('image/webp', '.webp'),
}


def detect_format(data: bytes) -> Optional[str]:
    """Return the Pillow format name of ``data`` if it is a supported image, else None"""
    if not data:
        return None
    try:
        img = Image.open(BytesIO(data))
        img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        return None
    return img.format if img.format in SUPPORTED_FORMATS else None


class ImageStore:
    """Object storage for uploaded images, backed by a local directory.

    ``put`` returns a URL under ``base_url``; ``delete`` accepts such a URL.
    """

    def __init__(self, base_dir: Optional[str] = None, base_url: Optional[str] = None):
        settings = get_settings()
        self.base_dir = Path(base_dir or settings.image_store_dir)
        self.base_url = (base_url if base_url is not None else settings.image_base_url).rstrip('/')

    detect_format = staticmethod(detect_format)

    def _create_directory(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def _resolve(self, relative_path: str) -> Path:
        target = (self.base_dir / relative_path).resolve()
        root = self.base_dir.resolve()
        if root != target and root not in target.parents:
            raise ValidationError("Invalid image path")
        return target

    def put(self, data: bytes, relative_path: str) -> str:
        """Write ``data`` to ``relative_path`` and return its URL"""
        target = self._create_directory(self._resolve(relative_path))
        with open(target, 'wb') as f:
            f.write(data)
        logger.info(f"Stored image {relative_path} ({len(data)} bytes)")
        return f"{self.base_url}/{relative_path.lstrip('/')}"

    def delete(self, url: Optional[str]) -> bool:
        """Delete a stored image by URL. URLs this store did not issue are ignored.

        Returns:
            True if a file was removed
        """
        prefix = f"{self.base_url}/"
        if not url or not url.startswith(prefix):
            return False
        target = self._resolve(url[len(prefix):])
        try:
            os.remove(target)
        except FileNotFoundError:
            return False
        logger.info(f"Deleted image {url}")
        return True
