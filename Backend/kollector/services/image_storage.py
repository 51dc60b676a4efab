import json
import logging
import os
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from kollector.core.config import settings

logger = logging.getLogger(__name__)

COVERS_FOLDER = "covers"
THUMBNAILS_FOLDER = "thumbnails"
THUMBNAIL_PREFIX = "thumb-"
DOWNLOAD_USER_AGENT = "KollectorScum/1.0"

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


def content_type_for(path: str) -> str:
    extension = os.path.splitext(path)[1].lower()
    return CONTENT_TYPES.get(extension, "application/octet-stream")


def is_safe_relative_path(path: Optional[str]) -> bool:
    """Reject empty paths, parent-directory segments and rooted paths."""
    if not path or not path.strip():
        return False
    if ".." in path:
        return False
    if os.path.isabs(path) or path.startswith(("/", "\\")):
        return False
    return True


def filename_from_reference(reference: Optional[str]) -> Optional[str]:
    """Images are stored either as bare filenames or as absolute URLs."""
    if not reference or not reference.strip():
        return None
    if reference.startswith(("http://", "https://")):
        name = os.path.basename(urlparse(reference).path)
        return name or None
    return reference


class ImageStorage:
    """Cover and thumbnail files on the local disk under IMAGES_PATH."""

    def __init__(self, images_path: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.images_path = images_path or settings.IMAGES_PATH
        self._transport = transport

    @property
    def covers_path(self) -> str:
        return os.path.join(self.images_path, COVERS_FOLDER)

    @property
    def thumbnails_path(self) -> str:
        return os.path.join(self.images_path, THUMBNAILS_FOLDER)

    def resolve(self, path: str) -> str:
        """Map a request path onto a file below the images directory.

        A bare filename is looked up in the covers folder.
        Raises ValueError for unsafe paths.
        """
        if not is_safe_relative_path(path):
            raise ValueError("Invalid image path")
        if "/" not in path and "\\" not in path:
            return os.path.join(self.covers_path, path)
        return os.path.join(self.images_path, path)

    def health(self) -> Dict[str, Any]:
        images_path = os.path.abspath(self.images_path)
        directory_exists = os.path.isdir(images_path)
        return {
            "images_path": images_path,
            "directory_exists": directory_exists,
            "status": "ok" if directory_exists else "missing",
        }

    def release_image_paths(self, images_json: Optional[str]) -> List[str]:
        if not images_json:
            return []
        try:
            images = json.loads(images_json)
        except json.JSONDecodeError:
            logger.warning(f"Could not parse images JSON: {images_json[:100]}")
            return []
        if not isinstance(images, dict):
            return []

        paths = []
        for key, folder in (("cover_front", self.covers_path), ("cover_back", self.covers_path),
                            ("thumbnail", self.thumbnails_path)):
            filename = filename_from_reference(images.get(key))
            if filename:
                paths.append(os.path.join(folder, filename))
        return paths

    def delete_release_images(self, images_json: Optional[str]) -> int:
        """Delete the files referenced by a release's images blob.

        Missing files are skipped and failed deletes are only logged.
        Returns the number of files removed.
        """
        deleted = 0
        for path in self.release_image_paths(images_json):
            if not os.path.exists(path):
                logger.debug(f"Image file not found, skipping: {path}")
                continue
            try:
                os.remove(path)
                deleted += 1
                logger.info(f"Deleted image file: {path}")
            except OSError as e:
                logger.warning(f"Failed to delete image file {path}: {e}")
        return deleted

    @staticmethod
    def unique_filename(directory: str, filename: str) -> str:
        name, extension = os.path.splitext(filename)
        candidate = filename
        counter = 1
        while os.path.exists(os.path.join(directory, candidate)):
            candidate = f"{name} ({counter}){extension}"
            counter += 1
        return candidate

    async def fetch(self, url: str) -> bytes:
        async with httpx.AsyncClient(transport=self._transport, timeout=30.0, follow_redirects=True) as client:
            response = await client.get(url, headers={"User-Agent": DOWNLOAD_USER_AGENT})
            response.raise_for_status()
            return response.content

    async def save_cover(self, url: str, filename: str) -> str:
        """Store a remote cover under covers/ unless a file of that name already exists."""
        os.makedirs(self.covers_path, exist_ok=True)
        path = os.path.join(self.covers_path, filename)
        if os.path.exists(path):
            logger.debug(f"Cover art already exists: {filename}")
            return filename

        content = await self.fetch(url)
        with open(path, "wb") as f:
            f.write(content)
        logger.debug(f"Saved cover art: {filename}")
        return filename

    async def download(self, url: str, filename: str, folder: Optional[str] = None) -> Dict[str, Any]:
        """Download an image into covers/ (or thumbnails/ for thumb- files)."""
        if not url or not url.strip():
            raise ValueError("URL is required")
        if not filename or not filename.strip():
            raise ValueError("Filename is required")
        if not is_safe_relative_path(filename) or "/" in filename or "\\" in filename:
            raise ValueError("Invalid filename")
        if folder is not None and folder != "" and not is_safe_relative_path(folder):
            raise ValueError("Invalid folder")

        if not folder:
            folder = THUMBNAILS_FOLDER if filename.startswith(THUMBNAIL_PREFIX) else COVERS_FOLDER

        target_dir = os.path.join(self.images_path, folder)
        os.makedirs(target_dir, exist_ok=True)
        stored_name = self.unique_filename(target_dir, filename)

        logger.info(f"Downloading image {url} to {folder}/{stored_name}")
        content = await self.fetch(url)
        with open(os.path.join(target_dir, stored_name), "wb") as f:
            f.write(content)

        return {
            "message": "Image downloaded successfully",
            "filename": stored_name,
            "original_filename": filename,
            "size": len(content),
        }


# Dependency
def get_image_storage() -> ImageStorage:
    return ImageStorage()
