"""
Image storage backed by a Supabase Storage bucket.

Uploads go through the Storage REST API with ``httpx``. Objects are stored
under ``<owner_id>/<timestamp>-<random><ext>`` and served from the bucket's
public URL.
"""
import logging
import os
import secrets
import time
from dataclasses import dataclass

import httpx

from cards_backend.config import Settings
from cards_backend.errors import UpstreamStorageError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ImageUpload:
    """An uploaded file, read into memory, on its way to storage."""
    data: bytes
    filename: str
    content_type: str

    def validate(self, max_bytes=None):
        max_bytes = max_bytes or Settings.MAX_IMAGE_BYTES
        if not (self.content_type or "").startswith("image/"):
            raise ValidationError("Only image files are allowed.")
        if not self.data:
            raise ValidationError("Uploaded image is empty.")
        if len(self.data) > max_bytes:
            raise ValidationError(f"Image must be at most {max_bytes // (1024 * 1024)}MB.")


class SupabaseStorage:
    def __init__(self, url, key, bucket, client=None, timeout=10.0):
        self.url = (url or "").rstrip("/")
        self.key = key or ""
        self.bucket = bucket
        self._client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, client=None):
        return cls(Settings.SUPABASE_URL, Settings.SUPABASE_KEY, Settings.SUPABASE_BUCKET, client=client)

    @property
    def configured(self):
        return bool(self.url and self.key)

    @property
    def public_prefix(self):
        return f"{self.url}/storage/v1/object/public/{self.bucket}/"

    def _headers(self, **extra):
        headers = {"Authorization": f"Bearer {self.key}", "apikey": self.key}
        headers.update(extra)
        return headers

    @staticmethod
    def object_path(filename, owner_id):
        ext = os.path.splitext(filename or "")[1].lower()
        suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}"
        return f"{owner_id}/{suffix}{ext}"

    # PUBLIC_INTERFACE
    def upload_image(self, data: bytes, filename: str, mime_type: str, owner_id) -> dict:
        """
        Store an image and return ``{"url": public_url, "path": object_path}``.

        Raises ``UpstreamStorageError`` when storage is not configured or the
        upload fails.
        """
        if not self.configured:
            logger.error("image upload attempted but Supabase storage is not configured")
            raise UpstreamStorageError("Image storage is not configured.")

        path = self.object_path(filename, owner_id)
        try:
            resp = self._client.post(
                f"{self.url}/storage/v1/object/{self.bucket}/{path}",
                content=data,
                headers=self._headers(**{
                    "Content-Type": mime_type,
                    "cache-control": "3600",
                    "x-upsert": "false",
                }),
            )
        except httpx.HTTPError as exc:
            logger.error("supabase upload failed for %s: %s", path, exc)
            raise UpstreamStorageError() from exc

        if resp.status_code >= 300:
            logger.error("supabase upload rejected for %s: %s %s", path, resp.status_code, resp.text[:200])
            raise UpstreamStorageError(f"Failed to upload image ({resp.status_code}).")

        logger.info("uploaded image %s", path)
        return {"url": self.public_prefix + path, "path": path}

    # PUBLIC_INTERFACE
    def delete_image(self, url: str) -> bool:
        """Remove the object behind a public URL. Returns False instead of raising."""
        if not url:
            return True
        if not self.configured or not self.is_managed_url(url):
            logger.warning("could not extract storage path from %s", url)
            return False

        path = url[len(self.public_prefix):]
        try:
            resp = self._client.request(
                "DELETE",
                f"{self.url}/storage/v1/object/{self.bucket}",
                json={"prefixes": [path]},
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            logger.error("supabase delete failed for %s: %s", path, exc)
            return False
        if resp.status_code >= 300:
            logger.error("supabase delete rejected for %s: %s", path, resp.status_code)
            return False
        return True

    # PUBLIC_INTERFACE
    def is_managed_url(self, url: str) -> bool:
        return bool(url) and bool(self.url) and url.startswith(self.public_prefix)
