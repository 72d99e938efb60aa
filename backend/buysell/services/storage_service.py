"""
Storage Service - product images in Supabase Storage
"""
import logging
import os
import uuid
from typing import Optional

from supabase import Client

from buysell.core.config import settings
from buysell.core.constants import ALLOWED_IMAGE_TYPES
from buysell.core.database import get_supabase
from buysell.core.exceptions import BadRequestError

logger = logging.getLogger(__name__)

EXTENSIONS = {
    'image/jpeg': 'jpg',
    'image/png': 'png',
    'image/webp': 'webp',
    'image/gif': 'gif',
}


class StorageService:

    def __init__(self, client: Optional[Client] = None, bucket: Optional[str] = None):
        self._client = client
        self.bucket = bucket or settings.SUPABASE_STORAGE_BUCKET

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    @staticmethod
    def validate_image(content: bytes, content_type: Optional[str]) -> None:
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise BadRequestError(f"Only images are allowed ({', '.join(ALLOWED_IMAGE_TYPES)})")
        if not content:
            raise BadRequestError("Uploaded file is empty")
        if len(content) > settings.MAX_IMAGE_SIZE_BYTES:
            raise BadRequestError(
                f"Image exceeds {settings.MAX_IMAGE_SIZE_BYTES // (1024 * 1024)} MB"
            )

    def upload_product_image(self, product_id: int, filename: Optional[str],
                             content: bytes, content_type: str) -> str:
        """
        Store an image under products/{product_id}/{uuid}.{ext}

        Returns:
            Public URL of the stored file
        """
        self.validate_image(content, content_type)

        extension = os.path.splitext(filename or '')[1].lstrip('.').lower() or EXTENSIONS[content_type]
        path = f"products/{product_id}/{uuid.uuid4().hex}.{extension}"

        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(path, content, {"content-type": content_type})
        logger.info(f"Uploaded image for product {product_id} to {self.bucket}/{path}")

        return bucket.get_public_url(path)
