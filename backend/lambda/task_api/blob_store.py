"""blob_store.py — Task image attachments in S3.

The handler never moves file bytes. Clients upload and download directly
against presigned URLs issued here; a fresh URL is issued on every read
because the links expire.
"""
from __future__ import annotations

from typing import Optional

from task_api.config import DEFAULT_FILE_TYPE, logger

__all__ = ["AttachmentStore", "image_key"]


def image_key(user_id: str, task_id: str, filename: str) -> str:
    return f"{user_id}/{task_id}/{filename}"


class AttachmentStore:
    def __init__(self, s3, bucket: str, url_ttl_seconds: int = 3600):
        self._s3 = s3
        self.bucket = bucket
        self.url_ttl_seconds = url_ttl_seconds

    def upload_url(self, key: str, content_type: Optional[str] = None) -> str:
        """Presigned PUT URL; the client must send the same Content-Type."""
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "ContentType": content_type or DEFAULT_FILE_TYPE,
        }
        logger.info("presign put_object: key=%s content_type=%s", key, params["ContentType"])
        return self._s3.generate_presigned_url(
            "put_object", Params=params, ExpiresIn=self.url_ttl_seconds
        )

    def download_url(self, key: str) -> str:
        logger.info("presign get_object: key=%s", key)
        return self._s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.url_ttl_seconds,
        )

    def delete(self, key: str) -> None:
        logger.info("delete_object: key=%s", key)
        self._s3.delete_object(Bucket=self.bucket, Key=key)
