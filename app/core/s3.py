import aioboto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Request
from app.core.config import Settings
from datetime import datetime, timezone
from typing import Optional
import logging
import re

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StorageError(Exception):
    """Raised when the object store rejects or fails an operation."""


class S3Service:
    """
    Client for an S3-compatible object store (AWS S3, Cloudflare R2, MinIO).
    """

    def __init__(self, settings: Settings):
        self.session = aioboto3.Session(
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION
        )
        self.bucket_name = settings.S3_BUCKET_NAME
        self.endpoint_url = settings.S3_ENDPOINT_URL
        self.public_url = settings.S3_PUBLIC_URL.rstrip("/") if settings.S3_PUBLIC_URL else None
        self.presigned_expiration = settings.PRESIGNED_URL_EXPIRATION

    def _client(self):
        return self.session.client('s3', endpoint_url=self.endpoint_url)

    def generate_file_key(self, user_id: str, case_id: str, filename: str) -> str:
        """
        Generate a unique file key for S3 storage.
        Format: files/{user_id}/{case_id}/{timestamp_ms}-{filename}
        """
        timestamp = int(datetime.now(timezone.utc).timestamp() * 1000)
        safe_name = _UNSAFE_KEY_CHARS.sub("_", filename).strip("_") or "file"
        return f"files/{user_id}/{case_id}/{timestamp}-{safe_name}"

    async def upload_bytes(self, body: bytes, file_key: str, content_type: str) -> None:
        """
        Upload a file to S3.
        """
        try:
            async with self._client() as s3_client:
                await s3_client.put_object(
                    Bucket=self.bucket_name,
                    Key=file_key,
                    Body=body,
                    ContentType=content_type,
                    ContentLength=len(body),
                )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading {file_key} to S3: {e}")
            raise StorageError(f"Failed to upload {file_key}") from e

    async def delete_file(self, file_key: str) -> bool:
        """
        Delete a file from S3.
        """
        try:
            async with self._client() as s3_client:
                await s3_client.delete_object(
                    Bucket=self.bucket_name,
                    Key=file_key
                )
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error deleting file {file_key} from S3: {e}")
            return False

    async def generate_presigned_url(self, file_key: str, expiration: Optional[int] = None) -> Optional[str]:
        """
        Generate a presigned download URL for an object.
        """
        try:
            async with self._client() as s3_client:
                return await s3_client.generate_presigned_url(
                    ClientMethod='get_object',
                    Params={'Bucket': self.bucket_name, 'Key': file_key},
                    ExpiresIn=expiration or self.presigned_expiration,
                )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error generating presigned URL: {e}")
            return None

    async def get_file_url(self, file_key: str) -> Optional[str]:
        """
        Public URL when a public bucket domain is configured, presigned otherwise.
        """
        if self.public_url:
            return f"{self.public_url}/{file_key}"
        return await self.generate_presigned_url(file_key)

    async def check_connection(self) -> bool:
        try:
            async with self._client() as s3_client:
                await s3_client.list_buckets()
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Object storage check failed: {e}")
            return False


def get_s3_service(request: Request) -> S3Service:
    return request.app.state.s3
