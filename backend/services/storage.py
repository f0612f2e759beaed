"""
Storage Service - MinIO/S3 integration
Handles image uploads and deletes for user avatars and cover images
"""
import logging
import os
import uuid
from typing import BinaryIO, Optional, Tuple
from minio import Minio
from minio.error import S3Error
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from urllib3.exceptions import HTTPError as TransportError

from core.config import settings

logger = logging.getLogger(__name__)

# Client rejections plus transport failures (unreachable endpoint, retries exhausted)
STORAGE_ERRORS = (S3Error, ClientError, BotoCoreError, TransportError)


class StorageError(Exception):
    """Raised when the object store rejects an operation"""


class StorageService:
    """
    Storage service supporting both MinIO (local) and AWS S3 (production)
    Automatically switches based on USE_AWS_S3 setting
    """

    def __init__(self):
        self.use_aws = settings.USE_AWS_S3

        if self.use_aws:
            # AWS S3 client
            self.s3_client = boto3.client(
                's3',
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=settings.AWS_REGION
            )
            self.bucket_name = settings.S3_BUCKET_NAME
        else:
            # MinIO client (S3-compatible)
            self.minio_client = Minio(
                settings.MINIO_ENDPOINT,
                access_key=settings.MINIO_ROOT_USER,
                secret_key=settings.MINIO_ROOT_PASSWORD,
                secure=settings.MINIO_USE_SSL
            )
            self.bucket_name = settings.MINIO_BUCKET_IMAGES

    def _ensure_bucket_exists(self):
        """Ensure bucket exists (MinIO only)"""
        if not self.use_aws:
            try:
                if not self.minio_client.bucket_exists(self.bucket_name):
                    self.minio_client.make_bucket(self.bucket_name)
                    logger.info(f"✅ Created bucket: {self.bucket_name}")
            except S3Error as e:
                logger.warning(f"⚠️ Error ensuring bucket exists: {e}")

    def upload_file(
        self,
        file_data: BinaryIO,
        object_key: str,
        content_type: str = "application/octet-stream"
    ) -> str:
        """
        Upload file to storage

        Args:
            file_data: File object
            object_key: S3 object key (path in bucket)
            content_type: MIME type

        Returns:
            URL of uploaded file

        Raises:
            StorageError: If the upload is rejected or the store is unreachable
        """
        try:
            if self.use_aws:
                self.s3_client.upload_fileobj(
                    file_data,
                    self.bucket_name,
                    object_key,
                    ExtraArgs={'ContentType': content_type}
                )
                return f"https://{self.bucket_name}.s3.{settings.AWS_REGION}.amazonaws.com/{object_key}"

            self._ensure_bucket_exists()

            # Get file size
            file_data.seek(0, 2)
            file_size = file_data.tell()
            file_data.seek(0)

            self.minio_client.put_object(
                self.bucket_name,
                object_key,
                file_data,
                length=file_size,
                content_type=content_type
            )
            scheme = "https" if settings.MINIO_USE_SSL else "http"
            return f"{scheme}://{settings.MINIO_ENDPOINT}/{self.bucket_name}/{object_key}"

        except STORAGE_ERRORS as e:
            raise StorageError(f"Failed to upload file: {str(e)}")

    def upload_image(
        self,
        file_data: BinaryIO,
        filename: Optional[str],
        folder: str,
        content_type: Optional[str] = None
    ) -> Tuple[str, str]:
        """
        Upload an image under folder/ with a random object key

        Returns:
            (url, object_key)
        """
        ext = os.path.splitext(filename or "")[1].lower()
        object_key = f"{folder}/{uuid.uuid4().hex}{ext}"
        url = self.upload_file(file_data, object_key, content_type or "application/octet-stream")
        logger.info(f"📤 Uploaded image: {object_key}")
        return url, object_key

    def delete_file(self, object_key: str):
        """
        Delete file from storage

        Raises:
            StorageError: If the delete is rejected or the store is unreachable
        """
        try:
            if self.use_aws:
                self.s3_client.delete_object(
                    Bucket=self.bucket_name,
                    Key=object_key
                )
            else:
                self.minio_client.remove_object(self.bucket_name, object_key)

        except STORAGE_ERRORS as e:
            raise StorageError(f"Failed to delete file: {str(e)}")


# Global storage service instance
storage_service = StorageService()


def get_storage_service() -> StorageService:
    """Dependency for FastAPI routes to get the storage service"""
    return storage_service
