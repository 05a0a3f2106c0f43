"""
S3 Repository.
Stores student photos in AWS S3.
"""
import logging
from typing import Optional
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from visitlog.config.settings import Config
from visitlog.exceptions.base import ExternalServiceError

logger = logging.getLogger(__name__)

class S3Repository:
    """
    Repository for AWS S3 operations.
    """

    def __init__(self, client=None, bucket_name: Optional[str] = None) -> None:
        """Initialize the S3 client."""
        self.bucket_name = bucket_name or Config.AWS_S3_BUCKET
        if client is not None:
            self.client = client
            return

        try:
            retry_config = BotoConfig(
                retries={
                    'max_attempts': Config.AWS_MAX_RETRIES,
                    'mode': 'standard'
                },
                connect_timeout=60,
                read_timeout=60
            )

            self.client = boto3.client(
                's3',
                aws_access_key_id=Config.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=Config.AWS_SECRET_ACCESS_KEY,
                region_name=Config.AWS_REGION,
                config=retry_config
            )
            if not self.bucket_name:
                logger.warning("AWS_S3_BUCKET is not set in configuration")

        except (BotoCoreError, ValueError) as e:
            logger.error(f"Failed to initialize S3 client: {e}")
            raise ExternalServiceError("Failed to initialize S3 client", "S3", details={"error": str(e)})

    def public_url(self, object_name: str) -> str:
        return f"https://{self.bucket_name}.s3.{Config.AWS_REGION}.amazonaws.com/{object_name}"

    def upload_bytes(self, object_name: str, data: bytes, content_type: str) -> str:
        """
        Upload in-memory content to the bucket, replacing any existing object.

        Args:
            object_name: S3 object name/key
            data: File content
            content_type: MIME type stored with the object

        Returns:
            Public URL of the uploaded object
        """
        if not self.bucket_name:
            raise ExternalServiceError("AWS_S3_BUCKET not configured", "S3")

        if not object_name or not data:
            raise ValueError("object_name and data are required")

        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=object_name,
                Body=data,
                ContentType=content_type
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to upload {object_name}: {e}")
            raise ExternalServiceError("Failed to upload file", "S3", details={"error": str(e)})

        url = self.public_url(object_name)
        logger.info(f"Uploaded {len(data)} bytes to s3://{self.bucket_name}/{object_name}")
        return url
