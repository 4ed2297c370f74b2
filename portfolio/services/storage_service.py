"""
Object storage for processed media.
Uploads to an S3-compatible bucket with boto3; files are served through the CDN domain.

Keys follow {Type}/{Quality}/{Year}/{Month}/{filename}, e.g. Image/Web/2024/05/DSC_0001.webp.
"""
from datetime import date
from functools import lru_cache
from typing import Any, Dict, Optional
import asyncio
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from portfolio.config import settings

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=31536000, immutable"


@lru_cache(maxsize=1)
def get_s3_client():
    """Shared boto3 client built from settings."""
    session = boto3.session.Session()
    return session.client(
        "s3",
        region_name=settings.AWS_REGION,
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
    )


def build_object_key(media_type: str, quality: str, filename: str, when: Optional[date] = None) -> str:
    """
    Storage key for a media file.

    Args:
        media_type: "Image" or "Gif"
        quality: "Web", "Original" or "Thumbnail"
        filename: Final file name including extension
        when: Capture date used for the year/month folders; today when unknown
    """
    when = when or date.today()
    return f"{media_type}/{quality}/{when.year:04d}/{when.month:02d}/{filename}"


def public_url(key: str) -> str:
    """CDN URL for a key, or the bucket URL when no CDN domain is configured."""
    if settings.CDN_DOMAIN:
        domain = settings.CDN_DOMAIN.removeprefix("https://").removeprefix("http://").rstrip("/")
        return f"https://{domain}/{key}"
    if settings.S3_ENDPOINT_URL:
        return f"{settings.S3_ENDPOINT_URL.rstrip('/')}/{settings.AWS_S3_BUCKET}/{key}"
    return f"https://{settings.AWS_S3_BUCKET}.s3.{settings.AWS_REGION}.amazonaws.com/{key}"


async def upload_bytes(
    data: bytes,
    key: str,
    content_type: str,
    max_retries: int = 3
) -> Dict[str, Any]:
    """
    Put an object into the bucket with retry logic.

    Returns:
        dict: key, url (CDN-substituted) and bytes

    Raises:
        ClientError: If the upload fails after all retries
    """
    client = get_s3_client()

    for attempt in range(max_retries):
        try:
            await asyncio.to_thread(
                client.put_object,
                Bucket=settings.AWS_S3_BUCKET,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl=CACHE_CONTROL,
            )
            url = public_url(key)
            logger.info(f"Successfully uploaded {key} ({len(data):,} bytes)")
            return {"key": key, "url": url, "bytes": len(data)}

        except (ClientError, BotoCoreError) as e:
            logger.warning(f"S3 upload error (attempt {attempt + 1}/{max_retries}) for {key}: {str(e)}")

            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)  # 1s, 2s backoff
                continue

            logger.error(f"S3 upload failed after {max_retries} attempts for {key}: {str(e)}")
            raise


async def delete_object(key: str, max_retries: int = 3) -> None:
    """Delete an object; a missing key is not an error."""
    client = get_s3_client()

    for attempt in range(max_retries):
        try:
            await asyncio.to_thread(client.delete_object, Bucket=settings.AWS_S3_BUCKET, Key=key)
            logger.info(f"Deleted object {key}")
            return

        except (ClientError, BotoCoreError) as e:
            logger.warning(f"S3 delete error (attempt {attempt + 1}/{max_retries}) for {key}: {str(e)}")
            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)
                continue
            logger.error(f"S3 delete failed after {max_retries} attempts for {key}: {str(e)}")
            raise


def key_from_url(url: Optional[str]) -> Optional[str]:
    """Reverse of public_url for URLs this service produced."""
    if not url:
        return None
    for prefix in ("Image/", "Gif/"):
        position = url.find(f"/{prefix}")
        if position != -1:
            return url[position + 1:]
    return None


def validate_storage_config() -> bool:
    """True when a bucket is configured."""
    if not settings.AWS_S3_BUCKET:
        logger.warning("AWS_S3_BUCKET not configured")
        return False
    if not settings.CDN_DOMAIN:
        logger.info("CDN_DOMAIN not configured; serving media from the bucket URL")

    logger.info("Object storage configuration validated successfully")
    return True
