"""Object storage (Cloudflare R2 via the S3 API) for photos, signatures and PDFs"""

import base64
import logging
import re
import uuid
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import (
    R2_ACCESS_KEY_ID,
    R2_ACCOUNT_ID,
    R2_BUCKET_NAME,
    R2_PUBLIC_URL,
    R2_SECRET_ACCESS_KEY,
)

logger = logging.getLogger(__name__)

# Presigned URL expiration time (1 hour)
PRESIGNED_URL_EXPIRATION = 3600

ALLOWED_UPLOAD_TYPES = {
    "image/png": "photo",
    "image/jpeg": "photo",
    "image/jpg": "photo",
    "image/webp": "photo",
    "image/heic": "photo",
    "video/mp4": "video",
    "video/quicktime": "video",
    "application/pdf": "document",
}

DATA_URL_PATTERN = re.compile(r"^data:(image/[a-z+]+);base64,(.+)$", re.DOTALL)


class StorageError(Exception):
    """Raised when an object cannot be stored or fetched"""


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        region_name="auto",
        config=Config(signature_version="s3v4"),
    )


def build_key(*parts: str, extension: str) -> str:
    """tenant/area/.../<uuid>.<ext>"""
    clean = [str(p).strip("/") for p in parts if p is not None and str(p)]
    return "/".join(clean + [f"{uuid.uuid4().hex}.{extension.lstrip('.')}"])


def upload_bytes(key: str, body: bytes, content_type: str) -> str:
    """Upload raw bytes and return the key"""
    try:
        get_r2_client().put_object(
            Bucket=R2_BUCKET_NAME, Key=key, Body=body, ContentType=content_type
        )
    except (BotoCoreError, ClientError) as e:
        logger.error(f"❌ Failed to upload {key}: {e}")
        raise StorageError(f"Upload failed for {key}") from e
    logger.info(f"✅ Uploaded object to R2: {key}")
    return key


def download_bytes(key: str) -> bytes:
    try:
        response = get_r2_client().get_object(Bucket=R2_BUCKET_NAME, Key=key)
        return response["Body"].read()
    except (BotoCoreError, ClientError) as e:
        raise StorageError(f"Download failed for {key}") from e


def delete_object(key: str) -> None:
    try:
        get_r2_client().delete_object(Bucket=R2_BUCKET_NAME, Key=key)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"❌ Failed to delete {key}: {e}")
        raise StorageError(f"Delete failed for {key}") from e
    logger.info(f"🗑️ Deleted object from R2: {key}")


def generate_presigned_url(key: str, expiration: int = PRESIGNED_URL_EXPIRATION) -> str:
    """Generate a presigned URL for accessing a private object in R2."""
    if R2_PUBLIC_URL:
        return f"{R2_PUBLIC_URL.rstrip('/')}/{key}"
    try:
        return get_r2_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": R2_BUCKET_NAME, "Key": key, "ResponseContentDisposition": "inline"},
            ExpiresIn=expiration,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error(f"❌ Failed to generate presigned URL for key {key}: {e}")
        raise StorageError(f"Cannot sign URL for {key}") from e


def decode_data_url(data_url: str) -> Optional[tuple[str, bytes]]:
    """Split a base64 image data URL (signature pads) into content type and bytes"""
    match = DATA_URL_PATTERN.match(data_url or "")
    if not match:
        return None
    try:
        return match.group(1), base64.b64decode(match.group(2), validate=True)
    except ValueError:
        return None


def store_signature(data_url: str, *key_parts: str) -> str:
    """Persist a signature-pad PNG and return its key"""
    decoded = decode_data_url(data_url)
    if not decoded:
        raise ValueError("Signature must be a base64 image data URL")
    content_type, body = decoded
    extension = content_type.split("/")[1].replace("jpeg", "jpg")
    return upload_bytes(build_key(*key_parts, extension=extension), body, content_type)
