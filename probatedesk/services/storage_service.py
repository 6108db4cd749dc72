"""Artifact storage - S3 or local filesystem.

store() allocates a fresh key per call; reusing or replacing the current
artifact is the document orchestrator's job.
"""

import logging
import os
import uuid
from dataclasses import dataclass

import boto3
from botocore.exceptions import ClientError

from probatedesk.core.config import settings

logger = logging.getLogger(__name__)

SIGNED_URL_EXPIRY_SECONDS = 300  # 5 minutes


@dataclass(frozen=True)
class StoredArtifact:
    key: str
    url: str


# =============================================================================
# Storage Backend
# =============================================================================

def _get_s3_client():
    """Get boto3 S3 client."""
    return boto3.client(
        "s3",
        region_name=settings.S3_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        endpoint_url=settings.S3_ENDPOINT_URL or None,
    )


def _get_local_storage_path() -> str:
    path = settings.LOCAL_STORAGE_PATH
    os.makedirs(path, exist_ok=True)
    return path


def _local_path(key: str) -> str:
    root = os.path.realpath(_get_local_storage_path())
    path = os.path.realpath(os.path.join(root, key))
    if not path.startswith(root + os.sep):
        raise ValueError("Storage key escapes storage root")
    return path


def build_key(matter_id: uuid.UUID, kind: str, extension: str = "pdf") -> str:
    return f"matters/{matter_id}/{kind}/{uuid.uuid4()}.{extension}"


def artifact_url(key: str) -> str:
    """Durable reference stored on phase records (not a signed URL)."""
    if settings.STORAGE_BACKEND == "s3":
        return f"s3://{settings.S3_BUCKET}/{key}"
    return f"/portal/documents/local/{key}"


# =============================================================================
# File Operations
# =============================================================================

def store(key: str, data: bytes, content_type: str = "application/pdf") -> StoredArtifact:
    """Persist bytes under key and return the artifact reference."""
    if settings.STORAGE_BACKEND == "s3":
        s3 = _get_s3_client()
        s3.put_object(Bucket=settings.S3_BUCKET, Key=key, Body=data, ContentType=content_type)
    else:
        path = _local_path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
    return StoredArtifact(key=key, url=artifact_url(key))


def delete(key: str) -> None:
    """Remove an artifact. Missing keys are ignored."""
    if settings.STORAGE_BACKEND == "s3":
        s3 = _get_s3_client()
        s3.delete_object(Bucket=settings.S3_BUCKET, Key=key)
    else:
        path = _local_path(key)
        if os.path.exists(path):
            os.remove(path)


def generate_signed_url(key: str) -> str:
    """Short-lived download URL."""
    if settings.STORAGE_BACKEND == "s3":
        s3 = _get_s3_client()
        try:
            return s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": settings.S3_BUCKET, "Key": key},
                ExpiresIn=SIGNED_URL_EXPIRY_SECONDS,
            )
        except ClientError:
            logger.warning("Failed to sign download URL for %s", key, exc_info=True)
            return ""
    return artifact_url(key)


def read_local(key: str) -> bytes:
    """Read a locally stored artifact (dev download route)."""
    with open(_local_path(key), "rb") as f:
        return f.read()
