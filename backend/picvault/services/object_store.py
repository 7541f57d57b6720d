"""Image storage on an S3-compatible bucket (Cloudflare R2 in production)."""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any, BinaryIO
from urllib.parse import quote

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from picvault.config import Config
from picvault.core.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/jpg": "jpg",
}


@dataclass(frozen=True)
class PendingImage:
    """A validated upload that has not been stored yet."""
    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class StoredObject:
    """What the bucket knows about a stored image."""
    key: str
    location: str
    mimetype: str
    size: int


def read_upload(
    filename: str | None,
    content_type: str | None,
    stream: BinaryIO,
    max_bytes: int,
) -> PendingImage:
    """Validate one uploaded file and read it into memory.

    Raises:
        ValidationError: 422 on a missing name, unsupported type or oversize file.
    """
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    if not name:
        raise ValidationError("Uploaded file has no name.")
    if content_type not in ALLOWED_MIME_TYPES:
        raise ValidationError("Invalid mime type!")
    data = stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationError(f"File too large, the limit is {max_bytes} bytes.")
    return PendingImage(filename=name, content_type=content_type, data=data)


def build_object_key(user_id: str, filename: str, now: datetime | None = None) -> str:
    """Key layout: ``<userId>/<YYYYMMDDHHMMSS>-<filename>``."""
    if now is None:
        now = datetime.now(timezone.utc)
    path = PurePosixPath(filename)
    return f"{user_id}/{now.strftime('%Y%m%d%H%M%S')}-{path.stem}{path.suffix}"


def public_url_for(public_base: str, user_id: str, location: str) -> str:
    """Derive the public URL of a stored object from its bucket location."""
    last_segment = location.rstrip("/").split("/")[-1]
    return f"{public_base}{user_id}/{last_segment}"


class ObjectStore:
    """Thin wrapper over a boto3 S3 client bound to one bucket."""

    def __init__(self, client: Any, bucket: str, endpoint: str | None = None):
        self.client = client
        self.bucket = bucket
        self.endpoint = (endpoint or "").rstrip("/")

    @classmethod
    def from_config(cls, cfg: Config) -> "ObjectStore":
        client = boto3.client(
            "s3",
            endpoint_url=cfg.R2_ENDPOINT,
            region_name=cfg.R2_REGION,
            aws_access_key_id=cfg.R2_ACCESS_KEY_ID,
            aws_secret_access_key=cfg.R2_SECRET_ACCESS_KEY,
            config=BotoConfig(
                signature_version="s3v4",
                connect_timeout=cfg.EXTERNAL_TIMEOUT_SECONDS,
                read_timeout=cfg.EXTERNAL_TIMEOUT_SECONDS,
                retries={"total_max_attempts": 1, "mode": "standard"},
            ),
        )
        return cls(client, cfg.R2_BUCKET_NAME, cfg.R2_ENDPOINT)

    def location_for(self, key: str) -> str:
        quoted = quote(key, safe="/")
        if self.endpoint:
            return f"{self.endpoint}/{self.bucket}/{quoted}"
        return f"https://{self.bucket}.s3.amazonaws.com/{quoted}"

    def put_image(self, user_id: str, image: PendingImage) -> StoredObject:
        """Store one image under the user's prefix.

        Raises:
            UpstreamError: If the bucket rejects the write or is unreachable.
        """
        key = build_object_key(user_id, image.filename)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=image.data,
                ContentType=image.content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("object store put failed key=%s: %s", key, exc)
            raise UpstreamError("Image upload failed, try again later...")
        return StoredObject(
            key=key,
            location=self.location_for(key),
            mimetype=image.content_type,
            size=len(image.data),
        )
