import boto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from .exceptions import UploadError

# 10MB parts, 4 in flight
TRANSFER_CONFIG = TransferConfig(
    multipart_chunksize=10 * 1024 * 1024,
    max_concurrency=4,
)


def is_configured() -> bool:
    return bool(
        settings.S3_ENDPOINT_URL
        and settings.S3_BUCKET
        and settings.S3_ACCESS_KEY
        and settings.S3_SECRET_KEY
    )


def get_bucket() -> str:
    return settings.S3_BUCKET


def _client(endpoint_url: str):
    if not is_configured():
        raise ImproperlyConfigured(
            "S3 is not configured. Set S3_ENDPOINT_URL, S3_BUCKET, S3_ACCESS_KEY, S3_SECRET_KEY in .env"
        )
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=endpoint_url,
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        ),
    )


def get_s3_client():
    """
    SDK client for server-side upload/delete.
    """
    return _client(settings.S3_ENDPOINT_URL)


def get_presign_client():
    """
    Separate client for generating presigned URLs that the browser will call.
    Uses S3_PUBLIC_ENDPOINT so the URL host matches what the client reaches.
    """
    return _client(settings.S3_PUBLIC_ENDPOINT or settings.S3_ENDPOINT_URL)


def upload_fileobj(key: str, fileobj, content_type: str | None = None):
    """
    Stream a file-like object to the bucket as a multipart upload.
    """
    s3 = get_s3_client()
    extra = {"ContentType": content_type} if content_type else None
    try:
        s3.upload_fileobj(fileobj, settings.S3_BUCKET, key, ExtraArgs=extra, Config=TRANSFER_CONFIG)
    except (BotoCoreError, ClientError) as e:
        raise UploadError(f"Upload of {key} failed: {e}") from e


def upload_file(local_path, key: str, content_type: str | None = None):
    """
    Upload a single local file without reading it into memory.
    """
    with open(local_path, "rb") as fh:
        upload_fileobj(key, fh, content_type)


def create_presigned_get(key: str, expires: int | None = None) -> str:
    """
    Playback URL for an object. A public base URL (e.g. an R2 custom domain)
    wins over signing.
    """
    if settings.S3_PUBLIC_URL:
        return f"{settings.S3_PUBLIC_URL}/{key}"

    s3 = get_presign_client()
    return s3.generate_presigned_url(
        ClientMethod="get_object",
        Params={"Bucket": settings.S3_BUCKET, "Key": key},
        ExpiresIn=expires or settings.S3_PRESIGN_EXPIRE_SECONDS,
        HttpMethod="GET",
    )


def delete_object(key: str):
    s3 = get_s3_client()
    s3.delete_object(Bucket=settings.S3_BUCKET, Key=key)


class S3Storage:
    """ObjectStore handed to the download worker."""

    def configured(self) -> bool:
        return is_configured()

    @property
    def bucket(self) -> str:
        return get_bucket()

    def upload(self, key: str, local_path, content_type: str) -> None:
        upload_file(local_path, key, content_type)

    def delete(self, key: str) -> None:
        delete_object(key)

    def presigned_url(self, key: str, ttl: int | None = None) -> str:
        return create_presigned_get(key, ttl)
