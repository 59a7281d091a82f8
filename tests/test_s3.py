from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from django.core.exceptions import ImproperlyConfigured

from videos import s3
from videos.exceptions import UploadError


def test_is_configured_with_test_settings():
    assert s3.is_configured() is True


@pytest.mark.parametrize("name", ["S3_ENDPOINT_URL", "S3_BUCKET", "S3_ACCESS_KEY", "S3_SECRET_KEY"])
def test_is_configured_requires_every_setting(settings, name):
    setattr(settings, name, "")
    assert s3.is_configured() is False


def test_get_s3_client_refuses_when_unconfigured(settings):
    settings.S3_BUCKET = ""
    with pytest.raises(ImproperlyConfigured, match="S3 is not configured"):
        s3.get_s3_client()


def test_get_s3_client_uses_path_style_endpoint():
    client = s3.get_s3_client()
    assert client.meta.endpoint_url == "http://s3.test:9000"
    assert client.meta.config.s3["addressing_style"] == "path"


@patch("videos.s3.get_s3_client")
def test_upload_file_streams_with_content_type(get_client, tmp_path):
    local = tmp_path / "clip.mp4"
    local.write_bytes(b"abc")
    client = get_client.return_value

    s3.upload_file(local, "videos/abc/abc.mp4", "video/mp4")

    client.upload_fileobj.assert_called_once()
    args, kwargs = client.upload_fileobj.call_args
    assert args[1:] == ("vidvault-test", "videos/abc/abc.mp4")
    assert kwargs["ExtraArgs"] == {"ContentType": "video/mp4"}
    assert kwargs["Config"] is s3.TRANSFER_CONFIG


@patch("videos.s3.get_s3_client")
def test_upload_client_error_becomes_upload_error(get_client, tmp_path):
    local = tmp_path / "clip.mp4"
    local.write_bytes(b"abc")
    get_client.return_value.upload_fileobj.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject"
    )

    with pytest.raises(UploadError, match="videos/abc/abc.mp4"):
        s3.upload_file(local, "videos/abc/abc.mp4", "video/mp4")


def test_presigned_get_prefers_public_url(settings):
    settings.S3_PUBLIC_URL = "https://media.example.com"
    assert s3.create_presigned_get("videos/a/a.mp4") == "https://media.example.com/videos/a/a.mp4"


@patch("videos.s3.get_presign_client")
def test_presigned_get_signs_with_default_ttl(get_client, settings):
    settings.S3_PRESIGN_EXPIRE_SECONDS = 600
    get_client.return_value.generate_presigned_url.return_value = "https://signed"

    assert s3.create_presigned_get("videos/a/a.mp4") == "https://signed"
    get_client.return_value.generate_presigned_url.assert_called_once_with(
        ClientMethod="get_object",
        Params={"Bucket": "vidvault-test", "Key": "videos/a/a.mp4"},
        ExpiresIn=600,
        HttpMethod="GET",
    )


def test_presigned_get_generates_real_signature():
    url = s3.create_presigned_get("videos/a/a.mp4", expires=120)
    assert url.startswith("http://s3.test:9000/vidvault-test/videos/a/a.mp4?")
    assert "X-Amz-Expires=120" in url


@patch("videos.s3.get_s3_client")
def test_delete_object(get_client):
    s3.delete_object("videos/a/a.mp4")
    get_client.return_value.delete_object.assert_called_once_with(Bucket="vidvault-test", Key="videos/a/a.mp4")


def test_storage_adapter_delegates(tmp_path):
    storage = s3.S3Storage()
    with patch("videos.s3.upload_file") as upload, patch("videos.s3.delete_object") as delete:
        storage.upload("k", tmp_path / "f", "video/mp4")
        storage.delete("k")

    upload.assert_called_once_with(tmp_path / "f", "k", "video/mp4")
    delete.assert_called_once_with("k")
    assert storage.configured() is True
    assert storage.bucket == "vidvault-test"


def test_storage_adapter_presigned_url_passes_ttl():
    with patch("videos.s3.create_presigned_get", MagicMock(return_value="u")) as presign:
        assert s3.S3Storage().presigned_url("k", 30) == "u"
    presign.assert_called_once_with("k", 30)
