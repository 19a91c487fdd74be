"""Unit tests for the object storage client.

Uses unittest.mock for the boto3 client.
"""

from io import BytesIO
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from blogforge.integrations.s3 import (
    S3AuthError,
    S3Client,
    S3Error,
    S3NotFoundError,
    build_public_url,
)


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "Operation")


@pytest.fixture
def boto() -> MagicMock:
    return MagicMock()


@pytest.fixture
def storage(boto: MagicMock) -> S3Client:
    client = S3Client(
        bucket="images",
        access_key="ak",
        secret_key="sk",
        public_domain="https://img.example.com/",
        max_retries=2,
        retry_delay=0,
    )
    client._client = boto
    return client


class TestBuildPublicUrl:
    def test_public_domain_wins(self) -> None:
        assert (
            build_public_url("/featured-images/a.png", "https://img.example.com/", "https://app.test")
            == "https://img.example.com/featured-images/a.png"
        )

    def test_app_proxy(self) -> None:
        assert build_public_url("k.png", None, "https://app.test/") == "https://app.test/api/images/k.png"

    def test_localhost_fallback(self) -> None:
        assert build_public_url("k.png") == "http://localhost:3000/api/images/k.png"


class TestS3Client:
    async def test_put_object(self, storage: S3Client, boto: MagicMock) -> None:
        key = await storage.put_object("featured-images/a/b.png", b"data", "image/png")

        assert key == "featured-images/a/b.png"
        boto.put_object.assert_called_once_with(
            Bucket="images", Key="featured-images/a/b.png", Body=b"data", ContentType="image/png"
        )
        assert storage.public_url(key) == "https://img.example.com/featured-images/a/b.png"

    async def test_get_object(self, storage: S3Client, boto: MagicMock) -> None:
        boto.get_object.return_value = {"Body": BytesIO(b"png"), "ContentType": "image/png"}
        assert await storage.get_object("k") == (b"png", "image/png")

    async def test_missing_object_is_not_retried(self, storage: S3Client, boto: MagicMock) -> None:
        boto.get_object.side_effect = _client_error("NoSuchKey")
        with pytest.raises(S3NotFoundError):
            await storage.get_object("missing")
        assert boto.get_object.call_count == 1

    async def test_auth_error(self, storage: S3Client, boto: MagicMock) -> None:
        boto.put_object.side_effect = _client_error("AccessDenied")
        with pytest.raises(S3AuthError):
            await storage.put_object("k", b"x")

    async def test_retries_then_raises(self, storage: S3Client, boto: MagicMock) -> None:
        boto.put_object.side_effect = _client_error("InternalError")
        with pytest.raises(S3Error):
            await storage.put_object("k", b"x")
        assert boto.put_object.call_count == 2

    async def test_unconfigured_storage(self) -> None:
        client = S3Client(bucket="images", access_key="ak", secret_key="sk")
        client._available = False
        assert not client.available
        with pytest.raises(S3Error):
            await client.put_object("k", b"x")
