from __future__ import annotations

import io
from datetime import timedelta

import pytest

boto3 = pytest.importorskip("boto3")
moto = pytest.importorskip("moto")

from botocore.exceptions import ClientError
from moto import mock_aws

from core.exceptions import StorageError
from core.storage import ORIGINAL_FILENAME_KEY, S3Storage

BUCKET = "tempdrop-test"


@pytest.fixture()
def s3_client(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=BUCKET)
        yield client


@pytest.fixture()
def s3_storage(s3_client, clock) -> S3Storage:
    return S3Storage(BUCKET, prefix="uploads", client=s3_client, clock=clock)


def _put(storage, clock, key, data=b"payload", ttl=3600, **kwargs):
    return storage.put(key, io.BytesIO(data), expires_at=clock() + timedelta(seconds=ttl), **kwargs)


def test_put_stores_metadata_and_prefix(s3_storage, s3_client, clock):
    uri = _put(
        s3_storage,
        clock,
        "abc/été.txt",
        b"bonjour",
        content_type="text/plain",
        metadata={ORIGINAL_FILENAME_KEY: "été.txt"},
    )

    assert uri == f"s3://{BUCKET}/uploads/abc/été.txt"
    head = s3_client.head_object(Bucket=BUCKET, Key="uploads/abc/été.txt")
    assert head["ContentType"] == "text/plain"
    assert head["Metadata"][ORIGINAL_FILENAME_KEY] == "%C3%A9t%C3%A9.txt"
    assert "expires-at" in head["Metadata"]


def test_get_roundtrip(s3_storage, clock):
    _put(
        s3_storage,
        clock,
        "abc/été.txt",
        b"bonjour",
        content_type="text/plain",
        metadata={ORIGINAL_FILENAME_KEY: "été.txt"},
    )

    stored = s3_storage.get("abc/été.txt")
    assert stored is not None
    assert b"".join(stored.body) == b"bonjour"
    assert stored.original_filename == "été.txt"
    assert stored.content_type == "text/plain"
    assert stored.size == 7
    assert "expires-at" not in stored.metadata
    stored.close()


def test_missing_key_returns_none(s3_storage):
    assert s3_storage.get("nope/missing.txt") is None


def test_expired_object_is_hidden_and_deleted(s3_storage, s3_client, clock):
    _put(s3_storage, clock, "abc/old.txt", ttl=60)
    clock.advance(seconds=120)

    assert s3_storage.get("abc/old.txt") is None
    listing = s3_client.list_objects_v2(Bucket=BUCKET, Prefix="uploads/")
    assert listing.get("KeyCount", 0) == 0


def test_purge_expired(s3_storage, s3_client, clock):
    _put(s3_storage, clock, "a/short.txt", ttl=60)
    _put(s3_storage, clock, "b/long.txt", ttl=7200)
    s3_client.put_object(Bucket=BUCKET, Key="elsewhere/keep.txt", Body=b"x")
    clock.advance(minutes=10)

    assert s3_storage.purge_expired() == 1
    keys = {item["Key"] for item in s3_client.list_objects_v2(Bucket=BUCKET)["Contents"]}
    assert keys == {"uploads/b/long.txt", "elsewhere/keep.txt"}


def test_ensure_lifecycle_installs_rule(s3_storage, s3_client):
    s3_storage.ensure_lifecycle(days=2)
    s3_storage.ensure_lifecycle(days=1)

    rules = s3_client.get_bucket_lifecycle_configuration(Bucket=BUCKET)["Rules"]
    assert len(rules) == 1
    assert rules[0]["Expiration"]["Days"] == 1
    assert rules[0]["Filter"]["Prefix"] == "uploads/"


def test_upload_to_missing_bucket_raises_storage_error(s3_client, clock):
    storage = S3Storage("does-not-exist", client=s3_client, clock=clock)
    with pytest.raises(StorageError):
        _put(storage, clock, "abc/x.txt")


def test_expired_object_is_hidden_when_delete_is_denied(s3_storage, s3_client, clock, monkeypatch):
    _put(s3_storage, clock, "abc/old.txt", ttl=60)
    clock.advance(seconds=120)

    def _denied(**kwargs):
        raise ClientError({"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "DeleteObject")

    monkeypatch.setattr(s3_client, "delete_object", _denied)

    assert s3_storage.get("abc/old.txt") is None
