from __future__ import annotations

from datetime import datetime
from typing import Any, BinaryIO, Optional
from urllib.parse import quote, unquote

import boto3
from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from core.exceptions import StorageError
from core.storage.base import (
    CHUNK_SIZE,
    EXPIRES_AT_KEY,
    Clock,
    StoredObject,
    is_expired,
    parse_instant,
    utcnow,
)

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}
LIFECYCLE_RULE_ID = "tempdrop-expire-uploads"


def _is_missing(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code")) in _MISSING_CODES


class S3Storage:
    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        *,
        client: Any = None,
        clock: Clock = utcnow,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        if client is None:
            session = boto3.session.Session(region_name=region) if region else boto3.session.Session()
            client = session.client("s3", endpoint_url=endpoint_url)
        self.client = client
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    def put(
        self,
        key: str,
        stream: BinaryIO,
        *,
        expires_at: datetime,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        s3_key = self._key(key)
        # S3 user metadata only carries ASCII
        user_metadata = {name: quote(value, safe="") for name, value in (metadata or {}).items()}
        user_metadata[EXPIRES_AT_KEY] = expires_at.isoformat()
        extra_args: dict[str, Any] = {"Metadata": user_metadata, "Expires": expires_at}
        if content_type:
            extra_args["ContentType"] = content_type
        try:
            self.client.upload_fileobj(stream, self.bucket, s3_key, ExtraArgs=extra_args)
        except (Boto3Error, BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 upload failed: {exc}", {"key": s3_key}) from exc
        return f"s3://{self.bucket}/{s3_key}"

    def get(self, key: str) -> StoredObject | None:
        s3_key = self._key(key)
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=s3_key)
        except ClientError as exc:
            if _is_missing(exc):
                return None
            raise StorageError(f"S3 download failed: {exc}", {"key": s3_key}) from exc
        except BotoCoreError as exc:
            raise StorageError(f"S3 download failed: {exc}", {"key": s3_key}) from exc

        body = response["Body"]
        raw_metadata = response.get("Metadata") or {}
        expires_at = parse_instant(raw_metadata.get(EXPIRES_AT_KEY))
        if is_expired(expires_at, self._clock()):
            body.close()
            logger.debug("Object {key} expired at {expires_at}", key=s3_key, expires_at=expires_at)
            try:
                self.delete(key)
            except StorageError as exc:
                logger.warning("Could not delete expired object {key}: {error}", key=s3_key, error=exc.message)
            return None

        metadata = {
            name: unquote(value)
            for name, value in raw_metadata.items()
            if name != EXPIRES_AT_KEY
        }
        return StoredObject(
            key=key,
            body=body.iter_chunks(CHUNK_SIZE),
            content_type=response.get("ContentType"),
            metadata=metadata,
            expires_at=expires_at,
            size=response.get("ContentLength"),
            _close=body.close,
        )

    def delete(self, key: str) -> None:
        s3_key = self._key(key)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=s3_key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 delete failed: {exc}", {"key": s3_key}) from exc

    def purge_expired(self) -> int:
        now = self._clock()
        purged = 0
        paginator = self.client.get_paginator("list_objects_v2")
        list_args: dict[str, Any] = {"Bucket": self.bucket}
        if self.prefix:
            list_args["Prefix"] = f"{self.prefix}/"
        try:
            for page in paginator.paginate(**list_args):
                for entry in page.get("Contents", []):
                    head = self.client.head_object(Bucket=self.bucket, Key=entry["Key"])
                    expires_at = parse_instant((head.get("Metadata") or {}).get(EXPIRES_AT_KEY))
                    if is_expired(expires_at, now):
                        self.client.delete_object(Bucket=self.bucket, Key=entry["Key"])
                        purged += 1
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 purge failed: {exc}", {"bucket": self.bucket}) from exc
        return purged

    def ensure_lifecycle(self, days: int = 1) -> None:
        """Install a bucket lifecycle rule expiring uploads under the prefix.

        S3 lifecycle rules work in whole days, so the rule only bounds how long
        expired bytes linger; reads still honour the exact ``expires-at``.
        """
        rule_filter = {"Prefix": f"{self.prefix}/" if self.prefix else ""}
        rule = {
            "ID": LIFECYCLE_RULE_ID,
            "Filter": rule_filter,
            "Status": "Enabled",
            "Expiration": {"Days": days},
        }
        try:
            try:
                existing = self.client.get_bucket_lifecycle_configuration(Bucket=self.bucket).get("Rules", [])
            except ClientError as exc:
                if exc.response.get("Error", {}).get("Code") != "NoSuchLifecycleConfiguration":
                    raise
                existing = []
            rules = [item for item in existing if item.get("ID") != LIFECYCLE_RULE_ID]
            rules.append(rule)
            self.client.put_bucket_lifecycle_configuration(
                Bucket=self.bucket,
                LifecycleConfiguration={"Rules": rules},
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Could not configure bucket lifecycle: {exc}", {"bucket": self.bucket}) from exc
        logger.info("Lifecycle rule {rule} set on bucket {bucket} ({days} day(s))", rule=LIFECYCLE_RULE_ID, bucket=self.bucket, days=days)


__all__ = ["S3Storage"]
