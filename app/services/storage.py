from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import Settings, settings
from app.core.errors import StoreError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    async def upload(self, object_key: str, data: bytes, media_type: str) -> None: ...

    def public_url(self, object_key: str) -> str: ...

    async def remove(self, object_key: str) -> None: ...


class S3BlobStore:
    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings
        self.client = boto3.client(
            "s3",
            endpoint_url=self.config.s3_endpoint_url,
            aws_access_key_id=self.config.s3_access_key,
            aws_secret_access_key=self.config.s3_secret_key,
            region_name=self.config.s3_region,
            config=Config(signature_version="s3v4"),
        )
        self._bucket_checked = False

    def _ensure_bucket(self) -> None:
        if self._bucket_checked:
            return

        bucket = self.config.s3_bucket
        try:
            self.client.head_bucket(Bucket=bucket)
            self._bucket_checked = True
            return
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", "")).lower()
            if code not in {"404", "nosuchbucket", "notfound"}:
                raise

        create_args = {"Bucket": bucket}
        region = str(self.config.s3_region or "").strip()
        if region and region != "us-east-1":
            create_args["CreateBucketConfiguration"] = {"LocationConstraint": region}
        self.client.create_bucket(**create_args)
        self._bucket_checked = True

    def _put(self, object_key: str, data: bytes, media_type: str) -> None:
        self._ensure_bucket()
        self.client.put_object(
            Bucket=self.config.s3_bucket,
            Key=object_key,
            Body=data,
            ContentType=media_type,
        )

    def _delete(self, object_key: str) -> None:
        self.client.delete_object(Bucket=self.config.s3_bucket, Key=object_key)

    async def upload(self, object_key: str, data: bytes, media_type: str) -> None:
        try:
            await asyncio.to_thread(self._put, object_key, data, media_type)
        except (BotoCoreError, ClientError) as exc:
            logger.warning("Upload of %s failed: %s", object_key, exc)
            raise StoreError(str(exc)) from exc

    def public_url(self, object_key: str) -> str:
        return f"{self.config.public_storage_base}/{object_key}"

    async def remove(self, object_key: str) -> None:
        try:
            await asyncio.to_thread(self._delete, object_key)
        except (BotoCoreError, ClientError) as exc:
            logger.warning("Removal of %s failed: %s", object_key, exc)
            raise StoreError(str(exc)) from exc
