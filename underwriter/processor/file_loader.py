from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from underwriter.database.models import JobFileRecord
from underwriter.processor.exceptions import FileReadError, UnsupportedStorageError

LOCAL_SCHEME = "local://"
S3_SCHEME = "s3://"


def split_locator(locator: str) -> tuple[str, str, str]:
    """Split 'scheme://bucket/key' into (scheme, bucket, key).

    Raises:
        UnsupportedStorageError: for unknown schemes or locators without a key.
    """
    for scheme in (LOCAL_SCHEME, S3_SCHEME):
        if locator.startswith(scheme):
            bucket, _, key = locator[len(scheme):].partition("/")
            if not bucket or not key:
                raise UnsupportedStorageError(f"Malformed storage locator '{locator}'")
            return scheme, bucket, key
    raise UnsupportedStorageError(f"Storage locator '{locator}' is not supported")


class FileLoader:
    """Reads uploaded file bytes from local disk or S3."""

    FILES_ROOT = Path("/app/files")

    def __init__(
        self,
        files_root: Path | None = None,
        *,
        region_name: str = "us-east-1",
        s3_client: Any | None = None,
    ) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT
        self._region_name = region_name
        self._s3_client = s3_client

    @property
    def s3_client(self) -> Any:
        if self._s3_client is None:
            self._s3_client = boto3.client("s3", region_name=self._region_name)
        return self._s3_client

    def load(self, file: JobFileRecord) -> bytes:
        """Read the bytes of an uploaded file.

        Raises:
            UnsupportedStorageError: if the locator scheme is unknown.
            FileReadError: if the object cannot be read.
        """
        scheme, bucket, key = split_locator(file.storage_locator)
        if scheme == LOCAL_SCHEME:
            return self._load_local(bucket, key)
        return self._load_s3(bucket, key)

    def resolve_local_path(self, bucket: str, key: str) -> Path:
        root = self._files_root.resolve()
        path = (root / bucket / key).resolve()
        if not path.is_relative_to(root):
            raise UnsupportedStorageError(f"Path escapes files root: {bucket}/{key}")
        return path

    def _load_local(self, bucket: str, key: str) -> bytes:
        path = self.resolve_local_path(bucket, key)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"File not readable: {path}: {exc}") from exc

    def _load_s3(self, bucket: str, key: str) -> bytes:
        try:
            response = self.s3_client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise FileReadError(f"S3 object s3://{bucket}/{key} not readable: {exc}") from exc
