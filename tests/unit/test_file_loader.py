from pathlib import Path
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from underwriter.database.models import JobFileRecord
from underwriter.processor.exceptions import FileReadError, UnsupportedStorageError
from underwriter.processor.file_loader import FileLoader, split_locator


def _make_file(storage_locator: str) -> JobFileRecord:
    return JobFileRecord(
        id="file-1",
        job_id="job-1",
        user_id="owner-1",
        original_filename="rent_roll.pdf",
        mime_type="application/pdf",
        storage_locator=storage_locator,
    )


class TestSplitLocator:
    def test_local(self) -> None:
        assert split_locator("local://uploads/a/b.pdf") == ("local://", "uploads", "a/b.pdf")

    def test_s3(self) -> None:
        assert split_locator("s3://bucket/key.csv") == ("s3://", "bucket", "key.csv")

    def test_unknown_scheme(self) -> None:
        with pytest.raises(UnsupportedStorageError, match="not supported"):
            split_locator("gs://bucket/key")

    def test_missing_key(self) -> None:
        with pytest.raises(UnsupportedStorageError, match="Malformed"):
            split_locator("local://uploads")


class TestLocalFiles:
    def test_returns_bytes(self, tmp_path: Path) -> None:
        (tmp_path / "uploads" / "job-1").mkdir(parents=True)
        (tmp_path / "uploads" / "job-1" / "rr.pdf").write_bytes(b"%PDF test content")
        loader = FileLoader(files_root=tmp_path)

        assert loader.load(_make_file("local://uploads/job-1/rr.pdf")) == b"%PDF test content"

    def test_missing_file(self, tmp_path: Path) -> None:
        loader = FileLoader(files_root=tmp_path)

        with pytest.raises(FileReadError, match="not readable"):
            loader.load(_make_file("local://uploads/missing.pdf"))

    def test_path_traversal_is_rejected(self, tmp_path: Path) -> None:
        loader = FileLoader(files_root=tmp_path / "root")

        with pytest.raises(UnsupportedStorageError, match="escapes"):
            loader.load(_make_file("local://uploads/../../secret.txt"))


class TestS3Files:
    def test_reads_object(self) -> None:
        client = MagicMock()
        client.get_object.return_value = {"Body": MagicMock(read=MagicMock(return_value=b"xlsx"))}
        loader = FileLoader(s3_client=client)

        assert loader.load(_make_file("s3://uploads/job-1/rr.xlsx")) == b"xlsx"
        client.get_object.assert_called_once_with(Bucket="uploads", Key="job-1/rr.xlsx")

    def test_client_error(self) -> None:
        client = MagicMock()
        client.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject"
        )
        loader = FileLoader(s3_client=client)

        with pytest.raises(FileReadError, match="NoSuchKey"):
            loader.load(_make_file("s3://uploads/rr.xlsx"))
