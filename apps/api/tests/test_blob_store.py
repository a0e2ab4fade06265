"""Tests for blob store backends."""

from unittest.mock import MagicMock

import pytest
from minio.error import S3Error

from actas_api.storage import BlobNotFound, LocalBlobStore
from actas_api.storage.s3 import S3BlobStore


class FakeS3Error(S3Error):
    """S3Error carrying only a code."""

    def __init__(self, code):
        Exception.__init__(self, code)
        self._fake_code = code

    @property
    def code(self):
        return self._fake_code


class TestLocalBlobStore:
    """Local filesystem backend."""

    def test_put_get_delete(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))
        store.put("actas/1/a.pdf", b"%PDF-1.4")

        assert store.exists("actas/1/a.pdf")
        assert store.get("actas/1/a.pdf") == b"%PDF-1.4"

        store.delete("actas/1/a.pdf")
        assert not store.exists("actas/1/a.pdf")

    def test_get_missing_raises(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))
        with pytest.raises(BlobNotFound):
            store.get("actas/1/missing.pdf")

    def test_delete_missing_raises(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))
        with pytest.raises(BlobNotFound):
            store.delete("actas/1/missing.pdf")

    @pytest.mark.parametrize(
        "path",
        ["../outside.txt", "/etc/passwd", "actas/../../outside.txt", "actas//x", "actas\\x", ""],
    )
    def test_rejects_escaping_paths(self, tmp_path, path):
        store = LocalBlobStore(str(tmp_path / "root"))
        with pytest.raises(ValueError):
            store.put(path, b"x")

    def test_has_no_direct_upload(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))
        assert store.supports_direct_upload is False
        assert store.presign_put("actas/1/a.pdf", "application/pdf", 600) is None


class TestS3BlobStore:
    """MinIO backend against a mocked client."""

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.bucket_exists.return_value = True
        return client

    def test_creates_missing_bucket(self, client):
        client.bucket_exists.return_value = False
        S3BlobStore(client, "actas-documentos")
        client.make_bucket.assert_called_once_with("actas-documentos")

    def test_put_streams_bytes(self, client):
        store = S3BlobStore(client, "actas-documentos")
        store.put("actas/1/a.pdf", b"data", content_type="application/pdf")

        args, kwargs = client.put_object.call_args
        assert args[0] == "actas-documentos"
        assert args[1] == "actas/1/a.pdf"
        assert kwargs["length"] == 4
        assert kwargs["content_type"] == "application/pdf"

    def test_get_reads_and_releases(self, client):
        response = MagicMock()
        response.read.return_value = b"data"
        client.get_object.return_value = response
        store = S3BlobStore(client, "actas-documentos")

        assert store.get("actas/1/a.pdf") == b"data"
        response.close.assert_called_once()
        response.release_conn.assert_called_once()

    def test_get_missing_maps_to_blob_not_found(self, client):
        client.get_object.side_effect = FakeS3Error("NoSuchKey")
        store = S3BlobStore(client, "actas-documentos")

        with pytest.raises(BlobNotFound):
            store.get("actas/1/a.pdf")

    def test_exists_false_on_error(self, client):
        client.stat_object.side_effect = FakeS3Error("NoSuchKey")
        store = S3BlobStore(client, "actas-documentos")
        assert store.exists("actas/1/a.pdf") is False

    def test_presign_put(self, client):
        client.presigned_put_object.return_value = "https://minio.example/put?sig=1"
        store = S3BlobStore(client, "actas-documentos")

        url = store.presign_put("actas/1/a.pdf", "application/pdf", 600)

        assert url == "https://minio.example/put?sig=1"
        assert store.supports_direct_upload is True
        _, kwargs = client.presigned_put_object.call_args
        assert kwargs["expires"].total_seconds() == 600
