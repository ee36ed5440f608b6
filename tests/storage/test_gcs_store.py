"""
Tests for Google Cloud Storage Blob Store

The storage client is mocked; tests cover the upload call and the
classification of storage errors.
"""

from unittest.mock import MagicMock

import pytest
import requests
from google.api_core import exceptions as gcp_exceptions
from google.cloud import storage

from chargeback.models import StageStatus
from chargeback.storage.gcs import GcsBlobStore


def make_client():
    client = MagicMock(spec=storage.Client)
    blob = MagicMock()
    client.bucket.return_value.blob.return_value = blob
    return client, blob


class TestGcsBlobStore:
    """Test GcsBlobStore."""

    def test_write_uploads_object(self):
        client, blob = make_client()
        store = GcsBlobStore(client, timeout=60)

        result = store.write("reportoutput", "dailyChargeBackReport.csv", b"a,b\n")

        assert result.succeeded
        assert result.path == "reportoutput/dailyChargeBackReport.csv"
        client.bucket.assert_called_once_with("reportoutput")
        client.bucket.return_value.blob.assert_called_once_with("dailyChargeBackReport.csv")
        blob.upload_from_string.assert_called_once_with(b"a,b\n", content_type="text/csv", timeout=60)

    def test_write_without_timeout(self):
        client, blob = make_client()

        GcsBlobStore(client).write("c", "p.csv", b"x")

        blob.upload_from_string.assert_called_once_with(b"x", content_type="text/csv")

    @pytest.mark.parametrize("error, status, code", [
        (gcp_exceptions.DeadlineExceeded("slow"), StageStatus.TIMED_OUT, "Timeout"),
        (requests.exceptions.ReadTimeout("slow"), StageStatus.TIMED_OUT, "Timeout"),
        (gcp_exceptions.Forbidden("denied"), StageStatus.FAILED, "Forbidden"),
        (gcp_exceptions.NotFound("no bucket"), StageStatus.FAILED, "NotFound"),
        (gcp_exceptions.InternalServerError("oops"), StageStatus.FAILED, "InternalServerError"),
        (requests.exceptions.ConnectionError("refused"), StageStatus.FAILED, "ConnectionError"),
    ])
    def test_write_errors(self, error, status, code):
        client, blob = make_client()
        blob.upload_from_string.side_effect = error

        result = GcsBlobStore(client).write("c", "p.csv", b"x")

        assert result.status == status
        assert result.error_code == code
        assert result.path == "c/p.csv"

    def test_read(self):
        client, blob = make_client()
        blob.download_as_bytes.return_value = b"content"

        assert GcsBlobStore(client).read("c", "p.csv") == b"content"

    def test_read_missing(self):
        client, blob = make_client()
        blob.download_as_bytes.side_effect = gcp_exceptions.NotFound("missing")

        with pytest.raises(FileNotFoundError):
            GcsBlobStore(client).read("c", "p.csv")
