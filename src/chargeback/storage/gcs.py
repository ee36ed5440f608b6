"""
Google Cloud Storage Blob Store

Uploads the report as a single object. GCS object uploads are atomic: the new
generation becomes visible only once the upload completes, and it replaces
the previous object at the same name.
"""

from typing import Optional

import requests
from google.api_core import exceptions as gcp_exceptions
from google.cloud import storage

from chargeback.models import StageStatus
from chargeback.storage.base import BlobStore, WriteResult, join_path


class GcsBlobStore(BlobStore):
    """
    Blob store over an authenticated ``storage.Client``.

    Containers map to buckets and paths to object names.
    """

    def __init__(self, client: storage.Client, timeout: Optional[float] = None):
        """
        Args:
            client: Authenticated storage client
            timeout: Per-request timeout passed to the upload
        """
        super().__init__()
        self.client = client
        self.timeout = timeout

    def write(self, container: str, path: str, payload: bytes,
              content_type: str = "text/csv") -> WriteResult:
        location = join_path(container, path)
        kwargs = {"content_type": content_type}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        try:
            blob = self.client.bucket(container).blob(path)
            blob.upload_from_string(payload, **kwargs)
        except (gcp_exceptions.DeadlineExceeded, requests.exceptions.Timeout) as e:
            return WriteResult.failed(
                location, f"Upload timed out: {e}", status=StageStatus.TIMED_OUT, error_code="Timeout"
            )
        except (gcp_exceptions.Forbidden, gcp_exceptions.Unauthorized) as e:
            return WriteResult.failed(
                location, f"Not authorized to write {location}: {e.message}", error_code=type(e).__name__
            )
        except gcp_exceptions.NotFound as e:
            return WriteResult.failed(
                location, f"Bucket not found: {container} ({e.message})", error_code="NotFound"
            )
        except gcp_exceptions.GoogleAPIError as e:
            return WriteResult.failed(location, f"Storage error: {e}", error_code=type(e).__name__)
        except requests.exceptions.ConnectionError as e:
            return WriteResult.failed(location, f"Storage unreachable: {e}", error_code="ConnectionError")

        self.logger.info(f"Uploaded {len(payload)} bytes to gs://{location}")
        return WriteResult(path=location, bytes_written=len(payload))

    def read(self, container: str, path: str) -> bytes:
        blob = self.client.bucket(container).blob(path)
        try:
            return blob.download_as_bytes()
        except gcp_exceptions.NotFound:
            raise FileNotFoundError(join_path(container, path))
