"""
In-Memory Blob Store

Dictionary-backed store for tests and dry runs.
"""

from typing import Dict, List, Tuple

from chargeback.storage.base import BlobStore, WriteResult, join_path


class InMemoryBlobStore(BlobStore):
    """Blob store keeping objects in a dictionary keyed by (container, path)."""

    def __init__(self):
        super().__init__()
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.content_types: Dict[Tuple[str, str], str] = {}
        self.writes: List[str] = []

    def write(self, container: str, path: str, payload: bytes,
              content_type: str = "text/csv") -> WriteResult:
        self.objects[(container, path)] = bytes(payload)
        self.content_types[(container, path)] = content_type
        location = join_path(container, path)
        self.writes.append(location)
        return WriteResult(path=location, bytes_written=len(payload))

    def read(self, container: str, path: str) -> bytes:
        try:
            return self.objects[(container, path)]
        except KeyError:
            raise FileNotFoundError(join_path(container, path))
