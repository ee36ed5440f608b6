"""
Local Filesystem Blob Store

Maps containers to directories under a root and writes objects through a
temporary file that atomically replaces the target, so readers never see a
partially written report.
"""

import os
import tempfile
from pathlib import Path
from typing import Union

from chargeback.storage.base import BlobStore, WriteResult, join_path


class LocalBlobStore(BlobStore):
    """
    Blob store on the local filesystem.

    Args:
        root: Directory holding one subdirectory per container
        create_containers: Create missing container directories on write
    """

    def __init__(self, root: Union[str, Path], create_containers: bool = True):
        super().__init__()
        self.root = Path(root).resolve()
        self.create_containers = create_containers

    def _resolve(self, container: str, path: str) -> Path:
        target = (self.root / container / path).resolve()
        container_dir = (self.root / container).resolve()
        if container_dir.parent != self.root or container_dir not in target.parents:
            raise ValueError(f"Path escapes the store root: {join_path(container, path)}")
        return target

    def write(self, container: str, path: str, payload: bytes,
              content_type: str = "text/csv") -> WriteResult:
        location = join_path(container, path)

        try:
            target = self._resolve(container, path)
        except ValueError as e:
            return WriteResult.failed(location, str(e), error_code="InvalidPath")

        container_dir = self.root / container
        if not container_dir.is_dir() and not self.create_containers:
            return WriteResult.failed(
                location, f"Container does not exist: {container}", error_code="ContainerNotFound"
            )

        temp_name = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode='wb', dir=target.parent, prefix=f".{target.name}.", suffix=".tmp", delete=False
            ) as temp_file:
                temp_name = temp_file.name
                temp_file.write(payload)
                temp_file.flush()
                os.fsync(temp_file.fileno())
            os.replace(temp_name, target)
            temp_name = None
        except PermissionError as e:
            return WriteResult.failed(location, f"Permission denied: {e}", error_code="PermissionDenied")
        except OSError as e:
            return WriteResult.failed(location, f"Write failed: {e}", error_code="IOError")
        finally:
            if temp_name is not None and os.path.exists(temp_name):
                os.unlink(temp_name)

        self.logger.debug(f"Wrote {len(payload)} bytes to {target}")
        return WriteResult(path=location, bytes_written=len(payload))

    def read(self, container: str, path: str) -> bytes:
        try:
            target = self._resolve(container, path)
        except ValueError:
            raise FileNotFoundError(join_path(container, path))
        if not target.is_file():
            raise FileNotFoundError(join_path(container, path))
        return target.read_bytes()
