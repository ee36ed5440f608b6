"""
Blob Storage

Destinations for the published report.
"""

from chargeback.storage.base import BlobStore, WriteResult, join_path
from chargeback.storage.local import LocalBlobStore
from chargeback.storage.memory import InMemoryBlobStore

__all__ = [
    'BlobStore',
    'WriteResult',
    'join_path',
    'LocalBlobStore',
    'InMemoryBlobStore',
]
