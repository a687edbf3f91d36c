"""Object store orchestration: listing, copy, delete and match."""

from bucketfs.store.client import build_s3_client
from bucketfs.store.copy import CopyStrategist
from bucketfs.store.delete import BatchDeleter, plan_delete_batches
from bucketfs.store.filesystem import S3FileSystem
from bucketfs.store.listing import list_all
from bucketfs.store.matching import MatchOrchestrator

__all__ = [
    "BatchDeleter",
    "CopyStrategist",
    "MatchOrchestrator",
    "S3FileSystem",
    "build_s3_client",
    "list_all",
    "plan_delete_batches",
]
