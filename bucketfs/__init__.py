"""Stable public imports for `bucketfs`.

Lower-level helpers (listing, batching, request comparators) live in their
submodules and should be imported from there explicitly.
"""

from bucketfs.errors import (
    AccessDenied,
    BucketFSError,
    MalformedAddress,
    ObjectNotFound,
    SettingsError,
    TransportFailure,
)
from bucketfs.io import PathIdentifier, translate
from bucketfs.models import (
    CopyKind,
    CopyPlan,
    DeleteBatch,
    DeleteBatchResult,
    MatchResult,
    MatchStatus,
    ObjectMatch,
    ObjectMetadata,
    plan_copy,
)
from bucketfs.settings import (
    EncryptionSettings,
    FileSystemSettings,
    load_settings,
    resolve_settings,
)
from bucketfs.store import (
    BatchDeleter,
    CopyStrategist,
    MatchOrchestrator,
    S3FileSystem,
    build_s3_client,
)

__all__ = [
    "AccessDenied",
    "BatchDeleter",
    "BucketFSError",
    "CopyKind",
    "CopyPlan",
    "CopyStrategist",
    "DeleteBatch",
    "DeleteBatchResult",
    "EncryptionSettings",
    "FileSystemSettings",
    "MalformedAddress",
    "MatchOrchestrator",
    "MatchResult",
    "MatchStatus",
    "ObjectMatch",
    "ObjectMetadata",
    "ObjectNotFound",
    "PathIdentifier",
    "S3FileSystem",
    "SettingsError",
    "TransportFailure",
    "build_s3_client",
    "load_settings",
    "plan_copy",
    "resolve_settings",
    "translate",
]
