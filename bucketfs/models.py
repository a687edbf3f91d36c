from __future__ import annotations

import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from bucketfs.io.uri import PathIdentifier

MAX_DELETE_BATCH_SIZE = 1000
MULTIPART_THRESHOLD_BYTES = 5 * 1024 * 1024 * 1024
DEFAULT_PART_SIZE_BYTES = 64 * 1024 * 1024
MIN_PART_SIZE_BYTES = 5 * 1024 * 1024

# Encodings that force forward-only reads.
STREAM_ONLY_ENCODINGS = frozenset({"gzip", "x-gzip", "deflate", "br", "compress", "zstd"})


def is_read_seek_efficient(content_encoding: str | None) -> bool:
    if not content_encoding:
        return True
    return content_encoding.strip().lower() not in STREAM_ONLY_ENCODINGS


@dataclass(frozen=True)
class ObjectSummary:
    bucket: str
    key: str
    size_bytes: int


@dataclass(frozen=True)
class ObjectMetadata:
    """Snapshot of a single metadata lookup."""

    size_bytes: int
    content_encoding: str | None = None
    etag: str | None = None

    @classmethod
    def from_head_response(cls, response: dict) -> ObjectMetadata:
        return cls(
            size_bytes=int(response.get("ContentLength") or 0),
            content_encoding=response.get("ContentEncoding") or None,
            etag=response.get("ETag") or None,
        )

    @property
    def read_seek_efficient(self) -> bool:
        return is_read_seek_efficient(self.content_encoding)


@dataclass(frozen=True)
class ObjectMatch:
    identifier: PathIdentifier
    size_bytes: int
    read_seek_efficient: bool = True


class MatchStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of resolving one path specification.

    ``matches`` is only populated for ``OK``; ``error`` carries the cause for
    ``NOT_FOUND`` and ``ERROR``.
    """

    status: MatchStatus
    matches: tuple[ObjectMatch, ...] = ()
    error: BaseException | None = None

    @classmethod
    def ok(cls, matches: Iterable[ObjectMatch]) -> MatchResult:
        return cls(status=MatchStatus.OK, matches=tuple(matches))

    @classmethod
    def not_found(cls, error: BaseException) -> MatchResult:
        return cls(status=MatchStatus.NOT_FOUND, error=error)

    @classmethod
    def failed(cls, error: BaseException) -> MatchResult:
        return cls(status=MatchStatus.ERROR, error=error)

    @property
    def is_ok(self) -> bool:
        return self.status is MatchStatus.OK

    def metadata(self) -> tuple[ObjectMatch, ...]:
        if self.status is MatchStatus.OK:
            return self.matches
        if self.error is not None:
            raise self.error
        raise RuntimeError(f"Match failed with status {self.status.value}")


class CopyKind(str, Enum):
    ATOMIC = "atomic"
    MULTIPART = "multipart"


@dataclass(frozen=True)
class CopyPlan:
    kind: CopyKind
    size_bytes: int
    part_count: int = 0
    part_size: int = 0

    def part_ranges(self) -> Iterator[tuple[int, int, int]]:
        """Yield ``(part_number, first_byte, last_byte)`` with inclusive ranges."""

        if self.kind is not CopyKind.MULTIPART:
            return
        position = 0
        part_number = 1
        while position < self.size_bytes:
            last = min(self.size_bytes, position + self.part_size) - 1
            yield part_number, position, last
            position = last + 1
            part_number += 1


def plan_copy(
    size_bytes: int,
    *,
    multipart_threshold: int = MULTIPART_THRESHOLD_BYTES,
    part_size: int = DEFAULT_PART_SIZE_BYTES,
) -> CopyPlan:
    if size_bytes < multipart_threshold:
        return CopyPlan(kind=CopyKind.ATOMIC, size_bytes=size_bytes)
    if part_size <= 0:
        raise ValueError("part_size must be positive")
    return CopyPlan(
        kind=CopyKind.MULTIPART,
        size_bytes=size_bytes,
        part_count=math.ceil(size_bytes / part_size),
        part_size=part_size,
    )


@dataclass(frozen=True)
class DeleteBatch:
    bucket: str
    keys: tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.keys) > MAX_DELETE_BATCH_SIZE:
            raise ValueError(
                f"DeleteBatch holds at most {MAX_DELETE_BATCH_SIZE} keys, got {len(self.keys)}"
            )

    def to_request(self, *, quiet: bool = True) -> dict:
        return {"Objects": [{"Key": key} for key in self.keys], "Quiet": quiet}


@dataclass(frozen=True)
class DeleteError:
    key: str
    code: str
    message: str


@dataclass(frozen=True)
class DeleteBatchResult:
    bucket: str
    requested: int
    deleted: tuple[str, ...] = ()
    errors: tuple[DeleteError, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.errors
