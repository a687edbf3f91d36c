from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any

from bucketfs.errors import MalformedAddress
from bucketfs.io.uri import PathIdentifier
from bucketfs.models import CopyPlan, DeleteBatchResult, MatchResult
from bucketfs.observability import log_event
from bucketfs.settings import FileSystemSettings, resolve_settings
from bucketfs.store.client import build_s3_client
from bucketfs.store.copy import CopyStrategist
from bucketfs.store.delete import BatchDeleter
from bucketfs.store.matching import MatchOrchestrator

logger = logging.getLogger(__name__)


def _as_identifier(value: PathIdentifier | str, scheme: str) -> PathIdentifier:
    if isinstance(value, PathIdentifier):
        return value
    return PathIdentifier.from_uri(value, scheme=scheme)


class S3FileSystem:
    """File-system view over an S3-compatible store.

    The worker pool is created once here and shared by every ``match`` and batch
    ``copy`` call until :meth:`close`.
    """

    def __init__(self, client: Any, settings: FileSystemSettings | None = None) -> None:
        self.settings = settings or FileSystemSettings()
        self._client = client
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.thread_pool_size, thread_name_prefix="bucketfs"
        )
        self._matcher = MatchOrchestrator(
            client,
            self._executor,
            scheme=self.settings.scheme,
            encryption=self.settings.encryption,
        )
        self._copier = CopyStrategist(
            client,
            multipart_threshold=self.settings.multipart_threshold,
            part_size=self.settings.part_size,
            encryption=self.settings.encryption,
            storage_class=self.settings.storage_class,
            part_workers=self.settings.copy_part_workers,
        )
        self._deleter = BatchDeleter(client)

    @classmethod
    def from_settings(cls, settings: FileSystemSettings | None = None) -> S3FileSystem:
        settings = settings or resolve_settings()
        return cls(build_s3_client(settings), settings)

    @property
    def client(self) -> Any:
        return self._client

    @property
    def scheme(self) -> str:
        return self.settings.scheme

    def get_scheme(self) -> str:
        return self.scheme

    def match(self, path_specs: Sequence[str]) -> list[MatchResult]:
        return self._matcher.match(path_specs)

    def match_new_resource(self, spec: str, is_directory: bool) -> PathIdentifier:
        if is_directory:
            if not spec.endswith("/"):
                spec += "/"
        elif spec.endswith("/"):
            raise MalformedAddress(f"Expected a file path but {spec} ends with '/'")
        return PathIdentifier.from_uri(spec, scheme=self.scheme)

    def copy_one(
        self, source: PathIdentifier | str, destination: PathIdentifier | str
    ) -> CopyPlan:
        return self._copier.copy(
            _as_identifier(source, self.scheme), _as_identifier(destination, self.scheme)
        )

    def copy(
        self,
        sources: Sequence[PathIdentifier | str],
        destinations: Sequence[PathIdentifier | str],
    ) -> list[CopyPlan]:
        """Copy ``sources[i]`` to ``destinations[i]`` on the shared pool.

        Every copy runs to completion; the first failure (in input order) is raised
        afterwards.
        """

        if len(sources) != len(destinations):
            raise ValueError(
                f"Number of sources {len(sources)} must equal number of destinations "
                f"{len(destinations)}"
            )
        pairs = [
            (_as_identifier(src, self.scheme), _as_identifier(dst, self.scheme))
            for src, dst in zip(sources, destinations)
        ]
        futures = [self._executor.submit(self._copier.copy, src, dst) for src, dst in pairs]
        wait(futures)
        for future in futures:
            exc = future.exception()
            if exc is not None:
                raise exc
        log_event(logger, "bucketfs.copy.done", objects=len(pairs))
        return [future.result() for future in futures]

    def rename(
        self,
        sources: Sequence[PathIdentifier | str],
        destinations: Sequence[PathIdentifier | str],
    ) -> list[DeleteBatchResult]:
        """Copy every source, then delete the sources in batches."""

        self.copy(sources, destinations)
        return self.delete(sources)

    def delete(self, identifiers: Sequence[PathIdentifier | str]) -> list[DeleteBatchResult]:
        return self._deleter.delete_all(_as_identifier(i, self.scheme) for i in identifiers)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> S3FileSystem:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
