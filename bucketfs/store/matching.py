from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import Executor, Future, wait
from typing import Any

from bucketfs.errors import MalformedAddress, ObjectNotFound, classify_error
from bucketfs.io.glob import compile_glob
from bucketfs.io.uri import DEFAULT_SCHEME, PathIdentifier
from bucketfs.models import MatchResult, MatchStatus, ObjectMatch, ObjectMetadata
from bucketfs.observability import log_event
from bucketfs.settings import EncryptionSettings
from bucketfs.store.listing import list_all

logger = logging.getLogger(__name__)


class MatchOrchestrator:
    """Resolve path specifications (literal or glob) into ``MatchResult``s.

    Entries run independently on the shared executor. Failures are captured in the
    entry's own result, so ``match`` always returns one result per input, in input
    order.
    """

    def __init__(
        self,
        client: Any,
        executor: Executor,
        *,
        scheme: str = DEFAULT_SCHEME,
        encryption: EncryptionSettings | None = None,
    ) -> None:
        self._client = client
        self._executor = executor
        self.scheme = scheme
        self.encryption = encryption or EncryptionSettings()

    def match(self, path_specs: Sequence[str]) -> list[MatchResult]:
        results: list[MatchResult | None] = [None] * len(path_specs)

        def _resolve_into(idx: int, spec: str) -> None:
            results[idx] = self.resolve(spec)

        futures: list[Future[None]] = [
            self._executor.submit(_resolve_into, idx, spec) for idx, spec in enumerate(path_specs)
        ]
        wait(futures)
        for idx, future in enumerate(futures):
            exc = future.exception()
            if exc is not None:
                results[idx] = MatchResult.failed(classify_error(exc, uri=path_specs[idx]))

        final = [result for result in results if result is not None]
        log_event(
            logger,
            "bucketfs.match.done",
            specs=len(path_specs),
            ok=sum(1 for r in final if r.status is MatchStatus.OK),
            not_found=sum(1 for r in final if r.status is MatchStatus.NOT_FOUND),
            errors=sum(1 for r in final if r.status is MatchStatus.ERROR),
        )
        return final

    def resolve(self, spec: str) -> MatchResult:
        try:
            path = PathIdentifier.from_uri(spec, scheme=self.scheme)
        except ValueError as exc:
            return MatchResult.failed(exc)
        if path.is_wildcard:
            return self.match_glob(path)
        return self.match_non_glob(path)

    def match_non_glob(self, path: PathIdentifier) -> MatchResult:
        try:
            metadata = self._get_metadata(path)
        except Exception as exc:  # noqa: BLE001
            return self._failure_result(exc, path)
        return MatchResult.ok(
            [
                ObjectMatch(
                    identifier=path,
                    size_bytes=metadata.size_bytes,
                    read_seek_efficient=metadata.read_seek_efficient,
                )
            ]
        )

    def match_glob(self, path: PathIdentifier) -> MatchResult:
        """List under the literal prefix and keep keys that fully match the glob.

        Zero survivors is still ``OK``; any listing or metadata failure is ``ERROR``.
        """

        try:
            pattern = compile_glob(path.key)
        except MalformedAddress as exc:
            return MatchResult.failed(exc)
        matches: list[ObjectMatch] = []
        try:
            for summary in list_all(self._client, path.bucket, path.key_non_wildcard_prefix):
                if pattern.fullmatch(summary.key) is None:
                    continue
                identifier = PathIdentifier(
                    bucket=summary.bucket, key=summary.key, scheme=path.scheme
                )
                metadata = self._get_metadata(identifier)
                matches.append(
                    ObjectMatch(
                        identifier=identifier,
                        size_bytes=summary.size_bytes,
                        read_seek_efficient=metadata.read_seek_efficient,
                    )
                )
        except Exception as exc:  # noqa: BLE001
            return MatchResult.failed(classify_error(exc, uri=str(path)))
        return MatchResult.ok(matches)

    def _get_metadata(self, path: PathIdentifier) -> ObjectMetadata:
        response = self._client.head_object(
            Bucket=path.bucket, Key=path.key, **self.encryption.head_kwargs()
        )
        return ObjectMetadata.from_head_response(response or {})

    @staticmethod
    def _failure_result(exc: Exception, path: PathIdentifier) -> MatchResult:
        classified = classify_error(exc, uri=str(path))
        if isinstance(classified, ObjectNotFound):
            return MatchResult.not_found(classified)
        return MatchResult.failed(classified)
