from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from bucketfs.errors import as_transport_failure
from bucketfs.io.uri import PathIdentifier
from bucketfs.models import MAX_DELETE_BATCH_SIZE, DeleteBatch, DeleteBatchResult, DeleteError
from bucketfs.observability import log_event, log_warning

logger = logging.getLogger(__name__)


def plan_delete_batches(
    identifiers: Iterable[PathIdentifier], *, max_batch_size: int = MAX_DELETE_BATCH_SIZE
) -> list[DeleteBatch]:
    """Group identifiers by bucket and chunk each bucket's keys."""

    if not 1 <= max_batch_size <= MAX_DELETE_BATCH_SIZE:
        raise ValueError(f"max_batch_size must be between 1 and {MAX_DELETE_BATCH_SIZE}")

    by_bucket: dict[str, list[str]] = {}
    for identifier in dict.fromkeys(identifiers):
        by_bucket.setdefault(identifier.bucket, []).append(identifier.key)

    batches: list[DeleteBatch] = []
    for bucket, keys in by_bucket.items():
        for i in range(0, len(keys), max_batch_size):
            batches.append(DeleteBatch(bucket=bucket, keys=tuple(keys[i : i + max_batch_size])))
    return batches


class BatchDeleter:
    def __init__(
        self, client: Any, *, max_batch_size: int = MAX_DELETE_BATCH_SIZE, quiet: bool = True
    ) -> None:
        self._client = client
        self.max_batch_size = max_batch_size
        self.quiet = quiet

    def delete_all(self, identifiers: Iterable[PathIdentifier]) -> list[DeleteBatchResult]:
        """Issue one ``delete_objects`` call per batch.

        Per-key failures come back in the batch results; a failed call raises
        ``TransportFailure``.
        """

        results: list[DeleteBatchResult] = []
        for batch in plan_delete_batches(identifiers, max_batch_size=self.max_batch_size):
            results.append(self._delete_batch(batch))
        return results

    def _delete_batch(self, batch: DeleteBatch) -> DeleteBatchResult:
        try:
            response = self._client.delete_objects(
                Bucket=batch.bucket, Delete=batch.to_request(quiet=self.quiet)
            )
        except Exception as exc:  # noqa: BLE001
            raise as_transport_failure(exc, uri=f"s3://{batch.bucket}") from exc

        response = response or {}
        deleted = tuple(
            str(item.get("Key")) for item in response.get("Deleted", []) or [] if item.get("Key")
        )
        errors = tuple(
            DeleteError(
                key=str(item.get("Key") or ""),
                code=str(item.get("Code") or ""),
                message=str(item.get("Message") or ""),
            )
            for item in response.get("Errors", []) or []
        )
        log_event(
            logger,
            "bucketfs.delete.batch",
            bucket=batch.bucket,
            keys=len(batch.keys),
            errors=len(errors),
        )
        if errors:
            log_warning(
                logger,
                "bucketfs.delete.errors",
                bucket=batch.bucket,
                failed=len(errors),
                first_key=errors[0].key,
                first_code=errors[0].code,
            )
        return DeleteBatchResult(
            bucket=batch.bucket, requested=len(batch.keys), deleted=deleted, errors=errors
        )
