from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

from bucketfs.errors import as_transport_failure
from bucketfs.io.uri import PathIdentifier
from bucketfs.models import (
    DEFAULT_PART_SIZE_BYTES,
    MIN_PART_SIZE_BYTES,
    MULTIPART_THRESHOLD_BYTES,
    CopyKind,
    CopyPlan,
    ObjectMetadata,
    plan_copy,
)
from bucketfs.observability import log_event, log_warning
from bucketfs.settings import EncryptionSettings

logger = logging.getLogger(__name__)


class CopyStrategist:
    """Copy one object, atomically when small enough and in parts otherwise.

    Only the atomic path is all-or-nothing. A failed multi-part copy aborts its
    upload session before the failure is raised.
    """

    def __init__(
        self,
        client: Any,
        *,
        multipart_threshold: int = MULTIPART_THRESHOLD_BYTES,
        part_size: int = DEFAULT_PART_SIZE_BYTES,
        encryption: EncryptionSettings | None = None,
        storage_class: str | None = None,
        part_workers: int = 1,
    ) -> None:
        if part_size < MIN_PART_SIZE_BYTES:
            raise ValueError(f"part_size must be >= {MIN_PART_SIZE_BYTES} bytes")
        self._client = client
        self.multipart_threshold = multipart_threshold
        self.part_size = part_size
        self.encryption = encryption or EncryptionSettings()
        self.storage_class = storage_class
        self.part_workers = max(1, part_workers)

    def copy(self, source: PathIdentifier, destination: PathIdentifier) -> CopyPlan:
        metadata = self.get_metadata(source)
        plan = self.plan(metadata.size_bytes)
        if plan.kind is CopyKind.ATOMIC:
            self.atomic_copy(source, destination)
        else:
            self.multipart_copy(source, destination, plan)
        return plan

    def plan(self, size_bytes: int) -> CopyPlan:
        return plan_copy(
            size_bytes, multipart_threshold=self.multipart_threshold, part_size=self.part_size
        )

    def get_metadata(self, source: PathIdentifier) -> ObjectMetadata:
        try:
            response = self._client.head_object(
                Bucket=source.bucket, Key=source.key, **self.encryption.head_kwargs()
            )
        except Exception as exc:  # noqa: BLE001
            raise as_transport_failure(exc, uri=str(source)) from exc
        return ObjectMetadata.from_head_response(response or {})

    def _storage_kwargs(self) -> dict[str, str]:
        return {"StorageClass": self.storage_class} if self.storage_class else {}

    def atomic_copy(self, source: PathIdentifier, destination: PathIdentifier) -> None:
        try:
            self._client.copy_object(
                Bucket=destination.bucket,
                Key=destination.key,
                CopySource={"Bucket": source.bucket, "Key": source.key},
                **self.encryption.copy_object_kwargs(),
                **self._storage_kwargs(),
            )
        except Exception as exc:  # noqa: BLE001
            raise as_transport_failure(exc, uri=str(source)) from exc
        log_event(logger, "bucketfs.copy.atomic", source=source, destination=destination)

    def multipart_copy(
        self, source: PathIdentifier, destination: PathIdentifier, plan: CopyPlan
    ) -> None:
        try:
            response = self._client.create_multipart_upload(
                Bucket=destination.bucket,
                Key=destination.key,
                **self.encryption.create_upload_kwargs(),
                **self._storage_kwargs(),
            )
        except Exception as exc:  # noqa: BLE001
            raise as_transport_failure(exc, uri=str(destination)) from exc
        upload_id = response["UploadId"]

        try:
            etags = self._copy_parts(source, destination, upload_id, plan)
            parts = [
                {"ETag": etags[part_number], "PartNumber": part_number}
                for part_number in sorted(etags)
            ]
            self._client.complete_multipart_upload(
                Bucket=destination.bucket,
                Key=destination.key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
                **self.encryption.complete_upload_kwargs(),
            )
        except Exception as exc:  # noqa: BLE001
            self._abort(destination, upload_id, exc)
            raise as_transport_failure(exc, uri=str(destination)) from exc

        log_event(
            logger,
            "bucketfs.copy.multipart",
            source=source,
            destination=destination,
            parts=plan.part_count,
            size=plan.size_bytes,
        )

    def _copy_parts(
        self,
        source: PathIdentifier,
        destination: PathIdentifier,
        upload_id: str,
        plan: CopyPlan,
    ) -> dict[int, str]:
        def _copy_one(part_number: int, first: int, last: int) -> tuple[int, str]:
            response = self._client.upload_part_copy(
                Bucket=destination.bucket,
                Key=destination.key,
                UploadId=upload_id,
                PartNumber=part_number,
                CopySource={"Bucket": source.bucket, "Key": source.key},
                CopySourceRange=f"bytes={first}-{last}",
                **self.encryption.copy_part_kwargs(),
            )
            return part_number, response["CopyPartResult"]["ETag"]

        ranges = list(plan.part_ranges())
        etags: dict[int, str] = {}
        if self.part_workers <= 1:
            for part_number, first, last in ranges:
                number, etag = _copy_one(part_number, first, last)
                etags[number] = etag
            return etags

        with ThreadPoolExecutor(max_workers=self.part_workers) as executor:
            futures = [executor.submit(_copy_one, *part) for part in ranges]
            for future in as_completed(futures):
                number, etag = future.result()
                etags[number] = etag
        return etags

    def _abort(self, destination: PathIdentifier, upload_id: str, cause: Exception) -> None:
        try:
            self._client.abort_multipart_upload(
                Bucket=destination.bucket, Key=destination.key, UploadId=upload_id
            )
        except Exception as exc:  # noqa: BLE001
            log_warning(
                logger,
                "bucketfs.copy.abort_failed",
                destination=destination,
                upload_id=upload_id,
                error=exc,
            )
            return
        log_event(
            logger,
            "bucketfs.copy.abort",
            destination=destination,
            upload_id=upload_id,
            cause=type(cause).__name__,
        )
