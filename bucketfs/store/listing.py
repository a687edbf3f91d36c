from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from bucketfs.models import ObjectSummary

logger = logging.getLogger(__name__)


def list_all(client: Any, bucket: str, prefix: str) -> Iterator[ObjectSummary]:
    """Yield every object under ``prefix``, following continuation tokens.

    Pages are requested strictly in order because each request needs the token
    from the previous response. Client errors propagate unchanged.
    """

    token: str | None = None
    pages = 0
    while True:
        request: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if token is not None:
            request["ContinuationToken"] = token
        response = client.list_objects_v2(**request) or {}
        pages += 1

        for obj in response.get("Contents", []) or []:
            key = obj.get("Key")
            if key is None:
                continue
            yield ObjectSummary(bucket=bucket, key=key, size_bytes=int(obj.get("Size") or 0))

        token = response.get("NextContinuationToken") or None
        if token is None:
            break
    logger.debug("Listed s3://%s/%s in %d page(s)", bucket, prefix, pages)
