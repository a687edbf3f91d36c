"""Configuration for bucketfs (env-first, optional YAML overlay)."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from bucketfs.errors import SettingsError
from bucketfs.models import (
    DEFAULT_PART_SIZE_BYTES,
    MIN_PART_SIZE_BYTES,
    MULTIPART_THRESHOLD_BYTES,
)

DEFAULT_THREAD_POOL_SIZE = 50
DEFAULT_SSE_CUSTOMER_ALGORITHM = "AES256"


@dataclass(frozen=True)
class EncryptionSettings:
    """Server-side encryption parameters attached to every copy sub-call."""

    sse_customer_key: str | None = None
    sse_customer_algorithm: str | None = None
    sse_algorithm: str | None = None
    sse_kms_key_id: str | None = None

    def __post_init__(self) -> None:
        if self.sse_customer_key and self.sse_algorithm:
            raise SettingsError("SSE-C and SSE algorithm cannot both be configured")
        if self.sse_kms_key_id and self.sse_algorithm not in (None, "aws:kms", "aws:kms:dsse"):
            raise SettingsError("sse_kms_key_id requires sse_algorithm 'aws:kms'")

    @property
    def enabled(self) -> bool:
        return bool(self.sse_customer_key or self.sse_algorithm or self.sse_kms_key_id)

    def _customer(self, prefix: str = "") -> dict[str, str]:
        if not self.sse_customer_key:
            return {}
        return {
            f"{prefix}SSECustomerAlgorithm": self.sse_customer_algorithm
            or DEFAULT_SSE_CUSTOMER_ALGORITHM,
            f"{prefix}SSECustomerKey": self.sse_customer_key,
        }

    def _managed(self) -> dict[str, str]:
        kwargs: dict[str, str] = {}
        if self.sse_algorithm:
            kwargs["ServerSideEncryption"] = self.sse_algorithm
        if self.sse_kms_key_id:
            kwargs["SSEKMSKeyId"] = self.sse_kms_key_id
            kwargs.setdefault("ServerSideEncryption", "aws:kms")
        return kwargs

    def head_kwargs(self) -> dict[str, str]:
        return self._customer()

    def copy_object_kwargs(self) -> dict[str, str]:
        return {**self._customer(), **self._customer("CopySource"), **self._managed()}

    def create_upload_kwargs(self) -> dict[str, str]:
        return {**self._customer(), **self._managed()}

    def copy_part_kwargs(self) -> dict[str, str]:
        return {**self._customer(), **self._customer("CopySource")}

    def complete_upload_kwargs(self) -> dict[str, str]:
        return self._customer()


@dataclass(frozen=True)
class FileSystemSettings:
    scheme: str = "s3"
    endpoint_url: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    session_token: str | None = None
    region: str = "us-east-1"
    url_style: str = "path"
    use_ssl: bool = False
    thread_pool_size: int = DEFAULT_THREAD_POOL_SIZE
    multipart_threshold: int = MULTIPART_THRESHOLD_BYTES
    part_size: int = DEFAULT_PART_SIZE_BYTES
    copy_part_workers: int = 1
    storage_class: str | None = None
    encryption: EncryptionSettings = field(default_factory=EncryptionSettings)

    def __post_init__(self) -> None:
        if not self.scheme:
            raise SettingsError("scheme is required")
        if self.thread_pool_size < 1:
            raise SettingsError("thread_pool_size must be >= 1")
        if self.copy_part_workers < 1:
            raise SettingsError("copy_part_workers must be >= 1")
        if self.part_size < MIN_PART_SIZE_BYTES:
            raise SettingsError(f"part_size must be >= {MIN_PART_SIZE_BYTES} bytes")
        if self.multipart_threshold < 1:
            raise SettingsError("multipart_threshold must be >= 1")
        if self.url_style not in {"path", "virtual", "auto"}:
            raise SettingsError(f"Unsupported url_style: {self.url_style}")


def _parse_bool(value: str | bool | None, *, default: bool | None = None) -> bool | None:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = value.strip().lower()
    if text in {"1", "true", "yes", "y"}:
        return True
    if text in {"0", "false", "no", "n"}:
        return False
    return default


def _parse_int(name: str, value: Any, default: int) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"{name} must be an integer, got {value!r}") from exc


def _get(env: Mapping[str, str], *names: str) -> str | None:
    for name in names:
        value = env.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def resolve_settings(env: Mapping[str, str] | None = None) -> FileSystemSettings:
    env = os.environ if env is None else env
    endpoint_url = _get(env, "S3_ENDPOINT_URL")

    use_ssl = _parse_bool(_get(env, "S3_USE_SSL"))
    if use_ssl is None:
        use_ssl = bool(endpoint_url and endpoint_url.lower().startswith("https://"))

    encryption = EncryptionSettings(
        sse_customer_key=_get(env, "S3_SSE_CUSTOMER_KEY"),
        sse_customer_algorithm=_get(env, "S3_SSE_CUSTOMER_ALGORITHM"),
        sse_algorithm=_get(env, "S3_SSE_ALGORITHM"),
        sse_kms_key_id=_get(env, "S3_SSE_KMS_KEY_ID"),
    )

    return FileSystemSettings(
        scheme=_get(env, "BUCKETFS_SCHEME") or "s3",
        endpoint_url=endpoint_url,
        access_key=_get(env, "S3_ACCESS_KEY_ID", "AWS_ACCESS_KEY_ID"),
        secret_key=_get(env, "S3_SECRET_ACCESS_KEY", "AWS_SECRET_ACCESS_KEY"),
        session_token=_get(env, "AWS_SESSION_TOKEN"),
        region=_get(env, "S3_REGION") or "us-east-1",
        url_style=_get(env, "S3_URL_STYLE") or "path",
        use_ssl=use_ssl,
        thread_pool_size=_parse_int(
            "S3_THREAD_POOL_SIZE", _get(env, "S3_THREAD_POOL_SIZE"), DEFAULT_THREAD_POOL_SIZE
        ),
        multipart_threshold=_parse_int(
            "S3_MULTIPART_THRESHOLD_BYTES",
            _get(env, "S3_MULTIPART_THRESHOLD_BYTES"),
            MULTIPART_THRESHOLD_BYTES,
        ),
        part_size=_parse_int(
            "S3_UPLOAD_BUFFER_SIZE_BYTES",
            _get(env, "S3_UPLOAD_BUFFER_SIZE_BYTES"),
            DEFAULT_PART_SIZE_BYTES,
        ),
        copy_part_workers=_parse_int("S3_COPY_PART_WORKERS", _get(env, "S3_COPY_PART_WORKERS"), 1),
        storage_class=_get(env, "S3_STORAGE_CLASS"),
        encryption=encryption,
    )


_INT_FIELDS = {"thread_pool_size", "multipart_threshold", "part_size", "copy_part_workers"}


def load_settings(path: Path | str, env: Mapping[str, str] | None = None) -> FileSystemSettings:
    """Overlay a YAML mapping on top of :func:`resolve_settings`.

    Top-level keys mirror ``FileSystemSettings`` fields; ``encryption`` is a nested
    mapping of ``EncryptionSettings`` fields.
    """

    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise SettingsError(f"Invalid bucketfs config: {path}")

    base = resolve_settings(env)
    known = {f.name for f in fields(FileSystemSettings)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise SettingsError(f"Unknown settings in {path}: {', '.join(unknown)}")

    overrides: dict[str, Any] = {}
    for name, value in raw.items():
        if name == "encryption":
            if not isinstance(value, dict):
                raise SettingsError("encryption must be a mapping")
            try:
                overrides[name] = replace(base.encryption, **value)
            except TypeError as exc:
                raise SettingsError(f"Invalid encryption settings in {path}: {exc}") from exc
        elif name in _INT_FIELDS:
            overrides[name] = _parse_int(name, value, getattr(base, name))
        elif name == "use_ssl":
            overrides[name] = bool(_parse_bool(value, default=base.use_ssl))
        else:
            overrides[name] = value
    return replace(base, **overrides)
