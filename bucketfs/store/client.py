from __future__ import annotations

from typing import Any

from bucketfs.settings import FileSystemSettings


def build_s3_client(settings: FileSystemSettings, *, client_kwargs: dict[str, Any] | None = None):
    """Create a boto3 S3 client from settings."""

    try:
        import boto3
        from botocore.config import Config
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError("boto3 is required for build_s3_client") from exc

    config = Config(s3={"addressing_style": settings.url_style})
    kwargs: dict[str, Any] = dict(client_kwargs or {})
    kwargs.update(
        dict(
            service_name="s3",
            endpoint_url=settings.endpoint_url,
            region_name=settings.region,
            use_ssl=settings.use_ssl,
            aws_access_key_id=settings.access_key,
            aws_secret_access_key=settings.secret_key,
            aws_session_token=settings.session_token,
            config=config,
        )
    )
    return boto3.client(**kwargs)
