"""Shared AWS helpers for the media analysis clients."""

from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from app.config.settings import settings

# Every external call is attempted once; failures surface to the pipeline.
_NO_RETRY_CONFIG = Config(retries={"max_attempts": 1, "mode": "standard"})


def create_boto3_client(
    service_name: str,
    *,
    region_name: str | None = None,
    aws_access_key_id: str | None = None,
    aws_secret_access_key: str | None = None,
) -> Any:
    """Instantiate a boto3 client using configured credentials if available."""

    client_kwargs: dict[str, Any] = {
        "region_name": region_name or settings.s3.region,
        "config": _NO_RETRY_CONFIG,
    }
    if aws_access_key_id and aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = aws_access_key_id
        client_kwargs["aws_secret_access_key"] = aws_secret_access_key
    elif settings.s3.access_key and settings.s3.secret_key:
        client_kwargs["aws_access_key_id"] = settings.s3.access_key
        client_kwargs["aws_secret_access_key"] = settings.s3.secret_key
    return boto3.client(service_name, **client_kwargs)


def client_error_code(exc: BaseException) -> str:
    """Extract the AWS error code from a botocore failure for log lines."""

    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", "Unknown"))
    return type(exc).__name__


__all__ = ["create_boto3_client", "client_error_code"]
