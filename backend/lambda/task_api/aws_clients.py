"""aws_clients.py — Lazy-singleton AWS service clients (DynamoDB, S3, Rekognition).

Clients are created on first use and reused for the lifetime of the Lambda
execution environment.
"""
from __future__ import annotations

from typing import Optional

import boto3
from botocore.config import Config

from task_api.config import DYNAMODB_REGION, S3_REGION

__all__ = [
    "_get_ddb",
    "_get_rekognition",
    "_get_s3",
]

# ---------------------------------------------------------------------------
# AWS client singletons
# ---------------------------------------------------------------------------

_ddb = None
_s3 = None
_rekognition = None


def _client_config(**extra) -> Config:
    return Config(retries={"max_attempts": 3, "mode": "standard"}, **extra)


def _get_ddb(region: Optional[str] = None):
    """Get (or create) the DynamoDB client singleton."""
    global _ddb
    if _ddb is None:
        _ddb = boto3.client(
            "dynamodb",
            region_name=region or DYNAMODB_REGION,
            config=_client_config(),
        )
    return _ddb


def _get_s3(region: Optional[str] = None):
    """Get (or create) the S3 client singleton.

    SigV4 is required for presigned PUT URLs that carry a Content-Type.
    """
    global _s3
    if _s3 is None:
        _s3 = boto3.client(
            "s3",
            region_name=region or S3_REGION,
            config=_client_config(signature_version="s3v4"),
        )
    return _s3


def _get_rekognition(region: Optional[str] = None):
    global _rekognition
    if _rekognition is None:
        _rekognition = boto3.client(
            "rekognition",
            region_name=region or S3_REGION,
            config=_client_config(),
        )
    return _rekognition
