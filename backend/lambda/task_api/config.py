"""config.py — Environment variables, constants and logging.

Every value is read once at import time; tests override module attributes
directly instead of mutating the environment.
"""
from __future__ import annotations

import logging
import os

__all__ = [
    "BUCKET_NAME",
    "COGNITO_CLIENT_ID",
    "COGNITO_USER_POOL_ID",
    "CORS_ORIGIN",
    "DEFAULT_FILE_TYPE",
    "DEFAULT_USER_ID",
    "DYNAMODB_REGION",
    "IDENTITY_PROVIDER",
    "LABEL_MAX_LABELS",
    "LABEL_MIN_CONFIDENCE",
    "LOG_LEVEL",
    "PROCESS_IMAGE_LABEL_POLICY",
    "S3_REGION",
    "SIGNED_URL_TTL_SECONDS",
    "TABLE_NAME",
    "TASK_STATUSES",
    "USER_ID_INDEX",
    "logger",
]


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

TABLE_NAME = os.environ.get("TABLE_NAME", "tasks")
BUCKET_NAME = os.environ.get("BUCKET_NAME", "task-attachments")
USER_ID_INDEX = os.environ.get("USER_ID_INDEX", "UserIdIndex")
DYNAMODB_REGION = os.environ.get("DYNAMODB_REGION", os.environ.get("AWS_REGION", "us-east-1"))
S3_REGION = os.environ.get("S3_REGION", DYNAMODB_REGION)

# Presigned URLs expire after one hour.
SIGNED_URL_TTL_SECONDS = _int_env("SIGNED_URL_TTL_SECONDS", 3600)
DEFAULT_FILE_TYPE = "application/octet-stream"

# ---------------------------------------------------------------------------
# Label detection (Rekognition DetectLabels)
# ---------------------------------------------------------------------------

LABEL_MAX_LABELS = _int_env("LABEL_MAX_LABELS", 10)
LABEL_MIN_CONFIDENCE = _int_env("LABEL_MIN_CONFIDENCE", 70)
# "strict" surfaces detector failures from process-image as a 500;
# "tolerant" stores an empty label list instead.
PROCESS_IMAGE_LABEL_POLICY = os.environ.get("PROCESS_IMAGE_LABEL_POLICY", "strict").strip().lower()

# ---------------------------------------------------------------------------
# HTTP / identity
# ---------------------------------------------------------------------------

CORS_ORIGIN = os.environ.get("CORS_ORIGIN", "*")
DEFAULT_USER_ID = os.environ.get("DEFAULT_USER_ID", "demo-user")
IDENTITY_PROVIDER = os.environ.get("IDENTITY_PROVIDER", "header").strip().lower()
COGNITO_USER_POOL_ID = os.environ.get("COGNITO_USER_POOL_ID", "")
COGNITO_CLIENT_ID = os.environ.get("COGNITO_CLIENT_ID", "")

TASK_STATUSES = ("pending", "in-progress", "completed")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

logger = logging.getLogger()
logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
