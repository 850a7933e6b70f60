"""label_detector.py — Rekognition label detection for uploaded task images.

Two failure policies:

    strict    errors raise LabelDetectionError. Default for the
              process-image endpoint.
    tolerant  errors are logged and an empty label list is returned.
              Selectable for process-image via PROCESS_IMAGE_LABEL_POLICY;
              the client applies the same policy to its post-upload
              process-image call (see task_api.client).
"""
from __future__ import annotations

from typing import List

from botocore.exceptions import BotoCoreError, ClientError

from task_api.config import logger

__all__ = [
    "LABEL_POLICY_STRICT",
    "LABEL_POLICY_TOLERANT",
    "LabelDetectionError",
    "LabelDetector",
]

LABEL_POLICY_STRICT = "strict"
LABEL_POLICY_TOLERANT = "tolerant"
_POLICIES = {LABEL_POLICY_STRICT, LABEL_POLICY_TOLERANT}


class LabelDetectionError(RuntimeError):
    pass


class LabelDetector:
    def __init__(self, rekognition, bucket: str, max_labels: int = 10, min_confidence: float = 70):
        self._rekognition = rekognition
        self.bucket = bucket
        self.max_labels = max_labels
        self.min_confidence = min_confidence

    def detect(self, key: str, policy: str = LABEL_POLICY_STRICT) -> List[str]:
        if policy not in _POLICIES:
            raise ValueError(f"Unknown label policy: {policy}")

        logger.info("detect labels: key=%s policy=%s", key, policy)
        try:
            resp = self._rekognition.detect_labels(
                Image={"S3Object": {"Bucket": self.bucket, "Name": key}},
                MaxLabels=self.max_labels,
                MinConfidence=self.min_confidence,
            )
        except (BotoCoreError, ClientError) as exc:
            if policy == LABEL_POLICY_TOLERANT:
                logger.warning("label detection failed (tolerated): key=%s error=%s", key, exc)
                return []
            raise LabelDetectionError(f"Label detection failed for {key}: {exc}") from exc

        labels = [label["Name"] for label in resp.get("Labels", []) if label.get("Name")]
        logger.info("detect labels: key=%s labels=%s", key, labels)
        return labels
