"""client.py — HTTP client for the task API.

Mirrors what the browser front end does: JSON calls against the six
endpoints, plus the direct upload of image bytes to the presigned S3 URL the
API hands back. After an upload the client asks the API to label the image
with the tolerant policy, so a labeling failure never fails the create or
update that preceded it.
"""
from __future__ import annotations

import json
import logging
import os
import ssl
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional

import certifi

from task_api.label_detector import LABEL_POLICY_STRICT, LABEL_POLICY_TOLERANT

__all__ = ["TaskApiClient", "TaskApiError"]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15


class TaskApiError(RuntimeError):
    def __init__(self, status: int, message: str):
        super().__init__(f"Task API request failed ({status}): {message}")
        self.status = status
        self.message = message


class TaskApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        user_id: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or os.environ.get("TASK_API_URL", "")).rstrip("/")
        if not self.base_url:
            raise ValueError("Task API base URL is required (TASK_API_URL)")
        self.user_id = user_id or os.environ.get("TASK_API_USER", "demo-user")
        self.timeout = timeout
        self._ssl_context = ssl.create_default_context(cafile=certifi.where())

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------

    def _open(self, req: urllib.request.Request) -> bytes:
        try:
            with urllib.request.urlopen(req, timeout=self.timeout, context=self._ssl_context) as resp:
                return resp.read()
        except urllib.error.HTTPError as exc:
            body_text = exc.read().decode("utf-8", errors="replace")
            message = body_text
            try:
                message = json.loads(body_text).get("message") or body_text
            except (json.JSONDecodeError, AttributeError):
                pass
            raise TaskApiError(exc.code, message) from exc

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(
            f"{self.base_url}{path}",
            method=method,
            data=data,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Authorization": self.user_id,
            },
        )
        raw = self._open(req)
        if not raw:
            return None
        return json.loads(raw)

    # ------------------------------------------------------------------
    # endpoints
    # ------------------------------------------------------------------

    def list_tasks(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/tasks")

    def get_task(self, task_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/tasks/{task_id}")

    def create_task(self, task_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/tasks", task_data)

    def update_task(self, task_id: str, task_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/tasks/{task_id}", task_data)

    def delete_task(self, task_id: str) -> None:
        self._request("DELETE", f"/tasks/{task_id}")

    def process_image(self, task_id: str, policy: str = LABEL_POLICY_STRICT) -> Optional[Dict[str, Any]]:
        try:
            return self._request("POST", f"/tasks/{task_id}/process-image")
        except TaskApiError as exc:
            if policy != LABEL_POLICY_TOLERANT:
                raise
            logger.warning("Image processing failed: task=%s error=%s", task_id, exc)
            return None

    def upload_image(self, upload_url: str, content: bytes, content_type: str) -> None:
        """PUT bytes straight to S3; Content-Type must match the presigned one."""
        req = urllib.request.Request(
            upload_url,
            method="PUT",
            data=content,
            headers={"Content-Type": content_type},
        )
        self._open(req)

    # ------------------------------------------------------------------
    # composite flows
    # ------------------------------------------------------------------

    def create_task_with_image(
        self,
        task_data: Dict[str, Any],
        content: Optional[bytes] = None,
        filename: Optional[str] = None,
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        payload = dict(task_data)
        if content is not None and filename:
            payload.update({"hasImage": True, "filename": filename, "fileType": content_type})

        task = self.create_task(payload)
        if content is not None and task.get("imageUploadUrl"):
            self.upload_image(task["imageUploadUrl"], content, content_type)
            self.process_image(task["taskId"], policy=LABEL_POLICY_TOLERANT)
        return task

    def update_task_with_image(
        self,
        task_id: str,
        task_data: Dict[str, Any],
        content: Optional[bytes] = None,
        filename: Optional[str] = None,
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        payload = dict(task_data)
        if content is not None and filename:
            payload.update({"hasNewImage": True, "filename": filename, "fileType": content_type})

        task = self.update_task(task_id, payload)
        if content is not None and task.get("imageUploadUrl"):
            self.upload_image(task["imageUploadUrl"], content, content_type)
            self.process_image(task_id, policy=LABEL_POLICY_TOLERANT)
        return task
