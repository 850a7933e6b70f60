"""handlers.py — Task route handlers.

Each handler receives the API Gateway event, the resolved caller identity and
the long-lived storage backends, and returns an API Gateway proxy response.
Downstream failures are not caught here; lambda_function turns them into a
generic 500.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from task_api import config
from task_api.blob_store import AttachmentStore, image_key
from task_api.config import logger
from task_api.http_utils import _empty_response, _error, _json_body, _response
from task_api.label_detector import LabelDetector
from task_api.record_store import TaskStore
from task_api.serialization import _now_z

__all__ = [
    "TaskBackends",
    "_handle_create_task",
    "_handle_delete_task",
    "_handle_get_task",
    "_handle_list_tasks",
    "_handle_process_image",
    "_handle_update_task",
]

_STATUS_PENDING = "pending"


@dataclass
class TaskBackends:
    tasks: TaskStore
    attachments: AttachmentStore
    labels: LabelDetector


def _path_task_id(event: Dict[str, Any]) -> str:
    return str((event.get("pathParameters") or {}).get("taskId") or "")


def _with_image_url(task: Dict[str, Any], backends: TaskBackends) -> Dict[str, Any]:
    if task.get("imageKey"):
        task["imageUrl"] = backends.attachments.download_url(task["imageKey"])
    return task


def _not_found(message: str = "Task not found") -> Dict[str, Any]:
    return _error(404, message)


# ---------------------------------------------------------------------------
# POST /tasks
# ---------------------------------------------------------------------------


def _handle_create_task(event: Dict[str, Any], user_id: str, backends: TaskBackends) -> Dict[str, Any]:
    try:
        body = _json_body(event)
    except ValueError as exc:
        return _error(400, str(exc))

    title = body.get("title")
    if not isinstance(title, str) or not title.strip():
        return _error(400, "Field 'title' is required.")

    has_image = bool(body.get("hasImage"))
    filename = body.get("filename")
    if has_image and not filename:
        return _error(400, "Field 'filename' is required when hasImage is set.")

    task_id = str(uuid.uuid4())
    timestamp = _now_z()

    key: Optional[str] = None
    upload_url: Optional[str] = None
    if has_image:
        key = image_key(user_id, task_id, filename)
        upload_url = backends.attachments.upload_url(key, body.get("fileType"))

    task = {
        "taskId": task_id,
        "userId": user_id,
        "title": title,
        "description": body.get("description") or "",
        "dueDate": body.get("dueDate") or None,
        "status": _STATUS_PENDING,
        "createdAt": timestamp,
        "updatedAt": timestamp,
        "imageKey": key,
        "imageLabels": [],
    }
    backends.tasks.put(task)
    logger.info("task created: %s user=%s has_image=%s", task_id, user_id, has_image)

    return _response(201, {**task, "imageUploadUrl": upload_url})


# ---------------------------------------------------------------------------
# GET /tasks
# ---------------------------------------------------------------------------


def _handle_list_tasks(event: Dict[str, Any], user_id: str, backends: TaskBackends) -> Dict[str, Any]:
    tasks = [_with_image_url(task, backends) for task in backends.tasks.list_for_user(user_id)]
    return _response(200, tasks)


# ---------------------------------------------------------------------------
# GET /tasks/{taskId}
# ---------------------------------------------------------------------------


def _handle_get_task(event: Dict[str, Any], user_id: str, backends: TaskBackends) -> Dict[str, Any]:
    task = backends.tasks.get(_path_task_id(event), user_id)
    if task is None:
        return _not_found()
    return _response(200, _with_image_url(task, backends))


# ---------------------------------------------------------------------------
# PUT /tasks/{taskId}
# ---------------------------------------------------------------------------


def _handle_update_task(event: Dict[str, Any], user_id: str, backends: TaskBackends) -> Dict[str, Any]:
    """Full overwrite of the task's mutable fields.

    Image handling, in order:
      1. hasNewImage + filename: delete the old object, assign a new key and
         return an upload URL. Existing labels are carried over.
      2. an image is already attached: return a fresh download URL.
      3. otherwise nothing.
    """
    task_id = _path_task_id(event)
    try:
        body = _json_body(event)
    except ValueError as exc:
        return _error(400, str(exc))

    existing = backends.tasks.get(task_id, user_id)
    if existing is None:
        return _not_found()

    key = existing.get("imageKey")
    labels = existing.get("imageLabels") or []
    upload_url: Optional[str] = None
    download_url: Optional[str] = None

    filename = body.get("filename")
    if body.get("hasNewImage") and filename:
        if key:
            # No compensation: if the client never uploads, the record points
            # at a missing object.
            backends.attachments.delete(key)
        key = image_key(user_id, task_id, filename)
        upload_url = backends.attachments.upload_url(key, body.get("fileType"))
    elif key:
        download_url = backends.attachments.download_url(key)

    title = body.get("title")
    if not isinstance(title, str) or not title.strip():
        title = existing.get("title")

    updated = backends.tasks.update(
        task_id,
        user_id,
        {
            "title": title,
            "description": body.get("description") or "",
            "dueDate": body.get("dueDate") or None,
            "status": body.get("status") or existing.get("status"),
            "updatedAt": _now_z(),
            "imageKey": key,
            "imageLabels": labels,
        },
    )
    logger.info("task updated: %s user=%s new_image=%s", task_id, user_id, upload_url is not None)

    payload = {**updated, "imageUploadUrl": upload_url}
    if download_url:
        payload["imageUrl"] = download_url
    return _response(200, payload)


# ---------------------------------------------------------------------------
# DELETE /tasks/{taskId}
# ---------------------------------------------------------------------------


def _handle_delete_task(event: Dict[str, Any], user_id: str, backends: TaskBackends) -> Dict[str, Any]:
    task_id = _path_task_id(event)
    existing = backends.tasks.get(task_id, user_id)
    if existing and existing.get("imageKey"):
        backends.attachments.delete(existing["imageKey"])

    # Deleting a missing item is a no-op in DynamoDB.
    backends.tasks.delete(task_id, user_id)
    logger.info("task deleted: %s user=%s found=%s", task_id, user_id, existing is not None)
    return _empty_response(204)


# ---------------------------------------------------------------------------
# POST /tasks/{taskId}/process-image
# ---------------------------------------------------------------------------


def _handle_process_image(event: Dict[str, Any], user_id: str, backends: TaskBackends) -> Dict[str, Any]:
    task_id = _path_task_id(event)
    existing = backends.tasks.get(task_id, user_id)
    if not existing or not existing.get("imageKey"):
        return _not_found("Task or image not found")

    labels = backends.labels.detect(existing["imageKey"], policy=config.PROCESS_IMAGE_LABEL_POLICY)
    updated = backends.tasks.update(task_id, user_id, {"imageLabels": labels})
    return _response(200, updated)
