"""task_api/lambda_function.py

Lambda API for TaskUp task management.

Routes (API Gateway REST proxy):
    POST    /tasks                              — create task (+ upload URL)
    GET     /tasks                              — list caller's tasks
    GET     /tasks/{taskId}                     — get task
    PUT     /tasks/{taskId}                     — update task (+ upload URL)
    DELETE  /tasks/{taskId}                     — delete task and its image
    POST    /tasks/{taskId}/process-image       — label the uploaded image
    OPTIONS /tasks[/*]                          — CORS preflight

Identity:
    Resolved by task_api.auth. The default provider trusts the Authorization
    header verbatim (placeholder, no verification).

Environment variables:
    TABLE_NAME             default: tasks
    BUCKET_NAME            default: task-attachments
    USER_ID_INDEX          default: UserIdIndex
    IDENTITY_PROVIDER      header | cognito (default: header)
    CORS_ORIGIN            default: *
"""
from __future__ import annotations

import re
import time
from typing import Any, Callable, Dict, Optional, Tuple

from task_api import config
from task_api.auth import _resolve_identity
from task_api.aws_clients import _get_ddb, _get_rekognition, _get_s3
from task_api.blob_store import AttachmentStore
from task_api.config import logger
from task_api.handlers import (
    TaskBackends,
    _handle_create_task,
    _handle_delete_task,
    _handle_get_task,
    _handle_list_tasks,
    _handle_process_image,
    _handle_update_task,
)
from task_api.http_utils import _empty_response, _error, _path_method
from task_api.label_detector import LabelDetector
from task_api.record_store import TaskStore
from task_api.serialization import _emit_structured_observability

Handler = Callable[[Dict[str, Any], str, TaskBackends], Dict[str, Any]]

_ROUTES: Dict[Tuple[str, str], Tuple[str, Handler]] = {
    ("POST", "/tasks"): ("create", _handle_create_task),
    ("GET", "/tasks"): ("list", _handle_list_tasks),
    ("GET", "/tasks/{taskId}"): ("get", _handle_get_task),
    ("PUT", "/tasks/{taskId}"): ("update", _handle_update_task),
    ("DELETE", "/tasks/{taskId}"): ("delete", _handle_delete_task),
    ("POST", "/tasks/{taskId}/process-image"): ("process-image", _handle_process_image),
}

# Raw-path fallbacks for events without a ``resource`` template (HTTP API v2,
# direct invocation). Matching the tail tolerates stage prefixes.
_RAW_PATH_PATTERNS = (
    (re.compile(r"/tasks/(?P<taskId>[^/]+)/process-image/?$"), "/tasks/{taskId}/process-image"),
    (re.compile(r"/tasks/(?P<taskId>[^/]+)/?$"), "/tasks/{taskId}"),
    (re.compile(r"/tasks/?$"), "/tasks"),
)

# ---------------------------------------------------------------------------
# Backends (one set per execution environment)
# ---------------------------------------------------------------------------

_backends: Optional[TaskBackends] = None


def _get_backends() -> TaskBackends:
    global _backends
    if _backends is None:
        _backends = TaskBackends(
            tasks=TaskStore(_get_ddb(), config.TABLE_NAME, config.USER_ID_INDEX),
            attachments=AttachmentStore(_get_s3(), config.BUCKET_NAME, config.SIGNED_URL_TTL_SECONDS),
            labels=LabelDetector(
                _get_rekognition(),
                config.BUCKET_NAME,
                max_labels=config.LABEL_MAX_LABELS,
                min_confidence=config.LABEL_MIN_CONFIDENCE,
            ),
        )
    return _backends


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


def _resolve_route(event: Dict[str, Any]) -> Tuple[str, str, Dict[str, Any]]:
    """Return (method, route template, event) with pathParameters filled in."""
    method, route = _path_method(event)
    if (method, route) in _ROUTES:
        return method, route, event

    raw_path = event.get("rawPath") or event.get("path") or route
    for pattern, template in _RAW_PATH_PATTERNS:
        match = pattern.search(raw_path)
        if match:
            params = dict(event.get("pathParameters") or {})
            params.update(match.groupdict())
            return method, template, {**event, "pathParameters": params}
    return method, route, event


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------


def lambda_handler(event: Dict[str, Any], _context: Any) -> Dict[str, Any]:
    started = time.monotonic()
    method, route, event = _resolve_route(event)
    logger.info("[INFO] route method=%s path=%s", method, route)

    if method == "OPTIONS":
        return _empty_response(204)

    entry = _ROUTES.get((method, route))
    if entry is None:
        return _error(400, "Invalid request")
    operation, handler = entry

    try:
        user_id, auth_err = _resolve_identity(event)
        if auth_err:
            resp = auth_err
        else:
            resp = handler(event, user_id, _get_backends())
    except Exception:
        logger.exception("Error processing request: operation=%s", operation)
        resp = _error(500, "Internal server error")

    _emit_structured_observability(
        component="task_api",
        event="request",
        operation=operation,
        task_id=(event.get("pathParameters") or {}).get("taskId"),
        status_code=resp.get("statusCode"),
        latency_ms=int((time.monotonic() - started) * 1000),
    )
    return resp
