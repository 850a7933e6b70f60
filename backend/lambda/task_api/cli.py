#!/usr/bin/env python3
"""Command-line access to the task API.

Examples:
    taskup --url https://abc.execute-api.us-east-1.amazonaws.com/prod list
    taskup create --title "Buy milk" --due-date 2026-11-01 --image receipt.jpg
    taskup update TASK_ID --title "Buy milk" --status completed
    taskup delete TASK_ID
"""
from __future__ import annotations

import argparse
import json
import logging
import mimetypes
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from task_api.client import TaskApiClient, TaskApiError

STATUS_CHOICES = ("pending", "in-progress", "completed")


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, sort_keys=True))


def _read_image(path: Optional[str]):
    if not path:
        return None, None, "application/octet-stream"
    image = Path(path)
    content_type = mimetypes.guess_type(image.name)[0] or "application/octet-stream"
    return image.read_bytes(), image.name, content_type


def _task_fields(args: argparse.Namespace) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    if args.title is not None:
        fields["title"] = args.title
    if args.description is not None:
        fields["description"] = args.description
    if args.due_date is not None:
        fields["dueDate"] = args.due_date
    if getattr(args, "status", None):
        fields["status"] = args.status
    return fields


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskup", description="Manage tasks through the task API.")
    parser.add_argument("--url", default=os.environ.get("TASK_API_URL", ""), help="API base URL")
    parser.add_argument("--user", default=os.environ.get("TASK_API_USER", "demo-user"))
    parser.add_argument("--timeout", type=float, default=15.0)
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="list your tasks")

    get = sub.add_parser("get", help="show one task")
    get.add_argument("task_id")

    create = sub.add_parser("create", help="create a task")
    create.add_argument("--title", required=True)
    create.add_argument("--description")
    create.add_argument("--due-date")
    create.add_argument("--image", help="image file to attach")

    update = sub.add_parser("update", help="overwrite a task")
    update.add_argument("task_id")
    update.add_argument("--title")
    update.add_argument("--description")
    update.add_argument("--due-date")
    update.add_argument("--status", choices=STATUS_CHOICES)
    update.add_argument("--image", help="replacement image file")

    delete = sub.add_parser("delete", help="delete a task and its image")
    delete.add_argument("task_id")

    process = sub.add_parser("process-image", help="detect labels for the attached image")
    process.add_argument("task_id")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
    )

    try:
        client = TaskApiClient(args.url, args.user, timeout=args.timeout)
    except ValueError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2

    try:
        if args.command == "list":
            _print_json(client.list_tasks())
        elif args.command == "get":
            _print_json(client.get_task(args.task_id))
        elif args.command == "create":
            content, filename, content_type = _read_image(args.image)
            _print_json(client.create_task_with_image(_task_fields(args), content, filename, content_type))
        elif args.command == "update":
            content, filename, content_type = _read_image(args.image)
            _print_json(
                client.update_task_with_image(args.task_id, _task_fields(args), content, filename, content_type)
            )
        elif args.command == "delete":
            client.delete_task(args.task_id)
            print(f"[OK] deleted {args.task_id}")
        elif args.command == "process-image":
            _print_json(client.process_image(args.task_id))
    except TaskApiError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
