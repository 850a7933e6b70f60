"""record_store.py — Task record persistence in DynamoDB.

Table layout:
    partition key  taskId  (S)
    sort key       userId  (S)
    GSI UserIdIndex: userId (S) / createdAt (S)

Writes are unconditional; the last writer wins.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from task_api.config import logger
from task_api.serialization import _deserialize, _serialize, _serialize_item

__all__ = ["TaskStore"]


class TaskStore:
    def __init__(self, ddb, table_name: str, user_index: str):
        self._ddb = ddb
        self.table_name = table_name
        self.user_index = user_index

    @staticmethod
    def _key(task_id: str, user_id: str) -> Dict[str, Any]:
        return {"taskId": _serialize(task_id), "userId": _serialize(user_id)}

    def get(self, task_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        resp = self._ddb.get_item(TableName=self.table_name, Key=self._key(task_id, user_id))
        item = resp.get("Item")
        return _deserialize(item) if item else None

    def put(self, task: Dict[str, Any]) -> None:
        self._ddb.put_item(TableName=self.table_name, Item=_serialize_item(task))

    def update(self, task_id: str, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """SET each of ``fields`` and return the full item as stored afterwards."""
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        assignments: List[str] = []
        for idx, (name, value) in enumerate(fields.items()):
            names[f"#f{idx}"] = name
            values[f":v{idx}"] = _serialize(value)
            assignments.append(f"#f{idx} = :v{idx}")

        resp = self._ddb.update_item(
            TableName=self.table_name,
            Key=self._key(task_id, user_id),
            UpdateExpression="SET " + ", ".join(assignments),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
        return _deserialize(resp.get("Attributes") or {})

    def delete(self, task_id: str, user_id: str) -> None:
        self._ddb.delete_item(TableName=self.table_name, Key=self._key(task_id, user_id))

    def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """All tasks owned by ``user_id`` in stored createdAt order."""
        params: Dict[str, Any] = {
            "TableName": self.table_name,
            "IndexName": self.user_index,
            "KeyConditionExpression": "userId = :uid",
            "ExpressionAttributeValues": {":uid": _serialize(user_id)},
        }
        out: List[Dict[str, Any]] = []
        while True:
            resp = self._ddb.query(**params)
            out.extend(_deserialize(item) for item in resp.get("Items", []))
            lek = resp.get("LastEvaluatedKey")
            if not lek:
                break
            params["ExclusiveStartKey"] = lek
        logger.info("task query: user=%s count=%d", user_id, len(out))
        return out
