"""test_adapters.py — TaskStore, AttachmentStore and LabelDetector against mocked clients."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock

from botocore.exceptions import ClientError, EndpointConnectionError

from task_api.blob_store import AttachmentStore, image_key
from task_api.label_detector import (
    LABEL_POLICY_STRICT,
    LABEL_POLICY_TOLERANT,
    LabelDetectionError,
    LabelDetector,
)
from task_api.record_store import TaskStore


class TaskStoreTests(unittest.TestCase):
    def setUp(self):
        self.ddb = MagicMock()
        self.store = TaskStore(self.ddb, "tasks", "UserIdIndex")

    def test_get_uses_composite_key(self):
        self.ddb.get_item.return_value = {"Item": {"taskId": {"S": "t-1"}, "userId": {"S": "u-1"}}}
        task = self.store.get("t-1", "u-1")
        self.assertEqual(task, {"taskId": "t-1", "userId": "u-1"})
        self.ddb.get_item.assert_called_once_with(
            TableName="tasks",
            Key={"taskId": {"S": "t-1"}, "userId": {"S": "u-1"}},
        )

    def test_get_missing_returns_none(self):
        self.ddb.get_item.return_value = {}
        self.assertIsNone(self.store.get("t-1", "u-1"))

    def test_put_serializes_item(self):
        self.store.put({"taskId": "t-1", "userId": "u-1", "imageKey": None, "imageLabels": []})
        item = self.ddb.put_item.call_args.kwargs["Item"]
        self.assertEqual(item["imageKey"], {"NULL": True})
        self.assertEqual(item["imageLabels"], {"L": []})

    def test_update_builds_set_expression(self):
        self.ddb.update_item.return_value = {
            "Attributes": {"taskId": {"S": "t-1"}, "status": {"S": "completed"}},
        }
        result = self.store.update("t-1", "u-1", {"status": "completed", "updatedAt": "now"})

        kwargs = self.ddb.update_item.call_args.kwargs
        self.assertEqual(kwargs["UpdateExpression"], "SET #f0 = :v0, #f1 = :v1")
        self.assertEqual(kwargs["ExpressionAttributeNames"], {"#f0": "status", "#f1": "updatedAt"})
        self.assertEqual(kwargs["ExpressionAttributeValues"][":v0"], {"S": "completed"})
        self.assertEqual(kwargs["ReturnValues"], "ALL_NEW")
        self.assertNotIn("ConditionExpression", kwargs)
        self.assertEqual(result["status"], "completed")

    def test_delete(self):
        self.store.delete("t-1", "u-1")
        self.ddb.delete_item.assert_called_once_with(
            TableName="tasks",
            Key={"taskId": {"S": "t-1"}, "userId": {"S": "u-1"}},
        )

    def test_list_for_user_follows_pages(self):
        self.ddb.query.side_effect = [
            {"Items": [{"taskId": {"S": "a"}}], "LastEvaluatedKey": {"taskId": {"S": "a"}}},
            {"Items": [{"taskId": {"S": "b"}}]},
        ]
        tasks = self.store.list_for_user("u-1")
        self.assertEqual([t["taskId"] for t in tasks], ["a", "b"])

        first, second = self.ddb.query.call_args_list
        self.assertEqual(first.kwargs["IndexName"], "UserIdIndex")
        self.assertEqual(first.kwargs["ExpressionAttributeValues"], {":uid": {"S": "u-1"}})
        self.assertNotIn("ScanIndexForward", first.kwargs)
        self.assertEqual(second.kwargs["ExclusiveStartKey"], {"taskId": {"S": "a"}})


class AttachmentStoreTests(unittest.TestCase):
    def setUp(self):
        self.s3 = MagicMock()
        self.s3.generate_presigned_url.return_value = "https://signed"
        self.store = AttachmentStore(self.s3, "bucket", url_ttl_seconds=3600)

    def test_image_key(self):
        self.assertEqual(image_key("u-1", "t-1", "cat.png"), "u-1/t-1/cat.png")

    def test_upload_url(self):
        self.assertEqual(self.store.upload_url("k", "image/png"), "https://signed")
        self.s3.generate_presigned_url.assert_called_once_with(
            "put_object",
            Params={"Bucket": "bucket", "Key": "k", "ContentType": "image/png"},
            ExpiresIn=3600,
        )

    def test_download_url_is_reissued_every_call(self):
        self.store.download_url("k")
        self.store.download_url("k")
        self.assertEqual(self.s3.generate_presigned_url.call_count, 2)
        self.s3.generate_presigned_url.assert_called_with(
            "get_object", Params={"Bucket": "bucket", "Key": "k"}, ExpiresIn=3600
        )

    def test_delete(self):
        self.store.delete("k")
        self.s3.delete_object.assert_called_once_with(Bucket="bucket", Key="k")


class LabelDetectorTests(unittest.TestCase):
    def setUp(self):
        self.rekognition = MagicMock()
        self.detector = LabelDetector(self.rekognition, "bucket", max_labels=5, min_confidence=80)

    def test_detect_returns_label_names(self):
        self.rekognition.detect_labels.return_value = {
            "Labels": [{"Name": "Dog", "Confidence": 98.0}, {"Name": "Grass", "Confidence": 85.0}],
        }
        self.assertEqual(self.detector.detect("u/t/dog.jpg"), ["Dog", "Grass"])
        self.rekognition.detect_labels.assert_called_once_with(
            Image={"S3Object": {"Bucket": "bucket", "Name": "u/t/dog.jpg"}},
            MaxLabels=5,
            MinConfidence=80,
        )

    def test_strict_policy_raises(self):
        self.rekognition.detect_labels.side_effect = ClientError(
            {"Error": {"Code": "InvalidS3ObjectException", "Message": "missing"}}, "DetectLabels"
        )
        with self.assertRaises(LabelDetectionError):
            self.detector.detect("k", policy=LABEL_POLICY_STRICT)

    def test_tolerant_policy_returns_empty(self):
        self.rekognition.detect_labels.side_effect = EndpointConnectionError(endpoint_url="https://rekognition")
        with self.assertLogs(level="WARNING") as logs:
            self.assertEqual(self.detector.detect("k", policy=LABEL_POLICY_TOLERANT), [])
        self.assertIn("tolerated", logs.output[0])

    def test_unknown_policy(self):
        with self.assertRaises(ValueError):
            self.detector.detect("k", policy="lenient")
        self.rekognition.detect_labels.assert_not_called()


if __name__ == "__main__":
    unittest.main()
