# tests/fakes.py

from typing import Any, Dict, List, Optional, Tuple

from shared.task_store import SERVER_TIMESTAMP, TaskStoreError, status_is_unset


class FakeTaskStore:
    """
    In-memory stand-in for DynamoTaskStore.

    - Keeps items by task id and applies the same "status still unset" condition
    - Records every write attempt for assertions
    - `fail_with` makes the next writes raise, to simulate AWS failures
    """

    def __init__(self, items: Optional[Dict[str, Dict[str, Any]]] = None, now: str = "2026-01-01T00:00:00+00:00"):
        self.items: Dict[str, Dict[str, Any]] = {k: dict(v) for k, v in (items or {}).items()}
        self.now = now
        self.writes: List[Tuple[str, Dict[str, Any]]] = []
        self.keys: List[Optional[Dict[str, Any]]] = []
        self.fail_with: Optional[Exception] = None

    def server_timestamp(self):
        return SERVER_TIMESTAMP

    def initialize_task(self, task_id: str, fields: Dict[str, Any], key: Optional[Dict[str, Any]] = None) -> bool:
        self.writes.append((task_id, dict(fields)))
        self.keys.append(key)
        if self.fail_with is not None:
            raise self.fail_with

        item = self.items.get(task_id)
        if item is None or not status_is_unset(item.get("status")):
            return False

        for name, value in fields.items():
            item[name] = self.now if value is SERVER_TIMESTAMP else value
        return True


def throttled() -> TaskStoreError:
    return TaskStoreError("Failed to update task: ProvisionedThroughputExceededException", code="ProvisionedThroughputExceededException")


def insert_record(task_id: str, image: Dict[str, Any], seq: str = "1", event_name: str = "INSERT", table: str = "tasks") -> Dict[str, Any]:
    """Build a DynamoDB Streams record the way Lambda delivers it."""
    return {
        "eventID": f"evt-{task_id}-{seq}",
        "eventName": event_name,
        "eventSource": "aws:dynamodb",
        "eventSourceARN": f"arn:aws:dynamodb:us-east-1:123456789012:table/{table}/stream/2026-01-01T00:00:00.000",
        "dynamodb": {
            "Keys": {"taskId": {"S": task_id}},
            "NewImage": image,
            "SequenceNumber": seq,
            "StreamViewType": "NEW_IMAGE",
        },
    }
