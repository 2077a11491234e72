"""DynamoDB wrapper for the tasks table.

The store owns two things the handlers must not do themselves: reading the
clock for server-assigned timestamps and guarding the write with a condition,
so redelivered events never overwrite a status set in the meantime.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import boto3
from boto3.dynamodb.types import Binary, TypeSerializer
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


# Replaced with the commit time by the store when the update is issued.
SERVER_TIMESTAMP = _ServerTimestamp()

# Matches every value TypeDeserializer turns into something falsy:
# missing, NULL, "", 0, false, and empty lists, maps and binaries.
# Sets are never empty in DynamoDB.
STATUS_UNSET_CONDITION = (
    "attribute_not_exists(#status) OR attribute_type(#status, :null) "
    "OR #status = :empty OR #status = :zero OR #status = :false "
    "OR (attribute_type(#status, :list) AND size(#status) = :zero) "
    "OR (attribute_type(#status, :map) AND size(#status) = :zero) "
    "OR (attribute_type(#status, :binary) AND size(#status) = :zero)"
)


def status_is_unset(value: Any) -> bool:
    """Python side of STATUS_UNSET_CONDITION, applied to a deserialized status."""
    # Binary has no __len__, so an empty one is truthy
    if isinstance(value, Binary):
        return not value.value
    return not value


class TaskStoreError(RuntimeError):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class DynamoTaskStore:
    def __init__(self, table_name: str, key_attribute: str = "taskId", client: Any = None, region: str = "us-east-1"):
        self.table_name = table_name
        self.key_attribute = key_attribute
        self.client = client or boto3.client("dynamodb", region_name=region)
        self._serializer = TypeSerializer()

    def server_timestamp(self) -> _ServerTimestamp:
        return SERVER_TIMESTAMP

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _resolve(self, value: Any) -> Any:
        if value is SERVER_TIMESTAMP:
            return self._now()
        return value

    def initialize_task(self, task_id: str, fields: Dict[str, Any], key: Optional[Dict[str, Any]] = None) -> bool:
        """
        Merge `fields` into the task only while its status is still unset.

        Returns True when the update was committed and False when DynamoDB
        rejected the condition (status already set, or the item is gone).
        Any other AWS error is raised as TaskStoreError.

        `key` is the DynamoDB-typed primary key as delivered in the stream
        record; without it the task id is sent as a string partition key.
        """
        if not fields:
            raise ValueError("fields must not be empty")

        names: Dict[str, str] = {"#key": self.key_attribute, "#status": "status"}
        values: Dict[str, Dict[str, Any]] = {
            ":empty": {"S": ""},
            ":zero": {"N": "0"},
            ":false": {"BOOL": False},
            ":null": {"S": "NULL"},
            ":list": {"S": "L"},
            ":map": {"S": "M"},
            ":binary": {"S": "B"},
        }
        assignments = []
        for idx, (name, value) in enumerate(fields.items()):
            names[f"#f{idx}"] = name
            values[f":v{idx}"] = self._serializer.serialize(self._resolve(value))
            assignments.append(f"#f{idx} = :v{idx}")

        condition = f"attribute_exists(#key) AND ({STATUS_UNSET_CONDITION})"

        logger.debug(f"[initialize_task] Updating {self.table_name}/{task_id} fields={list(fields.keys())}")
        try:
            self.client.update_item(
                TableName=self.table_name,
                Key=key or {self.key_attribute: {"S": str(task_id)}},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression=condition,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code == "ConditionalCheckFailedException":
                logger.info(f"[initialize_task] Condition failed for task {task_id}; status already set or item missing")
                return False
            logger.error(f"[initialize_task] Failed to update task {task_id}: {e}")
            raise TaskStoreError(f"Failed to update task {task_id}: {code}", code=code) from e

        logger.info(f"[initialize_task] Updated task {task_id} in {self.table_name}")
        return True
