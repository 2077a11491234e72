import uuid
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from boto3.dynamodb.types import TypeDeserializer

from shared.schema_validation import (
    DIRECT_EVENT_SCHEMA,
    INSERT_RECORD_SCHEMA,
    STREAM_RECORD_SCHEMA,
    validate,
)

logger = logging.getLogger(__name__)

_deserializer = TypeDeserializer()


@dataclass
class TaskCreatedEvent:
    event_id: str
    task_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    source: str = "aws:dynamodb"
    sequence_number: Optional[str] = None
    # Primary key exactly as typed in the stream record, e.g. {"taskId": {"N": "42"}}
    keys: Optional[Dict[str, Any]] = None


def deserialize_image(image: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a DynamoDB-typed image ({"S": ...}, {"N": ...}) into plain values."""
    return {k: _deserializer.deserialize(v) for k, v in image.items()}


def is_from_table(record: Dict[str, Any], table_name: str) -> bool:
    arn = record.get("eventSourceARN")
    if not arn:
        # Hand-built test events usually carry no ARN
        return True
    return f":table/{table_name}/stream/" in arn


def parse_stream_record(record: Dict[str, Any], key_attribute: str = "taskId") -> Optional[TaskCreatedEvent]:
    """
    Decode one DynamoDB Streams record.

    Returns None for records that are not document creations (MODIFY/REMOVE).
    Raises jsonschema.ValidationError for malformed records and ValueError
    when the task id cannot be found.
    """
    validate(record, STREAM_RECORD_SCHEMA)

    if record["eventName"] != "INSERT":
        logger.debug(f"[parse_stream_record] Ignoring {record['eventName']} event {record['eventID']}")
        return None

    validate(record, INSERT_RECORD_SCHEMA)
    ddb = record["dynamodb"]
    keys = deserialize_image(ddb["Keys"])
    data = deserialize_image(ddb["NewImage"])

    task_id = keys.get(key_attribute)
    if task_id is None:
        task_id = data.get(key_attribute)
    if task_id is None:
        raise ValueError(f"Stream record {record['eventID']} has no '{key_attribute}' key")

    return TaskCreatedEvent(
        event_id=record["eventID"],
        task_id=str(task_id),
        data=data,
        source=record.get("eventSource", "aws:dynamodb"),
        sequence_number=ddb.get("SequenceNumber"),
        keys=dict(ddb["Keys"]),
    )


def parse_direct_event(event: Dict[str, Any]) -> TaskCreatedEvent:
    # Direct invocation, e.g. from localtrigger.py or the Lambda console
    validate(event, DIRECT_EVENT_SCHEMA)
    return TaskCreatedEvent(
        event_id=event.get("eventId") or str(uuid.uuid4()),
        task_id=event["taskId"],
        data=dict(event["task"]),
        source="direct",
    )
