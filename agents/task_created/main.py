import os
import json
import logging
from typing import Any, Dict, List, Optional

import boto3

from shared.stream_events import (
    TaskCreatedEvent,
    is_from_table,
    parse_direct_event,
    parse_stream_record,
)
from shared.task_store import DynamoTaskStore, status_is_unset

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())

# Environment variables
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
TASKS_TABLE = os.environ.get("TASKS_TABLE", "tasks")
TASK_ID_ATTRIBUTE = os.environ.get("TASK_ID_ATTRIBUTE", "taskId")
DEFAULT_TASK_STATUS = "Pending"
# Requires FunctionResponseTypes=["ReportBatchItemFailures"] on the event source mapping
REPORT_BATCH_ITEM_FAILURES = os.environ.get("REPORT_BATCH_ITEM_FAILURES", "true").lower() in ("1", "true", "yes")

# Created once per container and reused across invocations
dynamodb = boto3.client("dynamodb", region_name=AWS_REGION)
task_store = DynamoTaskStore(TASKS_TABLE, key_attribute=TASK_ID_ATTRIBUTE, client=dynamodb)


def on_task_created(snapshot: Dict[str, Any], metadata: TaskCreatedEvent, store: Any) -> Dict[str, Any]:
    """
    Ensure a freshly created task has a status and a creation timestamp.

    Args:
        snapshot: field mapping of the new task item
        metadata: event metadata (task id, event id)
        store: task store exposing initialize_task() and server_timestamp()

    Returns:
        dict: {"task_id", "event_id", "outcome"} where outcome is one of
        "initialized", "skipped" or "already_initialized"

    Write failures are not caught here; they propagate to the caller so the
    platform can redeliver the event.
    """
    task_id = metadata.task_id
    logger.info(f"[on_task_created] New task created: {task_id} (event {metadata.event_id})")
    logger.info(f"[on_task_created] Task data: {snapshot}")

    # Any falsy status (missing, None, "", 0, False, empty list/map) gets the default
    if not status_is_unset(snapshot.get("status")):
        return {"task_id": task_id, "event_id": metadata.event_id, "outcome": "skipped"}

    committed = store.initialize_task(
        task_id,
        {
            "status": DEFAULT_TASK_STATUS,
            "createdAt": store.server_timestamp(),
        },
        key=metadata.keys,
    )
    outcome = "initialized" if committed else "already_initialized"
    logger.debug(f"[on_task_created] Task {task_id} {outcome}")
    return {"task_id": task_id, "event_id": metadata.event_id, "outcome": outcome}


def _item_identifier(record: Any) -> str:
    # Must not raise: used to report records that failed to parse
    if not isinstance(record, dict):
        return ""
    ddb = record.get("dynamodb")
    if isinstance(ddb, dict) and ddb.get("SequenceNumber"):
        return str(ddb["SequenceNumber"])
    return str(record.get("eventID") or "")


def _handle_records(records: List[Dict[str, Any]], store: Any) -> Dict[str, Any]:
    results: List[Dict[str, Any]] = []
    failures: List[Dict[str, str]] = []
    ignored = 0

    for record in records:
        item_id = _item_identifier(record)

        try:
            if not is_from_table(record, TASKS_TABLE):
                logger.warning(f"[handler] Ignoring record {record.get('eventID')} from {record.get('eventSourceARN')}")
                ignored += 1
                continue

            task_event = parse_stream_record(record, key_attribute=TASK_ID_ATTRIBUTE)
            if task_event is None:
                ignored += 1
                continue
            results.append(on_task_created(task_event.data, task_event, store))
        except Exception:
            logger.exception(f"[handler] Failed to process record {item_id}")
            if not REPORT_BATCH_ITEM_FAILURES:
                raise
            failures.append({"itemIdentifier": item_id})
            # Lambda retries from the first failed sequence number, so the rest
            # of the batch is redelivered anyway
            break

    logger.info(
        f"[handler] Processed {len(records)} records: {len(results)} handled, "
        f"{ignored} ignored, {len(failures)} failed"
    )
    return {"batchItemFailures": failures, "results": results}


def handler(event: Dict[str, Any], context: Any, store: Optional[Any] = None) -> Dict[str, Any]:
    """
    Lambda entry point for task creation events.

    Input formats:

    # DynamoDB Streams batch:
    {
      "Records": [{
        "eventID": "...",
        "eventName": "INSERT",
        "eventSourceARN": "arn:aws:dynamodb:...:table/tasks/stream/...",
        "dynamodb": {
          "Keys": {"taskId": {"S": "..."}},
          "NewImage": {"taskId": {"S": "..."}, "title": {"S": "..."}},
          "SequenceNumber": "..."
        }
      }]
    }

    # Direct invocation:
    {
      "taskId": "...",
      "task": {"title": "Buy milk"}
    }
    """
    store = store or task_store

    if not isinstance(event, dict):
        raise ValueError("Event must be a dict")

    request_id = getattr(context, "aws_request_id", None)
    logger.info(f"[handler] Invoked (request {request_id}) with event keys: {list(event.keys())}")

    if "Records" in event and isinstance(event["Records"], list):
        return _handle_records(event["Records"], store)

    if "taskId" in event:
        task_event = parse_direct_event(event)
        result = on_task_created(task_event.data, task_event, store)
        return {"batchItemFailures": [], "results": [result]}

    error_msg = "Invalid event format. Expected DynamoDB Streams 'Records' or direct format with 'taskId'"
    logger.error(f"[handler] {error_msg}")
    raise ValueError(error_msg)


if __name__ == "__main__":
    test_event = {"taskId": "local-task-1", "task": {"title": "Buy milk"}}
    print(json.dumps(handler(test_event, None), indent=2))
