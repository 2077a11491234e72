"""JSON schema validation for inbound task events using jsonschema.
"""

from typing import Any, Dict

import jsonschema

STREAM_RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["eventID", "eventName", "dynamodb"],
    "properties": {
        "eventID": {"type": "string"},
        "eventName": {"type": "string", "enum": ["INSERT", "MODIFY", "REMOVE"]},
        "eventSourceARN": {"type": "string"},
        "dynamodb": {
            "type": "object",
            "required": ["Keys"],
            "properties": {
                "Keys": {"type": "object", "minProperties": 1},
                "NewImage": {"type": "object"},
                "SequenceNumber": {"type": "string"},
            },
        },
    },
}

# Only INSERT records must carry the new image.
INSERT_RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["dynamodb"],
    "properties": {
        "dynamodb": {"type": "object", "required": ["NewImage"]},
    },
}

DIRECT_EVENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["taskId", "task"],
    "properties": {
        "taskId": {"type": "string", "minLength": 1},
        "task": {"type": "object"},
        "eventId": {"type": "string"},
    },
}


def validate(instance: Dict[str, Any], schema: Dict[str, Any]) -> None:
    jsonschema.validate(instance=instance, schema=schema)
