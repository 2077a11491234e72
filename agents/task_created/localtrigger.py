from agents.task_created.main import handler

# Local test trigger: a DynamoDB Streams INSERT for a task created without a status.
# Runs against the real TASKS_TABLE, so the item must exist for the update to commit.
event = {
    "Records": [
        {
            "eventID": "local-insert-1",
            "eventName": "INSERT",
            "eventSource": "aws:dynamodb",
            "dynamodb": {
                "Keys": {"taskId": {"S": "local-task-1"}},
                "NewImage": {
                    "taskId": {"S": "local-task-1"},
                    "title": {"S": "Buy milk"},
                },
                "SequenceNumber": "100000000000000000001",
                "StreamViewType": "NEW_IMAGE",
            },
        }
    ]
}

print(handler(event, None))
