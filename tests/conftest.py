# tests/conftest.py

import os

# Module-level boto3 clients are created at import time
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

import boto3
import pytest

from agents.task_created import main

from .fakes import FakeTaskStore


@pytest.fixture()
def store() -> FakeTaskStore:
    return FakeTaskStore()


@pytest.fixture(autouse=True)
def report_batch_item_failures(monkeypatch):
    monkeypatch.setattr(main, "REPORT_BATCH_ITEM_FAILURES", True)


@pytest.fixture()
def client():
    return boto3.client(
        "dynamodb",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
