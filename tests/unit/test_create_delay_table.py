"""Tests for the delay table creation script."""

from __future__ import annotations

import sys
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

# Make scripts/ importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "scripts"))

from create_delay_table import create_delay_table  # noqa: E402

from pollflow.models.submission import Submission  # noqa: E402
from pollflow.persistence.dynamodb_backend import DynamoDBDelayStore  # noqa: E402


@pytest.fixture
def ddb():
    with mock_aws():
        yield boto3.resource("dynamodb", region_name="us-east-1")


def test_creates_table_with_suffix(ddb):
    assert create_delay_table(ddb, suffix="-test") is True
    tables = ddb.meta.client.list_tables()["TableNames"]
    assert tables == ["pollflow-delayed-entries-test"]


def test_idempotent_skips_existing(ddb):
    create_delay_table(ddb, suffix="-test")
    assert create_delay_table(ddb, suffix="-test") is False


def test_created_table_backs_the_store(ddb):
    create_delay_table(ddb, suffix="-test")
    store = DynamoDBDelayStore(table_suffix="-test", region="us-east-1", clock=lambda: 0)
    store.schedule(Submission(submission_id="A"), 0, 0, journey_id="j1")
    assert store.pending() == 1
