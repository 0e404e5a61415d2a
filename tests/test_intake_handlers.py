import logging

import pytest

from agent_bridge.handlers.intake_handlers import (
    classify_client_type,
    extract_date,
    extract_email,
    extract_full_name,
    extract_incident,
    extract_location,
    extract_phone,
    ingest_utterance,
)
from agent_bridge.models.intake import ShadowIntakeRecord


@pytest.mark.parametrize(
    "text,expected",
    [
        ("I'm not a client yet", "new"),
        ("I am an existing client", "existing"),
        ("I'm already a client of yours", "existing"),
        ("my client number is 42", "existing"),
        ("I was in a car accident", "new"),
        ("there was a collision on the highway", "new"),
        ("hello there", None),
    ],
)
def test_classify_client_type(text, expected):
    assert classify_client_type(text) == expected


@pytest.mark.parametrize(
    "text",
    [
        "my phone is 555-123-4567",
        "call me at (555) 123-4567",
        "it's 555.123.4567",
        "reach me on +1 555 123 4567",
        "5551234567",
    ],
)
def test_extract_phone_normalizes(text):
    assert extract_phone(text) == "555-123-4567"


def test_extract_phone_ignores_short_numbers():
    assert extract_phone("I was going 45 in a 35") is None


def test_extract_email():
    assert extract_email("it's jordan.smith@example.com thanks") == "jordan.smith@example.com"
    assert extract_email("no email here") is None


@pytest.mark.parametrize(
    "text,expected",
    [
        ("My name is Jordan Smith", "Jordan Smith"),
        ("Hi, this is Maria Lopez Garcia calling", "Maria Lopez Garcia"),
        ("I'm Sam Lee.", "Sam Lee"),
        ("my name is jordan smith", "Jordan Smith"),
        ("Yes Jordan Smith here", "Jordan Smith"),
    ],
)
def test_extract_full_name(text, expected):
    assert extract_full_name(text) == expected


@pytest.mark.parametrize(
    "text",
    [
        "I am in an accident",
        "It happened on Monday March 3rd",
        "I live in Dallas",
        "I was hurt",
    ],
)
def test_extract_full_name_rejects_non_names(text):
    assert extract_full_name(text) is None


@pytest.mark.parametrize(
    "text,expected",
    [
        ("it happened on March 3rd", "March 3rd"),
        ("on Jan 5, 2024 around noon", "Jan 5, 2024"),
        ("on 3/14/2024", "3/14/2024"),
        ("it was Yesterday afternoon", "yesterday"),
        ("last   Tuesday", "last tuesday"),
        ("last night on the way home", "last night"),
    ],
)
def test_extract_date(text, expected):
    assert extract_date(text) == expected


def test_extract_date_none():
    assert extract_date("I don't remember") is None


@pytest.mark.parametrize(
    "text,expected",
    [
        ("it happened in Austin, TX", "Austin, TX"),
        ("in san antonio, tx near the mall", "San Antonio, TX"),
        ("I was at Dallas when it happened", "Dallas"),
        ("I live in New York", "New York"),
    ],
)
def test_extract_location(text, expected):
    assert extract_location(text) == expected


@pytest.mark.parametrize(
    "text",
    ["I was in an accident", "I was in the crash", "in March", "at home"],
)
def test_extract_location_rejects_incident_phrases(text):
    assert extract_location(text) is None


def test_extract_incident_keyword_or_length():
    assert extract_incident("I got rear-ended") == "I got rear-ended"
    assert extract_incident("the dog bit me") == "the dog bit me"
    assert extract_incident("we went to the store and then") is not None
    assert extract_incident("okay sure") is None


def test_first_writer_wins():
    record = ShadowIntakeRecord()

    ingest_utterance(record, "my phone is 555-123-4567")
    ingest_utterance(record, "actually use 555-999-8888")

    assert record.phone == "555-123-4567"


def test_name_then_phone_scenario():
    record = ShadowIntakeRecord()

    ingest_utterance(record, "My name is Jordan Smith")
    ingest_utterance(record, "my phone is 555-123-4567")

    assert record.full_name == "Jordan Smith"
    assert record.phone == "555-123-4567"
    assert record.transcripts == ["My name is Jordan Smith", "my phone is 555-123-4567"]


def test_recent_duplicates_are_ignored():
    record = ShadowIntakeRecord()

    assert ingest_utterance(record, "I was in a car accident") == ["client_type", "incident"]
    assert ingest_utterance(record, "I was in a car accident") == []

    assert len(record.transcripts) == 1


def test_returns_updated_fields():
    record = ShadowIntakeRecord()
    updated = ingest_utterance(record, "email me at a@b.co")
    assert updated == ["email"]


def test_completion_logged_once(caplog):
    record = ShadowIntakeRecord()
    caplog.set_level(logging.INFO, logger="agent_bridge")

    for utterance in (
        "I was in a car accident",
        "My name is Jordan Smith",
        "my phone is 555-123-4567",
        "it happened yesterday",
        "it was in Austin, TX",
        "thanks",
        "bye",
    ):
        ingest_utterance(record, utterance)

    assert record.is_complete() is True
    assert record.complete_logged is True
    assert sum("intake_complete" in r.getMessage() for r in caplog.records) == 1


def test_snapshot_contents():
    record = ShadowIntakeRecord()
    ingest_utterance(record, "my email is jordan@example.com")

    snapshot = record.snapshot()

    assert snapshot["email"] == "jordan@example.com"
    assert snapshot["complete"] is False
    assert snapshot["utterances"] == 1
    assert "transcripts" not in snapshot
