"""Acknowledgment parsing per operation type."""

import pytest

from src.userservice.contracts.ack_envelope import AckEnvelope, parse_ack
from src.userservice.contracts.operation_envelope import OperationType
from src.userservice.errors import MalformedReply
from src.userservice.rpc.outcome import MALFORMED_REPLY_MESSAGE, Outcome, map_outcome


def test_parse_insert_ack_with_identifier():
    ack = parse_ack('{"success": true, "message": "Ok", "payload": 42}', OperationType.INSERT)
    assert ack.success is True
    assert ack.payload == 42


def test_parse_search_ack_keeps_arbitrary_payload():
    ack = parse_ack('{"success": true, "payload": [{"id": 1, "username": "a"}]}', OperationType.SEARCH)
    assert ack.payload == [{"id": 1, "username": "a"}]


def test_success_without_payload_is_valid():
    ack = parse_ack('{"success": true}', OperationType.DELETE)
    assert ack.payload is None
    assert ack.message is None


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "null",
        "{not json",
        '{"message": "missing success"}',
        '{"success": false}',
        '{"success": true, "payload": "forty-two"}',
    ],
)
def test_malformed_replies_raise(raw):
    with pytest.raises(MalformedReply):
        parse_ack(raw, OperationType.INSERT)


def test_failure_requires_message_on_construction():
    with pytest.raises(ValueError):
        AckEnvelope[int](success=False)


@pytest.mark.parametrize(
    "raw",
    [
        '{"success": true, "payload": true}',
        '{"success": true, "payload": "42"}',
        '{"success": true, "payload": 42.0}',
        '{"success": "yes", "payload": 1}',
        '{"success": 1}',
        '{"success": true, "message": 7}',
    ],
)
def test_protocol_violations_are_not_coerced(raw):
    assert map_outcome(raw, OperationType.INSERT) == Outcome(500, MALFORMED_REPLY_MESSAGE)
