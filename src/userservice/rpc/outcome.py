"""
Outcome mapper: raw bridge reply -> HTTP status + body.

Pure function of (reply, operation type). Evaluated in order:

1. no reply (timeout / publish failure)      -> 500, NO_REPLY_MESSAGE
2. reply is not a valid acknowledgment         -> 500, MALFORMED_REPLY_MESSAGE
3. success == false                            -> 400, ack.message
4. success == true, payload present            -> 200, SEARCH: bare payload
                                                       others: whole ack
5. success == true, payload absent             -> 200, MINIMAL_OK_BODY

SEARCH unwrapping vs. wrapping for the other operations is what existing
clients of this service parse; keep both shapes as they are.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

from src.userservice.contracts.ack_envelope import parse_ack
from src.userservice.contracts.operation_envelope import OperationType
from src.userservice.errors import MalformedReply
from src.userservice.logging.logger import setup_logger

logger = setup_logger(__name__)

NO_REPLY_MESSAGE = "The request could not be satisfied at this time"
MALFORMED_REPLY_MESSAGE = "Can't complete the operation"
MINIMAL_OK_BODY = '{"response": "OK"}'


@dataclass(frozen=True)
class Outcome:
    status_code: int
    body: str


def map_outcome(raw_reply: Optional[str], operation_type: OperationType) -> Outcome:
    if raw_reply is None:
        return Outcome(500, NO_REPLY_MESSAGE)

    try:
        ack = parse_ack(raw_reply, operation_type)
    except MalformedReply as exc:
        logger.error("Malformed reply | operation=%s | error=%s", operation_type.value, exc)
        return Outcome(500, MALFORMED_REPLY_MESSAGE)

    if not ack.success:
        return Outcome(400, ack.message)

    if ack.payload is None:
        return Outcome(200, MINIMAL_OK_BODY)

    if operation_type == OperationType.SEARCH:
        return Outcome(200, json.dumps(ack.payload, separators=(",", ":")))
    if operation_type in (OperationType.INSERT, OperationType.UPDATE, OperationType.DELETE):
        return Outcome(200, ack.model_dump_json())

    raise ValueError(f"Unsupported operation_type={operation_type!r}")
