"""
Acknowledgment envelope contract.

Produced by the backing worker, carried unmodified across the bridge and
consumed once by the outcome mapper:

    {"success": true, "message": "Ok", "payload": 42}

The payload type depends on the operation:
- INSERT / UPDATE / DELETE: the record identifier (int)
- SEARCH: any JSON value (normally the list of matching users)
"""

from __future__ import annotations

from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from src.userservice.contracts.operation_envelope import OperationType
from src.userservice.errors import MalformedReply

T = TypeVar("T")


class AckEnvelope(BaseModel, Generic[T]):
    # carried unmodified: no coercion of "42", 42.0, true or "yes"
    model_config = ConfigDict(strict=True)

    success: bool
    message: Optional[str] = None
    payload: Optional[T] = None

    @model_validator(mode="after")
    def _message_required_on_failure(self) -> "AckEnvelope[T]":
        if not self.success and self.message is None:
            raise ValueError("message is required when success is false")
        return self


def ack_model_for(operation_type: OperationType) -> Type[AckEnvelope]:
    if operation_type in (OperationType.INSERT, OperationType.UPDATE, OperationType.DELETE):
        return AckEnvelope[int]
    if operation_type == OperationType.SEARCH:
        return AckEnvelope[Any]
    raise ValueError(f"Unsupported operation_type={operation_type!r}")


def parse_ack(raw: str, operation_type: OperationType) -> AckEnvelope:
    """
    Parse a raw reply body into the acknowledgment model for `operation_type`.

    Raises:
        MalformedReply: the body is not JSON or does not match the envelope shape.
    """
    model = ack_model_for(operation_type)
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise MalformedReply(str(exc)) from exc
