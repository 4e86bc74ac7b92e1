"""
OperationEnvelope contract.

This is the request handed to the backing worker through the request Redis Stream.
The JSON shape is shared with the worker and must stay stable:

    {"operationType": "INSERT", "payload": {...user...}, "searchString": null}

Only the fields relevant to `operationType` are populated:
- INSERT / UPDATE: payload (full user record)
- DELETE: payload carrying only the user id
- SEARCH: searchString (may be null)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from src.userservice.errors import MalformedEnvelope


class OperationType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SEARCH = "SEARCH"


class UserRecord(BaseModel):
    """
    User fields the worker needs to perform an operation.

    Unset fields are omitted on the wire.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[int] = None
    username: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    surname: Optional[str] = None
    password: Optional[str] = None
    enabled: Optional[bool] = None
    authorities: Optional[List[str]] = None


@dataclass(frozen=True)
class OperationEnvelope:
    operation_type: OperationType
    payload: Optional[UserRecord] = None
    search_string: Optional[str] = None

    def __post_init__(self) -> None:
        op = self.operation_type
        if op in (OperationType.INSERT, OperationType.UPDATE):
            if self.payload is None:
                raise MalformedEnvelope(f"{op.value} requires a user payload")
            if self.search_string is not None:
                raise MalformedEnvelope(f"{op.value} does not take a searchString")
        elif op == OperationType.DELETE:
            if self.payload is None or self.payload.id is None:
                raise MalformedEnvelope("DELETE requires a payload carrying the user id")
            if self.search_string is not None:
                raise MalformedEnvelope("DELETE does not take a searchString")
        elif op == OperationType.SEARCH:
            if self.payload is not None:
                raise MalformedEnvelope("SEARCH does not take a payload")
        else:
            raise MalformedEnvelope(f"Unsupported operationType={op!r}")

    @classmethod
    def insert(cls, user: UserRecord) -> "OperationEnvelope":
        return cls(operation_type=OperationType.INSERT, payload=user)

    @classmethod
    def update(cls, user: UserRecord) -> "OperationEnvelope":
        return cls(operation_type=OperationType.UPDATE, payload=user)

    @classmethod
    def delete(cls, user_id: int) -> "OperationEnvelope":
        return cls(operation_type=OperationType.DELETE, payload=UserRecord(id=user_id))

    @classmethod
    def search(cls, search_string: Optional[str] = None) -> "OperationEnvelope":
        return cls(operation_type=OperationType.SEARCH, search_string=search_string)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operationType": self.operation_type.value,
            "payload": self.payload.model_dump(exclude_none=True) if self.payload is not None else None,
            "searchString": self.search_string,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: str) -> "OperationEnvelope":
        """
        Decode an envelope produced by `to_json`.

        Raises:
            MalformedEnvelope: not JSON, unknown operationType, or fields that
            do not match the operation.
        """
        try:
            obj = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise MalformedEnvelope(f"Envelope is not valid JSON: {exc}") from exc

        if not isinstance(obj, dict):
            raise MalformedEnvelope("Envelope must be a JSON object")

        try:
            op = OperationType(obj.get("operationType"))
        except ValueError as exc:
            raise MalformedEnvelope(f"Unknown operationType={obj.get('operationType')!r}") from exc

        raw_payload = obj.get("payload")
        try:
            payload = UserRecord.model_validate(raw_payload) if raw_payload is not None else None
        except ValidationError as exc:
            raise MalformedEnvelope(f"Invalid user payload: {exc}") from exc

        return cls(operation_type=op, payload=payload, search_string=obj.get("searchString"))
