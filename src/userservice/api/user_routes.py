"""
User management HTTP API.

Responsibilities:
- Authorize the caller for the operation (before anything else)
- Build the operation envelope from the request
- Call the RPC bridge and map the reply to an HTTP response

NOTE:
- No user data is stored or mutated here; the backing worker does that.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, Field

from src.userservice.auth.credentials import Credential
from src.userservice.auth.guard import require_operation
from src.userservice.contracts.operation_envelope import OperationEnvelope, UserRecord
from src.userservice.logging.logger import setup_logger
from src.userservice.rpc.bridge import RpcBridge
from src.userservice.rpc.outcome import Outcome, map_outcome

logger = setup_logger(__name__)

router = APIRouter(prefix="/user")


class UserInsertModel(BaseModel):
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1)
    name: Optional[str] = None
    surname: Optional[str] = None
    enabled: bool = True
    authorities: Optional[List[str]] = None

    def to_user(self) -> UserRecord:
        return UserRecord(**self.model_dump())


class UserEditModel(BaseModel):
    id: int
    username: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+$")
    password: Optional[str] = None
    name: Optional[str] = None
    surname: Optional[str] = None
    enabled: Optional[bool] = None
    authorities: Optional[List[str]] = None

    def to_user(self) -> UserRecord:
        return UserRecord(**self.model_dump())


def get_bridge(request: Request) -> RpcBridge:
    return request.app.state.bridge


def _to_response(outcome: Outcome) -> Response:
    media_type = "application/json" if outcome.status_code == 200 else "text/plain"
    return Response(content=outcome.body, status_code=outcome.status_code, media_type=media_type)


async def _call_worker(bridge: RpcBridge, envelope: OperationEnvelope) -> Response:
    try:
        raw_reply = await bridge.send(envelope)
        return _to_response(map_outcome(raw_reply, envelope.operation_type))
    except Exception as exc:
        logger.exception("Operation failed | operation=%s", envelope.operation_type.value)
        return Response(content=str(exc), status_code=500, media_type="text/plain")


@router.get("/hello")
async def hello(credential: Credential = Depends(require_operation("hello"))) -> Response:
    return Response(content="Hello!", status_code=200, media_type="text/plain")


@router.post("/insert")
async def insert_user(
    user_model: UserInsertModel,
    credential: Credential = Depends(require_operation("insert")),
    bridge: RpcBridge = Depends(get_bridge),
) -> Response:
    logger.info("insert_user | subject=%s | username=%s", credential.subject, user_model.username)
    return await _call_worker(bridge, OperationEnvelope.insert(user_model.to_user()))


@router.post("/edit")
async def edit_user(
    user_model: UserEditModel,
    credential: Credential = Depends(require_operation("edit")),
    bridge: RpcBridge = Depends(get_bridge),
) -> Response:
    logger.info("edit_user | subject=%s | user_id=%s", credential.subject, user_model.id)
    return await _call_worker(bridge, OperationEnvelope.update(user_model.to_user()))


@router.post("/delete/{user_id}")
async def delete_user(
    user_id: int,
    credential: Credential = Depends(require_operation("delete")),
    bridge: RpcBridge = Depends(get_bridge),
) -> Response:
    logger.info("delete_user | subject=%s | user_id=%s", credential.subject, user_id)
    return await _call_worker(bridge, OperationEnvelope.delete(user_id))


@router.get("/view")
async def view_users(
    search_string: Optional[str] = Query(default=None, alias="searchString"),
    credential: Credential = Depends(require_operation("view")),
    bridge: RpcBridge = Depends(get_bridge),
) -> Response:
    logger.info("view_users | subject=%s | search_string=%s", credential.subject, search_string)
    return await _call_worker(bridge, OperationEnvelope.search(search_string))
