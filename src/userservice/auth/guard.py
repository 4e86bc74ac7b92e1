"""
FastAPI authorization dependency.

Usage:
    @router.post("/insert")
    async def insert_user(..., credential: Credential = Depends(require_operation("insert"))): ...

Resolves before the handler body runs, so a denied request never builds an
envelope and never reaches the bridge.
- no / invalid / expired bearer token -> 401
- valid token without the required role -> 403
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.userservice.auth.credentials import Credential, decode_credential
from src.userservice.auth.policy import OPERATION_POLICY, authorize
from src.userservice.errors import AuthorizationDenied, CredentialError
from src.userservice.logging.logger import setup_logger

logger = setup_logger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


async def require_credential(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Credential:
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_credential(credentials.credentials)
    except CredentialError as exc:
        logger.warning("Rejected credential | error=%s", exc)
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def require_operation(operation: str) -> Callable:
    """
    Build the dependency enforcing OPERATION_POLICY[operation].
    """
    required_role = OPERATION_POLICY[operation]

    async def _dependency(credential: Credential = Depends(require_credential)) -> Credential:
        if not authorize(credential, required_role):
            denied = AuthorizationDenied(operation, required_role.value)
            logger.warning("Authorization denied | subject=%s | %s", credential.subject, denied)
            raise HTTPException(status_code=403, detail="Insufficient permissions") from denied
        return credential

    return _dependency
