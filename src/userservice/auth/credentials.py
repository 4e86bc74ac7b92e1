"""
Bearer credential decoding.

Tokens are JWTs signed by the identity service; this module only verifies
them and reads the subject and role claims. Issuance lives elsewhere
(`encode_credential` exists for local tooling and tests).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, FrozenSet, Iterable, Optional

import jwt

from src.userservice.auth.policy import Role
from src.userservice.config.settings import settings
from src.userservice.errors import CredentialError
from src.userservice.logging.logger import setup_logger

logger = setup_logger(__name__)

_ROLE_PREFIX = "ROLE_"


@dataclass(frozen=True)
class Credential:
    subject: str
    roles: FrozenSet[Role]


def _parse_roles(raw: Any) -> FrozenSet[Role]:
    """
    Accept ["SUPERADMIN"], ["ROLE_SUPERADMIN"] or [{"authority": "ROLE_SUPERADMIN"}].
    Unknown role names are ignored.
    """
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        raise CredentialError("roles claim must be a list")

    roles = set()
    for item in raw:
        name = item.get("authority") if isinstance(item, dict) else item
        if not isinstance(name, str):
            continue
        if name.startswith(_ROLE_PREFIX):
            name = name[len(_ROLE_PREFIX):]
        try:
            roles.add(Role(name))
        except ValueError:
            logger.debug("Ignoring unknown role claim | role=%s", name)
    return frozenset(roles)


def decode_credential(token: str, *, secret: Optional[str] = None) -> Credential:
    """
    Verify a bearer token and build the Credential it carries.

    Raises:
        CredentialError: missing secret, bad signature, expired token or bad claims.
    """
    secret = secret if secret is not None else settings.jwt_secret
    if not secret:
        # Without a secret every signature check would fail.
        logger.error("JWT secret is not configured")
        raise CredentialError("Credential verification is not configured")

    try:
        claims: Dict[str, Any] = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise CredentialError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise CredentialError(f"Invalid token: {exc}") from exc

    subject = claims.get("sub")
    if not subject:
        raise CredentialError("Token has no subject")

    return Credential(subject=str(subject), roles=_parse_roles(claims.get(settings.jwt_roles_claim)))


def encode_credential(
    subject: str,
    roles: Iterable[Role],
    *,
    secret: Optional[str] = None,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        settings.jwt_roles_claim: [f"{_ROLE_PREFIX}{role.value}" for role in roles],
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret if secret is not None else settings.jwt_secret, algorithm=settings.jwt_algorithm)
