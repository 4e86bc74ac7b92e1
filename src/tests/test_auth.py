"""Credential decoding and the role policy."""

from datetime import timedelta

import jwt
import pytest

from src.userservice.auth.credentials import Credential, decode_credential, encode_credential
from src.userservice.auth.policy import OPERATION_POLICY, Role, authorize
from src.userservice.config.settings import settings
from src.userservice.errors import CredentialError


def test_round_trip_strips_role_prefix():
    token = encode_credential("superadmin", [Role.SUPERADMIN])
    credential = decode_credential(token)
    assert credential == Credential(subject="superadmin", roles=frozenset({Role.SUPERADMIN}))


def test_spring_style_authorities_are_accepted():
    token = jwt.encode(
        {"sub": "admin", "roles": [{"authority": "ROLE_SYSTEM_ADMINISTRATOR"}, "ROLE_UNKNOWN"]},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    assert decode_credential(token).roles == frozenset({Role.SYSTEM_ADMINISTRATOR})


def test_expired_token_is_rejected():
    token = encode_credential("superadmin", [Role.SUPERADMIN], expires_in=timedelta(seconds=-5))
    with pytest.raises(CredentialError):
        decode_credential(token)


def test_wrong_signature_is_rejected():
    token = encode_credential("superadmin", [Role.SUPERADMIN], secret="another-secret-another-secret-00")
    with pytest.raises(CredentialError):
        decode_credential(token)


def test_missing_secret_rejects_everything():
    token = encode_credential("superadmin", [Role.SUPERADMIN])
    with pytest.raises(CredentialError):
        decode_credential(token, secret="")


def test_superadmin_implies_system_administrator():
    superadmin = Credential("a", frozenset({Role.SUPERADMIN}))
    assert authorize(superadmin, Role.SUPERADMIN)
    assert authorize(superadmin, Role.SYSTEM_ADMINISTRATOR)


def test_system_administrator_is_limited_to_hello():
    sysadmin = Credential("b", frozenset({Role.SYSTEM_ADMINISTRATOR}))
    allowed = {op for op, role in OPERATION_POLICY.items() if authorize(sysadmin, role)}
    assert allowed == {"hello"}


def test_no_roles_no_access():
    nobody = Credential("c", frozenset())
    assert not any(authorize(nobody, role) for role in OPERATION_POLICY.values())
