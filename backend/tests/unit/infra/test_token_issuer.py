"""Unit tests for PyJWTTokenIssuer."""

from __future__ import annotations

import base64
import json
from datetime import timedelta

import jwt
import pytest

from authcore.infra.jwt.pyjwt_token_issuer import PyJWTTokenIssuer
from authcore.models.user import Role
from authcore.services._shared.errors import INVALID_ACCESS_TOKEN, InvalidTokenError
from tests.helpers.utils import MutableClock

KEY = "unit-test-signing-key-000000000000000000"
OTHER_KEY = "another-signing-key-11111111111111111111"
ISSUER = "authcore"
AUDIENCE = "authcore-clients"


@pytest.fixture()
def clock() -> MutableClock:
    return MutableClock()


def _issuer(clock, **overrides) -> PyJWTTokenIssuer:
    params = {
        "signing_key": KEY,
        "issuer": ISSUER,
        "audience": AUDIENCE,
        "access_expires": timedelta(minutes=15),
        "clock": clock,
    }
    params.update(overrides)
    return PyJWTTokenIssuer(**params)


def _b64(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()


def _rejects(issuer: PyJWTTokenIssuer, token: str) -> str:
    with pytest.raises(InvalidTokenError) as exc_info:
        issuer.validate(token)
    return str(exc_info.value)


def test_issue_then_validate_returns_claims(clock):
    issuer = _issuer(clock)
    token = issuer.issue_access_token(user_id=7, username="alice", role=Role.ADMIN)

    claims = issuer.validate(token)
    assert claims.user_id == 7
    assert claims.username == "alice"
    assert claims.role is Role.ADMIN
    assert claims.issued_at == clock.now
    assert claims.expires_at == clock.now + timedelta(minutes=15)
    assert issuer.access_expires_seconds == 900


def test_claim_set_on_the_wire(clock):
    token = _issuer(clock).issue_access_token(user_id=7, username="alice", role=Role.USER)
    payload = jwt.decode(token, options={"verify_signature": False})
    assert payload["sub"] == "7"
    assert payload["role"] == "User"
    assert payload["iss"] == ISSUER and payload["aud"] == AUDIENCE
    assert set(payload) == {"sub", "name", "role", "iss", "aud", "iat", "exp", "jti"}


def test_each_token_has_unique_jti(clock):
    issuer = _issuer(clock)
    a = issuer.validate(issuer.issue_access_token(user_id=1, username="a", role=Role.USER))
    b = issuer.validate(issuer.issue_access_token(user_id=1, username="a", role=Role.USER))
    assert a.jti != b.jti


def test_valid_until_one_second_before_expiry(clock):
    issuer = _issuer(clock)
    token = issuer.issue_access_token(user_id=1, username="a", role=Role.USER)

    clock.advance(minutes=15, seconds=-1)
    assert issuer.validate(token).user_id == 1

    clock.advance(seconds=1)
    _rejects(issuer, token)


def test_token_from_the_future_rejected(clock):
    issuer = _issuer(clock)
    token = issuer.issue_access_token(user_id=1, username="a", role=Role.USER)
    clock.advance(seconds=-1)
    _rejects(issuer, token)


def test_tampered_payload_rejected(clock):
    issuer = _issuer(clock)
    token = issuer.issue_access_token(user_id=1, username="a", role=Role.USER)
    header, payload, signature = token.split(".")
    claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
    claims["role"] = "SuperAdmin"

    _rejects(issuer, ".".join([header, _b64(claims), signature]))


@pytest.mark.parametrize(
    "overrides",
    [
        {"signing_key": OTHER_KEY},
        {"issuer": "someone-else"},
        {"audience": "other-clients"},
    ],
)
def test_foreign_tokens_rejected(clock, overrides):
    foreign = _issuer(clock, **overrides).issue_access_token(user_id=1, username="a", role=Role.USER)
    _rejects(_issuer(clock), foreign)


def test_unsigned_token_rejected(clock):
    issuer = _issuer(clock)
    good = jwt.decode(
        issuer.issue_access_token(user_id=1, username="a", role=Role.USER),
        options={"verify_signature": False},
    )
    unsigned = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(good)}."
    _rejects(issuer, unsigned)


@pytest.mark.parametrize("missing", ["role", "jti", "sub"])
def test_missing_claim_rejected(clock, missing):
    issuer = _issuer(clock)
    payload = jwt.decode(
        issuer.issue_access_token(user_id=1, username="a", role=Role.USER),
        options={"verify_signature": False},
    )
    payload.pop(missing)
    _rejects(issuer, jwt.encode(payload, KEY, algorithm="HS256"))


def test_unknown_role_rejected(clock):
    issuer = _issuer(clock)
    payload = jwt.decode(
        issuer.issue_access_token(user_id=1, username="a", role=Role.USER),
        options={"verify_signature": False},
    )
    payload["role"] = "Root"
    _rejects(issuer, jwt.encode(payload, KEY, algorithm="HS256"))


def test_failures_are_indistinguishable(clock):
    issuer = _issuer(clock)
    token = issuer.issue_access_token(user_id=1, username="a", role=Role.USER)
    foreign = _issuer(clock, signing_key=OTHER_KEY).issue_access_token(
        user_id=1, username="a", role=Role.USER
    )
    messages = {_rejects(issuer, "garbage"), _rejects(issuer, foreign)}
    clock.advance(hours=1)
    messages.add(_rejects(issuer, token))
    assert messages == {INVALID_ACCESS_TOKEN}


def test_issuers_with_different_keys_coexist(clock):
    a = _issuer(clock)
    b = _issuer(clock, signing_key=OTHER_KEY)
    token_a = a.issue_access_token(user_id=1, username="a", role=Role.USER)
    token_b = b.issue_access_token(user_id=2, username="b", role=Role.USER)

    assert a.validate(token_a).user_id == 1
    assert b.validate(token_b).user_id == 2
    _rejects(a, token_b)
    _rejects(b, token_a)


def test_repr_does_not_leak_key(clock):
    assert KEY not in repr(_issuer(clock))


@pytest.mark.parametrize(
    "overrides",
    [
        {"signing_key": ""},
        {"algorithm": "RS256"},
        {"access_expires": timedelta(0)},
    ],
)
def test_constructor_rejects_bad_settings(clock, overrides):
    with pytest.raises(ValueError):
        _issuer(clock, **overrides)
