from __future__ import annotations

import time

import jwt
import pytest
from fastapi import HTTPException
from starlette.requests import Request

from security.auth import get_bearer_token, identity_from_claims, verify_jwt
from security.identity import CallerIdentity


def _request(headers: dict[str, str]) -> Request:
    raw = [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


@pytest.mark.unit
def test_bearer_token_parsing():
    assert get_bearer_token(_request({"Authorization": "Bearer abc"})) == "abc"
    assert get_bearer_token(_request({"authorization": "bearer  abc "})) == "abc"
    assert get_bearer_token(_request({})) is None
    assert get_bearer_token(_request({"Authorization": "Basic abc"})) is None
    assert get_bearer_token(_request({"Authorization": "Bearer"})) is None
    assert get_bearer_token(_request({"Authorization": "Bearer a b"})) is None


@pytest.mark.unit
def test_verify_jwt_accepts_valid_and_rejects_bad_tokens():
    good = jwt.encode({"sub": "alice"}, "s3cret", algorithm="HS256")
    assert verify_jwt(good, "s3cret", ["HS256"])["sub"] == "alice"

    with pytest.raises(HTTPException) as wrong_key:
        verify_jwt(good, "other", ["HS256"])
    assert wrong_key.value.status_code == 401

    expired = jwt.encode({"sub": "alice", "exp": int(time.time()) - 60}, "s3cret", algorithm="HS256")
    with pytest.raises(HTTPException) as exc:
        verify_jwt(expired, "s3cret", ["HS256"])
    assert exc.value.status_code == 401
    assert exc.value.detail == "JWT expired"


@pytest.mark.unit
def test_identity_from_claims_maps_subject_and_roles():
    ident = identity_from_claims({"sub": "alice", "roles": ["Admin", " viewer "], "role": "ops"})
    assert ident == CallerIdentity(principal="alice", roles=frozenset({"admin", "viewer", "ops"}))
    assert identity_from_claims({"user": "bob", "roles": "a, b"}).roles == frozenset({"a", "b"})


@pytest.mark.unit
def test_verified_token_without_subject_is_refused():
    with pytest.raises(HTTPException) as exc:
        identity_from_claims({"roles": ["admin"]})
    assert exc.value.status_code == 401


@pytest.mark.unit
def test_anonymous_identity_is_distinct():
    anon = CallerIdentity.anonymous()
    assert anon.is_anonymous
    assert anon.audit_subject == "<anonymous>"
    assert anon != CallerIdentity.of("<anonymous>")
    assert anon != CallerIdentity.of("anonymous")
