from datetime import datetime, timedelta, timezone

import jwt
import pytest

from catalog_auth.application.services.token_service import (
    IdentityClaim, SigningKey, TokenIssuer, TokenPurpose, TokenVerifier,
)
from catalog_auth.exceptions import TokenError, TokenFailure

from conftest import ACCESS_SECRET, REFRESH_SECRET

CLAIM = IdentityClaim(subject="user-1", mobile="9876543210")


def make_issuer(clock=None):
    kwargs = {"clock": clock} if clock else {}
    return TokenIssuer(
        keys={
            TokenPurpose.ACCESS: SigningKey(ACCESS_SECRET, timedelta(minutes=15)),
            TokenPurpose.REFRESH: SigningKey(REFRESH_SECRET, timedelta(days=7)),
        },
        **kwargs,
    )


def make_verifier():
    return TokenVerifier(secrets={TokenPurpose.ACCESS: ACCESS_SECRET, TokenPurpose.REFRESH: REFRESH_SECRET})


def reason_for(token, purpose):
    with pytest.raises(TokenError) as exc:
        make_verifier().verify(token, purpose)
    return exc.value.reason


def test_round_trip_returns_original_claim():
    pair = make_issuer().issue_pair(CLAIM)
    verifier = make_verifier()
    assert verifier.verify(pair.access_token, TokenPurpose.ACCESS) == CLAIM
    assert verifier.verify(pair.refresh_token, TokenPurpose.REFRESH) == CLAIM


def test_pair_lifetimes():
    pair = make_issuer().issue_pair(CLAIM)
    assert pair.access_expires_in == 15 * 60
    assert pair.refresh_expires_in == 7 * 24 * 60 * 60
    access = jwt.decode(pair.access_token, ACCESS_SECRET, algorithms=["HS256"], issuer="catalog-auth")
    refresh = jwt.decode(pair.refresh_token, REFRESH_SECRET, algorithms=["HS256"], issuer="catalog-auth")
    assert access["exp"] - access["iat"] == 15 * 60
    assert refresh["exp"] - refresh["iat"] == 7 * 24 * 60 * 60
    assert access["type"] == "access"
    assert refresh["type"] == "refresh"


def test_tokens_minted_in_same_instant_differ():
    fixed = datetime.now(timezone.utc)
    issuer = make_issuer(clock=lambda: fixed)
    first, second = issuer.issue_pair(CLAIM), issuer.issue_pair(CLAIM)
    assert first.access_token != second.access_token
    assert first.refresh_token != second.refresh_token
    assert first.access_token != first.refresh_token


def test_refresh_token_rejected_as_access_and_vice_versa():
    pair = make_issuer().issue_pair(CLAIM)
    assert reason_for(pair.refresh_token, TokenPurpose.ACCESS) is TokenFailure.BAD_SIGNATURE
    assert reason_for(pair.access_token, TokenPurpose.REFRESH) is TokenFailure.BAD_SIGNATURE


def test_well_signed_token_with_other_purpose_is_wrong_purpose():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "user-1", "mobile": "9876543210", "type": "refresh", "iat": now,
         "exp": now + timedelta(minutes=5), "iss": "catalog-auth"},
        ACCESS_SECRET, algorithm="HS256",
    )
    assert reason_for(token, TokenPurpose.ACCESS) is TokenFailure.WRONG_PURPOSE


def test_expired_token():
    issued_at = datetime.now(timezone.utc) - timedelta(minutes=16)
    pair = make_issuer(clock=lambda: issued_at).issue_pair(CLAIM)
    assert reason_for(pair.access_token, TokenPurpose.ACCESS) is TokenFailure.EXPIRED
    # The refresh token from the same pair is still inside its 7 day window
    assert make_verifier().verify(pair.refresh_token, TokenPurpose.REFRESH) == CLAIM


@pytest.mark.parametrize("token", [None, ""])
def test_missing_token(token):
    assert reason_for(token, TokenPurpose.REFRESH) is TokenFailure.MISSING


@pytest.mark.parametrize("token", ["not-a-token", "a.b.c", "....", "\ud800.e30.sig"])
def test_malformed_token(token):
    assert reason_for(token, TokenPurpose.ACCESS) is TokenFailure.MALFORMED


def test_token_signed_with_unknown_secret():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "user-1", "mobile": "9876543210", "type": "access", "iat": now,
         "exp": now + timedelta(days=365), "iss": "catalog-auth"},
        "rotated-out-secret-0123456789abcdefgh", algorithm="HS256",
    )
    assert reason_for(token, TokenPurpose.ACCESS) is TokenFailure.BAD_SIGNATURE


def test_unsigned_token_is_rejected():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "user-1", "mobile": "9876543210", "type": "access", "iat": now,
         "exp": now + timedelta(minutes=5), "iss": "catalog-auth"},
        None, algorithm="none",
    )
    assert reason_for(token, TokenPurpose.ACCESS) is TokenFailure.BAD_SIGNATURE


def test_token_without_mobile_claim_is_malformed():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "user-1", "type": "access", "iat": now, "exp": now + timedelta(minutes=5), "iss": "catalog-auth"},
        ACCESS_SECRET, algorithm="HS256",
    )
    assert reason_for(token, TokenPurpose.ACCESS) is TokenFailure.MALFORMED


def test_token_from_other_issuer_is_malformed():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "user-1", "mobile": "9876543210", "type": "access", "iat": now,
         "exp": now + timedelta(minutes=5), "iss": "someone-else"},
        ACCESS_SECRET, algorithm="HS256",
    )
    assert reason_for(token, TokenPurpose.ACCESS) is TokenFailure.MALFORMED


def test_issuer_requires_both_keys():
    with pytest.raises(ValueError):
        TokenIssuer(keys={TokenPurpose.ACCESS: SigningKey(ACCESS_SECRET, timedelta(minutes=15))})
