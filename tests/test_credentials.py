from datetime import timedelta

import pytest

from services.credentials import CredentialIssuer, utc_now
from utils.csrf import CSRFBinder
from utils.exceptions import TokenIssueError
from utils.tokens import TokenCodec

ACCESS_TTL = timedelta(minutes=15)
REFRESH_TTL = timedelta(days=7)


class BrokenCodec(TokenCodec):
    def issue(self, claims, expires_at, issued_at=None):
        raise TokenIssueError("signing backend down")


@pytest.fixture
def clock():
    # recent enough that freshly issued access tokens are still valid
    now = utc_now() - timedelta(seconds=30)
    return lambda: now


@pytest.fixture
def codecs():
    return TokenCodec("access-" + "a" * 64), TokenCodec("refresh-" + "r" * 64), CSRFBinder("csrf-" + "c" * 64)


@pytest.fixture
def issuer(codecs, clock):
    access, refresh, binder = codecs
    return CredentialIssuer(access, refresh, binder, ACCESS_TTL, REFRESH_TTL, clock)


def test_issue_triple_with_independent_expiries(issuer, codecs, clock):
    access, refresh, binder = codecs
    start = clock()

    issued = issuer.issue("user-1", "alice")

    assert issued.access_expires_at == start + ACCESS_TTL
    assert issued.refresh_expires_at == start + REFRESH_TTL
    claims = refresh.decode_refresh(issued.refresh_token)
    assert (claims.user_id, claims.session_id, claims.user_name) == ("user-1", issued.session_id, "alice")
    assert claims.expires_at == start + REFRESH_TTL
    assert access.decode_access(issued.access_token).expires_at == start + ACCESS_TTL
    assert issued.csrf_token == binder.derive(issued.session_id)


def test_access_token_carries_no_identity(issuer, codecs):
    access, _, _ = codecs
    payload = access.verify(issuer.issue("user-1").access_token)

    assert set(payload) == {"iat", "exp"}


def test_expiry_override_applies_to_refresh_only(issuer, codecs, clock):
    _, refresh, _ = codecs
    absolute = clock() + timedelta(days=2)

    issued = issuer.issue("user-1", expires_at=absolute)

    assert refresh.decode_refresh(issued.refresh_token).expires_at == absolute
    assert issued.access_expires_at == clock() + ACCESS_TTL


def test_each_issue_gets_a_fresh_session(issuer):
    first = issuer.issue("user-1")
    second = issuer.issue("user-1")

    assert first.session_id != second.session_id
    assert first.csrf_token != second.csrf_token


def test_signing_failure_aborts_whole_issue(codecs, clock):
    access, _, binder = codecs
    issuer = CredentialIssuer(access, BrokenCodec("refresh-" + "r" * 64), binder, ACCESS_TTL, REFRESH_TTL, clock)

    with pytest.raises(TokenIssueError):
        issuer.issue("user-1")
