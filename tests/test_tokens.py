from datetime import datetime, timedelta, timezone

import jwt

from memberauth.services.tokens import TokenService


def test_issue_then_validate(tokens):
    token = tokens.issue("A0101")
    assert tokens.validate(token, "A0101")
    assert tokens.validate(token)


def test_valid_until_ttl_elapses(tokens):
    now = datetime.now(timezone.utc)
    almost = tokens.issue("A0101", issued_at=now - timedelta(hours=23, minutes=59))
    assert tokens.validate(almost, "A0101")

    stale = tokens.issue("A0101", issued_at=now - timedelta(hours=24, seconds=1))
    assert not tokens.validate(stale, "A0101")


def test_wrong_subject_rejected(tokens):
    assert not tokens.validate(tokens.issue("A0101"), "B0101")


def test_same_subject_gets_distinct_tokens(tokens):
    issued_at = datetime.now(timezone.utc)
    assert tokens.issue("A0101", issued_at=issued_at) != tokens.issue("A0101", issued_at=issued_at)


def test_tampered_and_foreign_tokens_rejected(tokens):
    header, _, signature = tokens.issue("A0101").split(".")
    _, forged_payload, _ = tokens.issue("B0101").split(".")
    tampered = ".".join([header, forged_payload, signature])
    assert not tokens.validate(tampered, "A0101")
    assert tokens.extract_subject(tampered) is None

    other = TokenService("some-other-secret-0123456789abcdef0123456789")
    assert not tokens.validate(other.issue("A0101"), "A0101")


def test_malformed_input_never_raises(tokens):
    for junk in ["", "not-a-token", "a.b.c", None, 42]:
        assert tokens.validate(junk) is False
        assert tokens.extract_subject(junk) is None
        assert tokens.expires_at(junk) is None


def test_token_without_subject_rejected(tokens):
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"exp": exp}, "test-secret-key-0123456789abcdef0123456789", algorithm="HS256")
    assert not tokens.validate(token)
    assert tokens.extract_subject(token) is None


def test_extract_subject_ignores_expiry(tokens):
    stale = tokens.issue("C9901", issued_at=datetime.now(timezone.utc) - timedelta(days=3))
    assert tokens.extract_subject(stale) == "C9901"
    assert not tokens.validate(stale, "C9901")


def test_expires_at_is_issue_time_plus_ttl(tokens):
    issued_at = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
    token = tokens.issue("A3001", issued_at=issued_at)
    assert tokens.expires_at(token) == issued_at + timedelta(hours=24)
