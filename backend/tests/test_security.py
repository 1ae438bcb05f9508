from datetime import datetime, timedelta, timezone

import jwt
import pytest

from contest_tracker import errors, models
from contest_tracker.security import JWTGenerator, PasswordHasher, SessionClaims, SessionUser

SECRET = "unit-test-secret-0123456789abcdefghij"


def _claims(role=models.Role.USER):
    return SessionClaims(user=SessionUser(id=1, email="foo@bar.com", display_name="Foo", role=role))


def test_hash_is_salted_and_verifiable():
    hasher = PasswordHasher()
    first = hasher.hash("foobar")
    second = hasher.hash("foobar")
    assert first != "foobar"
    assert first != second
    assert hasher.compare(first, "foobar")
    assert not hasher.compare(first, "foobaz")


def test_compare_rejects_empty_and_malformed_hashes():
    hasher = PasswordHasher()
    assert not hasher.compare("", "foobar")
    assert not hasher.compare("not-a-hash", "not-a-hash")


def test_is_hashed():
    hasher = PasswordHasher()
    assert hasher.is_hashed(hasher.hash("foobar"))
    assert not hasher.is_hashed("foobar")
    assert not hasher.is_hashed("")


def test_new_token_embeds_claims_and_expiry():
    gen = JWTGenerator(SECRET)
    now = datetime.now(timezone.utc) - timedelta(minutes=10)
    claims = _claims()
    token = gen.new_token(timedelta(hours=2), claims, now=now)

    payload = jwt.decode(token, SECRET, algorithms=["HS256"])
    assert payload["user"]["id"] == 1
    assert payload["user"]["email"] == "foo@bar.com"
    assert payload["user"]["role"] == int(models.Role.USER)
    assert "password" not in payload["user"]
    assert payload["exp"] - payload["iat"] == 7200
    assert claims.expires_at == claims.issued_at + timedelta(hours=2)


def test_parse_round_trips_claims():
    gen = JWTGenerator(SECRET)
    token = gen.new_token(timedelta(minutes=5), _claims(models.Role.ADMIN))
    parsed = gen.parse(token)
    assert parsed.user.email == "foo@bar.com"
    assert parsed.role == models.Role.ADMIN
    assert parsed.expires_at - parsed.issued_at == timedelta(minutes=5)


def test_parse_rejects_expired_token():
    gen = JWTGenerator(SECRET)
    past = datetime.now(timezone.utc) - timedelta(hours=3)
    token = gen.new_token(timedelta(hours=1), _claims(), now=past)
    with pytest.raises(errors.Unauthorized, match="expired"):
        gen.parse(token)


def test_parse_rejects_tampered_token():
    token = JWTGenerator("another-secret-0123456789abcdefghijkl").new_token(timedelta(hours=1), _claims(models.Role.ADMIN))
    with pytest.raises(errors.Unauthorized):
        JWTGenerator(SECRET).parse(token)


def test_parse_rejects_payload_without_user():
    token = jwt.encode({"iat": 1, "exp": 4102444800}, SECRET, algorithm="HS256")
    with pytest.raises(errors.Unauthorized, match="payload"):
        JWTGenerator(SECRET).parse(token)


def test_missing_secret_fails_signing():
    with pytest.raises(errors.InternalError) as exc:
        JWTGenerator("").new_token(timedelta(hours=1), _claims())
    assert exc.value.ignorable is False
