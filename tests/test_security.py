from datetime import timedelta

import pytest

from app.infrastructure.security import (
    ACCESS_TOKEN_TYPE,
    InvalidTokenError,
    PasswordHasher,
    TokenIssuer,
)


@pytest.fixture
def tokens(settings):
    return TokenIssuer(settings)


def test_password_hash_roundtrip(settings):
    hasher = PasswordHasher(settings)
    hashed = hasher.hash("Secret123")

    assert hashed != "Secret123"
    assert hasher.verify("Secret123", hashed)
    assert not hasher.verify("secret123", hashed)


def test_tokens_use_distinct_secrets(tokens):
    access = tokens.create_access_token(7, "a@example.com", "tourist")
    refresh = tokens.create_refresh_token(7)

    assert tokens.decode_access_token(access)["sub"] == "7"
    assert tokens.decode_refresh_token(refresh)["sub"] == "7"
    with pytest.raises(InvalidTokenError):
        tokens.decode_refresh_token(access)
    with pytest.raises(InvalidTokenError):
        tokens.decode_access_token(refresh)


def test_tokens_issued_together_differ(tokens):
    assert tokens.create_refresh_token(7) != tokens.create_refresh_token(7)


def test_token_type_is_checked(tokens):
    # right secret, wrong type claim
    forged = tokens.sign({"sub": "7"}, tokens.access_secret, timedelta(minutes=5), "refresh")
    with pytest.raises(InvalidTokenError):
        tokens.verify(forged, tokens.access_secret, ACCESS_TOKEN_TYPE)


def test_expired_token_rejected(tokens):
    expired = tokens.sign({"sub": "7"}, tokens.access_secret, timedelta(seconds=-10), ACCESS_TOKEN_TYPE)
    with pytest.raises(InvalidTokenError):
        tokens.decode_access_token(expired)


def test_tampered_token_rejected(tokens):
    token = tokens.create_access_token(7, "a@example.com", "tourist")
    with pytest.raises(InvalidTokenError):
        tokens.decode_access_token(token[:-2] + ("AA" if token[-2:] != "AA" else "BB"))
