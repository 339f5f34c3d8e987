"""Tests for JWT inspection helpers."""
import pytest

from src.auth.tokens import decode_claims, get_user_from_token, is_token_expired
from tests.fakes import make_token

NOW = 1_700_000_000


def test_token_with_past_exp_is_expired():
    token = make_token("user-1", exp=NOW - 1)
    assert is_token_expired(token, now=NOW) is True


def test_token_with_future_exp_is_not_expired():
    token = make_token("user-1", exp=NOW + 60)
    assert is_token_expired(token, now=NOW) is False


def test_token_expiring_now_is_expired():
    """경계값: exp == now 이면 만료로 처리."""
    token = make_token("user-1", exp=NOW)
    assert is_token_expired(token, now=NOW) is True


@pytest.mark.parametrize("token", [None, "", "not-a-jwt", "a.b.c"])
def test_missing_or_malformed_token_is_expired(token):
    assert is_token_expired(token, now=NOW) is True


def test_token_without_exp_is_expired():
    token = make_token("user-1")
    assert is_token_expired(token, now=NOW) is True


def test_get_user_from_token():
    token = make_token("user-1", email="reader@example.com", exp=NOW + 60)

    user = get_user_from_token(token)

    assert user["id"] == "user-1"
    assert user["email"] == "reader@example.com"
    assert user["role"] == "authenticated"
    assert user["exp"] == NOW + 60


def test_get_user_from_malformed_token():
    assert get_user_from_token("garbage") is None
    assert decode_claims(None) is None
