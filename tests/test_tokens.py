from datetime import datetime, timedelta, timezone

import jwt
import pytest
from pydantic import SecretStr

from filevault.core.errors import NotFound
from filevault.services.tokens import (InvalidToken, issue_access_token,
                                       verify_access_token)


def test_access_token_round_trip(settings):
    token = issue_access_token("user-1", settings)
    assert verify_access_token(token, settings) == "user-1"


def test_access_token_expires(settings):
    issued = datetime.now(timezone.utc) - settings.access_token_expiry - timedelta(seconds=5)
    token = issue_access_token("user-1", settings, now=issued)
    with pytest.raises(InvalidToken):
        verify_access_token(token, settings)


def test_access_token_signed_with_other_key(settings):
    other = settings.model_copy(update={"access_token_secret": SecretStr("someone_elses_secret_0123456789abcdef")})
    token = issue_access_token("user-1", other)
    with pytest.raises(InvalidToken):
        verify_access_token(token, settings)


def test_refresh_token_is_not_an_access_token(settings, user, refresh_tokens):
    token = refresh_tokens.issue(user.id)
    with pytest.raises(InvalidToken):
        verify_access_token(token, settings)


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_access_token_malformed(settings, token):
    with pytest.raises(InvalidToken):
        verify_access_token(token, settings)


def test_access_token_without_user_id(settings):
    token = jwt.encode(
        {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        settings.access_token_secret.get_secret_value(),
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        verify_access_token(token, settings)


def test_issue_refresh_persists_row(store, user, refresh_tokens):
    token = refresh_tokens.issue(user.id)
    row = store.find_refresh_token_by_value(token)
    assert row is not None
    assert row.user_id == user.id


def test_refresh_tokens_are_distinct(user, refresh_tokens):
    assert refresh_tokens.issue(user.id) != refresh_tokens.issue(user.id)


def test_redeem_mints_access_token(settings, user, refresh_tokens):
    token = refresh_tokens.issue(user.id)
    access = refresh_tokens.redeem(token)
    assert verify_access_token(access, settings) == user.id

    # not rotated: the same refresh token keeps working
    assert verify_access_token(refresh_tokens.redeem(token), settings) == user.id


def test_redeem_after_invalidate(user, refresh_tokens):
    token = refresh_tokens.issue(user.id)
    assert refresh_tokens.invalidate(token) is True
    with pytest.raises(NotFound):
        refresh_tokens.redeem(token)


def test_invalidate_twice(user, refresh_tokens):
    token = refresh_tokens.issue(user.id)
    assert refresh_tokens.invalidate(token)
    assert not refresh_tokens.invalidate(token)


def test_invalidate_keeps_other_sessions(user, refresh_tokens):
    laptop = refresh_tokens.issue(user.id)
    phone = refresh_tokens.issue(user.id)
    refresh_tokens.invalidate(laptop)
    assert refresh_tokens.redeem(phone)


def test_redeem_unknown_token(refresh_tokens):
    with pytest.raises(NotFound):
        refresh_tokens.redeem("never-issued")


def test_redeem_stored_token_with_bad_signature(store, user, refresh_tokens):
    forged = jwt.encode({"user_id": user.id}, "wrong_secret_0123456789abcdef0123456789", algorithm="HS256")
    store.create_refresh_token(user.id, forged)
    with pytest.raises(InvalidToken):
        refresh_tokens.redeem(forged)


def test_redeem_stored_token_for_other_owner(settings, store, user, other_user, refresh_tokens):
    token = jwt.encode(
        {"user_id": other_user.id},
        settings.refresh_token_secret.get_secret_value(),
        algorithm="HS256",
    )
    store.create_refresh_token(user.id, token)
    with pytest.raises(InvalidToken):
        refresh_tokens.redeem(token)
