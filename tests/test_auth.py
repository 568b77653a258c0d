from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from sqlmodel import select

from shop_service.auth import authenticate, create_token, get_current_account, verify_token
from shop_service.errors import InvalidCredentials, InvalidInput, Unauthorized
from shop_service.models import Account


def test_first_login_creates_account_with_bonus(session):
    token = authenticate(session, "alice", "pw")

    ident = verify_token(token)
    account = session.get(Account, ident.account_id)
    assert ident.username == "alice"
    assert account.username == "alice"
    assert account.balance == 1000


def test_password_is_stored_as_bcrypt_hash(session):
    authenticate(session, "alice", "pw")

    account = session.exec(select(Account).where(Account.username == "alice")).one()
    assert account.password_hash != "pw"
    assert account.password_hash.startswith("$2")


def test_second_login_returns_same_identity(session):
    first = verify_token(authenticate(session, "alice", "pw"))
    second = verify_token(authenticate(session, "alice", "pw"))

    assert first.account_id == second.account_id
    assert len(session.exec(select(Account)).all()) == 1


def test_wrong_password_is_rejected_without_side_effects(session):
    authenticate(session, "alice", "pw")

    with pytest.raises(InvalidCredentials) as err:
        authenticate(session, "alice", "nope")

    assert err.value.status_code == 401
    accounts = session.exec(select(Account)).all()
    assert [(a.username, a.balance) for a in accounts] == [("alice", 1000)]


@pytest.mark.parametrize("username,password", [("", "pw"), ("alice", "")])
def test_blank_credentials_are_invalid_input(session, username, password):
    with pytest.raises(InvalidInput):
        authenticate(session, username, password)
    assert session.exec(select(Account)).all() == []


def test_token_expires_after_a_day():
    claims = jwt.get_unverified_claims(create_token(7, "alice"))

    expected = datetime.now(timezone.utc) + timedelta(hours=24)
    assert claims["sub"] == "7"
    assert claims["username"] == "alice"
    assert abs(claims["exp"] - expected.timestamp()) < 60


def test_expired_token_is_unauthorized():
    token = create_token(7, "alice", ttl=timedelta(minutes=-1))

    with pytest.raises(Unauthorized):
        verify_token(token)


def test_token_signed_with_another_key_is_unauthorized():
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"sub": "7", "username": "alice", "exp": exp}, "other-secret", algorithm="HS256")

    with pytest.raises(Unauthorized):
        verify_token(token)


def test_tampered_token_is_unauthorized():
    header, payload, signature = create_token(7, "alice").split(".")
    forged = create_token(8, "mallory").split(".")[1]

    with pytest.raises(Unauthorized):
        verify_token(".".join([header, forged, signature]))


@pytest.mark.parametrize("claims", [
    {"sub": "7", "username": "alice"},
    {"username": "alice", "exp": 4102444800},
    {"sub": "seven", "username": "alice", "exp": 4102444800},
])
def test_incomplete_claims_are_unauthorized(claims):
    token = jwt.encode(claims, "test-secret", algorithm="HS256")

    with pytest.raises(Unauthorized):
        verify_token(token)


def test_garbage_token_is_unauthorized():
    with pytest.raises(Unauthorized):
        verify_token("not-a-jwt")


@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer"])
def test_bearer_header_is_required(header):
    with pytest.raises(Unauthorized):
        get_current_account(header)


def test_bearer_header_resolves_identity():
    ident = get_current_account("Bearer " + create_token(3, "bob"))

    assert ident.account_id == 3
    assert ident.username == "bob"
