from datetime import datetime, timedelta, timezone

import jwt
import pytest

from shipquote.application.auth import UserService
from shipquote.application.errors import EmailAlreadyRegistered, Unauthorized, ValidationError
from shipquote.auth_local import hash_password, verify_password

REGISTRATION = {
    "nickname": "maria",
    "names": "Maria",
    "lastnames": "Gomez",
    "email": "maria@example.com",
    "password": "s3cret-pass",
    "city": "Cali",
    "phone": "3109876543",
}


def test_password_hashing():
    hashed = hash_password("s3cret-pass", rounds=4)
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong-pass", hashed)


def test_token_round_trip(credentials):
    token = credentials.issue_token(7)
    claims = credentials.decode(token)

    assert claims["sub"] == "7"
    assert claims["jti"]
    assert credentials.verify_token(token) == 7


def test_each_token_gets_its_own_id(credentials):
    assert credentials.decode(credentials.issue_token(7))["jti"] != credentials.decode(credentials.issue_token(7))["jti"]


def test_tampered_token_is_rejected(credentials):
    token = credentials.issue_token(7)
    with pytest.raises(Unauthorized):
        credentials.verify_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))


def test_expired_token_is_rejected(credentials, settings):
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    token = jwt.encode(
        {"sub": "7", "jti": "old", "iat": past, "exp": past + timedelta(minutes=15)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALG,
    )
    with pytest.raises(Unauthorized):
        credentials.verify_token(token)


def test_token_without_id_is_rejected(credentials, settings):
    token = jwt.encode(
        {"sub": "7", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALG,
    )
    with pytest.raises(Unauthorized):
        credentials.verify_token(token)


def test_revoked_token_is_rejected(credentials):
    token = credentials.issue_token(7)
    credentials.revoke(token)

    assert credentials.is_revoked(token)
    with pytest.raises(Unauthorized) as exc_info:
        credentials.verify_token(token)
    assert exc_info.value.message == "Token has been revoked"


def test_revocation_is_per_token(credentials):
    revoked = credentials.issue_token(7)
    kept = credentials.issue_token(7)
    credentials.revoke(revoked)

    assert credentials.verify_token(kept) == 7


def test_register_and_login(db_session, credentials):
    service = UserService(db_session, credentials)
    created = service.register({**REGISTRATION, "email": "  Maria@Example.com "})
    assert created.email == "maria@example.com"

    session = service.login({"email": "maria@example.com", "password": REGISTRATION["password"]})
    assert session.user.id == created.id
    assert credentials.verify_token(session.token) == created.id


def test_register_duplicate_email(db_session, credentials):
    service = UserService(db_session, credentials)
    service.register(REGISTRATION)
    with pytest.raises(EmailAlreadyRegistered):
        service.register(REGISTRATION)


def test_register_short_password(db_session, credentials):
    with pytest.raises(ValidationError) as exc_info:
        UserService(db_session, credentials).register({**REGISTRATION, "password": "abc"})
    assert exc_info.value.field == "password"


def test_register_invalid_email(db_session, credentials):
    with pytest.raises(ValidationError) as exc_info:
        UserService(db_session, credentials).register({**REGISTRATION, "email": "not-an-email"})
    assert exc_info.value.field == "email"


def test_login_does_not_reveal_which_part_was_wrong(db_session, credentials):
    service = UserService(db_session, credentials)
    service.register(REGISTRATION)

    with pytest.raises(Unauthorized) as unknown:
        service.login({"email": "nobody@example.com", "password": REGISTRATION["password"]})
    with pytest.raises(Unauthorized) as wrong:
        service.login({"email": REGISTRATION["email"], "password": "wrong-pass"})
    assert unknown.value.message == wrong.value.message
