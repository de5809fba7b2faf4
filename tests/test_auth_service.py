from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from health_reminder.core.database import Base, create_db_engine
from health_reminder.core.exceptions import (
    AccountDisabledError,
    AccountLockedError,
    AuthErrorKind,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    TokenRevokedError,
    UserNotFoundError,
)
from health_reminder.core.security import AccessTokenCodec, AccessTokenConfig
from health_reminder.models.role import Role
from health_reminder.models.security import RefreshToken
from health_reminder.models.user import User
from health_reminder.schemas.auth import RegisterRequest
from health_reminder.services import auth_service as auth_service_module
from health_reminder.services.auth_service import AuthService
from health_reminder.services.refresh_token_store import RefreshTokenStore
from health_reminder.services.role_service import RoleService
from health_reminder.services.user_service import user_service

T0 = datetime(2026, 5, 4, 9, 30, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _make_session():
    engine = create_db_engine("sqlite:///:memory:")
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    return SessionLocal()


@pytest.fixture
def clock():
    return _Clock(T0)


@pytest.fixture
def codec(clock):
    return AccessTokenCodec(
        AccessTokenConfig(secret_key="auth-service-test-secret", ttl=timedelta(minutes=30)),
        clock=clock,
    )


@pytest.fixture
def service(codec, clock):
    store = RefreshTokenStore(timedelta(days=7), clock=clock)
    return AuthService(codec, store, user_service, RoleService("ROLE_USER"))


@pytest.fixture
def db():
    session = _make_session()
    try:
        yield session
    finally:
        session.close()


def _register(service, db, email="alice@example.com", password="secret1"):
    return service.register(db, RegisterRequest(name="Alice", email=email, password=password))


def _live_records(service, db, user_id):
    records = db.query(RefreshToken).filter(RefreshToken.user_id == user_id).all()
    return [record for record in records if service.store.is_live(record)]


def test_register_returns_tokens_and_default_role(service, codec, db):
    response = _register(service, db)

    assert response.token_type == "Bearer"
    assert response.expires_in == 30 * 60
    assert response.refresh_token
    assert response.user.email == "alice@example.com"
    assert response.user.enabled is True
    assert "ROLE_USER" in response.user.roles

    claims = codec.verify(response.access_token).unwrap()
    assert claims.subject == "alice@example.com"
    assert claims.claims["uid"] == response.user.id
    assert claims.claims["roles"] == ["ROLE_USER"]

    user = db.query(User).filter(User.email == "alice@example.com").one()
    assert user.password_hash != "secret1"
    assert len(_live_records(service, db, user.id)) == 1


def test_register_reuses_existing_default_role(service, db):
    alice = _register(service, db)
    bob = _register(service, db, email="bob@example.com")

    assert alice.user.roles == bob.user.roles == ["ROLE_USER"]


def test_duplicate_email_is_rejected_case_insensitively(service, db):
    _register(service, db)

    with pytest.raises(DuplicateEmailError) as exc_info:
        _register(service, db, email="Alice@Example.com")

    assert exc_info.value.kind is AuthErrorKind.DUPLICATE_EMAIL
    assert db.query(User).count() == 1


def test_login_with_wrong_password_changes_nothing(service, db):
    registered = _register(service, db)

    with pytest.raises(InvalidCredentialsError):
        service.login(db, "alice@example.com", "wrongpass")

    records = db.query(RefreshToken).all()
    assert len(records) == 1
    assert records[0].token == registered.refresh_token
    assert records[0].revoked is False


def test_login_for_unknown_email_is_invalid_credentials(service, db):
    with pytest.raises(InvalidCredentialsError):
        service.login(db, "nobody@example.com", "secret1")
    assert db.query(RefreshToken).count() == 0


def test_login_replaces_previous_refresh_token(service, db):
    registered = _register(service, db)

    first = service.login(db, "alice@example.com", "secret1")
    second = service.login(db, "ALICE@example.com", "secret1")

    assert len({registered.refresh_token, first.refresh_token, second.refresh_token}) == 3
    assert len(_live_records(service, db, second.user.id)) == 1
    assert service.store.find_by_token(db, first.refresh_token) is None

    with pytest.raises(InvalidTokenError):
        service.refresh(db, first.refresh_token)
    assert service.refresh(db, second.refresh_token).refresh_token == second.refresh_token


def test_login_after_logout_opens_a_new_live_session(service, db):
    registered = _register(service, db)
    service.logout(db, "alice@example.com")

    response = service.login(db, "alice@example.com", "secret1")

    assert len(_live_records(service, db, registered.user.id)) == 1
    assert service.refresh(db, response.refresh_token).user.email == "alice@example.com"


def test_disabled_and_locked_accounts_cannot_login(service, db):
    _register(service, db)
    user = db.query(User).filter(User.email == "alice@example.com").one()

    user.is_enabled = False
    db.commit()
    with pytest.raises(AccountDisabledError):
        service.login(db, "alice@example.com", "secret1")

    user.is_enabled = True
    user.is_locked = True
    db.commit()
    with pytest.raises(AccountLockedError):
        service.login(db, "alice@example.com", "secret1")

    # A wrong password on a locked account still reads as bad credentials.
    with pytest.raises(InvalidCredentialsError):
        service.login(db, "alice@example.com", "wrongpass")


def test_refresh_issues_new_access_token_and_keeps_refresh_token(service, codec, clock, db):
    registered = _register(service, db)

    clock.now = T0 + timedelta(minutes=10)
    refreshed = service.refresh(db, registered.refresh_token)

    assert refreshed.refresh_token == registered.refresh_token
    assert refreshed.access_token != registered.access_token
    claims = codec.verify(refreshed.access_token).unwrap()
    assert claims.subject == "alice@example.com"
    assert claims.claims["iat"] == int((T0 + timedelta(minutes=10)).timestamp())


def test_refresh_with_unknown_token_is_invalid(service, db):
    _register(service, db)

    with pytest.raises(InvalidTokenError) as exc_info:
        service.refresh(db, "does-not-exist")
    assert exc_info.value.kind is AuthErrorKind.INVALID_TOKEN


def test_refresh_after_logout_is_revoked_and_record_is_kept(service, db):
    registered = _register(service, db)

    service.logout(db, "alice@example.com")

    with pytest.raises(TokenRevokedError):
        service.refresh(db, registered.refresh_token)
    with pytest.raises(TokenRevokedError):
        service.refresh(db, registered.refresh_token)

    record = service.store.find_by_token(db, registered.refresh_token)
    assert record is not None
    assert record.revoked is True


def test_expired_refresh_token_is_deleted_then_unknown(service, clock, db):
    registered = _register(service, db)

    clock.now = T0 + timedelta(days=7, seconds=1)

    with pytest.raises(TokenExpiredError):
        service.refresh(db, registered.refresh_token)
    assert db.query(RefreshToken).count() == 0

    with pytest.raises(InvalidTokenError):
        service.refresh(db, registered.refresh_token)


def test_refresh_for_deleted_user_hides_account_state(service, db, monkeypatch):
    registered = _register(service, db)
    monkeypatch.setattr(service.users, "get_by_id", lambda session, user_id: None)

    with pytest.raises(InvalidTokenError):
        service.refresh(db, registered.refresh_token)


def test_logout_is_idempotent(service, db):
    registered = _register(service, db)

    service.logout(db, "alice@example.com")
    service.logout(db, "alice@example.com")

    record = service.store.find_by_token(db, registered.refresh_token)
    assert record.revoked is True


def test_logout_without_any_session_succeeds(service, clock, db):
    registered = _register(service, db)
    clock.now = T0 + timedelta(days=8)
    with pytest.raises(TokenExpiredError):
        service.refresh(db, registered.refresh_token)

    service.logout(db, "alice@example.com")
    service.logout(db, "alice@example.com")

    assert db.query(RefreshToken).count() == 0


def test_logout_for_unknown_subject_is_user_not_found(service, db):
    with pytest.raises(UserNotFoundError):
        service.logout(db, "ghost@example.com")


def test_at_most_one_live_token_across_mixed_sequence(service, db):
    registered = _register(service, db)
    user_id = registered.user.id

    for step in range(4):
        service.login(db, "alice@example.com", "secret1")
        if step % 2:
            service.logout(db, "alice@example.com")
        assert db.query(RefreshToken).filter(RefreshToken.user_id == user_id).count() == 1

    service.login(db, "alice@example.com", "secret1")
    assert len(_live_records(service, db, user_id)) == 1


def test_failed_login_after_replacement_rolls_back_the_swap(service, db, monkeypatch):
    registered = _register(service, db)

    def broken_response(user):
        raise RuntimeError("response serialization failed")

    monkeypatch.setattr(auth_service_module, "to_user_response", broken_response)

    with pytest.raises(RuntimeError):
        service.login(db, "alice@example.com", "secret1")

    tokens = [record.token for record in db.query(RefreshToken).all()]
    assert tokens == [registered.refresh_token]


def test_failed_registration_leaves_no_user_role_or_token(service, db, monkeypatch):
    def broken_issue(session, user):
        raise RuntimeError("token store unavailable")

    monkeypatch.setattr(service.store, "issue", broken_issue)

    with pytest.raises(RuntimeError):
        _register(service, db)

    assert db.query(User).count() == 0
    assert db.query(Role).count() == 0
    assert db.query(RefreshToken).count() == 0


def test_refresh_is_refused_for_disabled_or_locked_accounts(service, db):
    registered = _register(service, db)
    user = db.query(User).filter(User.email == "alice@example.com").one()

    user.is_enabled = False
    db.commit()
    with pytest.raises(AccountDisabledError):
        service.refresh(db, registered.refresh_token)

    user.is_enabled = True
    user.is_locked = True
    db.commit()
    with pytest.raises(AccountLockedError):
        service.refresh(db, registered.refresh_token)

    record = service.store.find_by_token(db, registered.refresh_token)
    assert record is not None
    assert record.revoked is False
