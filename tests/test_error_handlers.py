import asyncio
import json
from types import SimpleNamespace

from sqlalchemy.exc import OperationalError

from health_reminder.api import errors
from health_reminder.core.exceptions import (
    AccountLockedError,
    DuplicateEmailError,
    TokenExpiredError,
)


def _request(path="/api/v1/auth/refresh"):
    return SimpleNamespace(url=SimpleNamespace(path=path), method="POST")


def _body(response):
    return json.loads(response.body)


def test_auth_error_renders_its_kind_and_bearer_challenge():
    response = asyncio.run(errors.api_exception_handler(_request(), TokenExpiredError()))

    body = _body(response)
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert body["success"] is False
    assert body["code"] == "token_expired"
    assert body["path"] == "/api/v1/auth/refresh"


def test_forbidden_account_state_has_no_bearer_challenge():
    response = asyncio.run(errors.api_exception_handler(_request("/api/v1/auth/login"), AccountLockedError()))

    assert response.status_code == 403
    assert "www-authenticate" not in response.headers
    assert _body(response)["code"] == "account_locked"


def test_duplicate_email_is_a_conflict_with_details():
    exc = DuplicateEmailError("alice@example.com")

    response = asyncio.run(errors.api_exception_handler(_request("/api/v1/auth/register"), exc))

    body = _body(response)
    assert response.status_code == 409
    assert body["code"] == "duplicate_email"
    assert body["error"] == "Email already registered"
    assert body["details"] == {"email": "alice@example.com"}


def test_database_errors_do_not_leak_driver_messages():
    exc = OperationalError("SELECT 1", {}, Exception("connection refused to db-host:5432"))

    response = asyncio.run(errors.database_exception_handler(_request(), exc))

    body = _body(response)
    assert response.status_code == 500
    assert "db-host" not in body["error"]
    assert body["code"] is None
