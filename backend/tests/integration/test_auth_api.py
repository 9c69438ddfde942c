"""Integration tests for the token endpoints via the Flask test client."""

from __future__ import annotations

import logging
from uuid import uuid4

import pytest

from authtokens.core.extensions import get_token_service
from sqlalchemy.exc import OperationalError

from authtokens.services._shared.errors import StorageError

GENERIC_401 = "Invalid or expired refresh token"


def _issue(client, user_id=None, ip="10.0.0.1"):
    resp = client.post(
        "/api/v1/auth/tokens",
        json={"user_id": str(user_id or uuid4())},
        environ_base={"REMOTE_ADDR": ip},
    )
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def _refresh(client, token, ip="10.0.0.1"):
    return client.post(
        "/api/v1/auth/refresh",
        json={"refresh_token": token},
        environ_base={"REMOTE_ADDR": ip},
    )


def test_create_tokens_returns_pair(client) -> None:
    """A valid user id yields both tokens."""

    body = _issue(client)

    assert set(body) == {"access_token", "refresh_token"}
    assert body["access_token"].count(".") == 2


@pytest.mark.parametrize(
    "payload",
    [None, {}, {"user_id": "not-a-uuid"}, {"user_id": 42}, [], {"user_id": str(uuid4()), "x": 1}],
    ids=["no-body", "missing", "bad-uuid", "wrong-type", "list", "unknown-field"],
)
def test_create_tokens_rejects_bad_input(client, payload) -> None:
    resp = client.post("/api/v1/auth/tokens", json=payload)

    assert resp.status_code == 400
    assert resp.mimetype == "application/problem+json"
    problem = resp.get_json()
    assert problem["code"] == "bad_request"
    assert problem["request_id"]


def test_refresh_rotates(client) -> None:
    pair = _issue(client)

    resp = _refresh(client, pair["refresh_token"])

    assert resp.status_code == 200
    new_pair = resp.get_json()
    assert new_pair["refresh_token"] != pair["refresh_token"]
    assert new_pair["access_token"] != pair["access_token"]


def test_reused_refresh_token_is_401(client) -> None:
    pair = _issue(client)
    assert _refresh(client, pair["refresh_token"]).status_code == 200

    resp = _refresh(client, pair["refresh_token"])

    assert resp.status_code == 401
    assert resp.get_json()["detail"] == GENERIC_401


@pytest.mark.parametrize("token", ["garbage", "A" * 40])
def test_invalid_refresh_token_is_401_with_same_message(client, token) -> None:
    resp = _refresh(client, token)

    assert resp.status_code == 401
    assert resp.get_json()["detail"] == GENERIC_401
    assert resp.get_json()["code"] == "unauthorized"


def test_refresh_rejects_missing_field(client) -> None:
    resp = client.post("/api/v1/auth/refresh", json={})
    assert resp.status_code == 400


def test_refresh_from_new_ip_logs_warning(client, caplog) -> None:
    pair = _issue(client, ip="10.0.0.1")

    with caplog.at_level(logging.WARNING, logger="authtokens.infra.notify.logging_notifier"):
        resp = _refresh(client, pair["refresh_token"], ip="10.0.0.2")

    assert resp.status_code == 200
    warnings = [r for r in caplog.records if r.name == "authtokens.infra.notify.logging_notifier"]
    assert len(warnings) == 1
    assert (warnings[0].old_ip, warnings[0].new_ip) == ("10.0.0.1", "10.0.0.2")


def test_forwarded_for_is_honoured(client, caplog) -> None:
    pair = _issue(client, ip="10.0.0.1")

    with caplog.at_level(logging.WARNING, logger="authtokens.infra.notify.logging_notifier"):
        resp = client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": pair["refresh_token"]},
            headers={"X-Forwarded-For": "10.0.0.1"},
            environ_base={"REMOTE_ADDR": "172.16.0.1"},
        )

    assert resp.status_code == 200
    assert not [r for r in caplog.records if r.name == "authtokens.infra.notify.logging_notifier"]


def test_storage_failure_is_500(app, client, monkeypatch) -> None:
    service = get_token_service()

    def _boom(self, record):
        raise StorageError("db down")

    monkeypatch.setattr(type(service.store), "save", _boom)

    resp = client.post("/api/v1/auth/tokens", json={"user_id": str(uuid4())})

    assert resp.status_code == 500
    assert resp.get_json()["code"] == "internal_server_error"
    assert resp.get_json()["detail"] == "Token operation failed"


class _UnreachableUnitOfWork:
    def __enter__(self):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    def __exit__(self, *exc_info):
        return False


@pytest.mark.parametrize("path", ["/api/v1/auth/tokens", "/api/v1/auth/refresh"])
def test_unreachable_database_is_503(app, client, monkeypatch, path) -> None:
    """A dropped database connection is transient and reported as such."""

    token = _issue(client)["refresh_token"]
    service = get_token_service()
    monkeypatch.setattr(service.store, "uow_factory", _UnreachableUnitOfWork)

    payload = {"user_id": str(uuid4())} if path.endswith("tokens") else {"refresh_token": token}
    resp = client.post(path, json=payload)

    assert resp.status_code == 503
    body = resp.get_json()
    assert body["code"] == "service_unavailable"
    assert body["detail"] == "Token store temporarily unavailable"


def test_request_id_is_echoed(client) -> None:
    resp = client.post(
        "/api/v1/auth/refresh",
        json={"refresh_token": "garbage"},
        headers={"X-Request-ID": "req-123"},
    )
    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.get_json()["request_id"] == "req-123"


def test_health_reports_store(client) -> None:
    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    assert resp.get_json()["store"] == "ok"


@pytest.mark.parametrize("remote_addr", ["", "not-an-ip", "unix:/run/app.sock"])
def test_unusable_client_address_is_400(client, remote_addr) -> None:
    """Tokens are IP-bound; without a parsable peer address nothing is issued."""

    token = _issue(client)["refresh_token"]

    issued = client.post(
        "/api/v1/auth/tokens",
        json={"user_id": str(uuid4())},
        environ_base={"REMOTE_ADDR": remote_addr},
    )
    refreshed = _refresh(client, token, ip=remote_addr)

    for resp in (issued, refreshed):
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "bad_request"
        assert resp.get_json()["detail"] == "Client address unavailable"
    assert _refresh(client, token).status_code == 200


def test_client_address_is_canonicalized(client, caplog) -> None:
    """Equivalent IPv6 spellings bind to the same address."""

    token = _issue(client, ip="2001:db8:0::1")["refresh_token"]
    with caplog.at_level(logging.WARNING, logger="authtokens.infra.notify.logging_notifier"):
        resp = _refresh(client, token, ip="2001:DB8::1")

    assert resp.status_code == 200
    assert not [r for r in caplog.records if r.name == "authtokens.infra.notify.logging_notifier"]
