"""Tests for api_client.py — backend calls over a mocked requests session."""

from dataclasses import replace
from unittest.mock import MagicMock

import pytest
import requests

from api_client import (
    ApiClient,
    ApiError,
    ApiSuccess,
    AuthMeResponse,
    CompleteVerifyResponse,
    StartVerifyResponse,
    build_sync_body,
)
from rng_data import MineshaftPity, PlayerRngData, RngMeter, SlayerType


def _response(status=200, body=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status
    if json_error:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = body if body is not None else {}
    return resp


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def linked_settings(settings_manager):
    settings_manager.update(lambda s: replace(
        s, api_url="http://api.test/", auth_token="tok123",
        linked_uuid="tok123", linked_username="Steve"))
    return settings_manager


@pytest.fixture
def client(linked_settings, http):
    return ApiClient(linked_settings, session=http)


# ── Auth ─────────────────────────────────────────────────

def test_start_verify(client, http):
    http.request.return_value = _response(body={"serverId": "abc"})
    result = client.start_verify("ABCD1234")
    assert result == ApiSuccess(StartVerifyResponse(server_id="abc"))
    http.request.assert_called_once()
    method, url = http.request.call_args.args
    assert method == "POST"
    assert url == "http://api.test/api/v1/auth/start-verify"
    assert http.request.call_args.kwargs["json"] == {"code": "ABCD1234"}


def test_complete_verify(client, http):
    http.request.return_value = _response(
        body={"success": True, "uuid": "u-1", "username": "Steve"})
    result = client.complete_verify("ABCD1234", "Steve")
    assert result.data == CompleteVerifyResponse(True, "u-1", "Steve")
    assert http.request.call_args.kwargs["json"] == {"code": "ABCD1234", "username": "Steve"}


def test_get_me_sends_bearer(client, http):
    http.request.return_value = _response(body={"uuid": "u-1", "username": "Steve"})
    result = client.get_me()
    assert result.data == AuthMeResponse("u-1", "Steve")
    assert http.request.call_args.kwargs["headers"] == {"Authorization": "Bearer tok123"}


def test_malformed_success_body(client, http):
    http.request.return_value = _response(body={"unexpected": 1})
    result = client.start_verify("ABCD1234")
    assert isinstance(result, ApiError)
    assert result.status_code == 200


# ── Errors ───────────────────────────────────────────────

def test_error_message_from_body(client, http):
    http.request.return_value = _response(400, {"message": "Invalid or expired code"})
    assert client.start_verify("ABCD1234") == ApiError("Invalid or expired code", 400)


def test_error_without_message(client, http):
    http.request.return_value = _response(500, json_error=True)
    assert client.start_verify("ABCD1234") == ApiError("Unknown error", 500)


def test_network_error(client, http):
    http.request.side_effect = requests.ConnectionError("refused")
    result = client.start_verify("ABCD1234")
    assert isinstance(result, ApiError)
    assert result.status_code == 0
    assert result.message.startswith("Network error")


# ── Sync ─────────────────────────────────────────────────

def test_sync_body_includes_timestamp():
    data = PlayerRngData(mineshaft_pity=MineshaftPity(3))
    body = build_sync_body(data, timestamp_ms=1_700_000_000_000)
    assert body["modTimestamp"] == 1_700_000_000_000
    assert body["mineshaftPity"] == {"pityValue": 3}


def test_sync_rng_data(client, http):
    http.request.return_value = _response(body={"success": True, "updatedAt": "2026-01-01"})
    data = PlayerRngData(slayer_meters={SlayerType.REVENANT: RngMeter(5)})
    result = client.sync_rng_data(data)
    assert result.success
    assert result.data.updated_at == "2026-01-01"
    kwargs = http.request.call_args.kwargs
    assert kwargs["headers"] == {"Authorization": "Bearer tok123"}
    assert kwargs["json"]["slayerMeters"]["REVENANT"]["storedXp"] == 5
    assert "modTimestamp" in kwargs["json"]


def test_sync_without_token_sends_nothing(settings_manager, http):
    client = ApiClient(settings_manager, session=http)
    result = client.sync_rng_data(PlayerRngData())
    assert result == ApiError("Not authenticated", 401)
    http.request.assert_not_called()


def test_sync_server_error(client, http):
    http.request.return_value = _response(503, {"message": "Maintenance"})
    assert client.sync_rng_data(PlayerRngData()) == ApiError("Maintenance", 503)
