"""
DyeTracker - Backend API Client
HTTP client for the DyeTracker backend.

Endpoints:
  POST /api/v1/auth/start-verify     {"code"}              → {"serverId"}
  POST /api/v1/auth/complete-verify  {"code", "username"}  → {"success", "uuid", "username"}
  GET  /api/v1/auth/me               (bearer)              → {"uuid", "username"}
  POST /api/v1/rng-data              (bearer) RNG data     → {"success", "updatedAt"}

Every call returns ApiSuccess or ApiError; no exception escapes.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Union

import requests

from config import API_ME_TIMEOUT, API_TIMEOUT, USER_AGENT
from rng_data import PlayerRngData

logger = logging.getLogger(__name__)

AUTH_HEADER = "Authorization"


# ─── Results ─────────────────────────────────────

@dataclass(frozen=True)
class ApiSuccess:
    data: Any
    success: bool = True


@dataclass(frozen=True)
class ApiError:
    message: str
    status_code: int = 0
    success: bool = False


ApiResult = Union[ApiSuccess, ApiError]


# ─── Response payloads ───────────────────────────

@dataclass(frozen=True)
class StartVerifyResponse:
    server_id: str


@dataclass(frozen=True)
class CompleteVerifyResponse:
    success: bool
    uuid: str
    username: str


@dataclass(frozen=True)
class AuthMeResponse:
    uuid: str
    username: str


@dataclass(frozen=True)
class SyncRngDataResponse:
    success: bool
    updated_at: Optional[str] = None


def build_sync_body(data: PlayerRngData, timestamp_ms: Optional[int] = None) -> dict:
    """Sync request body: the RNG data plus the client-side send time."""
    body = data.to_dict()
    body["modTimestamp"] = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return body


class ApiClient:
    """Talks to the DyeTracker backend using the URL and token from settings.

    Usage:
        client = ApiClient(settings_manager)
        result = client.sync_rng_data(store.get_snapshot())
        if isinstance(result, ApiError): ...
    """

    def __init__(self, settings_manager, session: Optional[requests.Session] = None):
        self._settings = settings_manager
        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": USER_AGENT,
            "Content-Type": "application/json",
        })

    @property
    def api_url(self) -> str:
        return self._settings.settings.api_url.rstrip("/")

    def _auth_header(self) -> Optional[str]:
        token = self._settings.settings.auth_token
        return f"Bearer {token}" if token else None

    # ── Auth ─────────────────────────────────────────

    def start_verify(self, code: str) -> ApiResult:
        """Exchange a link code for a session-server challenge."""
        url = f"{self.api_url}/api/v1/auth/start-verify"
        logger.info(f"API: POST {url} (code={code})")
        result = self._request("POST", url, json={"code": code}, timeout=API_TIMEOUT)
        if isinstance(result, ApiError):
            return result
        try:
            return ApiSuccess(StartVerifyResponse(server_id=result["serverId"]))
        except (KeyError, TypeError) as e:
            return ApiError(f"Malformed start-verify response: {e}", 200)

    def complete_verify(self, code: str, username: str) -> ApiResult:
        """Ask the backend to confirm the session-server join."""
        url = f"{self.api_url}/api/v1/auth/complete-verify"
        logger.info(f"API: POST {url} (code={code}, username={username})")
        result = self._request(
            "POST", url, json={"code": code, "username": username}, timeout=API_TIMEOUT)
        if isinstance(result, ApiError):
            return result
        try:
            data = CompleteVerifyResponse(
                success=bool(result.get("success", False)),
                uuid=result["uuid"],
                username=result["username"],
            )
        except (KeyError, TypeError, AttributeError) as e:
            return ApiError(f"Malformed complete-verify response: {e}", 200)
        logger.info(f"API: complete-verify success, uuid={data.uuid}")
        return ApiSuccess(data)

    def get_me(self) -> ApiResult:
        """Check the stored token against /auth/me."""
        url = f"{self.api_url}/api/v1/auth/me"
        logger.info(f"API: GET {url} (verifying token)")
        headers = {}
        auth = self._auth_header()
        if auth:
            headers[AUTH_HEADER] = auth
        result = self._request("GET", url, headers=headers, timeout=API_ME_TIMEOUT)
        if isinstance(result, ApiError):
            return result
        try:
            return ApiSuccess(AuthMeResponse(uuid=result["uuid"], username=result["username"]))
        except (KeyError, TypeError) as e:
            return ApiError(f"Malformed auth/me response: {e}", 200)

    # ── Sync ─────────────────────────────────────────

    def sync_rng_data(self, data: PlayerRngData) -> ApiResult:
        """Push the full RNG snapshot. Requires a linked account."""
        url = f"{self.api_url}/api/v1/rng-data"

        auth = self._auth_header()
        if auth is None:
            logger.warning("sync_rng_data: no auth token available")
            return ApiError("Not authenticated", 401)

        logger.info(f"API: POST {url} (syncing RNG data)")
        result = self._request(
            "POST", url, json=build_sync_body(data),
            headers={AUTH_HEADER: auth}, timeout=API_TIMEOUT,
        )
        if isinstance(result, ApiError):
            return result

        response = SyncRngDataResponse(
            success=bool(result.get("success", True)),
            updated_at=result.get("updatedAt"),
        )
        logger.info(f"API: sync_rng_data success, updatedAt={response.updated_at}")
        return ApiSuccess(response)

    # ── Internal ─────────────────────────────────────

    def _request(self, method: str, url: str, **kwargs) -> Union[dict, ApiError]:
        """Send one request. Returns the decoded JSON body or an ApiError."""
        try:
            resp = self._session.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"API: {method} {url} failed: {e}")
            return ApiError(f"Network error: {e}")

        logger.info(f"API: Response status={resp.status_code}")
        if resp.status_code != 200:
            error = self._parse_error(resp)
            logger.warning(f"API: {method} {url} failed: {error} ({resp.status_code})")
            return ApiError(error, resp.status_code)

        try:
            body = resp.json()
        except ValueError:
            return ApiError("Invalid JSON in response", resp.status_code)
        return body if isinstance(body, dict) else {}

    @staticmethod
    def _parse_error(resp) -> str:
        try:
            body = resp.json()
            message = body.get("message") if isinstance(body, dict) else None
            return message or "Unknown error"
        except ValueError:
            return "Unknown error"
