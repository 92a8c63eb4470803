"""
account_link.py — Links the player's game account to the DyeTracker website.

Verification flow (the player copies an 8-character code from the website):
  1. POST /auth/start-verify with the code → serverId challenge
  2. Join the session server with the game session token and that serverId
  3. POST /auth/complete-verify → backend confirms the join with the
     session server and returns the verified uuid + username
  4. Store the link (uuid doubles as the bearer token for now)

The game session (username, uuid, access token) is captured by the host and
passed in; the access token is only ever sent to the session server.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable, Optional

import requests

from api_client import ApiError
from config import SESSION_JOIN_TIMEOUT, SESSION_JOIN_URL, USER_AGENT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameSession:
    """Session details captured from the running game client."""
    username: str
    uuid: Optional[str]
    access_token: str


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    message: str
    uuid: Optional[str] = None
    username: Optional[str] = None


def join_session_server(session: GameSession, server_id: str) -> tuple[bool, str]:
    """POST the session-server join. Returns (success, reason)."""
    body = {
        "accessToken": session.access_token,
        "selectedProfile": (session.uuid or "").replace("-", ""),
        "serverId": server_id,
    }
    try:
        resp = requests.post(
            SESSION_JOIN_URL,
            json=body,
            headers={"User-Agent": USER_AGENT},
            timeout=SESSION_JOIN_TIMEOUT,
        )
    except requests.RequestException as e:
        return False, f"Session server connection error: {e}"

    if resp.status_code == 204:
        return True, "joined"
    body_text = resp.text[:200] if resp.text else "(empty)"
    logger.error(f"Session server join failed: HTTP {resp.status_code}: {body_text}")
    return False, f"Session server auth failed ({resp.status_code}) - try restarting the game"


class AccountLinker:
    """Runs the account verification flow and owns the link state."""

    def __init__(self, api_client, settings_manager,
                 session_join: Callable[[GameSession, str], tuple] = join_session_server):
        self._api = api_client
        self._settings = settings_manager
        self._session_join = session_join
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="DyeTracker-Verify")

    def is_linked(self) -> bool:
        return self._settings.is_linked()

    @property
    def linked_username(self) -> str:
        return self._settings.settings.linked_username

    @property
    def linked_uuid(self) -> str:
        return self._settings.settings.linked_uuid

    def verify_account(self, link_code: str, session: GameSession) -> "Future[VerificationResult]":
        """Start verification in the background. The future never raises."""
        return self._executor.submit(self._verify, link_code, session)

    def _verify(self, link_code: str, session: GameSession) -> VerificationResult:
        try:
            return self._run_verification(link_code, session)
        except Exception as e:
            logger.error(f"Verification failed: {e}", exc_info=True)
            return VerificationResult(False, f"Verification error: {e}")

    def _run_verification(self, link_code: str, session: GameSession) -> VerificationResult:
        logger.info(f"[1/4] Starting account verification for {session.username}")

        logger.info("[2/4] Requesting serverId challenge from backend...")
        start = self._api.start_verify(link_code)
        if isinstance(start, ApiError):
            logger.warning(f"[2/4] Failed to get serverId: {start.message}")
            return VerificationResult(False, start.message)
        server_id = start.data.server_id

        if not session.uuid:
            logger.error("[3/4] Session UUID is missing - is the player logged in?")
            return VerificationResult(False, "Not logged in - session UUID is missing")

        logger.info("[3/4] Joining session server...")
        joined, reason = self._session_join(session, server_id)
        if not joined:
            return VerificationResult(False, reason)

        logger.info("[4/4] Completing verification with backend...")
        complete = self._api.complete_verify(link_code, session.username)
        if isinstance(complete, ApiError):
            logger.warning(f"[4/4] Backend verification failed: {complete.message}")
            return VerificationResult(False, complete.message)

        verified = complete.data
        # TODO: switch to the backend-issued token once /complete-verify returns one
        self._settings.update(lambda s: replace(
            s,
            linked_uuid=verified.uuid,
            linked_username=verified.username,
            auth_token=verified.uuid,
        ))
        logger.info(f"Account verification successful for {verified.username}")
        return VerificationResult(
            True, "Account linked successfully!",
            uuid=verified.uuid, username=verified.username,
        )

    def unlink(self):
        self._settings.update(lambda s: s.unlinked())
        logger.info("Account unlinked")

    def shutdown(self):
        self._executor.shutdown(wait=False)
