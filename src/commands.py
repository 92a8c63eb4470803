"""
DyeTracker - Chat Commands
Thin dispatch for the /dyetracker command family.

    /dyetracker link <code>   Link your account (8-character code from the website)
    /dyetracker status        Show link and sync status
    /dyetracker unlink        Unlink your account
    /dyetracker show          Show captured RNG data
    /dyetracker sync          Sync now

dispatch() returns the lines to print. The link result arrives later and is
delivered through the feedback callback.
"""

import logging
import shlex
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime
from typing import Callable, List, Optional

from config import LINK_CODE_LENGTH
from rng_data import PlayerRngData, RngMeter

logger = logging.getLogger(__name__)

COMMAND_NAME = "dyetracker"
SYNC_WAIT_SECONDS = 60

HELP_LINES = [
    "DyeTracker Commands:",
    "  /dyetracker link <code> - Link your account",
    "  /dyetracker status - Show link status",
    "  /dyetracker unlink - Unlink your account",
    "  /dyetracker show - Show captured RNG data",
    "  /dyetracker sync - Sync RNG data now",
]


def is_valid_link_code(code: str) -> bool:
    return len(code) == LINK_CODE_LENGTH and code.isascii() and code.isalnum()


# ─── Snapshot formatting ─────────────────────────

def _title(name: str) -> str:
    return name.replace("_", " ").title()


def format_meter(label: str, meter: RngMeter) -> str:
    line = f"  {label}: {meter.stored_xp:,} XP"
    if meter.selected_item:
        line += f" → {meter.selected_item}"
        if meter.goal_xp:
            line += f" ({meter.stored_xp:,}/{meter.goal_xp:,}, {meter.progress * 100:.1f}%)"
    return line


def format_snapshot(data: PlayerRngData) -> List[str]:
    """Human-readable rendering of captured RNG data."""
    if not data.has_data():
        return ["No RNG data captured yet. Open an RNG meter or kill a slayer boss."]

    lines = ["Captured RNG Data:"]
    if data.slayer_meters:
        lines.append("Slayer:")
        for slayer_type in sorted(data.slayer_meters, key=lambda t: t.name):
            lines.append(format_meter(_title(slayer_type.name), data.slayer_meters[slayer_type]))
    if data.dungeon_meters:
        lines.append("Dungeons:")
        for floor in sorted(data.dungeon_meters, key=lambda f: f.name):
            lines.append(format_meter(floor.name, data.dungeon_meters[floor]))
    if data.nucleus_meter is not None:
        lines.append(format_meter("Crystal Nucleus", data.nucleus_meter).lstrip())
    if data.experimentation_meter is not None:
        lines.append(format_meter("Experimentation Table", data.experimentation_meter).lstrip())
    if data.mineshaft_pity is not None:
        lines.append(f"Mineshaft Pity: {data.mineshaft_pity.pity_value:,}/2,000")
    return lines


class CommandHandler:
    """Routes /dyetracker sub-commands to the linker, store and sync manager."""

    def __init__(self, linker, store, sync_manager,
                 session_provider: Callable[[], Optional[object]],
                 feedback: Optional[Callable[[str], None]] = None):
        self._linker = linker
        self._store = store
        self._sync = sync_manager
        self._session_provider = session_provider
        self._feedback = feedback or (lambda msg: logger.info(msg))

    def dispatch(self, command_line: str) -> List[str]:
        try:
            parts = shlex.split(command_line.strip())
        except ValueError:
            parts = command_line.strip().split()

        if parts and parts[0].lstrip("/").lower() == COMMAND_NAME:
            parts = parts[1:]
        if not parts:
            return list(HELP_LINES)

        sub, args = parts[0].lower(), parts[1:]
        if sub == "link":
            if not args:
                return [f"Usage: /{COMMAND_NAME} link <code>"]
            return self.handle_link(args[0])
        if sub == "status":
            return self.handle_status()
        if sub == "unlink":
            return self.handle_unlink()
        if sub == "show":
            return self.handle_show()
        if sub == "sync":
            return self.handle_sync()
        return [f"Unknown command: {sub}"] + HELP_LINES

    # ── Sub-commands ─────────────────────────────────

    def handle_link(self, code: str) -> List[str]:
        if not is_valid_link_code(code):
            return ["Invalid code format. Please enter the 8-character code from the website."]

        if self._linker.is_linked():
            return [
                f"Account already linked as {self._linker.linked_username}. "
                f"Use /{COMMAND_NAME} unlink first."
            ]

        session = self._session_provider()
        if session is None:
            return ["No game session available - are you logged in?"]

        future = self._linker.verify_account(code, session)
        future.add_done_callback(self._report_link_result)
        return ["Verifying account..."]

    def _report_link_result(self, future):
        result = future.result()
        if result.success:
            self._feedback(f"✔ {result.message}")
            self._feedback(f"Linked as: {result.username}")
        else:
            self._feedback(f"✘ {result.message}")

    def handle_status(self) -> List[str]:
        if not self._linker.is_linked():
            return [
                "Account Status: Not Linked",
                f"Use /{COMMAND_NAME} link <code> to link your account.",
            ]

        status = self._sync.get_status()
        lines = [
            "Account Status: Linked",
            f"Username: {self._linker.linked_username}",
            f"UUID: {self._linker.linked_uuid}",
            "Auth Token: Valid",
        ]
        if status["last_sync_time"]:
            when = datetime.fromtimestamp(status["last_sync_time"]).strftime("%Y-%m-%d %H:%M:%S")
            lines.append(f"Last Sync: {when}")
        else:
            lines.append("Last Sync: never")
        if not status["last_sync_success"]:
            lines.append(f"Last sync failed: {status['last_sync_message']}")
        if status["sync_pending"]:
            lines.append("A sync is scheduled.")
        return lines

    def handle_unlink(self) -> List[str]:
        if not self._linker.is_linked():
            return ["No account is currently linked."]
        username = self._linker.linked_username
        self._linker.unlink()
        return [f"Account {username} has been unlinked."]

    def handle_show(self) -> List[str]:
        return format_snapshot(self._store.get_snapshot())

    def handle_sync(self) -> List[str]:
        future = self._sync.sync_now(self._store.get_snapshot())
        try:
            result = future.result(timeout=SYNC_WAIT_SECONDS)
        except FutureTimeoutError:
            return ["Sync is taking longer than expected; it will finish in the background."]
        if result.success:
            return ["✔ RNG data synced."]
        return [f"✘ Sync failed: {result.message}"]
