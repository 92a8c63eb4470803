"""
server.py — Local FastAPI ingest server for DyeTracker.

The game-side mod forwards what the player sees (chat lines, opened
containers, player-list entries, ticks) and commands to this server. The
server hands them to the DyeTracker extractors and reports state back.

Endpoints:
  POST /api/observe/chat       → one chat line
  POST /api/observe/container  → container title + slots
  POST /api/observe/roster     → player-list display names (polled now)
  POST /api/observe/tick       → one host tick (player list polled every 40)
  POST /api/session            → current game session (username/uuid/token)
  GET  /api/status             → link + sync state
  GET  /api/data               → current RNG data snapshot
  POST /api/link               → run account verification, wait for result
  POST /api/unlink             → clear the link
  POST /api/sync               → forced sync, wait for result
  POST /api/command            → run a /dyetracker command
  GET  /api/messages           → deferred command output (link results)
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from account_link import GameSession
from commands import is_valid_link_code
from config import APP_VERSION
from inventory_parser import ItemSlot

logger = logging.getLogger("dyetracker.server")


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------
class ChatRequest(BaseModel):
    text: str
    overlay: bool = False


class SlotModel(BaseModel):
    name: str = ""
    lore: List[str] = []
    empty: bool = False


class ContainerRequest(BaseModel):
    title: str
    slots: List[SlotModel] = []


class RosterRequest(BaseModel):
    entries: List[Optional[str]] = []


class TickRequest(BaseModel):
    entries: Optional[List[Optional[str]]] = None


class SessionRequest(BaseModel):
    username: str
    uuid: Optional[str] = None
    access_token: str


class LinkRequest(BaseModel):
    code: str
    session: Optional[SessionRequest] = None


class CommandRequest(BaseModel):
    command: str


def _to_session(req: SessionRequest) -> GameSession:
    return GameSession(username=req.username, uuid=req.uuid, access_token=req.access_token)


def _to_slots(slots: List[SlotModel]) -> List[ItemSlot]:
    return [ItemSlot(name=s.name, lore=list(s.lore), is_empty=s.empty) for s in slots]


def _describe(inventory_type) -> Optional[str]:
    if inventory_type is None:
        return None
    return type(inventory_type).__name__


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
def create_app(tracker) -> FastAPI:
    """Build the ingest API around a DyeTracker instance."""
    app = FastAPI(title="DyeTracker API", version=APP_VERSION)

    # ── Observations ─────────────────────────────────

    @app.post("/api/observe/chat")
    async def observe_chat(req: ChatRequest):
        tracker.chat.on_chat_message(req.text, overlay=req.overlay)
        slayer = tracker.chat.current_slayer_type
        return {"status": "ok", "slayer_type": slayer.name if slayer else None}

    @app.post("/api/observe/container")
    async def observe_container(req: ContainerRequest):
        slots = _to_slots(req.slots)
        detected = tracker.inventory.on_container_open(req.title, lambda: slots)
        return {"status": "ok", "detected": _describe(detected)}

    @app.post("/api/observe/roster")
    async def observe_roster(req: RosterRequest):
        pity = tracker.tablist.poll(req.entries)
        return {"status": "ok", "mineshaft_pity": pity}

    @app.post("/api/observe/tick")
    async def observe_tick(req: TickRequest = TickRequest()):
        polled = tracker.tablist.on_tick(lambda: req.entries)
        return {"status": "ok", "polled": polled}

    @app.post("/api/session")
    async def set_session(req: SessionRequest):
        tracker.set_game_session(_to_session(req))
        return {"status": "ok"}

    # ── State ────────────────────────────────────────

    @app.get("/api/status")
    async def get_status():
        return {
            "version": APP_VERSION,
            "linked": tracker.linker.is_linked(),
            "username": tracker.linker.linked_username or None,
            "uuid": tracker.linker.linked_uuid or None,
            "has_session": tracker.game_session is not None,
            "sync": tracker.sync.get_status(),
            "save_pending": tracker.persistence.is_save_pending,
            "saves_written": tracker.persistence.save_count,
        }

    @app.get("/api/data")
    async def get_data():
        return tracker.store.get_snapshot().to_dict()

    # ── Account + sync ───────────────────────────────

    @app.post("/api/link")
    async def link_account(req: LinkRequest):
        """Verify the link code and wait for the outcome."""
        if not is_valid_link_code(req.code):
            return JSONResponse(
                status_code=400,
                content={"error": "Invalid code format. Expected 8 alphanumeric characters."},
            )
        if tracker.linker.is_linked():
            return JSONResponse(
                status_code=409,
                content={"error": f"Account already linked as {tracker.linker.linked_username}"},
            )

        if req.session is not None:
            tracker.set_game_session(_to_session(req.session))
        if tracker.game_session is None:
            return JSONResponse(
                status_code=400,
                content={"error": "No game session available"},
            )

        future = tracker.linker.verify_account(req.code, tracker.game_session)
        result = await asyncio.wrap_future(future)
        return {
            "success": result.success,
            "message": result.message,
            "uuid": result.uuid,
            "username": result.username,
        }

    @app.post("/api/unlink")
    async def unlink_account():
        was_linked = tracker.linker.is_linked()
        if was_linked:
            tracker.linker.unlink()
        return {"status": "ok", "was_linked": was_linked}

    @app.post("/api/sync")
    async def sync_now():
        future = tracker.sync.sync_now(tracker.store.get_snapshot())
        result = await asyncio.wrap_future(future)
        return {"success": result.success, "message": result.message}

    # ── Commands ─────────────────────────────────────

    @app.post("/api/command")
    async def run_command(req: CommandRequest):
        # dispatch may block on a forced sync
        lines = await asyncio.to_thread(tracker.commands.dispatch, req.command)
        return {"lines": lines}

    @app.get("/api/messages")
    async def get_messages():
        return {"messages": tracker.drain_messages()}

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    from main import main
    main()
