"""
DyeTracker - Main Application
Orchestrates all components:
    Host observations → Extractors → RNG Data Store → Persistence + Sync

Usage:
    python main.py                                # Run the ingest server
    python main.py --port 8461                    # Custom port
    python main.py --command "/dyetracker show"   # Run one command and exit
    python main.py --debug                        # Verbose logging
"""

import sys
import os
import logging
import argparse
import threading
from pathlib import Path
from typing import Callable, List, Optional

# Add src to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import (
    APP_VERSION,
    DATA_DIR,
    DATA_FILE_NAME,
    INVENTORY_SCAN_DELAY,
    LOG_FILE,
    SERVER_HOST,
    SERVER_PORT,
    SETTINGS_FILE_NAME,
)
from account_link import AccountLinker, GameSession, join_session_server
from api_client import ApiClient
from chat_handler import ChatHandler
from commands import CommandHandler
from data_persistence import DataPersistence
from inventory_handler import InventoryHandler
from rng_store import RngDataStore
from settings import SettingsManager
from sync_manager import SyncManager
from tablist_handler import TablistHandler

logger = logging.getLogger("dyetracker")


class DyeTracker:
    """
    Main application class.

    Pipeline:
    1. Chat, container and player-list observations reach the extractors
    2. Extractors write RNG meter progress into the RngDataStore
    3. Every store change notifies DataPersistence (debounced disk write)
       and then SyncManager (debounced backend push)
    """

    def __init__(self, data_dir: Path = DATA_DIR, http_session=None,
                 session_join: Callable = join_session_server,
                 inventory_settle_delay: float = INVENTORY_SCAN_DELAY,
                 timer_factory: Callable = threading.Timer):
        self.data_dir = Path(data_dir)
        logger.info(f"Initializing DyeTracker {APP_VERSION}...")
        logger.info(f"Data directory: {self.data_dir}")

        self.settings = SettingsManager(self.data_dir / SETTINGS_FILE_NAME)
        self.settings.load()

        self.store = RngDataStore()
        self.persistence = DataPersistence(self.data_dir / DATA_FILE_NAME)
        saved = self.persistence.load()
        if saved is not None:
            self.store.load_snapshot(saved)

        self.api = ApiClient(self.settings, session=http_session)
        self.linker = AccountLinker(self.api, self.settings, session_join=session_join)
        self.sync = SyncManager(self.api, is_linked=self.linker.is_linked,
                                timer_factory=timer_factory)

        # Persistence first: a change is on disk before a sync is scheduled
        self.store.add_listener(self.persistence.on_data_changed)
        self.store.add_listener(self.sync.on_data_changed)

        self.chat = ChatHandler(self.store)
        self.inventory = InventoryHandler(self.store, settle_delay=inventory_settle_delay)
        self.tablist = TablistHandler(self.store)

        self.game_session: Optional[GameSession] = None
        self._messages: List[str] = []
        self._messages_lock = threading.Lock()
        self.commands = CommandHandler(
            self.linker, self.store, self.sync,
            session_provider=lambda: self.game_session,
            feedback=self.post_message,
        )

        if self.linker.is_linked():
            logger.info(f"Account linked as {self.linker.linked_username}")
        else:
            logger.info("Account not linked - use /dyetracker link <code>")

    def set_game_session(self, session: GameSession):
        self.game_session = session
        logger.info(f"Game session set for {session.username}")

    # ── Deferred command output ──────────────────────

    def post_message(self, message: str):
        """Queue a message for the player (e.g. the async link result)."""
        logger.info(message)
        with self._messages_lock:
            self._messages.append(message)

    def drain_messages(self) -> List[str]:
        with self._messages_lock:
            messages, self._messages = self._messages, []
        return messages

    # ── Lifecycle ────────────────────────────────────

    def shutdown(self):
        """Write pending data to disk and stop every timer and worker."""
        logger.info("Shutting down DyeTracker...")
        self.inventory.shutdown()
        self.sync.shutdown()
        self.persistence.flush(self.store.get_snapshot())
        self.persistence.shutdown()
        self.linker.shutdown()
        logger.info("DyeTracker stopped")


def setup_logging(debug: bool = False, log_file: Path = LOG_FILE):
    """Configure logging.

    Console shows INFO+ only.
    File gets DEBUG when --debug is used (every parsed line, timers, etc.).
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(
        "%(asctime)s %(message)s",
        datefmt="%H:%M:%S"
    ))

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.addHandler(console)
    root_logger.addHandler(file_handler)


def main():
    parser = argparse.ArgumentParser(
        description="DyeTracker - RNG meter tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                # Run the ingest server
  python main.py --data-dir ./data --debug      # Custom data dir, debug logs
  python main.py --command "/dyetracker status" # One-shot command
        """
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=SERVER_PORT,
        help=f"Ingest server port (default: {SERVER_PORT})"
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DATA_DIR,
        help=f"Settings and data directory (default: {DATA_DIR})"
    )
    parser.add_argument(
        "--command", "-c",
        help="Run a single /dyetracker command and exit"
    )

    args = parser.parse_args()

    setup_logging(debug=args.debug, log_file=args.data_dir / LOG_FILE.name)

    try:
        tracker = DyeTracker(data_dir=args.data_dir)
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)

    if args.command:
        try:
            for line in tracker.commands.dispatch(args.command):
                print(line)
        finally:
            tracker.shutdown()
        return

    import uvicorn
    from server import create_app

    logger.info(f"Starting DyeTracker ingest server on {SERVER_HOST}:{args.port}")
    try:
        uvicorn.run(create_app(tracker), host=SERVER_HOST, port=args.port, log_level="info")
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        tracker.shutdown()


if __name__ == "__main__":
    main()
