"""Shared fixtures for DyeTracker test suite."""

import sys
import logging
from pathlib import Path

import pytest

# Ensure src/ is importable
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from inventory_parser import ItemSlot
from rng_store import RngDataStore
from settings import SettingsManager

logger = logging.getLogger(__name__)


# ── Fake timers ──────────────────────────────────────────

class FakeTimer:
    """threading.Timer stand-in that fires only when the test says so."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.fired = True
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


class FakeTimerFactory:
    """Records every timer created so tests can inspect and fire them."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args=args, kwargs=kwargs)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]

    @property
    def active(self):
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    @property
    def delays(self):
        return [t.interval for t in self.timers]


@pytest.fixture
def timer_factory():
    return FakeTimerFactory()


# ── Store fixtures ───────────────────────────────────────

@pytest.fixture
def store():
    return RngDataStore()


@pytest.fixture
def snapshots(store):
    """Every snapshot the store notifies, in order."""
    received = []
    store.add_listener(received.append)
    return received


@pytest.fixture
def settings_manager(tmp_path):
    manager = SettingsManager(tmp_path / "config.json")
    manager.load()
    return manager


# ── Helper factories ─────────────────────────────────────

def make_slot(name="Item", lore=None, empty=False):
    """Shorthand to create an ItemSlot for testing."""
    return ItemSlot(name=name, lore=list(lore or []), is_empty=empty)
