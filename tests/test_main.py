"""Tests for main.py — DyeTracker wiring and lifecycle."""

import json
from unittest.mock import MagicMock

import pytest

from main import DyeTracker
from rng_data import MineshaftPity, PlayerRngData, RngMeter, SlayerType


def _tracker(tmp_path, timer_factory, **kwargs):
    return DyeTracker(data_dir=tmp_path, http_session=MagicMock(),
                      inventory_settle_delay=0, timer_factory=timer_factory, **kwargs)


def test_hydrates_from_data_file(tmp_path, timer_factory):
    saved = PlayerRngData(
        slayer_meters={SlayerType.TARANTULA: RngMeter(42, "Fly Swatter", 100)},
        mineshaft_pity=MineshaftPity(9),
    )
    (tmp_path / "data.json").write_text(json.dumps(saved.to_dict()), encoding="utf-8")

    tracker = _tracker(tmp_path, timer_factory)
    try:
        assert tracker.store.get_snapshot() == saved
        assert not tracker.persistence.is_save_pending
    finally:
        tracker.shutdown()


def test_creates_settings_file(tmp_path, timer_factory):
    tracker = _tracker(tmp_path, timer_factory)
    tracker.shutdown()
    assert (tmp_path / "config.json").exists()


def test_shutdown_flushes_pending_save(tmp_path, timer_factory):
    tracker = _tracker(tmp_path, timer_factory)
    tracker.store.update_mineshaft_pity(77)
    assert tracker.persistence.is_save_pending
    tracker.shutdown()

    raw = json.loads((tmp_path / "data.json").read_text(encoding="utf-8"))
    assert raw["mineshaftPity"] == {"pityValue": 77}


def test_persistence_listener_runs_before_sync(tmp_path, timer_factory):
    tracker = _tracker(tmp_path, timer_factory)
    try:
        listeners = tracker.store._listeners
        assert len(listeners) == 2
        assert listeners[0].__self__ is tracker.persistence
        assert listeners[1].__self__ is tracker.sync
    finally:
        tracker.shutdown()


def test_drain_messages(tmp_path, timer_factory):
    tracker = _tracker(tmp_path, timer_factory)
    tracker.post_message("hello")
    assert tracker.drain_messages() == ["hello"]
    assert tracker.drain_messages() == []
    tracker.shutdown()


@pytest.mark.parametrize("content", [
    '{"slayerMeters": ["x"]}',
    '{"nucleusMeter": {"storedXp": 1e999}}',
])
def test_malformed_data_file_does_not_block_startup(tmp_path, timer_factory, content):
    (tmp_path / "data.json").write_text(content, encoding="utf-8")
    tracker = _tracker(tmp_path, timer_factory)
    try:
        assert not tracker.store.get_snapshot().has_data()
    finally:
        tracker.shutdown()
