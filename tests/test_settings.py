"""Tests for settings.py — link settings file handling."""

import json
from dataclasses import replace

from config import DEFAULT_API_URL
from settings import LinkSettings, SettingsManager


def test_missing_file_created_with_defaults(tmp_path):
    manager = SettingsManager(tmp_path / "config.json")
    settings = manager.load()
    assert settings == LinkSettings()
    assert json.loads((tmp_path / "config.json").read_text()) == {
        "api_url": DEFAULT_API_URL,
        "auth_token": "",
        "linked_uuid": "",
        "linked_username": "",
    }


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{{{")
    assert SettingsManager(path).load() == LinkSettings()


def test_unknown_keys_ignored(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"api_url": "http://localhost:9000", "theme": "dark"}))
    settings = SettingsManager(path).load()
    assert settings.api_url == "http://localhost:9000"
    assert settings.auth_token == ""


def test_update_persists(settings_manager):
    settings_manager.update(lambda s: replace(
        s, auth_token="tok", linked_uuid="abc123", linked_username="Steve"))
    reloaded = SettingsManager(settings_manager.path).load()
    assert reloaded.linked_username == "Steve"
    assert reloaded.is_linked()


def test_is_linked_needs_uuid_and_token():
    assert not LinkSettings().is_linked()
    assert not LinkSettings(linked_uuid="abc").is_linked()
    assert not LinkSettings(auth_token="tok").is_linked()
    assert LinkSettings(linked_uuid="abc", auth_token="tok").is_linked()


def test_unlinked_keeps_api_url():
    linked = LinkSettings(api_url="http://x", auth_token="t", linked_uuid="u", linked_username="n")
    assert linked.unlinked() == LinkSettings(api_url="http://x")


def test_reset(settings_manager):
    settings_manager.update(lambda s: replace(s, api_url="http://other"))
    settings_manager.reset()
    assert settings_manager.settings == LinkSettings()
