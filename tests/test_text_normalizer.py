"""Tests for text_normalizer.py — formatting code removal."""

from text_normalizer import strip_formatting


def test_strips_color_codes():
    assert strip_formatting("§6§lRNG Meter §7- §d1,234 Stored XP") == "RNG Meter - 1,234 Stored XP"


def test_plain_text_unchanged():
    assert strip_formatting("Glacite Mineshafts: 10/2,000") == "Glacite Mineshafts: 10/2,000"


def test_empty_and_none():
    assert strip_formatting("") == ""
    assert strip_formatting(None) == ""


def test_trailing_marker_kept():
    """A lone marker at the end has no code character to pair with."""
    assert strip_formatting("abc§") == "abc§"


def test_idempotent():
    once = strip_formatting("§a§§bHello")
    assert strip_formatting(once) == strip_formatting(strip_formatting(once))
