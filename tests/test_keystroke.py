"""Tests for practice hotkeys.

Covers:
- Terminal probing and the unsupported-terminal warning
- push() mapping keys to actions
- drain_actions() ordering
"""

import logging
import unittest.mock

import pytest

import scalewalk.keystroke as keystroke_mod
from scalewalk.keystroke import KeystrokeListener


# ---------------------------------------------------------------------------
# Platform detection
# ---------------------------------------------------------------------------

class TestKeystrokeListenerPlatform:

	def test_supported_flag_is_bool (self):
		assert isinstance(keystroke_mod.HOTKEYS_SUPPORTED, bool)

	def test_reason_matches_support (self):
		if keystroke_mod.HOTKEYS_SUPPORTED:
			assert keystroke_mod.HOTKEYS_UNAVAILABLE_REASON is None
		else:
			assert keystroke_mod.HOTKEYS_UNAVAILABLE_REASON

	def test_start_on_unsupported_terminal_warns (self, caplog: pytest.LogCaptureFixture):
		"""Simulate an unsupported terminal by patching HOTKEYS_SUPPORTED to False."""
		listener = KeystrokeListener()
		with unittest.mock.patch.object(keystroke_mod, "HOTKEYS_SUPPORTED", False):
			with unittest.mock.patch.object(keystroke_mod, "HOTKEYS_UNAVAILABLE_REASON", "Test: no terminal"):
				with caplog.at_level(logging.WARNING):
					listener.start()

		assert listener.active is False
		assert listener._thread is None
		assert "Test: no terminal" in caplog.text

	def test_stop_safe_when_never_started (self):
		listener = KeystrokeListener()
		listener.stop()
		assert listener.active is False


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

class TestKeystrokeActions:

	def test_drain_empty_when_nothing_pressed (self):
		assert KeystrokeListener().drain_actions() == []

	def test_keys_map_to_actions_in_order (self):
		listener = KeystrokeListener()
		for key in ["x", " ", "R", "q"]:
			listener.push(key)
		assert listener.drain_actions() == ["toggle", "reset", "quit"]
		assert listener.drain_actions() == []

	def test_custom_key_map (self):
		listener = KeystrokeListener({"n": "reset"})
		listener.push("n")
		listener.push("r")
		assert listener.drain_actions() == ["reset"]

	def test_default_key_map (self):
		assert keystroke_mod.KEY_ACTIONS == {" ": "toggle", "r": "reset", "q": "quit"}
