import io
import logging
import sys

import conftest
import scalewalk.display
import scalewalk.session


def _following_session () -> scalewalk.session.PracticeSession:

	session = scalewalk.session.PracticeSession(transposition_id="bb")
	conftest.lock_tonic(session, 392.0)
	return session


def test_format_status_idle () -> None:

	"""Before a tonic the status line shows only the mode and status."""

	display = scalewalk.display.Display(scalewalk.session.PracticeSession())

	assert display._format_status() == "idle  Idle"
	assert display._format_run() == ""


def test_format_status_following () -> None:

	"""After a lock the status line names the written key, scale and transposition."""

	session = _following_session()
	display = scalewalk.display.Display(session)

	status = display._format_status()

	assert status.startswith("following")
	assert "A Major (bb)" in status
	assert "A: starting..." in status


def test_format_run_marks_cursor_and_feedback () -> None:

	"""The expected degree is bracketed and graded degrees carry a glyph."""

	session = _following_session()
	display = scalewalk.display.Display(session)

	assert display._format_run().startswith("[A4] B4 C#5")

	session.debug_note(session.degrees[0].frequency_hz, now_ms=100.0)

	assert display._format_run().startswith("A4✓ [B4] C#5")


def test_format_run_wrong_note_glyph () -> None:

	"""A missed tonic shows a cross and keeps the cursor on it."""

	session = _following_session()
	display = scalewalk.display.Display(session)

	session.debug_note(30.0, now_ms=100.0)

	assert display._format_run().startswith("[A4✗] B4")


def test_update_writes_to_stderr () -> None:

	"""A started display draws the run and status to stderr and redraws on events."""

	session = _following_session()
	display = scalewalk.display.Display(session)
	stream = io.StringIO()

	# Temporarily redirect stderr to capture output.
	original_stderr = sys.stderr
	sys.stderr = stream

	try:
		display.start()
		display.update()
		session.debug_note(session.degrees[0].frequency_hz, now_ms=100.0)
		display.stop()
	finally:
		sys.stderr = original_stderr

	output = stream.getvalue()

	assert "[A4]" in output
	assert "A4✓" in output
	assert "A Major (bb)" in output


def test_update_inactive_writes_nothing () -> None:

	"""An unstarted display stays silent."""

	display = scalewalk.display.Display(_following_session())
	stream = io.StringIO()

	original_stderr = sys.stderr
	sys.stderr = stream

	try:
		display.update()
	finally:
		sys.stderr = original_stderr

	assert stream.getvalue() == ""


def test_start_and_stop_restore_log_handlers () -> None:

	"""The display owns the root handlers only while it runs."""

	root_logger = logging.getLogger()
	before = list(root_logger.handlers)

	session = scalewalk.session.PracticeSession()
	display = scalewalk.display.Display(session)

	original_stderr = sys.stderr
	sys.stderr = io.StringIO()

	try:
		display.start()
		assert any(isinstance(h, scalewalk.display.DisplayLogHandler) for h in root_logger.handlers)
		display.stop()
	finally:
		sys.stderr = original_stderr

	assert root_logger.handlers == before
