import json

import pytest

import conftest
import scalewalk.session


def _session (**kwargs) -> scalewalk.session.PracticeSession:

	return scalewalk.session.PracticeSession(**kwargs)


def _record (session: scalewalk.session.PracticeSession, event_name: str) -> list:

	"""Collect the arguments of every emission of an event."""

	received: list = []
	session.events.on(event_name, lambda *args: received.append(args))
	return received


# ---------------------------------------------------------------------------
# Tonic lock
# ---------------------------------------------------------------------------

def test_starts_idle () -> None:

	"""A new session is idle and ignores audio."""

	session = _session()

	assert not session.running
	assert session.status == "Idle"

	session.tick(conftest.make_tone(440.0), conftest.SAMPLE_RATE, 0.0)

	assert session.state.mode == "idle"


def test_lock_on_a440_builds_a_major () -> None:

	"""Holding A4 on a C instrument locks A major in the treble register."""

	session = _session()
	locked = _record(session, "tonic_locked")
	renders = _record(session, "render")

	conftest.lock_tonic(session, 440.0)

	assert session.state.mode == "following"
	assert session.tonic is not None
	assert session.tonic.midi_number == 69
	assert session.tonic.written_key_name == "A"
	assert session.note_sequence == [
		"A4", "B4", "C#5", "D5", "E5", "F#5", "G#5", "A5",
		"G#5", "F#5", "E5", "D5", "C#5", "B4", "A4",
	]
	assert session.degrees[0].midi_number == 69
	assert session.state.current_index == 0
	assert session.status == "A: starting..."
	assert len(locked) == 1
	assert locked[0][0].written_key_name == "A"
	assert renders[-1][1] == "treble"
	assert renders[-1][2] == "A"
	assert len(session.slots) == 15


def test_quiet_input_keeps_listening () -> None:

	"""Silence never locks a tonic."""

	session = _session()
	session.start()

	for i in range(10):
		session.tick(conftest.make_silence(), conftest.SAMPLE_RATE, i * 16.0)

	assert session.state.mode == "acquiring_tonic"
	assert session.status == "Listening... (play a clear note)"


@pytest.mark.parametrize("frequency", [30.0, 35.0, 50.0])
def test_steady_hum_never_locks (frequency: float) -> None:

	"""Loud mains hum below the musical range keeps the session listening."""

	session = _session()
	session.start()

	for i in range(20):
		session.tick(conftest.make_tone(frequency), conftest.SAMPLE_RATE, i * 16.0)

	assert session.state.mode == "acquiring_tonic"
	assert session.tonic is None


def test_voice_profile_keeps_tonic_floor () -> None:

	"""A note too quiet for the tonic floor never locks, even with the voice profile."""

	session = _session(profile="voice")
	session.start()

	# RMS of about 0.0057: above the voice floor, below the tonic floor.
	for i in range(10):
		session.tick(conftest.make_tone(440.0, amplitude=0.008), conftest.SAMPLE_RATE, i * 16.0)

	assert session.state.mode == "acquiring_tonic"

	conftest.lock_tonic(session, 440.0)

	assert session.tonic is not None
	assert session.tonic.midi_number == 69


def test_bb_instrument_reads_written_key () -> None:

	"""A concert B-flat on a B-flat instrument is written C and graded at concert pitch."""

	session = _session(transposition_id="bb")
	conftest.lock_tonic(session, 233.08)

	assert session.tonic.written_key_name == "C"
	assert session.note_sequence[0] == "C4"
	assert session.degrees[0].midi_number == 58


def test_bass_clef_session () -> None:

	"""A bass-clef run is written low and moved to the played register."""

	session = _session(transposition_id="c_bass")
	conftest.lock_tonic(session, 110.0)

	assert session.clef == "bass"
	assert session.note_sequence[0] == "A2"
	assert session.degrees[0].midi_number == 45


# ---------------------------------------------------------------------------
# Following
# ---------------------------------------------------------------------------

def test_played_notes_advance_the_cursor () -> None:

	"""Microphone onsets on the expected notes step through the run."""

	session = _session()
	steps = _record(session, "step")

	conftest.lock_tonic(session, 440.0)

	session.tick(conftest.make_tone(440.0), conftest.SAMPLE_RATE, 200.0)

	assert session.state.current_index == 1
	assert session.degrees[0].feedback == "in_tune"

	session.tick(conftest.make_silence(), conftest.SAMPLE_RATE, 216.0)
	session.tick(conftest.make_tone(493.88), conftest.SAMPLE_RATE, 232.0)

	assert session.state.current_index == 2
	assert session.degrees[1].feedback == "in_tune"
	assert session.degrees[0].feedback is None
	assert len(steps) == 2
	assert session.state.last_active_time_ms == 232.0


def test_unresolvable_onset_is_a_miss () -> None:

	"""An onset that maps to no degree marks the expected note wrong without advancing."""

	session = _session()
	conftest.lock_tonic(session, 440.0)

	result = session.debug_note(30.0, now_ms=100.0)

	assert result is not None
	assert not result.advanced
	assert session.state.current_index == 0
	assert session.degrees[0].feedback == "wrong"


def test_debug_note_ignored_when_not_following () -> None:

	"""Injected notes need a run to follow."""

	session = _session()

	assert session.debug_note(440.0) is None


def test_completing_a_run_moves_up_a_semitone () -> None:

	"""Finishing C major loops into D-flat major with a fresh run."""

	session = _session()
	key_changes = _record(session, "key_changed")

	conftest.lock_tonic(session, 261.63)

	assert session.tonic.written_key_name == "C"

	frequencies = [degree.frequency_hz for degree in session.degrees]

	for i, frequency in enumerate(frequencies):
		session.debug_note(frequency, now_ms=1000.0 + i * 200.0)

	assert session.tonic.written_key_name == "Db"
	assert session.note_sequence[0] == "Db4"
	assert session.degrees[0].midi_number == 61
	assert session.state.current_index == 0
	assert session.state.progress == "idle"
	assert all(degree.feedback is None for degree in session.degrees)
	assert len(key_changes) == 1
	assert session.status == "Db: starting..."


def test_advance_without_tonic_raises () -> None:

	"""There is no next key before a tonic is locked."""

	with pytest.raises(RuntimeError):
		_session().advance_to_next_key()


def test_inactivity_returns_to_start () -> None:

	"""More than five seconds without an onset sends the cursor back to the first degree."""

	session = _session()
	resets = _record(session, "inactivity_reset")

	conftest.lock_tonic(session, 440.0)
	session.debug_note(440.0, now_ms=1000.0)

	assert session.state.current_index == 1
	assert not session.check_inactivity(6000.0)

	assert session.check_inactivity(6001.0)
	assert session.state.current_index == 0
	assert session.state.last_active_time_ms is None
	assert all(degree.feedback is None for degree in session.degrees)
	assert session.tonic.written_key_name == "A"
	assert len(resets) == 1

	assert not session.check_inactivity(20000.0)


def test_inactivity_checked_on_silent_ticks () -> None:

	"""The inactivity reset happens even while nothing is being played."""

	session = _session()
	conftest.lock_tonic(session, 440.0)
	session.debug_note(440.0, now_ms=1000.0)

	session.tick(conftest.make_silence(), conftest.SAMPLE_RATE, 7000.0)

	assert session.state.current_index == 0


# ---------------------------------------------------------------------------
# Control surface
# ---------------------------------------------------------------------------

def test_stop_and_reset () -> None:

	"""Stopping idles the session; resetting listens for a new tonic."""

	session = _session()
	conftest.lock_tonic(session, 440.0)

	session.stop()

	assert not session.running
	assert session.status == "Stopped"

	session.reset()

	assert session.state.mode == "acquiring_tonic"
	assert session.state.current_index == 0


def test_status_emitted_only_on_change () -> None:

	"""Repeating the same status text is silent."""

	session = _session()
	statuses = _record(session, "status")

	session.set_status("Hello")
	session.set_status("Hello")

	assert statuses == [("Hello",)]


def test_setters () -> None:

	"""Selections are validated and profiles reach the onset detector."""

	session = _session()

	session.set_profile("voice")
	assert session.onset_detector.profile.name == "voice"

	session.set_scale_type("blues")
	assert session.scale_type.id == "blues"

	session.set_transposition("eb")
	assert session.transposition.offset == -3

	session.set_debug_mode("accept_any_onset")
	assert session.state.debug_mode == "accept_any_onset"

	with pytest.raises(ValueError):
		session.set_debug_mode("chaos")

	with pytest.raises(ValueError):
		session.set_transposition("kazoo")


def test_unknown_transposition_raises () -> None:

	"""A session cannot be built for an unknown instrument."""

	with pytest.raises(ValueError):
		_session(transposition_id="kazoo")


def test_snapshot_is_json () -> None:

	"""The dashboard snapshot serialises and reflects the run."""

	session = _session(scale_type_id="dorian")
	conftest.lock_tonic(session, 440.0)
	session.debug_note(440.0, now_ms=100.0)

	snapshot = json.loads(json.dumps(session.snapshot()))

	assert snapshot["mode"] == "following"
	assert snapshot["written_key"] == "A"
	assert snapshot["scale_type"] == "dorian"
	assert snapshot["current_index"] == 1
	assert snapshot["tonic"]["midi"] == 69
	assert len(snapshot["notes"]) == 15
	assert snapshot["notes"][0]["feedback"] == "in_tune"
	assert snapshot["notes"][0]["checkpoint"] is True
	assert "tuner" in snapshot
