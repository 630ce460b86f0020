import pytest

import scalewalk.pitch
import scalewalk.scale_sequence
import scalewalk.scale_tables


def _run (key: str, mode: str = "major", clef: str = "treble") -> list:

	return scalewalk.scale_sequence.build_up_down_sequence(scalewalk.scale_tables.scale_notes(key, mode), clef)


def test_a_major_up_down () -> None:

	"""A major climbs from A4 to A5 and mirrors back down."""

	assert _run("A") == [
		"A4", "B4", "C#5", "D5", "E5", "F#5", "G#5", "A5",
		"G#5", "F#5", "E5", "D5", "C#5", "B4", "A4",
	]


def test_cb_is_written_in_the_upper_octave () -> None:

	"""Gb major spells Cb above Bb4 as Cb5, which sounds B4."""

	run = _run("Gb")

	assert run[:8] == ["Gb4", "Ab4", "Bb4", "Cb5", "Db5", "Eb5", "F5", "Gb5"]
	assert scalewalk.pitch.note_name_to_midi("Cb5") == 71


def test_bass_clef_starts_in_octave_two () -> None:

	"""Bass clef runs start two octaves lower."""

	run = _run("C", clef="bass")

	assert run[0] == "C2"
	assert run[7] == "C3"


def test_unknown_clef_raises () -> None:

	"""Only treble and bass clefs are known."""

	with pytest.raises(ValueError, match="alto"):
		scalewalk.scale_sequence.apply_octaves(["C", "D", "C"], "alto")


def test_single_note_raises () -> None:

	"""A scale needs a tonic and its octave at least."""

	with pytest.raises(ValueError):
		scalewalk.scale_sequence.apply_octaves(["C"], "treble")


@pytest.mark.parametrize("clef", ["treble", "bass"])
@pytest.mark.parametrize("mode_id", [s.id for s in scalewalk.scale_tables.SCALE_TYPES])
def test_every_run_ascends_then_mirrors (mode_id: str, clef: str) -> None:

	"""In every key and clef the ascent is strictly increasing, spans one octave and the descent mirrors it."""

	for key in scalewalk.scale_tables.CHROMATIC_KEY_NAMES:

		run = _run(key, mode_id, clef)
		midi = [scalewalk.pitch.note_name_to_midi(name) for name in run]
		length = len(scalewalk.scale_tables.scale_notes(key, mode_id))
		apex = length - 1

		assert len(run) == 2 * length - 1
		assert all(a < b for a, b in zip(midi[:apex], midi[1:apex + 1])), f"{key} {mode_id}: {run}"
		assert midi[apex] - midi[0] == 12
		assert run == run[::-1]


def test_expected_sequence_concert_pitch_and_checkpoints () -> None:

	"""A C-instrument run in A keeps its pitches and marks the three tonics as checkpoints."""

	degrees = scalewalk.scale_sequence.build_expected_sequence(_run("A"), "A", tonic_midi=69, transposition_offset=0)

	assert [d.midi_number for d in degrees[:8]] == [69, 71, 73, 74, 76, 78, 80, 81]
	assert degrees[0].frequency_hz == pytest.approx(440.0)
	assert [d.index for d in degrees if d.is_tonic_checkpoint] == [0, 7, 14]
	assert [d.index for d in degrees] == list(range(15))


def test_expected_sequence_transposes_to_concert () -> None:

	"""A B-flat instrument reading C major sounds B-flat major."""

	degrees = scalewalk.scale_sequence.build_expected_sequence(_run("C"), "C", tonic_midi=58, transposition_offset=2)

	assert degrees[0].note_name == "C4"
	assert degrees[0].midi_number == 58
	assert degrees[7].midi_number == 70


def test_expected_sequence_moves_to_tonic_register () -> None:

	"""The whole run moves by octaves to meet the locked tonic."""

	low = scalewalk.scale_sequence.build_expected_sequence(_run("A"), "A", tonic_midi=57, transposition_offset=0)
	bass = scalewalk.scale_sequence.build_expected_sequence(_run("A", clef="bass"), "A", tonic_midi=57, transposition_offset=0)

	assert low[0].midi_number == 57
	assert low[7].midi_number == 69
	assert bass[0].midi_number == 57
	assert low[0].note_name == "A4"


def test_expected_sequence_empty_raises () -> None:

	"""An empty run cannot be built."""

	with pytest.raises(ValueError):
		scalewalk.scale_sequence.build_expected_sequence([], "C", tonic_midi=60, transposition_offset=0)


def test_clear_feedback () -> None:

	"""Clearing a degree removes feedback and detection results."""

	degree = scalewalk.scale_sequence.ScaleDegree(index=0, note_name="C4", midi_number=60, frequency_hz=261.63)
	degree.feedback = "sharp"
	degree.detected_frequency_hz = 265.0
	degree.error_cents = 22.0

	degree.clear_feedback()

	assert degree.feedback is None
	assert degree.detected_frequency_hz is None
	assert degree.error_cents is None
