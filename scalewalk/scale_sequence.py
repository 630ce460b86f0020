"""Expected scale sequence construction.

Turns a spelled one-octave scale into the up-and-down run the player is asked
to perform, with octave numbers, MIDI numbers, concert frequencies and
territories:

```python
names = scalewalk.scale_tables.scale_notes("A", "major")
run = build_up_down_sequence(names, "treble")
# ['A4', 'B4', 'C#5', 'D5', 'E5', 'F#5', 'G#5', 'A5', 'G#5', ..., 'A4']

degrees = build_expected_sequence(run, "A", tonic_midi=69, transposition_offset=0)
```
"""

import dataclasses
import logging
import typing

import scalewalk.constants
import scalewalk.pitch
import scalewalk.territory


logger = logging.getLogger(__name__)


CLEF_BASE_OCTAVES: typing.Dict[str, int] = {
	"treble": scalewalk.constants.TREBLE_BASE_OCTAVE,
	"bass": scalewalk.constants.BASS_BASE_OCTAVE,
}


@dataclasses.dataclass
class ScaleDegree:

	"""
	One position of the expected run.

	``note_name`` is the written spelling with its octave; ``midi_number`` and
	``frequency_hz`` are the sounding (concert) pitch.  ``feedback``,
	``detected_frequency_hz`` and ``error_cents`` are written by the stepper.
	"""

	index: int
	note_name: str
	midi_number: int
	frequency_hz: float
	is_tonic_checkpoint: bool = False
	territory: scalewalk.territory.Territory = dataclasses.field(default_factory=scalewalk.territory.Territory)
	feedback: typing.Optional[str] = None
	detected_frequency_hz: typing.Optional[float] = None
	error_cents: typing.Optional[float] = None

	def clear_feedback (self) -> None:

		self.feedback = None
		self.detected_frequency_hz = None
		self.error_cents = None


def _letter_pitch (name: str) -> int:

	"""Semitones above C of a spelling, ignoring octave (``"Cb"`` → -1, ``"B#"`` → 12)."""

	parsed = scalewalk.pitch.parse_note_name(name)
	return scalewalk.pitch.LETTER_TO_PC[parsed.letter] + parsed.accidental


def apply_octaves (note_names: typing.Sequence[str], clef: str) -> typing.List[str]:

	"""
	Attach octave numbers to a one-octave ascending spelling.

	Starts at octave 4 (treble) or 2 (bass).  Every note before the last is
	pushed up an octave at a time until it sits strictly above the previous
	note, and the raised octave carries forward.  The last note is placed
	exactly an octave above the first; its octave number comes from its own
	spelling, so ``Cb`` above ``Bb4`` is written ``Cb5``.

	Raises:
		ValueError: If the clef is unknown or fewer than two notes are given.
	"""

	if clef not in CLEF_BASE_OCTAVES:
		raise ValueError(f"Unknown clef {clef!r}. Expected one of {sorted(CLEF_BASE_OCTAVES)}")

	if len(note_names) < 2:
		raise ValueError("A scale needs at least two notes")

	octave = CLEF_BASE_OCTAVES[clef]
	result: typing.List[str] = []
	previous: typing.Optional[int] = None
	first: typing.Optional[int] = None

	for name in note_names[:-1]:

		letter_pitch = _letter_pitch(name)
		pitch = octave * 12 + letter_pitch

		while previous is not None and pitch <= previous:
			octave += 1
			pitch += 12

		if first is None:
			first = pitch

		result.append(f"{name}{octave}")
		previous = pitch

	assert first is not None

	last_name = note_names[-1]
	top = first + 12
	top_octave = int(round((top - _letter_pitch(last_name)) / 12.0))
	result.append(f"{last_name}{top_octave}")

	return result


def build_up_down_sequence (note_names: typing.Sequence[str], clef: str) -> typing.List[str]:

	"""Ascending run followed by its mirror without repeating the top (``2n - 1`` notes)."""

	ascending = apply_octaves(note_names, clef)
	return ascending + ascending[-2::-1]


def build_expected_sequence (
	note_names_with_octaves: typing.Sequence[str],
	written_key_name: str,
	tonic_midi: int,
	transposition_offset: int
) -> typing.List[ScaleDegree]:

	"""
	Build the live expected sequence for a locked tonic.

	Written pitches are converted to concert pitch (``written - offset``) and
	the whole run is then moved by whole octaves so its first degree lands in
	the register nearest the locked tonic.  Moving the run as a block keeps it
	strictly ascending up to the apex and mirrored after it.

	Degrees whose spelling (without octave) equals the written key name are
	tonic checkpoints.  Territories are assigned before returning.
	"""

	if not note_names_with_octaves:
		raise ValueError("Cannot build an expected sequence from an empty run")

	concert = [
		scalewalk.pitch.note_name_to_midi(name) - transposition_offset
		for name in note_names_with_octaves
	]

	octave_shift = int(round((tonic_midi - concert[0]) / 12.0))

	if octave_shift:
		logger.debug(f"Moving run by {octave_shift} octave(s) to meet tonic MIDI {tonic_midi}")

	degrees: typing.List[ScaleDegree] = []

	for index, (name, midi) in enumerate(zip(note_names_with_octaves, concert)):

		midi += 12 * octave_shift

		degrees.append(
			ScaleDegree(
				index = index,
				note_name = name,
				midi_number = midi,
				frequency_hz = scalewalk.pitch.midi_to_frequency(midi),
				is_tonic_checkpoint = scalewalk.pitch.strip_octave(name) == written_key_name,
			)
		)

	scalewalk.territory.assign_territories(degrees)

	return degrees
