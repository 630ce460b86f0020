"""Note names, MIDI numbers, frequencies and cents.

This module provides the pitch arithmetic used throughout the listening engine.

Module-level constants:
- `LETTER_TO_PC`: Maps natural note letters to pitch classes (0-11)
- `NOTE_NAME_TO_PC`: Maps key names (e.g. `"C"`, `"F#"`, `"Bb"`) to pitch classes
- `PC_TO_NOTE_NAME`: Maps pitch classes to display names (flats for black keys)

Note names follow scientific pitch notation: a letter, any number of sharps
(`#`) or flats (`b`), and an optional octave number.  `"C4"` is MIDI 60 and
`"A4"` is MIDI 69 = 440 Hz.  Double accidentals (`"Bbb"`, `"F##"`) are accepted
because some scale spellings need them.
"""

import math
import re
import typing


LETTER_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"D": 2,
	"E": 4,
	"F": 5,
	"G": 7,
	"A": 9,
	"B": 11,
}

NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"E#": 5,
	"Fb": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
	"B#": 0,
	"Cb": 11,
}

PC_TO_NOTE_NAME: typing.List[str] = [
	"C",
	"C#",
	"D",
	"Eb",
	"E",
	"F",
	"F#",
	"G",
	"Ab",
	"A",
	"Bb",
	"B",
]

A4_FREQUENCY_HZ = 440.0
A4_MIDI = 69

_NOTE_PATTERN = re.compile(r"^([A-Ga-g])(b+|#+)?(-?\d+)?$")


class ParsedNote (typing.NamedTuple):

	"""A note name split into letter, accidental offset and optional octave."""

	letter: str
	accidental: int
	octave: typing.Optional[int]


def parse_note_name (name: str) -> ParsedNote:

	"""Split a note name into its parts.

	Parameters:
		name: Note name such as ``"C"``, ``"F#4"`` or ``"Bbb3"``.

	Returns:
		A :class:`ParsedNote`; ``octave`` is ``None`` when the name has none.

	Raises:
		ValueError: If the name is not a recognisable note.

	Example:
		```python
		parse_note_name("Eb5")  # → ParsedNote(letter='E', accidental=-1, octave=5)
		```
	"""

	match = _NOTE_PATTERN.match(name.strip())

	if match is None:
		raise ValueError(f"Invalid note name: {name!r}. Expected e.g. 'C', 'F#4', 'Bb3'.")

	letter = match.group(1).upper()
	accidental_str = match.group(2) or ""
	octave_str = match.group(3)

	if accidental_str.startswith("#"):
		accidental = len(accidental_str)
	else:
		accidental = -len(accidental_str)

	octave = int(octave_str) if octave_str is not None else None

	return ParsedNote(letter, accidental, octave)


def strip_octave (name: str) -> str:

	"""Return a note name without its octave number (``"C#5"`` → ``"C#"``)."""

	return name.rstrip("-0123456789")


def key_name_to_pc (key_name: str) -> int:

	"""Validate a key name and return its pitch class (0-11).

	Raises:
		ValueError: If the key name is not recognised.
	"""

	if key_name not in NOTE_NAME_TO_PC:
		raise ValueError(
			f"Unknown key name: {key_name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return NOTE_NAME_TO_PC[key_name]


def wrap_pc (pc: int) -> int:

	"""Wrap any integer into the pitch-class range 0-11."""

	return pc % 12


def note_name_to_midi (name: str) -> int:

	"""Convert a note name with octave to a MIDI number (``"C4"`` → 60).

	Raises:
		ValueError: If the name is invalid or has no octave number.
	"""

	parsed = parse_note_name(name)

	if parsed.octave is None:
		raise ValueError(f"Note name {name!r} has no octave number")

	return (parsed.octave + 1) * 12 + LETTER_TO_PC[parsed.letter] + parsed.accidental


def midi_to_note_name (midi: int) -> str:

	"""Convert a MIDI number to a display name (``69`` → ``"A4"``, ``61`` → ``"C#4"``)."""

	octave = (midi // 12) - 1
	return f"{PC_TO_NOTE_NAME[midi % 12]}{octave}"


def midi_to_frequency (midi: float) -> float:

	"""Equal-tempered frequency of a (possibly fractional) MIDI number."""

	return A4_FREQUENCY_HZ * (2.0 ** ((midi - A4_MIDI) / 12.0))


def frequency_to_exact_midi (frequency_hz: float) -> float:

	"""Fractional MIDI number of a frequency (440.0 → 69.0)."""

	return A4_MIDI + 12.0 * math.log2(frequency_hz / A4_FREQUENCY_HZ)


def frequency_to_midi (frequency_hz: float) -> int:

	"""Nearest MIDI number of a frequency."""

	return int(round(frequency_to_exact_midi(frequency_hz)))


def cents_between (frequency_hz: float, reference_hz: float) -> float:

	"""Signed distance from ``reference_hz`` to ``frequency_hz`` in cents.

	Positive means ``frequency_hz`` is sharp of the reference.
	"""

	return 1200.0 * math.log2(frequency_hz / reference_hz)
