"""Spelled scale tables, scale types and instrument transpositions.

Every table maps a written tonic name to a one-octave ascending spelling that
ends on the tonic again (``"C D E F G A B C"``).  Spellings keep the letter
names a player reads on the page, so some entries need double flats.

Custom tables can be added at runtime with :func:`register_scale`.
"""

import dataclasses
import logging
import typing

import scalewalk.pitch


logger = logging.getLogger(__name__)


# Written key names in chromatic order, as used by the loop-to-next-key walk.
CHROMATIC_KEY_NAMES: typing.List[str] = [
	"C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"
]

DEFAULT_SCALE_TYPE = "major"
DEFAULT_TRANSPOSITION = "c_treble"


@dataclasses.dataclass(frozen=True)
class ScaleType:

	"""A selectable scale mode."""

	id: str
	label: str


@dataclasses.dataclass(frozen=True)
class Transposition:

	"""
	An instrument transposition.

	``offset`` is how many semitones the written note sits above the sounding
	(concert) note: a B-flat trumpet reading a written D sounds a concert C,
	so its offset is +2.
	"""

	id: str
	label: str
	offset: int
	clef: str


def _table (rows: typing.Dict[str, str]) -> typing.Dict[str, typing.List[str]]:

	return {tonic: spelling.split() for tonic, spelling in rows.items()}


SCALE_TABLES: typing.Dict[str, typing.Dict[str, typing.List[str]]] = {

	"major": _table({
		"C":  "C D E F G A B C",
		"Db": "Db Eb F Gb Ab Bb C Db",
		"D":  "D E F# G A B C# D",
		"Eb": "Eb F G Ab Bb C D Eb",
		"E":  "E F# G# A B C# D# E",
		"F":  "F G A Bb C D E F",
		"Gb": "Gb Ab Bb Cb Db Eb F Gb",
		"G":  "G A B C D E F# G",
		"Ab": "Ab Bb C Db Eb F G Ab",
		"A":  "A B C# D E F# G# A",
		"Bb": "Bb C D Eb F G A Bb",
		"B":  "B C# D# E F# G# A# B",
	}),

	"naturalMinor": _table({
		"C":  "C D Eb F G Ab Bb C",
		"Db": "Db Eb Fb Gb Ab Bbb Cb Db",
		"D":  "D E F G A Bb C D",
		"Eb": "Eb F Gb Ab Bb Cb Db Eb",
		"E":  "E F# G A B C D E",
		"F":  "F G Ab Bb C Db Eb F",
		"Gb": "Gb Ab Bbb Cb Db Ebb Fb Gb",
		"G":  "G A Bb C D Eb F G",
		"Ab": "Ab Bb Cb Db Eb Fb Gb Ab",
		"A":  "A B C D E F G A",
		"Bb": "Bb C Db Eb F Gb Ab Bb",
		"B":  "B C# D E F# G A B",
	}),

	"jazzMinor": _table({
		"C":  "C D Eb F G A B C",
		"Db": "Db Eb Fb Gb Ab Bb C Db",
		"D":  "D E F G A B C# D",
		"Eb": "Eb F Gb Ab Bb C D Eb",
		"E":  "E F# G A B C# D# E",
		"F":  "F G Ab Bb C D E F",
		"Gb": "Gb Ab Bbb Cb Db Eb F Gb",
		"G":  "G A Bb C D E F# G",
		"Ab": "Ab Bb Cb Db Eb F G Ab",
		"A":  "A B C D E F# G# A",
		"Bb": "Bb C Db Eb F G A Bb",
		"B":  "B C# D E F# G# A# B",
	}),

	"harmonicMinor": _table({
		"C":  "C D Eb F G Ab B C",
		"Db": "Db Eb Fb Gb Ab Bbb C Db",
		"D":  "D E F G A Bb C# D",
		"Eb": "Eb F Gb Ab Bb Cb D Eb",
		"E":  "E F# G A B C D# E",
		"F":  "F G Ab Bb C Db E F",
		"Gb": "Gb Ab Bbb Cb Db Ebb F Gb",
		"G":  "G A Bb C D Eb F# G",
		"Ab": "Ab Bb Cb Db Eb Fb G Ab",
		"A":  "A B C D E F G# A",
		"Bb": "Bb C Db Eb F Gb A Bb",
		"B":  "B C# D E F# G A# B",
	}),

	"dorian": _table({
		"C":  "C D Eb F G A Bb C",
		"Db": "Db Eb Fb Gb Ab Bb Cb Db",
		"D":  "D E F G A B C D",
		"Eb": "Eb F Gb Ab Bb C Db Eb",
		"E":  "E F# G A B C# D E",
		"F":  "F G Ab Bb C D Eb F",
		"Gb": "Gb Ab Bbb Cb Db Eb Fb Gb",
		"G":  "G A Bb C D E F G",
		"Ab": "Ab Bb Cb Db Eb F Gb Ab",
		"A":  "A B C D E F# G A",
		"Bb": "Bb C Db Eb F G Ab Bb",
		"B":  "B C# D E F# G# A B",
	}),

	"mixolydian": _table({
		"C":  "C D E F G A Bb C",
		"Db": "Db Eb F Gb Ab Bb Cb Db",
		"D":  "D E F# G A B C D",
		"Eb": "Eb F G Ab Bb C Db Eb",
		"E":  "E F# G# A B C# D E",
		"F":  "F G A Bb C D Eb F",
		"Gb": "Gb Ab Bb Cb Db Eb Fb Gb",
		"G":  "G A B C D E F G",
		"Ab": "Ab Bb C Db Eb F Gb Ab",
		"A":  "A B C# D E F# G A",
		"Bb": "Bb C D Eb F G Ab Bb",
		"B":  "B C# D# E F# G# A B",
	}),

	"minorPent": _table({
		"C":  "C Eb F G Bb C",
		"Db": "Db Fb Gb Ab Cb Db",
		"D":  "D F G A C D",
		"Eb": "Eb Gb Ab Bb Db Eb",
		"E":  "E G A B D E",
		"F":  "F Ab Bb C Eb F",
		"Gb": "Gb Bbb Cb Db Fb Gb",
		"G":  "G Bb C D F G",
		"Ab": "Ab Cb Db Eb Gb Ab",
		"A":  "A C D E G A",
		"Bb": "Bb Db Eb F Ab Bb",
		"B":  "B D E F# A B",
	}),

	"blues": _table({
		"C":  "C Eb F Gb G Bb C",
		"Db": "Db Fb Gb G Ab Cb Db",
		"D":  "D F G Ab A C D",
		"Eb": "Eb Gb Ab A Bb Db Eb",
		"E":  "E G A Bb B D E",
		"F":  "F Ab Bb B C Eb F",
		"Gb": "Gb Bbb Cb C Db Fb Gb",
		"G":  "G Bb C Db D F G",
		"Ab": "Ab Cb Db D Eb Gb Ab",
		"A":  "A C D Eb E G A",
		"Bb": "Bb Db Eb E F Ab Bb",
		"B":  "B D E F F# A B",
	}),

	"wholeTone": _table({
		"C":  "C D E F# G# A# C",
		"Db": "Db Eb F G A B Db",
		"D":  "D E F# G# A# C D",
		"Eb": "Eb F G A B C# Eb",
		"E":  "E F# G# A# C D E",
		"F":  "F G A B C# D# F",
		"Gb": "Gb Ab Bb C D E Gb",
		"G":  "G A B C# D# F G",
		"Ab": "Ab Bb C D E F# Ab",
		"A":  "A B C# D# F G A",
		"Bb": "Bb C D E F# G# Bb",
		"B":  "B C# D# F G A B",
	}),

	"halfWholeDim": _table({
		"C":  "C Db D# E F# G A Bb C",
		"Db": "Db D E F G Ab Bb B Db",
		"D":  "D Eb F F# G# A B C D",
		"Eb": "Eb E F# G A Bb C Db Eb",
		"E":  "E F G G# A# B C# D E",
		"F":  "F Gb G# A B C D Eb F",
		"Gb": "Gb G A Bb C Db Eb E Gb",
		"G":  "G Ab Bb B C# D E F G",
		"Ab": "Ab A B C D Eb F Gb Ab",
		"A":  "A Bb C C# D# E F# G A",
		"Bb": "Bb B C# D E F G Ab Bb",
		"B":  "B C D D# F F# G# A B",
	}),
}


SCALE_TYPES: typing.List[ScaleType] = [
	ScaleType("major", "Major"),
	ScaleType("naturalMinor", "Natural minor"),
	ScaleType("jazzMinor", "Jazz minor (melodic asc.)"),
	ScaleType("harmonicMinor", "Harmonic minor"),
	ScaleType("dorian", "Dorian"),
	ScaleType("mixolydian", "Mixolydian"),
	ScaleType("minorPent", "Minor pentatonic"),
	ScaleType("blues", "Blues"),
	ScaleType("wholeTone", "Whole tone"),
	ScaleType("halfWholeDim", "Half-whole diminished"),
]


TRANSPOSITIONS: typing.Dict[str, Transposition] = {
	t.id: t for t in [
		Transposition("c_treble", "C instruments (treble clef)", 0, "treble"),
		Transposition("c_bass", "C instruments (bass clef)", 0, "bass"),
		Transposition("bb", "Bb instruments", 2, "treble"),
		Transposition("eb", "Eb instruments", -3, "treble"),
		Transposition("f", "F instruments", 7, "treble"),
	]
}


def register_scale (mode_id: str, table: typing.Dict[str, typing.List[str]], label: typing.Optional[str] = None) -> None:

	"""
	Register a custom scale table.

	Every spelling is validated as note names and must start and end on the
	same pitch class.  Registering an existing ``mode_id`` replaces its table.

	Parameters:
		mode_id: Identifier used by :func:`scale_notes` and the session.
		table: Written tonic name → ascending spelling including the octave tonic.
		label: Display label; defaults to ``mode_id``.

	Raises:
		ValueError: If the table is empty or a spelling is malformed.

	Example:
		```python
		register_scale("majorPent", {"C": ["C", "D", "E", "G", "A", "C"]}, "Major pentatonic")
		```
	"""

	if not table:
		raise ValueError(f"Scale table for {mode_id!r} is empty")

	for tonic, spelling in table.items():

		if len(spelling) < 2:
			raise ValueError(f"Scale {mode_id!r} in {tonic!r} needs at least two notes")

		pcs = [_pitch_class(name) for name in spelling]

		if pcs[0] != pcs[-1]:
			raise ValueError(f"Scale {mode_id!r} in {tonic!r} must end on its starting note")

	SCALE_TABLES[mode_id] = {tonic: list(spelling) for tonic, spelling in table.items()}

	if not any(scale_type.id == mode_id for scale_type in SCALE_TYPES):
		SCALE_TYPES.append(ScaleType(mode_id, label or mode_id))


def _pitch_class (name: str) -> int:

	parsed = scalewalk.pitch.parse_note_name(name)
	return scalewalk.pitch.wrap_pc(scalewalk.pitch.LETTER_TO_PC[parsed.letter] + parsed.accidental)


def scale_notes (written_tonic: str, mode_id: str) -> typing.List[str]:

	"""
	Return the spelled ascending scale for a written tonic and mode.

	An unknown mode falls back to major; an unknown tonic falls back to the
	first entry of the mode's table.  Both fallbacks log a warning.
	"""

	table = SCALE_TABLES.get(mode_id)

	if table is None:
		logger.warning(f"Unknown scale type {mode_id!r}, falling back to {DEFAULT_SCALE_TYPE!r}")
		table = SCALE_TABLES[DEFAULT_SCALE_TYPE]

	spelling = table.get(written_tonic)

	if spelling is None:
		fallback = next(iter(table))
		logger.warning(f"No {mode_id!r} spelling for tonic {written_tonic!r}, using {fallback!r}")
		spelling = table[fallback]

	return list(spelling)


def get_transposition (transposition_id: str) -> Transposition:

	"""
	Look up a transposition by id.

	Raises:
		ValueError: If the id is not known.
	"""

	if transposition_id not in TRANSPOSITIONS:
		raise ValueError(
			f"Unknown transposition {transposition_id!r}. Available: {sorted(TRANSPOSITIONS)}"
		)

	return TRANSPOSITIONS[transposition_id]


def get_scale_type (mode_id: str) -> ScaleType:

	"""Look up a scale type by id, raising ``ValueError`` when unknown."""

	for scale_type in SCALE_TYPES:
		if scale_type.id == mode_id:
			return scale_type

	raise ValueError(f"Unknown scale type {mode_id!r}. Available: {[s.id for s in SCALE_TYPES]}")


def written_key_name (written_pc: int) -> str:

	"""Written key name for a pitch class, flats for black keys (``1`` → ``"Db"``)."""

	return CHROMATIC_KEY_NAMES[scalewalk.pitch.wrap_pc(written_pc)]
