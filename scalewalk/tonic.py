"""Tonic acquisition and the locked tonic.

Before a run can be followed the player holds the tonic.  `TonicAcquirer`
watches successive pitch estimates and locks once the note is steady: at
least three in-range estimates in a rolling window of five, with the latest
two each within 15 cents of the window median.

The locked `Tonic` records both the sounding pitch and the key the player
reads, which differ for transposing instruments.
"""

import dataclasses
import logging
import typing

import scalewalk.constants
import scalewalk.pitch
import scalewalk.scale_tables


logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Tonic:

	"""The locked tonic of the current run."""

	frequency_hz: float
	midi_number: int
	pitch_class: int
	written_pc: int
	written_key_name: str
	scale_mode_id: str

	@classmethod
	def from_frequency (
		cls,
		frequency_hz: float,
		transposition: scalewalk.scale_tables.Transposition,
		scale_mode_id: str
	) -> "Tonic":

		"""
		Build a tonic from a concert frequency.

		The written pitch class is the concert pitch class plus the
		transposition offset; the key name comes from the chromatic key list
		(``Db`` rather than ``C#``).
		"""

		midi = scalewalk.pitch.frequency_to_midi(frequency_hz)
		pitch_class = scalewalk.pitch.wrap_pc(midi)
		written_pc = scalewalk.pitch.wrap_pc(pitch_class + transposition.offset)

		return cls(
			frequency_hz = frequency_hz,
			midi_number = midi,
			pitch_class = pitch_class,
			written_pc = written_pc,
			written_key_name = scalewalk.scale_tables.written_key_name(written_pc),
			scale_mode_id = scale_mode_id,
		)

	def next_semitone (self) -> "Tonic":

		"""The same tonic one equal-tempered semitone higher."""

		written_pc = scalewalk.pitch.wrap_pc(self.written_pc + 1)

		return Tonic(
			frequency_hz = self.frequency_hz * (2.0 ** (1.0 / 12.0)),
			midi_number = self.midi_number + 1,
			pitch_class = scalewalk.pitch.wrap_pc(self.pitch_class + 1),
			written_pc = written_pc,
			written_key_name = scalewalk.scale_tables.written_key_name(written_pc),
			scale_mode_id = self.scale_mode_id,
		)


def describe_tuning (frequency_hz: float) -> str:

	"""
	Describe how far a frequency sits from the nearest equal-tempered note.

	Returns ``""`` within 10 cents, ``"sharp"`` / ``"flat"`` up to 30 cents and
	``"very sharp"`` / ``"very flat"`` beyond.
	"""

	exact = scalewalk.pitch.frequency_to_exact_midi(frequency_hz)
	cents_off = (exact - round(exact)) * 100.0

	if abs(cents_off) <= 10.0:
		return ""

	if cents_off > 30.0:
		return "very sharp"

	if cents_off > 10.0:
		return "sharp"

	if cents_off < -30.0:
		return "very flat"

	return "flat"


def _median (values: typing.Sequence[float]) -> float:

	"""Middle value; the upper middle for an even count."""

	ordered = sorted(values)
	return ordered[len(ordered) // 2]


class TonicAcquirer:

	"""
	Locks onto a held note.

	Feed it one RMS level and one pitch estimate per tick.  ``update()``
	returns the median frequency on the tick the note is judged stable and
	``None`` otherwise.  ``status`` and ``readout`` hold short texts for the
	dashboard.
	"""

	def __init__ (
		self,
		rms_floor: float = scalewalk.constants.TONIC_RMS_FLOOR,
		buffer_size: int = scalewalk.constants.TONIC_BUFFER_SIZE,
		min_samples: int = scalewalk.constants.TONIC_MIN_SAMPLES,
		stability_cents: float = scalewalk.constants.TONIC_STABILITY_CENTS,
		min_stable_ticks: int = scalewalk.constants.TONIC_MIN_STABLE_TICKS
	) -> None:

		self.rms_floor = rms_floor
		self.buffer_size = buffer_size
		self.min_samples = min_samples
		self.stability_cents = stability_cents
		self.min_stable_ticks = min_stable_ticks

		self.frequencies: typing.List[float] = []
		self.stable_ticks = 0
		self.status = ""
		self.readout = ""

	def reset (self) -> None:

		self.frequencies = []
		self.stable_ticks = 0
		self.status = ""
		self.readout = ""

	def update (self, rms: float, frequency_hz: typing.Optional[float]) -> typing.Optional[float]:

		"""
		Consume one tick and return the tonic frequency when it locks.

		Quiet ticks clear both the stability count and the rolling window.
		A tick with no usable pitch clears only the count.
		"""

		if rms < self.rms_floor:
			self.status = "Listening... (play a clear note)"
			self.readout = ""
			self.stable_ticks = 0
			self.frequencies = []
			return None

		in_range = (
			frequency_hz is not None
			and scalewalk.constants.MIN_FREQUENCY_HZ <= frequency_hz <= scalewalk.constants.MAX_FREQUENCY_HZ
		)

		if not in_range:
			self.status = "Listening... (hold a steady note)"
			self.readout = ""
			self.stable_ticks = 0
			return None

		assert frequency_hz is not None

		self.frequencies.append(frequency_hz)

		if len(self.frequencies) > self.buffer_size:
			self.frequencies.pop(0)

		self.status = "Play tonic and hold..."

		if len(self.frequencies) < self.min_samples:
			self.readout = "..."
			self.stable_ticks = 0
			return None

		median = _median(self.frequencies)
		midi = scalewalk.pitch.frequency_to_midi(median)
		self.readout = f"{scalewalk.pitch.midi_to_note_name(midi)} · {median:.1f} Hz"

		drift = abs(scalewalk.pitch.cents_between(frequency_hz, median))

		if drift <= self.stability_cents:
			self.stable_ticks += 1
		else:
			self.stable_ticks = 0

		if self.stable_ticks >= self.min_stable_ticks:
			logger.debug(f"Tonic stable at {median:.1f} Hz after {self.stable_ticks} ticks")
			self.stable_ticks = 0
			self.frequencies = []
			return median

		return None
