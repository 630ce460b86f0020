"""Follow-mode pitch mapping and onset detection.

Each tick's pitch estimate is smoothed, mapped to the nearest degree of the
expected run (in any of seven octaves) and then judged: is this a new note?

Two kinds of onset are recognised:

- **Attack**: the signal goes from quiet to loud, or jumps by more than 25 %
  in RMS while loud.  This catches tongued or re-articulated notes.
- **Slur**: the signal stays loud but the nearest degree changes and holds
  for at least two ticks.

In the ``accept_any_onset`` debug mode any tick with a resolvable degree
counts, provided 130 ms have passed since the previous onset.
"""

import dataclasses
import logging
import typing

import scalewalk.config
import scalewalk.constants
import scalewalk.pitch
import scalewalk.scale_sequence


logger = logging.getLogger(__name__)


def _in_range (frequency_hz: typing.Optional[float]) -> bool:

	return (
		frequency_hz is not None
		and scalewalk.constants.MIN_FREQUENCY_HZ <= frequency_hz <= scalewalk.constants.MAX_FREQUENCY_HZ
	)


def nearest_degree (
	frequency_hz: float,
	degrees: typing.Sequence[scalewalk.scale_sequence.ScaleDegree]
) -> typing.Optional[typing.Tuple[int, float]]:

	"""
	Find the degree closest to a frequency, allowing octave displacement.

	Each degree is tried at its own pitch and up to three octaves either side.

	Returns:
		``(index, cents)`` where ``cents`` is the signed error against the
		best octave of that degree, or ``None`` for an empty sequence.  When
		two degrees are equally close the lower index wins.
	"""

	best: typing.Optional[typing.Tuple[int, float]] = None
	best_abs = float("inf")

	for index, degree in enumerate(degrees):

		for shift in range(-scalewalk.constants.OCTAVE_SEARCH_RANGE, scalewalk.constants.OCTAVE_SEARCH_RANGE + 1):

			reference = scalewalk.pitch.midi_to_frequency(degree.midi_number + 12 * shift)
			cents = scalewalk.pitch.cents_between(frequency_hz, reference)

			if abs(cents) < best_abs:
				best_abs = abs(cents)
				best = (index, cents)

	return best


@dataclasses.dataclass(frozen=True)
class PitchFrame:

	"""A pitch estimate resolved against the expected run."""

	degree_index: typing.Optional[int]
	cents_offset: float
	frequency_hz: typing.Optional[float]

	@classmethod
	def from_frequency (
		cls,
		frequency_hz: typing.Optional[float],
		degrees: typing.Sequence[scalewalk.scale_sequence.ScaleDegree]
	) -> "PitchFrame":

		"""
		Resolve a frequency against the run.

		Absent or out-of-range frequencies give ``degree_index=None``.  This is
		the one normalisation step used for microphone onsets and injected
		debug notes alike.
		"""

		if not _in_range(frequency_hz):
			return cls(degree_index=None, cents_offset=0.0, frequency_hz=frequency_hz)

		assert frequency_hz is not None

		match = nearest_degree(frequency_hz, degrees)

		if match is None:
			return cls(degree_index=None, cents_offset=0.0, frequency_hz=frequency_hz)

		index, cents = match
		return cls(degree_index=index, cents_offset=cents, frequency_hz=frequency_hz)


class FollowSmoother:

	"""
	Rolling median over recent follow-mode estimates.

	``push()`` returns the value to use this tick, or ``None`` when the window
	is spread over more than 150 cents (typically an octave or harmonic
	jump), in which case the tick is skipped.
	"""

	def __init__ (
		self,
		size: int = scalewalk.constants.FOLLOW_BUFFER_SIZE,
		max_spread_cents: float = scalewalk.constants.FOLLOW_MAX_SPREAD_CENTS
	) -> None:

		self.size = size
		self.max_spread_cents = max_spread_cents
		self.frequencies: typing.List[float] = []

	def reset (self) -> None:

		self.frequencies = []

	def push (self, frequency_hz: float) -> typing.Optional[float]:

		self.frequencies.append(frequency_hz)

		if len(self.frequencies) > self.size:
			self.frequencies.pop(0)

		if len(self.frequencies) < 3:
			return frequency_hz

		ordered = sorted(self.frequencies)

		if scalewalk.pitch.cents_between(ordered[-1], ordered[0]) > self.max_spread_cents:
			return None

		return ordered[len(ordered) // 2]


@dataclasses.dataclass
class TunerReading:

	"""
	Live tuner readout for the dashboards.

	``cents`` is exponentially smoothed with ``smoothing_factor``; everything
	else reflects the latest tick.  ``confidence`` rises from 0 to 1 as the
	same degree holds for consecutive ticks.
	"""

	smoothing_factor: float = 0.8
	degree_index: typing.Optional[int] = None
	cents: float = 0.0
	frequency_hz: typing.Optional[float] = None
	note_label: str = ""
	confidence: float = 0.0
	is_loud: bool = False

	def update (self, frame: PitchFrame) -> None:

		if frame.degree_index is None or frame.frequency_hz is None:
			self.clear()
			return

		if self.degree_index is None:
			self.cents = frame.cents_offset
		else:
			self.cents = self.smoothing_factor * self.cents + (1.0 - self.smoothing_factor) * frame.cents_offset

		self.degree_index = frame.degree_index
		self.frequency_hz = frame.frequency_hz
		self.note_label = f"{scalewalk.pitch.midi_to_note_name(scalewalk.pitch.frequency_to_midi(frame.frequency_hz))} · {frame.frequency_hz:.1f} Hz"
		self.is_loud = True

	def clear (self) -> None:

		self.degree_index = None
		self.cents = 0.0
		self.frequency_hz = None
		self.note_label = ""
		self.confidence = 0.0
		self.is_loud = False

	def as_dict (self) -> typing.Dict[str, typing.Any]:

		return {
			"degree_index": self.degree_index,
			"cents": round(self.cents, 1),
			"frequency_hz": None if self.frequency_hz is None else round(self.frequency_hz, 2),
			"note": self.note_label,
			"confidence": self.confidence,
		}


class OnsetDetector:

	"""
	Decides, tick by tick, when a new note has been played.

	The detector keeps its own loudness memory (``was_loud``, ``prev_rms``)
	and degree streak; onset history lives on the shared
	:class:`~scalewalk.config.SessionState` so the stepper and the inactivity
	check see the same values.
	"""

	def __init__ (self, profile: scalewalk.config.Profile) -> None:

		self.profile = profile
		self.smoother = FollowSmoother()
		self.tuner = TunerReading(smoothing_factor=profile.smoothing_factor)

		self.was_loud = False
		self.prev_rms = 0.0
		self.degree_streak = 0
		self.streak_degree: typing.Optional[int] = None

	def set_profile (self, profile: scalewalk.config.Profile) -> None:

		self.profile = profile
		self.tuner.smoothing_factor = profile.smoothing_factor

	def reset (self) -> None:

		self.smoother.reset()
		self.tuner.clear()
		self.was_loud = False
		self.prev_rms = 0.0
		self.degree_streak = 0
		self.streak_degree = None

	def _quiet (self, rms: float) -> None:

		self.smoother.reset()
		self.tuner.clear()
		self.was_loud = False
		self.degree_streak = 0
		self.streak_degree = None
		self.prev_rms = rms

	def process (
		self,
		state: scalewalk.config.SessionState,
		rms: float,
		frequency_hz: typing.Optional[float],
		degrees: typing.Sequence[scalewalk.scale_sequence.ScaleDegree],
		now_ms: float
	) -> typing.Optional[PitchFrame]:

		"""
		Consume one tick and return a :class:`PitchFrame` when it is an onset.

		Parameters:
			state: Session state; ``last_onset_degree`` and
				``last_onset_time_ms`` are written on an onset.
			rms: Loudness of this tick's buffer.
			frequency_hz: Raw pitch estimate, or ``None``.
			degrees: The live expected run.
			now_ms: Monotonic time of the tick in milliseconds.
		"""

		debug = state.debug_mode == scalewalk.config.DEBUG_ACCEPT_ANY_ONSET
		is_loud = rms >= self.profile.rms_floor

		if not is_loud and not debug:
			self._quiet(rms)
			return None

		# No usable pitch: keep the loudness memory for the next tick.
		if not _in_range(frequency_hz):
			return None

		assert frequency_hz is not None

		smoothed = self.smoother.push(frequency_hz)

		if smoothed is None:
			return None

		frame = PitchFrame.from_frequency(smoothed, degrees)
		self.tuner.update(frame)

		if frame.degree_index is not None and frame.degree_index == self.streak_degree:
			self.degree_streak += 1
		else:
			self.streak_degree = frame.degree_index
			self.degree_streak = 1 if frame.degree_index is not None else 0

		if self.degree_streak > 0:
			self.tuner.confidence = min(1.0, self.degree_streak / scalewalk.constants.MIN_DEGREE_STABLE_TICKS)

		if debug:
			is_onset = frame.degree_index is not None and (
				state.last_onset_time_ms is None
				or now_ms - state.last_onset_time_ms >= scalewalk.constants.DEBUG_MIN_ONSET_GAP_MS
			)

		else:
			strong_attack = is_loud and rms > self.prev_rms * (1.0 + scalewalk.constants.ATTACK_DELTA_FACTOR)

			attack_onset = frame.degree_index is not None and ((not self.was_loud and is_loud) or strong_attack)

			slur_onset = (
				self.was_loud
				and is_loud
				and frame.degree_index is not None
				and frame.degree_index != state.last_onset_degree
				and self.degree_streak >= scalewalk.constants.MIN_DEGREE_STABLE_TICKS
			)

			is_onset = attack_onset or slur_onset

		self.was_loud = is_loud
		self.prev_rms = rms

		if not is_onset:
			return None

		state.last_onset_degree = frame.degree_index
		state.last_onset_time_ms = now_ms

		logger.debug(f"Onset on degree {frame.degree_index} ({frame.cents_offset:+.1f} cents, {smoothed:.1f} Hz)")

		return frame
