"""Scale stepper: grade each onset and move the cursor through the run.

Feedback is always judged against the degree the player *should* be on, not
the degree the pitch happens to be nearest to.  Most degrees advance on any
onset and only report accuracy; tonic checkpoints (the start, the apex and
the end of the run) hold the cursor until the tonic is played within 50 cents.
"""

import dataclasses
import logging
import typing

import scalewalk.config
import scalewalk.constants
import scalewalk.onset
import scalewalk.pitch
import scalewalk.scale_sequence


logger = logging.getLogger(__name__)


FEEDBACK_IN_TUNE = "in_tune"
FEEDBACK_SHARP = "sharp"
FEEDBACK_FLAT = "flat"
FEEDBACK_WRONG = "wrong"


def classify (
	expected: scalewalk.scale_sequence.ScaleDegree,
	frequency_hz: typing.Optional[float]
) -> typing.Tuple[str, float]:

	"""
	Grade a frequency against an expected degree.

	Returns:
		``(feedback, error_cents)``.  Outside the degree's territory the
		feedback is ``"wrong"``; inside, an error within 70 % of the wider
		territory side is ``"in_tune"``, beyond that ``"sharp"`` or ``"flat"``.
		A missing frequency scores ``"wrong"`` with zero error.
	"""

	if frequency_hz is None or frequency_hz <= 0.0:
		return FEEDBACK_WRONG, 0.0

	error_cents = scalewalk.pitch.cents_between(frequency_hz, expected.frequency_hz)

	if not expected.territory.contains(error_cents):
		return FEEDBACK_WRONG, error_cents

	span = expected.territory.half_width() or 1.0

	if abs(error_cents) / span <= scalewalk.constants.IN_TUNE_FRACTION:
		return FEEDBACK_IN_TUNE, error_cents

	return (FEEDBACK_SHARP if error_cents > 0 else FEEDBACK_FLAT), error_cents


@dataclasses.dataclass(frozen=True)
class StepResult:

	"""What one onset did to the run."""

	advanced: bool
	completed: bool
	feedback: str
	error_cents: float
	expected_index: int
	played_index: typing.Optional[int]
	degree_offset: int


class ScaleStepper:

	"""Applies onsets to the session cursor."""

	def __init__ (self, checkpoint_cents: float = scalewalk.constants.TONIC_CHECKPOINT_CENTS) -> None:

		self.checkpoint_cents = checkpoint_cents

	def handle (
		self,
		state: scalewalk.config.SessionState,
		degrees: typing.Sequence[scalewalk.scale_sequence.ScaleDegree],
		frame: scalewalk.onset.PitchFrame
	) -> StepResult:

		"""
		Grade one onset and advance the cursor when allowed.

		Feedback, detected frequency and error are written onto the expected
		degree and every other degree's feedback is cleared.  Stepping past
		the last degree returns the cursor to 0 with ``progress`` set to
		``"done"`` and ``completed`` set on the result.

		Raises:
			ValueError: If the run is empty.
		"""

		if not degrees:
			raise ValueError("Cannot step through an empty run")

		index = state.current_index
		expected = degrees[index]
		played = frame.degree_index

		if played is None or not 0 <= played < len(degrees):
			self._mark(degrees, index, FEEDBACK_WRONG, frame.frequency_hz, 0.0)
			logger.debug(f"Unmapped onset on degree {index}, no advance")
			return StepResult(
				advanced = False,
				completed = False,
				feedback = FEEDBACK_WRONG,
				error_cents = 0.0,
				expected_index = index,
				played_index = None,
				degree_offset = 0,
			)

		feedback, error_cents = classify(expected, frame.frequency_hz)

		# Reported for diagnostics only; it never gates the cursor.
		degree_offset = played - index

		if expected.is_tonic_checkpoint:
			advance = abs(error_cents) <= self.checkpoint_cents
			if not advance:
				feedback = FEEDBACK_WRONG
		else:
			advance = True

		self._mark(degrees, index, feedback, frame.frequency_hz, error_cents)

		completed = False

		if advance:
			if index < len(degrees) - 1:
				state.current_index = index + 1
				state.progress = scalewalk.config.PROGRESS_RUNNING
			else:
				state.current_index = 0
				state.progress = scalewalk.config.PROGRESS_DONE
				completed = True

		logger.debug(
			f"Degree {index} ({expected.note_name}): played {played}, {error_cents:+.1f} cents, "
			f"{feedback}, advance={advance}"
		)

		return StepResult(
			advanced = advance,
			completed = completed,
			feedback = feedback,
			error_cents = error_cents,
			expected_index = index,
			played_index = played,
			degree_offset = degree_offset,
		)

	def _mark (
		self,
		degrees: typing.Sequence[scalewalk.scale_sequence.ScaleDegree],
		index: int,
		feedback: str,
		frequency_hz: typing.Optional[float],
		error_cents: float
	) -> None:

		for i, degree in enumerate(degrees):
			if i != index:
				degree.feedback = None

		degrees[index].feedback = feedback
		degrees[index].detected_frequency_hz = frequency_hz
		degrees[index].error_cents = error_cents
