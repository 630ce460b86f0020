"""Timing slot schedule for the up-and-down run.

Slots give each note of the run a start and end time at a tempo, following a
beat-unit pattern (the tonic at the start, apex and end is held for two
beats).  The schedule is built on every tonic lock and key change and is
exposed to the dashboards; the stepper does not consult it.
"""

import dataclasses
import typing

import scalewalk.constants


@dataclasses.dataclass
class TimingSlot:

	index: int
	expected_note: str
	start_ms: float
	end_ms: float
	detected_frequency_hz: typing.Optional[float] = None
	error_cents: typing.Optional[float] = None
	timing_error_ms: typing.Optional[float] = None


def build_timing_slots (
	sequence_names: typing.Sequence[str],
	pattern: typing.Sequence[int] = scalewalk.constants.LISTEN_PATTERN,
	bpm: float = scalewalk.constants.LISTEN_DEFAULT_BPM
) -> typing.List[TimingSlot]:

	"""
	Lay the run out against a beat-unit pattern.

	Slot ``i`` lasts ``pattern[i]`` beats and expects
	``sequence_names[min(i, len - 1)]``, so a run shorter than the pattern
	repeats its last note.

	Raises:
		ValueError: If ``bpm`` is not positive or the run is empty.
	"""

	if bpm <= 0:
		raise ValueError(f"bpm must be positive, got {bpm}")

	if not sequence_names:
		raise ValueError("Cannot build timing slots for an empty run")

	beat_ms = 60000.0 / bpm
	slots: typing.List[TimingSlot] = []
	t = 0.0

	for i, units in enumerate(pattern):

		end = t + units * beat_ms

		slots.append(
			TimingSlot(
				index = i,
				expected_note = sequence_names[min(i, len(sequence_names) - 1)],
				start_ms = t,
				end_ms = end,
			)
		)

		t = end

	return slots
