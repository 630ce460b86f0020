"""Per-degree pitch territories.

A degree's territory is the band of cents, relative to its exact pitch, inside
which a played note still counts as an attempt at that degree.  Each degree
claims a fraction of the gap to its nearest lower and nearest higher
neighbour, so the bands of two neighbouring degrees never overlap.
"""

import dataclasses
import typing

import scalewalk.constants

if typing.TYPE_CHECKING:
	from scalewalk.scale_sequence import ScaleDegree


@dataclasses.dataclass
class Territory:

	"""Cents band around a degree: ``low_cents`` < 0 < ``high_cents``."""

	low_cents: float = -scalewalk.constants.EDGE_TERRITORY_CENTS
	high_cents: float = scalewalk.constants.EDGE_TERRITORY_CENTS

	def contains (self, cents: float) -> bool:

		return self.low_cents <= cents <= self.high_cents

	def half_width (self) -> float:

		"""The wider of the two sides, used to normalise an error."""

		return max(abs(self.low_cents), abs(self.high_cents))


def assign_territories (
	degrees: typing.Sequence["ScaleDegree"],
	fraction: float = scalewalk.constants.TERRITORY_FRACTION,
	edge_cents: float = scalewalk.constants.EDGE_TERRITORY_CENTS
) -> None:

	"""
	Assign a :class:`Territory` to every degree of a sequence, in place.

	Neighbours are the entries directly before and after a degree in the
	sequence.  On the ascending half those are one lower and one higher; at
	the apex both are lower, and on the descending half the order flips.  The
	closest neighbour below and the closest neighbour above define the band;
	a side with no neighbour (the bottom tonic, the apex) gets ``edge_cents``.

	Parameters:
		degrees: Scale degrees with ``midi_number`` set.
		fraction: Share of each semitone gap a degree claims (0.8 = 80 %).
		edge_cents: Width of an open side.

	Example:
		```python
		# C D E ...: D has a 2-semitone gap on each side
		# → Territory(low_cents=-160.0, high_cents=160.0)
		```
	"""

	for i, degree in enumerate(degrees):

		neighbours = []

		if i > 0:
			neighbours.append(degrees[i - 1].midi_number)

		if i < len(degrees) - 1:
			neighbours.append(degrees[i + 1].midi_number)

		lower = [n for n in neighbours if n < degree.midi_number]
		higher = [n for n in neighbours if n > degree.midi_number]

		if lower:
			low_cents = -(degree.midi_number - max(lower)) * 100.0 * fraction
		else:
			low_cents = -edge_cents

		if higher:
			high_cents = (min(higher) - degree.midi_number) * 100.0 * fraction
		else:
			high_cents = edge_cents

		degree.territory = Territory(low_cents, high_cents)
