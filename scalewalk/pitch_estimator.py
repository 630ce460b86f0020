"""Monophonic pitch estimation from a block of audio samples.

The estimator is a normalised autocorrelation: the buffer is correlated
against the first half of itself, each lag divided by the lag-0 energy so a
perfectly periodic signal scores 1.0 at its period.  Lags are scanned upward
and the first rising run above ``GOOD_CORRELATION`` marks the fundamental; the
lag just before the run stops rising is the peak, refined to a fractional lag
with parabolic interpolation.

Both functions are pure and accept any sequence of floats, although a
``numpy.ndarray`` of ``float32`` straight from the capture stream is the usual
input.
"""

import typing

import numpy as np

import scalewalk.constants


def compute_rms (samples: typing.Sequence[float]) -> float:

	"""Root-mean-square level of a sample block (0.0 for an empty block)."""

	data = np.asarray(samples, dtype=np.float64)

	if data.size == 0:
		return 0.0

	return float(np.sqrt(np.mean(data * data)))


def _parabolic_peak (correlation: np.ndarray, peak: int) -> float:

	"""Fractional lag of the vertex through (peak - 1, peak, peak + 1)."""

	left = correlation[peak - 1]
	centre = correlation[peak]
	right = correlation[peak + 1]

	denominator = 2.0 * (2.0 * centre - left - right)

	if denominator == 0.0:
		return float(peak)

	return peak + (right - left) / denominator


def detect_pitch (
	samples: typing.Sequence[float],
	sample_rate: float,
	min_frequency: float = scalewalk.constants.MIN_FREQUENCY_HZ,
	max_frequency: float = scalewalk.constants.MAX_FREQUENCY_HZ
) -> typing.Optional[float]:

	"""
	Estimate the fundamental frequency of a monophonic sample block.

	Parameters:
		samples: Audio samples, ideally 1024-4096 of them.
		sample_rate: Sampling rate in Hz.
		min_frequency: Lowest frequency accepted, in Hz.
		max_frequency: Highest frequency accepted, in Hz.

	Returns:
		The frequency in Hz, or ``None`` when the block is silent, aperiodic
		or the detected pitch falls outside the accepted range.

	Example:
		```python
		t = np.arange(2048) / 44100
		detect_pitch(np.sin(2 * np.pi * 440 * t), 44100)  # → ~440.0
		```
	"""

	data = np.asarray(samples, dtype=np.float64)
	half = data.size // 2

	if half < 3:
		return None

	# correlation[lag] = sum(data[i] * data[i + lag]) for i < half
	correlation = np.correlate(data, data[:half], mode="valid")[:half]
	energy = correlation[0]

	if not np.isfinite(energy) or energy <= 0.0:
		return None

	correlation = correlation / energy

	left_zero_lobe = False
	found_good_correlation = False
	last_correlation = 1.0

	for lag in range(1, half - 1):

		value = correlation[lag]

		if not left_zero_lobe:
			# The peak around lag 0 is never the period, even when a slow signal
			# keeps it above the threshold for many lags.
			left_zero_lobe = value <= scalewalk.constants.GOOD_CORRELATION

		elif value > scalewalk.constants.GOOD_CORRELATION and value > last_correlation:
			found_good_correlation = True

		elif found_good_correlation:
			refined_lag = _parabolic_peak(correlation, lag - 1)

			if refined_lag <= 0.0:
				return None

			frequency = sample_rate / refined_lag

			if min_frequency <= frequency <= max_frequency:
				return float(frequency)

			return None

		last_correlation = value

	# No clean peak: take the strongest lag past the first zero crossing.
	negative = np.nonzero(correlation[1:] < 0.0)[0]

	if negative.size == 0:
		return None

	start = int(negative[0]) + 1
	best_lag = start + int(np.argmax(correlation[start:half]))

	if correlation[best_lag] <= scalewalk.constants.MIN_FALLBACK_CORRELATION:
		return None

	frequency = sample_rate / best_lag

	if min_frequency <= frequency <= max_frequency:
		return float(frequency)

	return None
