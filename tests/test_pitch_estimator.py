import numpy as np
import pytest

import conftest
import scalewalk.constants
import scalewalk.pitch_estimator


@pytest.mark.parametrize("frequency", [110.0, 220.0, 261.63, 440.0, 493.88, 880.0])
def test_detect_pitch_sine (frequency: float) -> None:

	"""A clean sine is detected to within a few cents."""

	detected = scalewalk.pitch_estimator.detect_pitch(conftest.make_tone(frequency), conftest.SAMPLE_RATE)

	assert detected is not None
	assert detected == pytest.approx(frequency, rel=0.005)


def test_detect_pitch_with_harmonics () -> None:

	"""A tone with strong overtones still reports its fundamental."""

	t = np.arange(conftest.BUFFER_SIZE) / conftest.SAMPLE_RATE
	samples = (
		0.5 * np.sin(2 * np.pi * 220.0 * t)
		+ 0.3 * np.sin(2 * np.pi * 440.0 * t)
		+ 0.2 * np.sin(2 * np.pi * 660.0 * t)
	)

	detected = scalewalk.pitch_estimator.detect_pitch(samples, conftest.SAMPLE_RATE)

	assert detected is not None
	assert detected == pytest.approx(220.0, rel=0.01)


def test_detect_pitch_silence () -> None:

	"""Silence has no pitch."""

	assert scalewalk.pitch_estimator.detect_pitch(conftest.make_silence(), conftest.SAMPLE_RATE) is None


def test_detect_pitch_too_short () -> None:

	"""A buffer too short to correlate has no pitch."""

	assert scalewalk.pitch_estimator.detect_pitch([0.1, -0.1, 0.1, -0.1], conftest.SAMPLE_RATE) is None


@pytest.mark.parametrize("frequency", [1760.0, 1900.0, 1975.53, 1990.0])
def test_detect_pitch_top_of_range (frequency: float) -> None:

	"""Periods of only 22-25 samples are still read at the right octave."""

	detected = scalewalk.pitch_estimator.detect_pitch(conftest.make_tone(frequency), conftest.SAMPLE_RATE)

	assert detected is not None
	assert detected == pytest.approx(frequency, rel=0.01)


def test_detect_pitch_above_range () -> None:

	"""A clear tone above 2000 Hz is rejected, not folded down an octave."""

	assert scalewalk.pitch_estimator.detect_pitch(conftest.make_tone(2600.0), conftest.SAMPLE_RATE) is None


@pytest.mark.parametrize("frequency", [5.0, 15.0, 28.0, 30.0, 32.0, 35.0, 45.0, 55.0])
def test_detect_pitch_below_range (frequency: float) -> None:

	"""Hum below 60 Hz is rejected, including periods longer than the analysis window."""

	assert scalewalk.pitch_estimator.detect_pitch(conftest.make_tone(frequency), conftest.SAMPLE_RATE) is None


def test_fallback_peak_needs_minimum_correlation (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Without a clean peak the strongest lag is used only if it clears the fallback floor."""

	# Nothing clears this, so every estimate goes through the fallback search.
	monkeypatch.setattr(scalewalk.constants, "GOOD_CORRELATION", 1.5)

	detected = scalewalk.pitch_estimator.detect_pitch(conftest.make_tone(440.0), conftest.SAMPLE_RATE)

	assert detected is not None
	assert 60.0 <= detected <= 445.0
	assert 440.0 / detected == pytest.approx(round(440.0 / detected), abs=0.03)

	monkeypatch.setattr(scalewalk.constants, "MIN_FALLBACK_CORRELATION", 2.0)

	assert scalewalk.pitch_estimator.detect_pitch(conftest.make_tone(440.0), conftest.SAMPLE_RATE) is None


def test_detect_pitch_is_pure () -> None:

	"""The input buffer is not modified."""

	samples = conftest.make_tone(440.0)
	original = samples.copy()

	scalewalk.pitch_estimator.detect_pitch(samples, conftest.SAMPLE_RATE)

	assert np.array_equal(samples, original)


def test_compute_rms () -> None:

	"""RMS of a sine is amplitude / sqrt(2); silence and empty blocks are zero."""

	assert scalewalk.pitch_estimator.compute_rms(conftest.make_tone(440.0, amplitude=0.5)) == pytest.approx(0.5 / np.sqrt(2), rel=0.01)
	assert scalewalk.pitch_estimator.compute_rms(conftest.make_silence()) == 0.0
	assert scalewalk.pitch_estimator.compute_rms([]) == 0.0
