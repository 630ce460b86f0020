import types
import typing

import numpy as np
import pytest

import scalewalk.audio_input
import scalewalk.session


SAMPLE_RATE = 44100
BUFFER_SIZE = 2048


def make_tone (frequency: float, amplitude: float = 0.5, size: int = BUFFER_SIZE, sample_rate: int = SAMPLE_RATE) -> np.ndarray:

	"""Return a float32 sine block at the given frequency."""

	t = np.arange(size) / sample_rate
	return (amplitude * np.sin(2.0 * np.pi * frequency * t)).astype(np.float32)


def make_silence (size: int = BUFFER_SIZE) -> np.ndarray:

	"""Return a block of digital silence."""

	return np.zeros(size, dtype=np.float32)


def lock_tonic (session: scalewalk.session.PracticeSession, frequency: float, max_ticks: int = 10) -> None:

	"""Start a session and hold a tone until the tonic locks."""

	session.start()

	for i in range(max_ticks):
		session.tick(make_tone(frequency), SAMPLE_RATE, float(i * 16))
		if session.state.mode == "following":
			return

	raise AssertionError(f"Tonic did not lock at {frequency} Hz within {max_ticks} ticks")


class FakeAudioInput:

	"""Audio source stub that plays whatever block the test sets."""

	def __init__ (self, open_error: typing.Optional[Exception] = None) -> None:

		"""Start silent; ``open_error`` is raised by ``open()`` when given."""

		self.sample_rate = SAMPLE_RATE
		self.samples = make_silence()
		self.open_error = open_error
		self.opened = False
		self.closed = False

	def play (self, frequency: float, amplitude: float = 0.5) -> None:

		"""Make every following read return a sine block."""

		self.samples = make_tone(frequency, amplitude)

	def silence (self) -> None:

		"""Make every following read return silence."""

		self.samples = make_silence()

	def open (self) -> None:

		"""Raise the configured error, or mark the source open."""

		if self.open_error is not None:
			raise self.open_error

		self.opened = True

	def read (self) -> np.ndarray:

		"""Return a copy of the current block."""

		return self.samples.copy()

	def close (self) -> None:

		"""Mark the source closed."""

		self.closed = True


class FakeClock:

	"""Monotonic clock stub advanced by hand, in seconds."""

	def __init__ (self) -> None:

		self.now = 0.0

	def __call__ (self) -> float:

		return self.now

	def advance (self, seconds: float) -> None:

		self.now += seconds


class FakePortAudioError (Exception):

	"""Stand-in for sounddevice.PortAudioError."""


class FakeInputStream:

	"""Records the arguments sounddevice.InputStream was called with."""

	instances: typing.List["FakeInputStream"] = []
	fail_with: typing.Optional[Exception] = None
	fail_on_start: typing.Optional[Exception] = None

	def __init__ (self, samplerate: int, channels: int, dtype: str, device: typing.Any, callback: typing.Callable) -> None:

		"""Store the stream settings, or raise the configured failure."""

		if FakeInputStream.fail_with is not None:
			raise FakeInputStream.fail_with

		self.samplerate = samplerate
		self.channels = channels
		self.dtype = dtype
		self.device = device
		self.callback = callback
		self.started = False
		self.closed = False

		FakeInputStream.instances.append(self)

	def start (self) -> None:

		if FakeInputStream.fail_on_start is not None:
			raise FakeInputStream.fail_on_start

		self.started = True

	def stop (self) -> None:

		self.started = False

	def close (self) -> None:

		self.closed = True


@pytest.fixture
def fake_audio () -> FakeAudioInput:

	"""A silent fake audio source."""

	return FakeAudioInput()


@pytest.fixture
def fake_clock () -> FakeClock:

	"""A hand-driven clock starting at zero."""

	return FakeClock()


@pytest.fixture
def patch_sounddevice (monkeypatch: pytest.MonkeyPatch) -> typing.Type[FakeInputStream]:

	"""Replace sounddevice in the capture module with recording fakes."""

	FakeInputStream.instances = []
	FakeInputStream.fail_with = None
	FakeInputStream.fail_on_start = None

	fake_module = types.SimpleNamespace(
		InputStream = FakeInputStream,
		PortAudioError = FakePortAudioError,
		query_devices = lambda: "0 Fake Microphone, ALSA (1 in, 0 out)",
	)

	monkeypatch.setattr(scalewalk.audio_input, "sounddevice", fake_module, raising=False)
	monkeypatch.setattr(scalewalk.audio_input, "AUDIO_CAPTURE_SUPPORTED", True)
	monkeypatch.setattr(scalewalk.audio_input, "AUDIO_CAPTURE_UNAVAILABLE_REASON", None)

	return FakeInputStream
