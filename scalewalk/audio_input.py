"""Microphone capture.

Opens a mono ``float32`` input stream with :mod:`sounddevice` and keeps the
most recent ``buffer_size`` samples in a ring buffer.  The listener reads a
snapshot of that buffer once per tick, so the capture block size and the
tick rate are independent.

**Platform support:** any system where PortAudio is installed.  Importing
:mod:`sounddevice` fails with :class:`OSError` when the PortAudio library
cannot be found; in that case :data:`AUDIO_CAPTURE_SUPPORTED` is ``False`` and
:meth:`MicrophoneInput.open` raises :class:`CaptureUnavailableError` with the
reason instead of the import crashing the application.
"""

import logging
import threading
import typing

import numpy as np


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Platform capability detection
# ---------------------------------------------------------------------------

#: ``True`` when PortAudio is available and microphone capture can be attempted.
AUDIO_CAPTURE_SUPPORTED: bool = False

#: Short human-readable explanation of why capture is not supported, or
#: ``None`` when :data:`AUDIO_CAPTURE_SUPPORTED` is ``True``.
AUDIO_CAPTURE_UNAVAILABLE_REASON: typing.Optional[str] = None

try:
	import sounddevice

	AUDIO_CAPTURE_SUPPORTED = True

except OSError as _e:
	AUDIO_CAPTURE_UNAVAILABLE_REASON = (
		f"The PortAudio library could not be loaded. Install PortAudio "
		f"(e.g. 'apt install libportaudio2') to enable the microphone. Reason: {_e}"
	)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class AudioCaptureError (Exception):

	"""Base class for microphone capture failures."""


class CaptureUnavailableError (AudioCaptureError):

	"""Capture is not supported on this system."""


class CapturePermissionError (AudioCaptureError):

	"""The input stream could not be opened (device missing, busy or denied)."""


# ---------------------------------------------------------------------------
# Microphone
# ---------------------------------------------------------------------------

class MicrophoneInput:

	"""Ring-buffered microphone input.

	The stream callback runs on PortAudio's thread and only copies samples
	into the ring buffer under a lock; :meth:`read` returns a copy, so the
	caller can analyse it without holding anything.

	Example::

		mic = MicrophoneInput(sample_rate=44100, buffer_size=2048)
		mic.open()
		samples = mic.read()   # numpy.ndarray, 2048 float32 samples
		mic.close()
	"""

	def __init__ (
		self,
		sample_rate: int = 44100,
		buffer_size: int = 2048,
		device: typing.Optional[typing.Union[int, str]] = None
	) -> None:

		if buffer_size < 64:
			raise ValueError(f"buffer_size must be at least 64 samples, got {buffer_size}")

		self.sample_rate = sample_rate
		self.buffer_size = buffer_size
		self.device = device

		self._buffer = np.zeros(buffer_size, dtype=np.float32)
		self._lock = threading.Lock()
		self._stream: typing.Optional[typing.Any] = None
		self._stream_status: typing.Optional[str] = None

	@property
	def is_open (self) -> bool:

		return self._stream is not None

	def open (self) -> None:

		"""Open and start the input stream.  A second call is a no-op.

		Raises:
			CaptureUnavailableError: PortAudio is not available.
			CapturePermissionError: The stream could not be opened.
		"""

		if self._stream is not None:
			return

		if not AUDIO_CAPTURE_SUPPORTED:
			raise CaptureUnavailableError(AUDIO_CAPTURE_UNAVAILABLE_REASON)

		stream = None

		try:
			stream = sounddevice.InputStream(
				samplerate = self.sample_rate,
				channels = 1,
				dtype = "float32",
				device = self.device,
				callback = self._callback,
			)
			stream.start()

		except sounddevice.PortAudioError as e:
			if stream is not None:
				stream.close()
			raise CapturePermissionError(f"Could not open the microphone: {e}") from e

		self.sample_rate = int(stream.samplerate)
		self._stream = stream

		logger.info(f"Microphone open at {self.sample_rate} Hz ({self.buffer_size} sample window)")

	def _callback (self, indata: np.ndarray, frames: int, time_info: typing.Any, status: typing.Any) -> None:

		# Runs on the PortAudio thread: no logging here, read() reports the status.
		if status:
			self._stream_status = str(status)

		self.write(indata[:, 0])

	def write (self, chunk: np.ndarray) -> None:

		"""Append samples to the ring buffer, discarding the oldest."""

		n = len(chunk)

		if n == 0:
			return

		with self._lock:

			if n >= self.buffer_size:
				self._buffer[:] = chunk[-self.buffer_size:]

			else:
				self._buffer[:-n] = self._buffer[n:]
				self._buffer[-n:] = chunk

	def read (self) -> np.ndarray:

		"""Return a copy of the most recent ``buffer_size`` samples."""

		status, self._stream_status = self._stream_status, None

		if status:
			logger.debug(f"Input stream status: {status}")

		with self._lock:
			return self._buffer.copy()

	def close (self) -> None:

		"""Stop and release the stream.  Safe to call when not open."""

		if self._stream is None:
			return

		stream = self._stream
		self._stream = None

		try:
			stream.stop()
		finally:
			stream.close()

		logger.info("Microphone closed")


def list_devices () -> str:

	"""Human-readable list of audio devices, as printed by ``--list-devices``.

	Raises:
		CaptureUnavailableError: PortAudio is not available.
	"""

	if not AUDIO_CAPTURE_SUPPORTED:
		raise CaptureUnavailableError(AUDIO_CAPTURE_UNAVAILABLE_REASON)

	return str(sounddevice.query_devices())
