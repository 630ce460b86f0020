"""Asyncio tick loop connecting the microphone, the session and the sinks.

Each tick reads one snapshot of the capture buffer, hands it to
:meth:`~scalewalk.session.PracticeSession.tick`, applies any pending hotkeys
and then calls the registered tick callbacks (the dashboards).  A tick never
awaits part-way through, so the session sees one consistent state per tick.
"""

import asyncio
import logging
import signal
import time
import typing

import scalewalk.audio_input
import scalewalk.constants
import scalewalk.session

if typing.TYPE_CHECKING:
	import scalewalk.keystroke


logger = logging.getLogger(__name__)


class AudioSource (typing.Protocol):

	"""Anything that can stand in for :class:`~scalewalk.audio_input.MicrophoneInput`."""

	sample_rate: int

	def open (self) -> None:
		...

	def read (self) -> typing.Any:
		...

	def close (self) -> None:
		...


class Listener:

	"""
	Runs a practice session against an audio source at a fixed tick rate.

	The audio source is opened on the first :meth:`start` and kept open across
	stop/start; :meth:`close` releases it.  Hotkeys (when a
	:class:`~scalewalk.keystroke.KeystrokeListener` is given):

	- space: start / stop listening
	- ``r``: reset (listen for a new tonic)
	- ``q``: quit
	"""

	def __init__ (
		self,
		session: scalewalk.session.PracticeSession,
		audio: AudioSource,
		tick_hz: float = scalewalk.constants.DEFAULT_TICK_HZ,
		keystrokes: typing.Optional["scalewalk.keystroke.KeystrokeListener"] = None,
		clock: typing.Callable[[], float] = time.monotonic
	) -> None:

		if tick_hz <= 0:
			raise ValueError(f"tick_hz must be positive, got {tick_hz}")

		self.session = session
		self.audio = audio
		self.tick_hz = tick_hz
		self.keystrokes = keystrokes
		self.clock = clock

		self.running = False
		self.task: typing.Optional[asyncio.Task] = None
		self.quit_event = asyncio.Event()
		self.tick_count = 0

		self._tick_callbacks: typing.List[typing.Callable[[], None]] = []

	def add_tick_callback (self, callback: typing.Callable[[], None]) -> None:

		"""Call ``callback()`` at the end of every tick."""

		self._tick_callbacks.append(callback)

	async def start (self) -> bool:

		"""
		Open the audio source, start the session and launch the tick task.

		Returns ``False`` (leaving the session idle with the error as its
		status) when the microphone cannot be opened.
		"""

		if self.running:
			return True

		try:
			self.audio.open()

		except scalewalk.audio_input.AudioCaptureError as e:
			logger.error(f"Microphone unavailable: {e}")
			self.session.stop()
			self.session.set_status(f"Microphone unavailable: {e}")
			return False

		self.session.start()

		self.running = True
		self.task = asyncio.create_task(self._run_loop())

		logger.info(f"Listener started ({self.tick_hz:g} ticks/s)")

		return True

	async def stop (self) -> None:

		"""Stop the tick task and the session.  The audio source stays open."""

		if not self.running:
			return

		self.running = False

		if self.task:
			await self.task
			self.task = None

		self.session.stop()

	def close (self) -> None:

		self.audio.close()

	async def _run_loop (self) -> None:

		interval = 1.0 / self.tick_hz
		next_tick = time.perf_counter()

		while self.running:

			self.tick()

			next_tick += interval
			delay = next_tick - time.perf_counter()

			if delay < -interval:
				# Fell behind (slow tick or suspended process): drop missed ticks.
				next_tick = time.perf_counter()
				delay = 0.0

			await asyncio.sleep(max(0.0, delay))

	def tick (self) -> None:

		"""Run one tick synchronously."""

		self.tick_count += 1

		if self.keystrokes is not None:
			for action in self.keystrokes.drain_actions():
				self.handle_action(action)

		if self.session.running:
			samples = self.audio.read()
			self.session.tick(samples, self.audio.sample_rate, self.clock() * 1000.0)

		for callback in self._tick_callbacks:
			callback()

	def handle_action (self, action: str) -> None:

		"""Apply a hotkey action: ``"toggle"``, ``"reset"`` or ``"quit"``."""

		if action == "toggle":
			if self.session.running:
				self.session.stop()
			else:
				self.session.start()

		elif action == "reset":
			self.session.reset()

		elif action == "quit":
			logger.info("Quit requested")
			self.quit_event.set()


async def run_until_stopped (listener: Listener) -> None:

	"""
	Run the listener until a stop signal or the quit hotkey is received.
	"""

	if not await listener.start():
		return

	logger.info("Listening. Press Ctrl+C to stop.")

	loop = asyncio.get_running_loop()

	def _request_stop () -> None:

		"""
		Signal handler to request a clean shutdown.
		"""

		listener.quit_event.set()

	for sig in (signal.SIGINT, signal.SIGTERM):
		loop.add_signal_handler(sig, _request_stop)

	assert listener.task is not None, "Listener task should exist after start()"
	await asyncio.wait(
		[asyncio.create_task(listener.quit_event.wait()), listener.task],
		return_when = asyncio.FIRST_COMPLETED
	)

	await listener.stop()
	listener.close()
