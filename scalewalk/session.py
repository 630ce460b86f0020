"""Practice session controller.

`PracticeSession` owns the live run and drives it one tick at a time:

```
idle ──start()──▶ acquiring_tonic ──lock──▶ tonic_locked ──▶ following
  ▲                                                            │
  └────────────────────────stop()──────────────────────────────┘
```

While following, each onset is graded by the stepper.  Completing the run
loops into the same scale one semitone higher; five seconds without an onset
returns the cursor to the start of the current run.

The session is I/O free: audio arrives through :meth:`PracticeSession.tick`
and everything it has to say leaves through its :attr:`events` emitter.

Events:

- ``"status"`` ``(text)``: a new status line.
- ``"tonic_locked"`` ``(tonic, tuning)``: ``tuning`` is ``""``, ``"sharp"``, ...
- ``"render"`` ``(note_names, clef, written_key_name, feedback)``
- ``"onset"`` ``(frame)``
- ``"step"`` ``(result)``
- ``"key_changed"`` ``(tonic)``
- ``"inactivity_reset"`` ``()``
"""

import logging
import time
import typing

import scalewalk.config
import scalewalk.constants
import scalewalk.event_emitter
import scalewalk.onset
import scalewalk.pitch_estimator
import scalewalk.scale_sequence
import scalewalk.scale_tables
import scalewalk.slots
import scalewalk.stepper
import scalewalk.tonic


logger = logging.getLogger(__name__)


class PracticeSession:

	"""
	One practice session: tonic lock, run following and key looping.

	Parameters:
		profile: Profile name (``"instrument"`` or ``"voice"``).
		transposition_id: Instrument transposition id (see
			:data:`scalewalk.scale_tables.TRANSPOSITIONS`).
		scale_type_id: Scale mode id (see
			:data:`scalewalk.scale_tables.SCALE_TYPES`).
		debug_mode: ``DEBUG_OFF`` or ``DEBUG_ACCEPT_ANY_ONSET``.
		bpm: Tempo of the timing slot schedule.

	Raises:
		ValueError: For an unknown transposition or scale type.

	Example:
		```python
		session = PracticeSession(transposition_id="bb", scale_type_id="dorian")
		session.events.on("step", lambda result: print(result.feedback))
		session.start()

		while True:
			session.tick(microphone.read(), microphone.sample_rate, time.monotonic() * 1000)
		```
	"""

	def __init__ (
		self,
		profile: str = scalewalk.config.DEFAULT_PROFILE,
		transposition_id: str = scalewalk.scale_tables.DEFAULT_TRANSPOSITION,
		scale_type_id: str = scalewalk.scale_tables.DEFAULT_SCALE_TYPE,
		debug_mode: str = scalewalk.config.DEBUG_OFF,
		bpm: float = scalewalk.constants.LISTEN_DEFAULT_BPM
	) -> None:

		self.events = scalewalk.event_emitter.EventEmitter(scalewalk.event_emitter.SESSION_EVENTS)

		self.transposition = scalewalk.scale_tables.get_transposition(transposition_id)
		self.scale_type = scalewalk.scale_tables.get_scale_type(scale_type_id)
		self.profile = scalewalk.config.get_profile(profile)
		self.bpm = bpm

		self.state = scalewalk.config.SessionState(debug_mode=debug_mode)

		self.tonic_acquirer = scalewalk.tonic.TonicAcquirer()
		self.onset_detector = scalewalk.onset.OnsetDetector(self.profile)
		self.stepper = scalewalk.stepper.ScaleStepper()

		self.tonic: typing.Optional[scalewalk.tonic.Tonic] = None
		self.tuning = ""
		self.clef = self.transposition.clef
		self.note_sequence: typing.List[str] = []
		self.degrees: typing.List[scalewalk.scale_sequence.ScaleDegree] = []
		self.slots: typing.List[scalewalk.slots.TimingSlot] = []

		self.status = "Idle"
		self.last_rms = 0.0

	# ------------------------------------------------------------------
	# Control surface
	# ------------------------------------------------------------------

	@property
	def running (self) -> bool:

		return self.state.mode != scalewalk.config.MODE_IDLE

	def start (self) -> None:

		"""Begin listening for a tonic.  Any previous run is discarded."""

		self.tonic_acquirer.reset()
		self.onset_detector.reset()
		self.state.reset_cursor()
		self.state.mode = scalewalk.config.MODE_ACQUIRING_TONIC

		logger.info("Listening for tonic")
		self.set_status("Listening... (play a clear note)")

	def stop (self) -> None:

		self.state.mode = scalewalk.config.MODE_IDLE
		self.onset_detector.reset()

		logger.info("Stopped listening")
		self.set_status("Stopped")

	def reset (self) -> None:

		"""Stop and immediately listen for a new tonic."""

		self.stop()
		self.start()

	def set_transposition (self, transposition_id: str) -> None:

		"""Select a transposition; it applies from the next tonic lock."""

		self.transposition = scalewalk.scale_tables.get_transposition(transposition_id)

	def set_scale_type (self, scale_type_id: str) -> None:

		"""Select a scale mode; it applies from the next tonic lock."""

		self.scale_type = scalewalk.scale_tables.get_scale_type(scale_type_id)

	def set_profile (self, name: str) -> None:

		self.profile = scalewalk.config.get_profile(name)
		self.onset_detector.set_profile(self.profile)

	def set_debug_mode (self, debug_mode: str) -> None:

		if debug_mode not in (scalewalk.config.DEBUG_OFF, scalewalk.config.DEBUG_ACCEPT_ANY_ONSET):
			raise ValueError(f"Unknown debug mode {debug_mode!r}")

		self.state.debug_mode = debug_mode

	# ------------------------------------------------------------------
	# Tick
	# ------------------------------------------------------------------

	def tick (self, samples: typing.Sequence[float], sample_rate: float, now_ms: float) -> None:

		"""
		Process one buffer of audio.

		Parameters:
			samples: The most recent block of mono samples.
			sample_rate: Sampling rate of ``samples`` in Hz.
			now_ms: Monotonic time of the tick in milliseconds.
		"""

		if self.state.mode == scalewalk.config.MODE_IDLE:
			return

		rms = scalewalk.pitch_estimator.compute_rms(samples)
		self.last_rms = rms

		if self.state.mode == scalewalk.config.MODE_ACQUIRING_TONIC:
			self._tick_acquiring(samples, sample_rate, rms)

		elif self.state.mode == scalewalk.config.MODE_FOLLOWING:
			self._tick_following(samples, sample_rate, rms, now_ms)

	def _tick_acquiring (self, samples: typing.Sequence[float], sample_rate: float, rms: float) -> None:

		frequency: typing.Optional[float] = None

		if rms >= self.tonic_acquirer.rms_floor:
			frequency = scalewalk.pitch_estimator.detect_pitch(samples, sample_rate)

		locked = self.tonic_acquirer.update(rms, frequency)

		if locked is not None:
			self._lock_tonic(locked)
		else:
			self.set_status(self.tonic_acquirer.status)

	def _tick_following (self, samples: typing.Sequence[float], sample_rate: float, rms: float, now_ms: float) -> None:

		self.check_inactivity(now_ms)

		debug = self.state.debug_mode == scalewalk.config.DEBUG_ACCEPT_ANY_ONSET
		frequency: typing.Optional[float] = None

		if rms >= self.profile.rms_floor or debug:
			frequency = scalewalk.pitch_estimator.detect_pitch(samples, sample_rate)

		frame = self.onset_detector.process(self.state, rms, frequency, self.degrees, now_ms)

		if frame is not None:
			self._dispatch(frame, now_ms)

	# ------------------------------------------------------------------
	# Run management
	# ------------------------------------------------------------------

	def _lock_tonic (self, frequency_hz: float) -> None:

		self.state.mode = scalewalk.config.MODE_TONIC_LOCKED

		self.tonic = scalewalk.tonic.Tonic.from_frequency(frequency_hz, self.transposition, self.scale_type.id)
		self.tuning = scalewalk.tonic.describe_tuning(frequency_hz)
		self.clef = self.transposition.clef

		self._build_run()
		self.state.reset_cursor()
		self.onset_detector.reset()

		logger.info(
			f"Tonic locked at {frequency_hz:.1f} Hz: written {self.tonic.written_key_name} "
			f"{self.scale_type.label}{' (' + self.tuning + ')' if self.tuning else ''}"
		)

		self.events.emit("tonic_locked", self.tonic, self.tuning)

		self.state.mode = scalewalk.config.MODE_FOLLOWING

		tuning_text = f" ({self.tuning})" if self.tuning else ""
		self.set_status(f"{self.tonic.written_key_name}{tuning_text}: starting...")
		self._render()

	def _build_run (self) -> None:

		assert self.tonic is not None

		names = scalewalk.scale_tables.scale_notes(self.tonic.written_key_name, self.tonic.scale_mode_id)

		self.note_sequence = scalewalk.scale_sequence.build_up_down_sequence(names, self.clef)

		self.degrees = scalewalk.scale_sequence.build_expected_sequence(
			self.note_sequence,
			self.tonic.written_key_name,
			self.tonic.midi_number,
			self.transposition.offset,
		)

		self.slots = scalewalk.slots.build_timing_slots(self.note_sequence, bpm=self.bpm)

	def advance_to_next_key (self) -> None:

		"""
		Loop into the same scale one semitone higher.

		The written key walks the chromatic key list (``C``, ``Db``, ``D`` ...)
		and the run is rebuilt with fresh territories and no feedback.

		Raises:
			RuntimeError: If no tonic has been locked yet.
		"""

		if self.tonic is None:
			raise RuntimeError("No tonic locked; cannot advance to the next key")

		self.tonic = self.tonic.next_semitone()
		self._build_run()

		self.state.current_index = 0
		self.state.progress = scalewalk.config.PROGRESS_IDLE

		logger.info(f"Next key: {self.tonic.written_key_name} {self.scale_type.label}")

		self.events.emit("key_changed", self.tonic)
		self.set_status(f"{self.tonic.written_key_name}: starting...")
		self._render()

	def check_inactivity (self, now_ms: float) -> bool:

		"""
		Return the cursor to the start after a long gap between onsets.

		Returns ``True`` when a reset happened.  The key does not change.
		"""

		last = self.state.last_active_time_ms

		if last is None or now_ms - last <= scalewalk.constants.INACTIVITY_RESET_MS:
			return False

		self.state.current_index = 0
		self.state.progress = scalewalk.config.PROGRESS_IDLE
		self.state.last_onset_time_ms = None
		self.state.last_active_time_ms = None

		for degree in self.degrees:
			degree.clear_feedback()

		logger.info("No notes for a while, back to the start of the run")

		self.events.emit("inactivity_reset")
		self._render()

		return True

	def _dispatch (self, frame: scalewalk.onset.PitchFrame, now_ms: float) -> scalewalk.stepper.StepResult:

		self.state.last_active_time_ms = now_ms
		self.events.emit("onset", frame)

		result = self.stepper.handle(self.state, self.degrees, frame)
		self.events.emit("step", result)

		if result.completed:
			logger.info(f"Completed {self.tonic.written_key_name if self.tonic else '?'} {self.scale_type.label}")
			self.advance_to_next_key()
		else:
			self._render()

		return result

	def debug_note (self, frequency_hz: float, now_ms: typing.Optional[float] = None) -> typing.Optional[scalewalk.stepper.StepResult]:

		"""
		Feed a frequency straight to the stepper as if it were an onset.

		Returns the step result, or ``None`` when no run is being followed.
		"""

		if self.state.mode != scalewalk.config.MODE_FOLLOWING or not self.degrees:
			logger.warning("debug_note ignored: no run is being followed")
			return None

		if now_ms is None:
			now_ms = time.monotonic() * 1000.0

		frame = scalewalk.onset.PitchFrame.from_frequency(frequency_hz, self.degrees)

		self.state.last_onset_degree = frame.degree_index
		self.state.last_onset_time_ms = now_ms

		return self._dispatch(frame, now_ms)

	# ------------------------------------------------------------------
	# Output
	# ------------------------------------------------------------------

	def set_status (self, text: str) -> None:

		if text == self.status:
			return

		self.status = text
		self.events.emit("status", text)

	def _render (self) -> None:

		self.events.emit(
			"render",
			list(self.note_sequence),
			self.clef,
			self.tonic.written_key_name if self.tonic else "",
			[degree.feedback for degree in self.degrees],
		)

	def snapshot (self) -> typing.Dict[str, typing.Any]:

		"""JSON-serialisable view of the session for the dashboards."""

		tonic = None

		if self.tonic is not None:
			tonic = {
				"frequency_hz": round(self.tonic.frequency_hz, 2),
				"midi": self.tonic.midi_number,
				"written_key": self.tonic.written_key_name,
				"tuning": self.tuning,
			}

		return {
			"mode": self.state.mode,
			"status": self.status,
			"progress": self.state.progress,
			"current_index": self.state.current_index,
			"debug_mode": self.state.debug_mode,
			"profile": self.profile.name,
			"transposition": self.transposition.id,
			"scale_type": self.scale_type.id,
			"scale_label": self.scale_type.label,
			"clef": self.clef,
			"written_key": self.tonic.written_key_name if self.tonic else "",
			"tonic": tonic,
			"rms": round(self.last_rms, 5),
			"notes": [
				{
					"name": degree.note_name,
					"midi": degree.midi_number,
					"feedback": degree.feedback,
					"checkpoint": degree.is_tonic_checkpoint,
					"error_cents": None if degree.error_cents is None else round(degree.error_cents, 1),
				}
				for degree in self.degrees
			],
			"tuner": self.onset_detector.tuner.as_dict(),
		}
