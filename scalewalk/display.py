"""Live terminal dashboard for a practice session.

Keeps a two-line region at the bottom of stderr: the run, with a feedback
glyph on every graded degree and the expected degree in brackets, and a status
line with the mode, key, scale and live tuner.  Log records are written above
the region, which is then drawn again underneath them.

The run line looks like::

	A4✓ B4✓ C#5↑ [D5] E5 F#5 G#5 A5 G#5 F#5 E5 D5 C#5 B4 A4

and the status line like::

	following  A Major (bb)  D5 · 587.9 Hz  +4 cents  A: starting...
"""

import contextlib
import logging
import sys
import typing

import scalewalk.config
import scalewalk.stepper

if typing.TYPE_CHECKING:
	from scalewalk.session import PracticeSession


FEEDBACK_GLYPHS: typing.Dict[typing.Optional[str], str] = {
	scalewalk.stepper.FEEDBACK_IN_TUNE: "✓",
	scalewalk.stepper.FEEDBACK_SHARP: "↑",
	scalewalk.stepper.FEEDBACK_FLAT: "↓",
	scalewalk.stepper.FEEDBACK_WRONG: "✗",
	None: "",
}

_ERASE_LINE = "\r\033[K"
_CURSOR_UP = "\033[A"


class DisplayLogHandler (logging.Handler):

	"""Root log handler that prints records above the dashboard region."""

	def __init__ (self, display: "Display") -> None:

		super().__init__()
		self.display = display

	def emit (self, record: logging.LogRecord) -> None:

		try:
			text = self.format(record)

			with self.display.hidden():
				sys.stderr.write(text + "\n")

		except Exception:
			self.handleError(record)


class Display:

	"""Terminal dashboard bound to one :class:`~scalewalk.session.PracticeSession`.

	While started it owns the root logger's handlers (restored by
	:meth:`stop`) and redraws on the session's ``"render"`` and ``"status"``
	events.  Register :meth:`update` as a listener tick callback to keep the
	tuner readout live between events.

	Example:
		```python
		display = Display(session)
		display.start()
		listener.add_tick_callback(display.update)
		```
	"""

	def __init__ (self, session: "PracticeSession") -> None:

		self.session = session
		self.active = False

		self._rendered: typing.List[str] = []
		self._region_height = 0
		self._previous_handlers: typing.List[logging.Handler] = []

	def start (self) -> None:

		if self.active:
			return

		self.active = True

		root = logging.getLogger()
		self._previous_handlers = root.handlers[:]

		handler = DisplayLogHandler(self)
		formatter = next((h.formatter for h in self._previous_handlers if h.formatter), None)
		handler.setFormatter(formatter or logging.Formatter("%(levelname)s:%(name)s:%(message)s"))

		for previous in self._previous_handlers:
			root.removeHandler(previous)

		root.addHandler(handler)

		self.session.events.on("render", self._on_session_event)
		self.session.events.on("status", self._on_session_event)

	def stop (self) -> None:

		"""Erase the region, unsubscribe and give the root logger its handlers back."""

		if not self.active:
			return

		self.erase()
		self.active = False

		self.session.events.off("render", self._on_session_event)
		self.session.events.off("status", self._on_session_event)

		root = logging.getLogger()

		for handler in root.handlers[:]:
			if isinstance(handler, DisplayLogHandler):
				root.removeHandler(handler)

		for handler in self._previous_handlers:
			root.addHandler(handler)

		self._previous_handlers = []

	def _on_session_event (self, *_: typing.Any) -> None:

		self.update()

	def update (self) -> None:

		"""Redraw if the run or the status line has changed."""

		if not self.active:
			return

		lines = [line for line in (self._format_run(), self._format_status()) if line]

		if lines == self._rendered:
			return

		with self.hidden():
			self._rendered = lines

	@contextlib.contextmanager
	def hidden (self) -> typing.Iterator[None]:

		"""Erase the region for the duration of the block, then draw it again."""

		self.erase()

		try:
			yield
		finally:
			self.draw()

	def draw (self) -> None:

		if not self.active or not self._rendered:
			return

		# The cursor stays at the end of the last line.
		sys.stderr.write("\n".join(_ERASE_LINE + line for line in self._rendered))
		sys.stderr.flush()

		self._region_height = len(self._rendered)

	def erase (self) -> None:

		if not self.active or self._region_height == 0:
			return

		sys.stderr.write(_ERASE_LINE + (_CURSOR_UP + _ERASE_LINE) * (self._region_height - 1))
		sys.stderr.flush()

		self._region_height = 0

	def _format_run (self) -> str:

		"""The run with feedback glyphs; the expected degree is bracketed."""

		cursor = self.session.state.current_index
		parts: typing.List[str] = []

		for degree in self.session.degrees:
			text = degree.note_name + FEEDBACK_GLYPHS.get(degree.feedback, "")
			parts.append(f"[{text}]" if degree.index == cursor else text)

		return " ".join(parts)

	def _format_status (self) -> str:

		session = self.session
		parts: typing.List[str] = [session.state.mode]

		if session.tonic is not None:
			parts.append(f"{session.tonic.written_key_name} {session.scale_type.label} ({session.transposition.id})")

		tuner = session.onset_detector.tuner

		if tuner.note_label:
			parts.append(f"{tuner.note_label}  {tuner.cents:+.0f} cents")

		elif session.state.mode == scalewalk.config.MODE_ACQUIRING_TONIC and session.tonic_acquirer.readout:
			parts.append(session.tonic_acquirer.readout)

		if session.status:
			parts.append(session.status)

		return "  ".join(parts)
