"""Practice hotkeys read from the terminal.

A daemon thread puts stdin into cbreak mode and turns single keystrokes into
practice actions (``"toggle"``, ``"reset"``, ``"quit"``) that the tick loop
collects with :meth:`KeystrokeListener.drain_actions`.  The dashboard draws to
stderr, so reading stdin here never fights it for the terminal.

Hotkeys need :mod:`termios` and a real TTY on stdin.  Where either is missing
:data:`HOTKEYS_SUPPORTED` is ``False``, :data:`HOTKEYS_UNAVAILABLE_REASON`
says why, and :meth:`KeystrokeListener.start` only logs a warning.
"""

import logging
import queue
import select
import sys
import threading
import typing


logger = logging.getLogger(__name__)


#: Keys understood by the practice loop and the action each one requests.
KEY_ACTIONS: typing.Dict[str, str] = {
	" ": "toggle",
	"r": "reset",
	"q": "quit",
}

POLL_INTERVAL_S = 0.1


def _probe_terminal () -> typing.Tuple[bool, typing.Optional[str]]:

	"""Check that stdin is a TTY whose settings can be read and restored."""

	try:
		import termios  # noqa: PLC0415
	except ImportError:
		return False, "termios is not available; hotkeys need Linux or macOS."

	try:
		if not sys.stdin.isatty():
			return False, "stdin is not an interactive terminal."

		fd = sys.stdin.fileno()
		termios.tcsetattr(fd, termios.TCSADRAIN, termios.tcgetattr(fd))

	except (OSError, ValueError, termios.error) as e:
		return False, f"The terminal settings could not be read: {e}"

	return True, None


HOTKEYS_SUPPORTED, HOTKEYS_UNAVAILABLE_REASON = _probe_terminal()


class KeystrokeListener:

	"""Background reader that queues practice actions from single keystrokes.

	Unknown keys are dropped; letters match in either case.  On an
	unsupported terminal :meth:`start` logs a warning and the listener stays
	inactive, but :meth:`push` still works, which is how tests and other
	front ends inject keys.
	"""

	def __init__ (self, key_actions: typing.Optional[typing.Dict[str, str]] = None) -> None:

		self.key_actions = dict(KEY_ACTIONS if key_actions is None else key_actions)
		self.active = False

		self._actions: "queue.Queue[str]" = queue.Queue()
		self._thread: typing.Optional[threading.Thread] = None
		self._stop = threading.Event()

	def start (self) -> None:

		if self._thread is not None:
			return

		if not HOTKEYS_SUPPORTED:
			logger.warning(f"Hotkeys disabled: {HOTKEYS_UNAVAILABLE_REASON}")
			return

		self._stop.clear()
		self.active = True
		self._thread = threading.Thread(target=self._read_loop, name="scalewalk-hotkeys", daemon=True)
		self._thread.start()

		logger.info("Hotkeys: space = start/stop, r = reset, q = quit")

	def stop (self) -> None:

		"""Ask the reader to exit; it notices within one poll interval."""

		self._stop.set()
		self.active = False
		self._thread = None

	def push (self, key: str) -> None:

		"""Handle a keystroke as if it had been typed."""

		action = self.key_actions.get(key.lower())

		if action is None:
			logger.debug(f"Ignoring key {key!r}")
			return

		self._actions.put(action)

	def drain_actions (self) -> typing.List[str]:

		"""Return the actions queued since the last call, oldest first."""

		actions: typing.List[str] = []

		while True:
			try:
				actions.append(self._actions.get_nowait())
			except queue.Empty:
				return actions

	def _read_loop (self) -> None:

		import termios  # noqa: PLC0415
		import tty      # noqa: PLC0415

		fd = sys.stdin.fileno()
		saved = termios.tcgetattr(fd)

		try:
			tty.setcbreak(fd)

			while not self._stop.is_set():
				ready, _, _ = select.select([sys.stdin], [], [], POLL_INTERVAL_S)
				if ready:
					key = sys.stdin.read(1)
					if key:
						self.push(key)

		except (OSError, ValueError):
			logger.exception("Hotkey reader stopped unexpectedly")

		finally:
			termios.tcsetattr(fd, termios.TCSADRAIN, saved)
			self.active = False
