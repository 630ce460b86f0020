"""Publish/subscribe hub connecting the practice session to its sinks.

The session calls :meth:`EventEmitter.emit` from inside a tick, so listeners
run synchronously and in registration order.  A listener that raises is logged
and skipped; the remaining listeners still hear the event.
"""

import inspect
import logging
import typing


logger = logging.getLogger(__name__)

Listener = typing.Callable[..., typing.Any]

#: Events a :class:`~scalewalk.session.PracticeSession` emits.
SESSION_EVENTS: typing.FrozenSet[str] = frozenset({
	"status",
	"tonic_locked",
	"render",
	"onset",
	"step",
	"key_changed",
	"inactivity_reset",
})


class EventEmitter:

	"""
	Named events with plain-callable listeners.

	When ``event_names`` is given, subscribing to or emitting any other name
	raises ``ValueError``, which catches misspelt event names early.
	"""

	def __init__ (self, event_names: typing.Optional[typing.Iterable[str]] = None) -> None:

		self.event_names: typing.Optional[typing.FrozenSet[str]] = frozenset(event_names) if event_names is not None else None
		self._listeners: typing.Dict[str, typing.List[Listener]] = {}

	def _check_name (self, event_name: str) -> None:

		if self.event_names is not None and event_name not in self.event_names:
			raise ValueError(f"Unknown event {event_name!r}. Expected one of {sorted(self.event_names)}")

	def on (self, event_name: str, callback: Listener) -> None:

		"""
		Subscribe ``callback`` to an event.

		Raises:
			ValueError: If the event name is not declared, or ``callback`` is a
				coroutine function (events are delivered from inside a tick).
		"""

		self._check_name(event_name)

		if inspect.iscoroutinefunction(callback):
			raise ValueError(f"Listener for {event_name!r} must be a plain callable, not a coroutine function")

		self._listeners.setdefault(event_name, []).append(callback)

	def off (self, event_name: str, callback: Listener) -> None:

		"""
		Unsubscribe a listener.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if callback not in self._listeners.get(event_name, []):
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)

	def listener_count (self, event_name: str) -> int:

		return len(self._listeners.get(event_name, []))

	def emit (self, event_name: str, *args: typing.Any) -> None:

		"""Deliver an event to every listener, logging any that fail."""

		self._check_name(event_name)

		for callback in list(self._listeners.get(event_name, [])):

			try:
				callback(*args)
			except Exception:
				logger.exception(f"Listener for {event_name!r} failed")
