"""Synchronous event emitter used for sequencer notifications."""

import inspect
import logging
import typing


logger = logging.getLogger(__name__)


CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	A small synchronous event emitter.

	Listener exceptions raised during ``emit_sync`` are logged and not
	propagated to the caller.
	"""

	def __init__ (self) -> None:

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}


	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		self._listeners.setdefault(event_name, []).append(callback)


	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if callback not in self._listeners.get(event_name, []):
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)


	def has_listeners (self, event_name: str) -> bool:

		return bool(self._listeners.get(event_name))


	def emit_sync (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Call every listener for ``event_name`` in registration order.

		Raises:
			ValueError: If a listener is a coroutine function; events are
				emitted from inside clock ticks, which never await.
		"""

		for callback in list(self._listeners.get(event_name, [])):

			if inspect.iscoroutinefunction(callback):
				raise ValueError(f"Async listener registered for {event_name!r}")

			try:
				callback(*args, **kwargs)
			except Exception:
				logger.exception(f"Listener for {event_name!r} failed")
