import logging
import typing


logger = logging.getLogger(__name__)

CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	Named-event listener registry used to observe playback from outside the loop.

	Listeners run synchronously inside the playback task, so they should
	return quickly. A listener that raises is logged and the rest still run;
	playback timing never depends on them.
	"""

	def __init__ (self, event_names: typing.Optional[typing.Iterable[str]] = None) -> None:

		"""
		Optionally restrict the emitter to a fixed set of event names.
		"""

		self._known: typing.Optional[typing.FrozenSet[str]] = frozenset(event_names) if event_names is not None else None
		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}


	def _check_name (self, event_name: str) -> None:

		if self._known is not None and event_name not in self._known:
			raise ValueError(f"Unknown event {event_name!r}; expected one of {sorted(self._known)}")


	def on (self, event_name: str, callback: CallbackType) -> None:

		self._check_name(event_name)
		self._listeners.setdefault(event_name, []).append(callback)


	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a callback. Raises ``ValueError`` if it was never registered.
		"""

		if callback not in self._listeners.get(event_name, []):
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)


	def emit (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		self._check_name(event_name)

		for callback in list(self._listeners.get(event_name, [])):

			try:
				callback(*args, **kwargs)

			except Exception:
				logger.exception(f"Listener for {event_name!r} failed")
