import asyncio
import dataclasses
import enum
import logging
import math
import time
import typing

import kickbeats.constants
import kickbeats.event_emitter
import kickbeats.midi_utils
import kickbeats.pattern


logger = logging.getLogger(__name__)


class AlreadyRunning (RuntimeError):

	"""
	Raised by :meth:`Sequencer.start` while a playback task is still active.
	"""


class EventKind (enum.Enum):

	TRIGGER = "trigger"
	RELEASE = "release"


@dataclasses.dataclass(frozen=True)
class NoteEvent:

	"""
	A trigger or release at a time offset (seconds) from the start of its phase.
	"""

	time_offset: float
	note: int
	velocity: int
	kind: EventKind


class PlaybackState (enum.Enum):

	IDLE = "idle"
	COUNT_IN = "count_in"
	LOOPING = "looping"
	STOPPED = "stopped"


@typing.runtime_checkable
class OutputDevice (typing.Protocol):

	"""
	The part of a MIDI output the sequencer relies on.
	"""

	def send_trigger (self, note: int, velocity: int) -> None:
		...

	def send_release (self, note: int) -> None:
		...


def _note_pair (time_offset: float, note: int, velocity: int, release_after: float, release_by: typing.Optional[float] = None) -> typing.List[NoteEvent]:

	"""
	A trigger and its release, the release clamped to ``release_by`` when given.
	"""

	release_offset = time_offset + release_after

	if release_by is not None:
		release_offset = min(release_offset, release_by)

	return [
		NoteEvent(time_offset, note, velocity, EventKind.TRIGGER),
		NoteEvent(release_offset, note, 0, EventKind.RELEASE),
	]


def count_in_duration (tempo_bpm: float) -> float:

	return kickbeats.constants.COUNT_IN_BEATS * 60.0 / tempo_bpm


def count_in_events (tempo_bpm: float) -> typing.List[NoteEvent]:

	"""
	One click per quarter note for the length of the count-in.
	"""

	seconds_per_beat = 60.0 / tempo_bpm
	events: typing.List[NoteEvent] = []

	for beat in range(kickbeats.constants.COUNT_IN_BEATS):
		events.extend(_note_pair(
			beat * seconds_per_beat,
			kickbeats.constants.CLICK_NOTE,
			kickbeats.constants.CLICK_VELOCITY,
			kickbeats.constants.CLICK_RELEASE_SECONDS
		))

	return sorted(events, key=lambda event: event.time_offset)


def pattern_duration (pattern: kickbeats.pattern.Pattern, tempo_bpm: float) -> float:

	return pattern.grid.duration(tempo_bpm)


def pattern_events (pattern: kickbeats.pattern.Pattern, tempo_bpm: float, include_click: bool) -> typing.List[NoteEvent]:

	"""
	The time-sorted events of one pass through the pattern.

	Click events are added before kick events and the sort is stable, so at
	equal offsets a click always precedes a kick. Releases never fall after
	the end of the pass, so a late-step kick at a fast tempo cannot delay
	the next downbeat.
	"""

	grid = pattern.grid
	seconds_per_position = grid.seconds_per_position(tempo_bpm)
	end = grid.duration(tempo_bpm)
	events: typing.List[NoteEvent] = []

	if include_click:
		for beat_idx in grid.beat_positions():
			events.extend(_note_pair(
				beat_idx * seconds_per_position,
				kickbeats.constants.CLICK_NOTE,
				kickbeats.constants.CLICK_VELOCITY,
				kickbeats.constants.CLICK_RELEASE_SECONDS,
				end
			))

	for position in pattern.note_positions():
		events.extend(_note_pair(
			position * seconds_per_position,
			kickbeats.constants.KICK_NOTE,
			kickbeats.constants.KICK_VELOCITY,
			kickbeats.constants.KICK_RELEASE_SECONDS,
			end
		))

	return sorted(events, key=lambda event: event.time_offset)


def _send (send: typing.Callable[..., None], *args: int) -> None:

	"""
	Call a device send method, reporting any failure as a TransportSendFailure.
	"""

	try:
		send(*args)

	except kickbeats.midi_utils.TransportSendFailure:
		raise

	except Exception as e:
		raise kickbeats.midi_utils.TransportSendFailure(f"Output device send failed: {e}") from e


class CancellationToken:

	"""
	Cooperative stop signal shared between the controller and one playback task.

	Create and cancel it from the event loop that runs the task.
	"""

	def __init__ (self) -> None:

		self._event = asyncio.Event()


	def cancel (self) -> None:

		self._event.set()


	@property
	def cancelled (self) -> bool:

		return self._event.is_set()


	async def wait (self) -> None:

		await self._event.wait()


class MonotonicClock:

	"""Wall-clock time source for real playback.

	Waits are cut short as soon as the token is cancelled. With ``spin_wait``
	(the default) the clock sleeps to within ``spin_threshold`` of the target
	and busy-waits the rest, which trades a little CPU for much tighter
	timing than ``asyncio.sleep()`` alone.
	"""

	def __init__ (self, spin_wait: bool = True, spin_threshold: float = 0.001) -> None:

		self.spin_wait = spin_wait
		self.spin_threshold = spin_threshold


	def now (self) -> float:

		return time.perf_counter()


	async def _sleep (self, seconds: float, token: CancellationToken) -> None:

		try:
			await asyncio.wait_for(token.wait(), timeout=seconds)
		except asyncio.TimeoutError:
			pass


	async def wait (self, seconds: float, token: CancellationToken) -> None:

		target = time.perf_counter() + seconds

		if self.spin_wait and seconds > self.spin_threshold:
			await self._sleep(seconds - self.spin_threshold, token)
			while not token.cancelled and time.perf_counter() < target:
				pass
		else:
			await self._sleep(seconds, token)


class Clock (typing.Protocol):

	def now (self) -> float:
		...

	async def wait (self, seconds: float, token: CancellationToken) -> None:
		...


class Sequencer:

	"""
	Loops one pattern on a MIDI output after a four-click count-in.

	Every loop iteration is timed from the instant playback started, never
	from when the previous iteration happened to finish, so lateness in one
	pass does not carry into the next. An iteration that could only start
	after its own end time is skipped entirely.

	Observable events (register with :meth:`on_event`):

	- ``"state"`` (state) - a :class:`PlaybackState` transition.
	- ``"iteration"`` (loop_count, ideal_start, actual_start) - top of each loop pass.
	- ``"drift"`` (loop_count, drift_seconds) - a pass started more than the drift threshold late.
	- ``"error"`` (exception) - a send failure ended playback.

	Example::

		sequencer = Sequencer(device_name="IAC")
		await sequencer.start(pattern, tempo_bpm=120)
		...
		await sequencer.stop()
	"""

	def __init__ (
		self,
		device: typing.Optional[OutputDevice] = None,
		device_name: typing.Optional[str] = None,
		clock: typing.Optional[Clock] = None,
		spin_wait: bool = True,
		drift_threshold: float = kickbeats.constants.DRIFT_WARNING_SECONDS
	) -> None:

		"""Set up an idle sequencer.

		Parameters:
			device: An already-open output. When omitted, an output is opened
				on every :meth:`start` (by ``device_name`` substring, or the
				first available) and closed when that playback ends.
			device_name: Substring of the MIDI output name to open.
			clock: Time source; defaults to :class:`MonotonicClock`.
			spin_wait: Passed to the default clock.
			drift_threshold: Seconds of lateness at the top of an iteration
				above which a warning is logged.
		"""

		self.device = device
		self.device_name = device_name
		self.clock: Clock = clock or MonotonicClock(spin_wait=spin_wait)
		self.drift_threshold = drift_threshold

		self.state = PlaybackState.IDLE
		self.task: typing.Optional[asyncio.Task] = None
		self._token: typing.Optional[CancellationToken] = None

		self.events = kickbeats.event_emitter.EventEmitter(["state", "iteration", "drift", "error"])

		self.start_time = 0.0
		self.loop_count = 0
		self.skipped_iterations = 0
		self.max_drift = 0.0
		self.last_error: typing.Optional[Exception] = None


	def on_event (self, event_name: str, callback: typing.Callable[..., typing.Any]) -> None:

		self.events.on(event_name, callback)


	def is_playing (self) -> bool:

		return self._token is not None and not self._token.cancelled


	def _set_state (self, state: PlaybackState) -> None:

		self.state = state
		self.events.emit("state", state)


	def _resolve_device (self) -> typing.Tuple[OutputDevice, bool]:

		"""
		Return the output to play on and whether this sequencer opened it.
		"""

		if self.device is not None:
			return self.device, False

		return kickbeats.midi_utils.connect(self.device_name), True


	async def start (self, pattern: kickbeats.pattern.Pattern, tempo_bpm: float, include_click: bool = True) -> None:

		"""Begin the count-in and then loop ``pattern`` until stopped.

		Returns as soon as the playback task has been created.

		Raises:
			AlreadyRunning: if a previous playback task has not finished.
			DeviceUnavailable: if no output could be opened.
		"""

		if self.task is not None and not self.task.done():
			raise AlreadyRunning("Playback already running")

		if tempo_bpm <= 0:
			raise ValueError("Tempo must be positive")

		device, owned = self._resolve_device()

		count_in = count_in_events(tempo_bpm)
		body = pattern_events(pattern, tempo_bpm, include_click)

		self.loop_count = 0
		self.skipped_iterations = 0
		self.max_drift = 0.0
		self.last_error = None

		token = CancellationToken()
		self._token = token

		self._set_state(PlaybackState.COUNT_IN)

		self.task = asyncio.create_task(self._run_loop(
			token,
			device,
			owned,
			count_in,
			body,
			count_in_duration(tempo_bpm),
			pattern_duration(pattern, tempo_bpm)
		))

		logger.info(f"Playback started: {pattern.kick_count} kicks at {tempo_bpm} BPM (click {'on' if include_click else 'off'})")


	async def stop (self) -> None:

		"""
		Stop playback and wait until the playback task has fully exited.

		Nothing is sent to the output after this returns.
		"""

		if self._token is not None:
			self._token.cancel()

		if self.task is not None:
			try:
				await self.task
			except asyncio.CancelledError:
				pass
			self.task = None


	async def join (self) -> None:

		"""
		Wait for the playback task to end on its own (a send failure) or via :meth:`stop`.
		"""

		if self.task is not None:
			await asyncio.shield(self.task)


	async def play (self, pattern: kickbeats.pattern.Pattern, tempo_bpm: float, include_click: bool = True) -> None:

		"""
		Convenience method to start playback and wait until it ends or is cancelled.
		"""

		await self.start(pattern, tempo_bpm, include_click)

		try:
			if self.task:
				await self.task
		except asyncio.CancelledError:
			pass
		finally:
			await self.stop()


	async def _wait_until (self, target: float, token: CancellationToken) -> None:

		delay = target - self.clock.now()

		if delay > 0:
			await self.clock.wait(delay, token)


	async def _emit_at (self, target: float, event: NoteEvent, device: OutputDevice, token: CancellationToken) -> bool:

		"""
		Wait for ``target`` and send ``event``. Returns False if cancelled first.
		"""

		await self._wait_until(target, token)

		if token.cancelled:
			return False

		if event.kind is EventKind.TRIGGER:
			_send(device.send_trigger, event.note, event.velocity)
		else:
			_send(device.send_release, event.note)

		return True


	def _measure_drift (self, loop_count: int, ideal_start: float, actual_start: float) -> None:

		drift = max(0.0, actual_start - ideal_start)

		if drift > self.max_drift:
			self.max_drift = drift

		if drift > self.drift_threshold:
			logger.warning(
				f"Timing drift detected: {drift * 1000:.2f}ms "
				f"(threshold: {self.drift_threshold * 1000:.0f}ms) at loop #{loop_count}"
			)
			self.events.emit("drift", loop_count, drift)


	async def _run_loop (
		self,
		token: CancellationToken,
		device: OutputDevice,
		owned: bool,
		count_in: typing.List[NoteEvent],
		body: typing.List[NoteEvent],
		count_in_seconds: float,
		pattern_seconds: float
	) -> None:

		"""Play the count-in once, then the pattern body until cancelled.

		Iteration ``n`` is scheduled at ``start + count_in_seconds + n * pattern_seconds``.
		"""

		self.start_time = self.clock.now()
		loop_origin = self.start_time + count_in_seconds

		try:
			for event in count_in:
				if not await self._emit_at(self.start_time + event.time_offset, event, device, token):
					return

			# The last click's release lands before the first downbeat.
			await self._wait_until(loop_origin, token)

			if token.cancelled:
				return

			self._set_state(PlaybackState.LOOPING)

			while not token.cancelled:

				ideal_start = loop_origin + self.loop_count * pattern_seconds
				actual_start = self.clock.now()

				self.events.emit("iteration", self.loop_count, ideal_start, actual_start)
				self._measure_drift(self.loop_count, ideal_start, actual_start)

				if actual_start > ideal_start + pattern_seconds:
					# Resume at the iteration the clock is currently inside.
					resume = max(self.loop_count + 1, math.floor((actual_start - loop_origin) / pattern_seconds))
					missed = resume - self.loop_count
					logger.debug(f"Skipping {missed} loop(s) from #{self.loop_count}: already past their end")
					self.skipped_iterations += missed
					self.loop_count = resume
					continue

				for event in body:
					if not await self._emit_at(ideal_start + event.time_offset, event, device, token):
						return

				# Hold until the iteration boundary so the next start is observed on time.
				await self._wait_until(ideal_start + pattern_seconds, token)

				self.loop_count += 1

		except kickbeats.midi_utils.TransportSendFailure as e:
			token.cancel()
			self.last_error = e
			logger.error(f"MIDI error, playback stopped: {e}")
			self.events.emit("error", e)

		finally:
			token.cancel()
			self._release_all(device)

			if owned and isinstance(device, kickbeats.midi_utils.MidiOutputDevice):
				device.close()

			self._set_state(PlaybackState.STOPPED)
			logger.info(f"Playback stopped after {self.loop_count} loops (max drift {self.max_drift * 1000:.2f}ms)")


	def _release_all (self, device: OutputDevice) -> None:

		"""
		Release the kick and the click so no note is left sounding.
		"""

		for note in (kickbeats.constants.KICK_NOTE, kickbeats.constants.CLICK_NOTE):
			try:
				_send(device.send_release, note)
			except kickbeats.midi_utils.TransportSendFailure as e:
				logger.warning(f"Could not release note {note}: {e}")
