import asyncio
import typing

import mido
import pytest

import kickbeats.pattern
import kickbeats.sequencer


class FakeMidiOut:

	"""MIDI output stub that keeps every message it is sent."""

	def __init__ (self, name: str = "Dummy MIDI") -> None:

		self.name = name
		self.sent: typing.List[mido.Message] = []
		self.closed = False


	def send (self, message: mido.Message) -> None:

		"""Record the outgoing MIDI message."""

		self.sent.append(message)


	def close (self) -> None:

		"""Mark the fake device closed."""

		self.closed = True


# Module-level reference so tests can reach the most recently opened FakeMidiOut.
_current_fake_output: typing.Optional[FakeMidiOut] = None


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI", "IAC Driver Bus 1"]


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _current_fake_output
	fake = FakeMidiOut(name)
	_current_fake_output = fake
	return fake


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use fake MIDI outputs for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)


def current_fake_output () -> typing.Optional[FakeMidiOut]:

	return _current_fake_output


class VirtualClock:

	"""Clock whose waits advance time instantly instead of sleeping."""

	def __init__ (self, start: float = 100.0) -> None:

		self.time = start


	def now (self) -> float:

		return self.time


	def advance (self, seconds: float) -> None:

		self.time += seconds


	async def wait (self, seconds: float, token: kickbeats.sequencer.CancellationToken) -> None:

		"""Jump forward and yield so other tasks (the test) get a turn."""

		self.time += seconds
		await asyncio.sleep(0)


class RecordingDevice:

	"""Output device double that timestamps every trigger and release.

	``before_send`` runs ahead of each message with the message about to be
	sent; tests use it to add lag or raise a send failure.
	"""

	def __init__ (self, clock: typing.Any) -> None:

		self.clock = clock
		self.messages: typing.List[typing.Tuple[float, str, int, int]] = []
		self.before_send: typing.Optional[typing.Callable[[str, int, int], None]] = None


	def _record (self, kind: str, note: int, velocity: int) -> None:

		if self.before_send is not None:
			self.before_send(kind, note, velocity)

		self.messages.append((self.clock.now(), kind, note, velocity))


	def send_trigger (self, note: int, velocity: int) -> None:

		self._record("trigger", note, velocity)


	def send_release (self, note: int) -> None:

		self._record("release", note, 0)


@pytest.fixture
def clock () -> VirtualClock:

	return VirtualClock()


@pytest.fixture
def device (clock: VirtualClock) -> RecordingDevice:

	return RecordingDevice(clock)


def make_pattern (positions: typing.Iterable[int], length: int = 16) -> kickbeats.pattern.Pattern:

	"""Build a 4/4 sixteenth-note pattern with kicks at the given positions."""

	hits = set(positions)

	return kickbeats.pattern.Pattern(steps=[i in hits for i in range(length)])
