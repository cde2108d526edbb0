import logging
import typing

import mido

import kickbeats.constants


logger = logging.getLogger(__name__)


class DeviceUnavailable (RuntimeError):

	"""
	Raised when no MIDI output exists or the requested one cannot be opened.
	"""


class TransportSendFailure (IOError):

	"""
	Raised when a message could not be delivered to an open MIDI output.
	"""


def list_output_names () -> typing.List[str]:

	"""
	Return the names of the available MIDI outputs, in the backend's order.
	"""

	return list(mido.get_output_names())


class MidiOutputDevice:

	"""
	An open MIDI output that speaks only kick-drum triggers and releases on one channel.
	"""

	def __init__ (self, name: str, port: typing.Any, channel: int = kickbeats.constants.MIDI_CHANNEL) -> None:

		self.name = name
		self.port = port
		self.channel = channel


	def _send (self, message: mido.Message) -> None:

		try:
			self.port.send(message)

		except Exception as e:
			raise TransportSendFailure(f"MIDI send to '{self.name}' failed: {e}") from e


	def send_trigger (self, note: int, velocity: int) -> None:

		self._send(mido.Message('note_on', channel=self.channel, note=note, velocity=velocity))


	def send_release (self, note: int) -> None:

		self._send(mido.Message('note_off', channel=self.channel, note=note, velocity=0))


	def close (self) -> None:

		try:
			self.port.close()

		except Exception:
			logger.exception(f"Failed to close MIDI output '{self.name}'")


def connect (name_substring: typing.Optional[str] = None) -> MidiOutputDevice:

	"""
	Open a MIDI output.

	With ``name_substring``, opens the first output whose name contains it.
	Without, opens the first output the backend lists.

	Raises:
		DeviceUnavailable: when there are no outputs, none match, or opening fails.
	"""

	try:
		outputs = list_output_names()

	except Exception as e:
		raise DeviceUnavailable(f"Failed to list MIDI outputs: {e}") from e

	logger.info(f"Available MIDI outputs: {outputs}")

	if not outputs:
		raise DeviceUnavailable("No MIDI output devices found.")

	if name_substring is None:
		selected_name = outputs[0]

	else:
		matches = [name for name in outputs if name_substring in name]

		if not matches:
			raise DeviceUnavailable(
				f"MIDI output device '{name_substring}' not found. "
				f"Available devices: {outputs}"
			)

		selected_name = matches[0]

	try:
		port = mido.open_output(selected_name)

	except Exception as e:
		raise DeviceUnavailable(f"Failed to open MIDI output '{selected_name}': {e}") from e

	logger.info(f"Opened MIDI output: {selected_name}")

	return MidiOutputDevice(selected_name, port)
