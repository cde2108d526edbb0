import asyncio
import dataclasses
import logging
import os
import sys
import typing

import yaml

import kickbeats.generator
import kickbeats.grid
import kickbeats.midi_utils
import kickbeats.pattern
import kickbeats.sequencer


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

MIN_TEMPO = 40
MAX_TEMPO = 300


@dataclasses.dataclass
class PracticeSettings:

	"""
	Everything a practice run needs, already checked.
	"""

	device_name: typing.Optional[str] = None
	tempo: int = 120
	complexity: kickbeats.pattern.Complexity = kickbeats.pattern.Complexity.MEDIUM
	time_signature: kickbeats.grid.TimeSignature = dataclasses.field(default_factory=kickbeats.grid.TimeSignature)
	click: bool = True
	spin_wait: bool = True


def load_config (config_path: str = 'config.yaml') -> dict:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		return yaml.safe_load(f) or {}


def read_settings (config: dict) -> PracticeSettings:

	"""
	Turn a loaded config mapping into checked settings.

	Raises ``ValueError`` for an out-of-range tempo, an unknown complexity
	or a malformed time signature.
	"""

	midi = config.get('midi', {}) or {}
	practice = config.get('practice', {}) or {}
	sequencer = config.get('sequencer', {}) or {}

	tempo = int(practice.get('tempo', 120))

	if not MIN_TEMPO <= tempo <= MAX_TEMPO:
		raise ValueError(f"Tempo must be between {MIN_TEMPO} and {MAX_TEMPO} BPM, got {tempo}")

	return PracticeSettings(
		device_name = midi.get('device_name'),
		tempo = tempo,
		complexity = kickbeats.pattern.Complexity.parse(practice.get('complexity', 'medium')),
		time_signature = kickbeats.grid.TimeSignature.parse(str(practice.get('time_signature', '4/4'))),
		click = bool(practice.get('click', True)),
		spin_wait = bool(sequencer.get('spin_wait', True))
	)


def main () -> None:

	"""
	Generate one pattern and loop it until interrupted, then show where the kicks were.
	"""

	logger.info("Kickbeats starting...")

	config_path = sys.argv[1] if len(sys.argv) > 1 else 'config.yaml'

	try:
		settings = read_settings(load_config(config_path))
		generator = kickbeats.generator.WeightedGenerator()
		pattern, _ = generator.generate_unique(settings.time_signature, settings.complexity, ())

	except (ValueError, kickbeats.generator.GenerationExhausted) as e:
		logger.error(str(e))
		sys.exit(1)

	seq = kickbeats.sequencer.Sequencer(device_name=settings.device_name, spin_wait=settings.spin_wait)

	logger.info(f"Playing a {settings.complexity.value} pattern in {settings.time_signature} at {settings.tempo} BPM. Press Ctrl-C to stop.")

	try:
		asyncio.run(seq.play(pattern, settings.tempo, settings.click))

	except kickbeats.midi_utils.DeviceUnavailable as e:
		logger.error(str(e))
		sys.exit(1)

	except KeyboardInterrupt:
		logger.info("Stopping...")

	if seq.last_error is not None:
		logger.error(f"Playback ended early: {seq.last_error}")

	logger.info(f"The kicks were on steps {pattern.note_positions()} of {pattern.length}")


if __name__ == "__main__":
	main()
