import pathlib

import pytest

import kickbeats.__main__
import kickbeats.grid
import kickbeats.pattern


def test_defaults_from_empty_config () -> None:

	settings = kickbeats.__main__.read_settings({})

	assert settings.tempo == 120
	assert settings.complexity is kickbeats.pattern.Complexity.MEDIUM
	assert settings.time_signature == kickbeats.grid.TimeSignature(4, 4)
	assert settings.device_name is None
	assert settings.click
	assert settings.spin_wait


def test_load_config_reads_yaml (tmp_path: pathlib.Path) -> None:

	"""Settings come from the midi, practice and sequencer sections."""

	path = tmp_path / "config.yaml"
	path.write_text(
		"midi:\n"
		"  device_name: IAC\n"
		"practice:\n"
		"  tempo: 90\n"
		"  complexity: complex\n"
		"  click: false\n"
		"sequencer:\n"
		"  spin_wait: false\n"
	)

	settings = kickbeats.__main__.read_settings(kickbeats.__main__.load_config(str(path)))

	assert settings.device_name == "IAC"
	assert settings.tempo == 90
	assert settings.complexity is kickbeats.pattern.Complexity.COMPLEX
	assert not settings.click
	assert not settings.spin_wait


def test_missing_config_uses_defaults (tmp_path: pathlib.Path) -> None:

	assert kickbeats.__main__.load_config(str(tmp_path / "absent.yaml")) == {}


def test_empty_config_file (tmp_path: pathlib.Path) -> None:

	path = tmp_path / "config.yaml"
	path.write_text("")

	assert kickbeats.__main__.load_config(str(path)) == {}


@pytest.mark.parametrize("practice", [
	{"tempo": 39},
	{"tempo": 301},
	{"complexity": "extreme"},
	{"time_signature": "4/5"},
])
def test_invalid_settings_rejected (practice: dict) -> None:

	with pytest.raises(ValueError):
		kickbeats.__main__.read_settings({"practice": practice})


def test_tempo_bounds_inclusive () -> None:

	assert kickbeats.__main__.read_settings({"practice": {"tempo": 40}}).tempo == 40
	assert kickbeats.__main__.read_settings({"practice": {"tempo": 300}}).tempo == 300
