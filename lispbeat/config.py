"""Configuration loaded from a YAML file.

Example ``lispbeat.yaml``:

	log_level: INFO
	tempo: 120
	loops: 4
	midi:
	  ticks_per_beat: 480
	  base_velocity: 100
	  drum_channel: 9
	  synth_channel: 0
	samples:
	  cowbell: 56

Every key is optional. Unknown keys are ignored with a warning.
"""

import dataclasses
import logging
import os
import typing

import yaml

import lispbeat.sounds


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "lispbeat.yaml"

_TOP_LEVEL_KEYS = {"log_level", "tempo", "loops", "midi", "samples"}
_MIDI_KEYS = {"ticks_per_beat", "base_velocity", "drum_channel", "synth_channel"}


@dataclasses.dataclass
class Config:

	"""
	Runtime settings for the command line and the MIDI renderer.

	``tempo`` is used only when a program contains no drum or beat machine.
	"""

	log_level: str = "INFO"
	tempo: float = 120
	loops: int = 1
	ticks_per_beat: int = 480
	base_velocity: int = 100
	drum_channel: int = 9
	synth_channel: int = 0
	samples: typing.Dict[str, int] = dataclasses.field(default_factory=dict)

	def sound_bank (self) -> lispbeat.sounds.SoundBank:

		"""A sound bank with the default kit plus this config's sample overrides."""

		bank = lispbeat.sounds.SoundBank(drum_channel=self.drum_channel, synth_channel=self.synth_channel)

		for name, note in self.samples.items():
			bank.register_sample(name, note)

		return bank


def _check_channel (value: int, key: str) -> int:

	if not 0 <= value <= 15:
		raise ValueError(f"{key} must be a MIDI channel 0-15, got {value}")

	return value


def config_from_dict (data: typing.Optional[typing.Mapping[str, typing.Any]]) -> Config:

	"""
	Build a ``Config`` from parsed YAML, applying defaults for missing keys.

	Raises ``ValueError`` for values of the wrong shape.
	"""

	if not data:
		return Config()

	if not isinstance(data, typing.Mapping):
		raise ValueError(f"Config must be a mapping, got {type(data).__name__}")

	for key in set(data) - _TOP_LEVEL_KEYS:
		logger.warning(f"Ignoring unknown config key '{key}'")

	midi = data.get("midi") or {}

	if not isinstance(midi, typing.Mapping):
		raise ValueError("Config key 'midi' must be a mapping")

	for key in set(midi) - _MIDI_KEYS:
		logger.warning(f"Ignoring unknown config key 'midi.{key}'")

	samples = data.get("samples") or {}

	if not isinstance(samples, typing.Mapping):
		raise ValueError("Config key 'samples' must be a mapping of name to MIDI note")

	defaults = Config()

	try:
		config = Config(
			log_level = str(data.get("log_level", defaults.log_level)).upper(),
			tempo = float(data.get("tempo", defaults.tempo)),
			loops = int(data.get("loops", defaults.loops)),
			ticks_per_beat = int(midi.get("ticks_per_beat", defaults.ticks_per_beat)),
			base_velocity = int(midi.get("base_velocity", defaults.base_velocity)),
			drum_channel = _check_channel(int(midi.get("drum_channel", defaults.drum_channel)), "midi.drum_channel"),
			synth_channel = _check_channel(int(midi.get("synth_channel", defaults.synth_channel)), "midi.synth_channel"),
			samples = {str(name): int(note) for name, note in samples.items()}
		)
	except (TypeError, ValueError) as e:
		raise ValueError(f"Invalid config: {e}") from e

	if config.tempo <= 0:
		raise ValueError("Config tempo must be positive")

	if config.loops < 1:
		raise ValueError("Config loops must be at least 1")

	return config


def load_config (config_path: str = DEFAULT_CONFIG_PATH) -> Config:

	"""
	Load configuration from a YAML file.

	A missing file is not an error: a warning is logged and defaults are used.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return Config()

	with open(config_path, 'r') as f:
		return config_from_dict(yaml.safe_load(f))
