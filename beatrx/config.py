"""YAML configuration.

A config file has three optional sections::

    midi:
      device_name: "Scarlett 2i4 USB MIDI 1"
      virtual: false
    generator:
      bpm: 110
      key: A
      mode: natural_minor
      playback_mode: loop
      palette: keygen
      drum_pattern: 0
      arpeggiate: true
      progression: extended
      seed: 42
    osc:
      enabled: true
      receive_port: 9000
      send_port: 9001
      send_host: 127.0.0.1

Anything left out takes the default below.
"""

import dataclasses
import logging
import math
import os
import typing

import yaml

import beatrx.drums
import beatrx.intervals
import beatrx.progressions
import beatrx.sequencer
import beatrx.voices


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "config.yaml"


def load_config (config_path: str = DEFAULT_CONFIG_PATH) -> typing.Dict[str, typing.Any]:

	"""
	Load configuration from a YAML file.

	A missing file logs a warning and yields an empty config.

	Raises:
		ValueError: If the file does not hold a mapping.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, "r") as f:
		data = yaml.safe_load(f)

	if data is None:
		return {}

	if not isinstance(data, dict):
		raise ValueError(f"Config file {config_path} must contain a mapping, got {type(data).__name__}")

	return data


@dataclasses.dataclass
class MidiSettings:

	device_name: typing.Optional[str] = None
	virtual: bool = False


@dataclasses.dataclass
class GeneratorSettings:

	bpm: float = 120.0
	key: str = "C"
	mode: str = "major"
	playback_mode: str = beatrx.sequencer.PLAYBACK_LOOP
	palette: str = beatrx.voices.DEFAULT_PALETTE
	drum_pattern: int = 0
	arpeggiate: bool = False
	progression: str = beatrx.progressions.DEFAULT_VARIANT
	seed: typing.Optional[int] = None


@dataclasses.dataclass
class OscSettings:

	enabled: bool = False
	receive_port: int = 9000
	send_port: int = 9001
	send_host: str = "127.0.0.1"


def _section (data: typing.Dict[str, typing.Any], name: str, cls: typing.Type[typing.Any]) -> typing.Any:

	section = data.get(name) or {}

	if not isinstance(section, dict):
		raise ValueError(f"Config section {name!r} must be a mapping")

	known = {field.name for field in dataclasses.fields(cls)}
	unknown = sorted(set(section) - known)

	if unknown:
		logger.warning(f"Ignoring unknown {name} settings: {unknown}")

	return cls(**{k: v for k, v in section.items() if k in known})


@dataclasses.dataclass
class Settings:

	"""
	Validated application settings.
	"""

	midi: MidiSettings = dataclasses.field(default_factory=MidiSettings)
	generator: GeneratorSettings = dataclasses.field(default_factory=GeneratorSettings)
	osc: OscSettings = dataclasses.field(default_factory=OscSettings)


	@classmethod
	def from_dict (cls, data: typing.Dict[str, typing.Any]) -> "Settings":

		"""
		Build settings from a loaded config, filling defaults.

		Raises:
			ValueError: If a value is invalid (unsupported key, unknown palette,
				playback mode, progression variant, tempo, drum pattern or
				arpeggiate flag).
		"""

		settings = cls(
			midi = _section(data, "midi", MidiSettings),
			generator = _section(data, "generator", GeneratorSettings),
			osc = _section(data, "osc", OscSettings)
		)

		gen = settings.generator

		beatrx.intervals.scale_of(beatrx.intervals.Key.from_name(str(gen.key), gen.mode))
		beatrx.voices.get_palette(gen.palette)
		gen.playback_mode = beatrx.sequencer.normalize_playback_mode(gen.playback_mode)

		if gen.progression not in beatrx.progressions.PROGRESSION_TABLES:
			raise ValueError(f"Unknown progression variant {gen.progression!r}")

		try:
			gen.bpm = float(gen.bpm)
		except (TypeError, ValueError):
			raise ValueError(f"Tempo must be a number, got {gen.bpm!r}")

		if not math.isfinite(gen.bpm) or gen.bpm <= 0:
			raise ValueError(f"Tempo must be a positive number, got {gen.bpm!r}")

		if isinstance(gen.drum_pattern, bool) or not isinstance(gen.drum_pattern, int):
			raise ValueError(f"Drum pattern must be an index, got {gen.drum_pattern!r}")

		beatrx.drums.get_pattern(gen.drum_pattern)

		if not isinstance(gen.arpeggiate, bool):
			raise ValueError(f"arpeggiate must be true or false, got {gen.arpeggiate!r}")

		return settings


	@classmethod
	def load (cls, config_path: str = DEFAULT_CONFIG_PATH) -> "Settings":

		return cls.from_dict(load_config(config_path))
