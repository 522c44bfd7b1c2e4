import argparse
import logging
import typing

import beatrx.clock
import beatrx.config
import beatrx.engine
import beatrx.generator


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main (argv: typing.Optional[typing.List[str]] = None) -> None:

	"""
	Main entry point for the beatrx application.
	"""

	parser = argparse.ArgumentParser(prog="beatrx", description="Procedural chord, melody and drum generator over MIDI.")
	parser.add_argument("config", nargs="?", default=beatrx.config.DEFAULT_CONFIG_PATH, help="YAML config file")
	args = parser.parse_args(argv)

	logger.info("BeatRX starting...")

	try:
		settings = beatrx.config.Settings.load(args.config)
		gen = settings.generator

		engine = beatrx.engine.MidiEngine(
			output_device_name = settings.midi.device_name,
			palette = gen.palette,
			virtual = settings.midi.virtual
		)

		generator = beatrx.generator.Generator(
			engine = engine,
			clock = beatrx.clock.TransportClock(),
			key = str(gen.key),
			mode = gen.mode,
			bpm = gen.bpm,
			playback_mode = gen.playback_mode,
			drum_pattern = gen.drum_pattern,
			arpeggiate = gen.arpeggiate,
			progression = gen.progression,
			seed = gen.seed
		)
	except ValueError as e:
		logger.error(f"Invalid configuration: {e}")
		raise SystemExit(1)

	if settings.osc.enabled:
		generator.osc(
			receive_port = settings.osc.receive_port,
			send_port = settings.osc.send_port,
			send_host = settings.osc.send_host
		)

	generator.play()


if __name__ == "__main__":
	main()
