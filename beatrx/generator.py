"""The control layer.

`Generator` is what a user interface talks to. It owns the musical state
(key, progression, melody, grid and the playback options), regenerates
whatever a change invalidates, and hands the sequencer a fresh snapshot
after every operation.

Every setter is synchronous. Bad input (an unsupported key, an unknown
palette, a pattern index out of range) raises ``ValueError`` and leaves the
previous configuration playing.

Example:
	```python
	import beatrx
	import beatrx.clock
	import beatrx.engine

	generator = beatrx.Generator(
		engine = beatrx.engine.MidiEngine(),
		clock = beatrx.clock.TransportClock(),
		key = "A",
		mode = "natural_minor",
		seed = 7,
	)
	generator.play()
	```
"""

import asyncio
import dataclasses
import logging
import math
import random
import signal
import typing

import beatrx.clock
import beatrx.drums
import beatrx.engine
import beatrx.intervals
import beatrx.melody
import beatrx.osc
import beatrx.progressions
import beatrx.sequencer
import beatrx.voices


logger = logging.getLogger(__name__)


MIN_BPM = 60.0
MAX_BPM = 240.0


class Generator:

	"""
	Owns the generator state and applies every control operation.
	"""

	def __init__ (
		self,
		engine: beatrx.engine.MidiEngine,
		clock: beatrx.clock.Clock,
		key: str = "C",
		mode: str = "major",
		bpm: float = 120.0,
		playback_mode: str = beatrx.sequencer.PLAYBACK_LOOP,
		palette: typing.Optional[str] = None,
		drum_pattern: int = 0,
		arpeggiate: bool = False,
		progression: str = beatrx.progressions.DEFAULT_VARIANT,
		seed: typing.Optional[int] = None,
		octave_range: typing.Tuple[int, int] = beatrx.melody.DEFAULT_OCTAVE_RANGE
	) -> None:

		"""Build the first progression and melody and an idle sequencer.

		Parameters:
			engine: MIDI engine the voices play through.
			clock: Clock driving the sequencer.
			key: Root note name (one of C, G, D, A, E, F).
			mode: ``"major"``, ``"natural_minor"`` or ``"harmonic_minor"``.
			bpm: Tempo, clamped to 60-240.
			playback_mode: ``"loop"`` or ``"continuous"``.
			palette: Instrument palette name (the engine's current one if omitted).
			drum_pattern: Index into the drum palette.
			arpeggiate: Play chords as forward arpeggios.
			progression: Progression table variant, ``"simple"`` or ``"extended"``.
			seed: Seed for repeatable melodies and key choices.
			octave_range: Inclusive melody octave range.

		Raises:
			ValueError: If any option is invalid.
		"""

		self.engine = engine
		self.clock = clock
		self.seed = seed
		self._progression_variant = progression
		self._osc_server: typing.Optional[beatrx.osc.OscServer] = None

		# Derive child RNGs from the master seed so each concern gets an
		# independent, deterministic stream.
		if seed is not None:
			master = random.Random(seed)
			self.melody_rng = random.Random(master.randint(0, 2 ** 63))
			self.key_rng = random.Random(master.randint(0, 2 ** 63))
			self.live_rng = random.Random(master.randint(0, 2 ** 63))
		else:
			self.melody_rng = random.Random()
			self.key_rng = random.Random()
			self.live_rng = random.Random()

		if palette is None:
			palette = engine.palette.name
		elif palette != engine.palette.name:
			engine.set_palette(palette)

		new_key = beatrx.intervals.Key.from_name(key, mode)

		state = beatrx.sequencer.SequencerState.for_key(
			new_key,
			playback_mode = beatrx.sequencer.normalize_playback_mode(playback_mode),
			palette = palette,
			drum_pattern = drum_pattern,
			arpeggiate = arpeggiate,
			bpm = self._clamp_bpm(bpm),
			octave_range = octave_range
		)

		self.clock.bpm = state.bpm

		self.sequencer = beatrx.sequencer.StepSequencer(
			clock = clock,
			engine = engine,
			state = self._regenerate(state),
			rng = self.live_rng
		)

		self.events = self.sequencer.events


	@property
	def state (self) -> beatrx.sequencer.SequencerState:

		return self.sequencer.state


	@property
	def running (self) -> bool:

		return self.sequencer.running


	@property
	def progression_variant (self) -> str:

		return self._progression_variant


	# Transport

	def start (self) -> bool:

		"""Start playback; returns False if the sound engine could not be unlocked."""

		return self.sequencer.start()


	def stop (self) -> None:

		self.sequencer.stop()


	def toggle_playback (self) -> bool:

		"""Start if stopped, stop if running; return whether playback is now running."""

		if self.running:
			self.stop()
		else:
			self.start()

		return self.running


	def set_tempo (self, bpm: float) -> float:

		"""
		Change tempo without rebuilding the step callback.

		Values outside 60-240 BPM are clamped. Returns the tempo applied.
		"""

		applied = self._clamp_bpm(bpm)
		self._apply(dataclasses.replace(self.state, bpm=applied))

		return applied


	# Harmony

	def set_key (self, root: str, mode: typing.Optional[str] = None) -> beatrx.intervals.Key:

		"""
		Change key and regenerate the progression and melody.

		Raises:
			ValueError: If the key is unsupported. The current key keeps playing.
		"""

		mode = self.state.key.mode if mode is None else mode

		try:
			key = beatrx.intervals.Key.from_name(root, mode)
			state = beatrx.sequencer.SequencerState.for_key(key, **self._options())
		except ValueError as e:
			logger.warning(f"Rejected key {root} {mode}: {e}")
			raise

		self._apply(self._regenerate(state))
		logger.info(f"Key: {key.name()}")

		return key


	def set_root (self, root: str) -> beatrx.intervals.Key:

		return self.set_key(root, self.state.key.mode)


	def set_scale_mode (self, mode: str) -> beatrx.intervals.Key:

		return self.set_key(self.state.key.root_name, mode)


	def randomize (self, mode: typing.Optional[str] = None) -> beatrx.intervals.Key:

		"""Pick a random supported key (and mode, unless given) and regenerate."""

		if mode is not None:
			mode = beatrx.intervals.normalize_mode(mode)

		key = beatrx.progressions.random_key(self.key_rng, mode=mode)

		return self.set_key(key.root_name, key.mode)


	def set_progression_variant (self, variant: str) -> None:

		"""Switch between the ``"simple"`` and ``"extended"`` progression tables."""

		if variant not in beatrx.progressions.PROGRESSION_TABLES:
			logger.warning(f"Rejected progression variant {variant!r}")
			raise ValueError(f"Unknown progression variant {variant!r}. Available: {beatrx.progressions.progression_variants()}")

		self._progression_variant = variant
		self._apply(self._regenerate(self.state))


	# Options

	def set_playback_mode (self, mode: str) -> None:

		"""Select ``"loop"`` (fixed melody) or ``"continuous"`` (fresh note every step)."""

		canonical = beatrx.sequencer.normalize_playback_mode(mode)

		if canonical == beatrx.sequencer.PLAYBACK_LOOP and not self.state.melody:
			self._apply(self._regenerate(dataclasses.replace(self.state, playback_mode=canonical)))
		else:
			self._apply(dataclasses.replace(self.state, playback_mode=canonical))


	def set_palette (self, name: str) -> None:

		try:
			beatrx.voices.get_palette(name)
		except ValueError as e:
			logger.warning(f"Rejected palette: {e}")
			raise

		self._apply(dataclasses.replace(self.state, palette=name))


	def set_drum_pattern (self, index: int) -> None:

		try:
			beatrx.drums.get_pattern(index)
		except ValueError as e:
			logger.warning(f"Rejected drum pattern: {e}")
			raise

		self._apply(dataclasses.replace(self.state, drum_pattern=index))


	def next_drum_pattern (self) -> int:

		"""Cycle to the next drum pattern and return its index."""

		index = beatrx.drums.next_pattern_index(self.state.drum_pattern)
		self.set_drum_pattern(index)

		return index


	def set_arpeggiate (self, enabled: bool) -> None:

		self._apply(dataclasses.replace(self.state, arpeggiate=bool(enabled)))


	def toggle_arpeggiate (self) -> bool:

		self.set_arpeggiate(not self.state.arpeggiate)

		return self.state.arpeggiate


	# Melody

	def regenerate_melody (self) -> typing.Tuple[typing.Optional[int], ...]:

		"""Draw a whole new loop melody over the current progression."""

		state = self.state
		melody = beatrx.melody.build_loop_melody(state.scale, state.progression, self.melody_rng, state.octave_range)
		self._apply(dataclasses.replace(state, melody=tuple(melody)))

		return self.state.melody


	def evolve_melody (self, count: typing.Optional[int] = None) -> typing.List[int]:

		"""Redraw 2-3 positions of the loop melody; return the positions changed."""

		state = self.state
		melody = list(state.melody)
		changed = beatrx.melody.evolve_melody(melody, state.scale, state.progression, self.melody_rng, state.octave_range, count)

		if changed:
			self._apply(dataclasses.replace(state, melody=tuple(melody)))

		return changed


	# Manual grid

	def toggle_cell (self, row: int, step: int) -> bool:

		"""
		Flip one manual grid cell and return its new value.

		Raises:
			IndexError: If the cell is outside the 8x16 grid.
		"""

		grid = self.state.grid.toggle(row, step)
		self._apply(dataclasses.replace(self.state, grid=grid))

		return grid.is_active(row, step)


	def clear_grid (self) -> None:

		self._apply(dataclasses.replace(self.state, grid=self.state.grid.clear()))


	# Output

	def set_volume (self, db: float) -> None:

		self.engine.set_volume(db)


	def set_muted (self, muted: bool) -> None:

		self.engine.set_muted(muted)


	def osc (self, receive_port: int = 9000, send_port: int = 9001, send_host: str = "127.0.0.1") -> None:

		"""
		Enable bi-directional Open Sound Control, started by `play()`.

		Parameters:
			receive_port: Port to listen for control messages on (default 9000).
			send_port: Port to send step and chord updates to (default 9001).
			send_host: Host to send updates to (default "127.0.0.1").
		"""

		self._osc_server = beatrx.osc.OscServer(
			self,
			receive_port = receive_port,
			send_port = send_port,
			send_host = send_host
		)


	def play (self) -> None:

		"""
		Run the generator in real time until interrupted (Ctrl+C).
		"""

		try:
			asyncio.run(self._run())

		except KeyboardInterrupt:
			pass


	async def _run (self) -> None:

		stop_event = asyncio.Event()
		loop = asyncio.get_running_loop()

		def _request_stop () -> None:
			stop_event.set()

		for sig in (signal.SIGINT, signal.SIGTERM):
			loop.add_signal_handler(sig, _request_stop)

		if self._osc_server is not None:
			await self._osc_server.start()

		if not self.start():
			logger.error("Could not start playback")
			stop_event.set()
		else:
			logger.info("Playing. Press Ctrl+C to stop.")

		try:
			await stop_event.wait()
		finally:
			self.stop()

			if self._osc_server is not None:
				await self._osc_server.stop()

			self.engine.close()


	def _clamp_bpm (self, bpm: float) -> float:

		bpm = float(bpm)

		if not math.isfinite(bpm):
			logger.warning(f"Rejected tempo {bpm!r}")
			raise ValueError(f"Tempo must be a finite number, got {bpm!r}")

		if bpm < MIN_BPM or bpm > MAX_BPM:
			clamped = max(MIN_BPM, min(MAX_BPM, bpm))
			logger.warning(f"Tempo {bpm:g} outside {MIN_BPM:g}-{MAX_BPM:g} BPM, using {clamped:g}")
			return clamped

		return bpm


	def _options (self) -> typing.Dict[str, typing.Any]:

		"""State fields that survive a key change."""

		state = self.state

		return {
			"grid": state.grid,
			"playback_mode": state.playback_mode,
			"palette": state.palette,
			"drum_pattern": state.drum_pattern,
			"arpeggiate": state.arpeggiate,
			"bpm": state.bpm,
			"octave_range": state.octave_range,
		}


	def _regenerate (self, state: beatrx.sequencer.SequencerState) -> beatrx.sequencer.SequencerState:

		"""Return ``state`` with a fresh progression and loop melody for its key."""

		progression = beatrx.progressions.build_progression(state.key, self._progression_variant)
		melody = beatrx.melody.build_loop_melody(state.scale, progression, self.melody_rng, state.octave_range)

		return dataclasses.replace(state, progression=progression, melody=tuple(melody))


	def _apply (self, state: beatrx.sequencer.SequencerState) -> None:

		self.sequencer.reconfigure(state)
