"""The step sequencer.

`StepSequencer` turns a `SequencerState` snapshot into voice triggers, one
sixteenth-note step at a time. The state is a frozen dataclass: the control
layer swaps in a new snapshot through `StepSequencer.reconfigure` and the
clock callback only ever reads the snapshot it was registered with.

Reconfiguration policy:

- Tempo only: the clock tempo is updated and the callback is left alone.
- Palette: the engine rebuilds its voices, then the callback is re-registered.
- Any other field the tick reads: the callback is cancelled and registered
  again over the new snapshot. Playback keeps running and the step index
  carries on.

Events emitted on `StepSequencer.events`:

- ``"step"`` (step index) at the top of every tick
- ``"chord"`` (`Chord`) when the sounding chord changes
- ``"start"`` / ``"stop"``
- ``"reconfigure"`` (set of changed field names)
"""

import dataclasses
import logging
import math
import random
import typing

import beatrx.chords
import beatrx.clock
import beatrx.constants
import beatrx.constants.durations
import beatrx.constants.velocity
import beatrx.drums
import beatrx.engine
import beatrx.event_emitter
import beatrx.grid
import beatrx.intervals
import beatrx.melody
import beatrx.progressions
import beatrx.voices


logger = logging.getLogger(__name__)


PLAYBACK_LOOP = "loop"
PLAYBACK_CONTINUOUS = "continuous"

PLAYBACK_MODES: typing.Tuple[str, ...] = (PLAYBACK_LOOP, PLAYBACK_CONTINUOUS)

PLAYBACK_ALIASES: typing.Dict[str, str] = {
	"song": PLAYBACK_CONTINUOUS,
}

BASS_OCTAVE = 2

BASS_EVERY = 4
CHORD_EVERY = 8

# Slack for float error when comparing arpeggio note times to the transport.
LATE_TOLERANCE = 1e-9

# Fields that change nothing the tick reads.
_NON_TICK_FIELDS = frozenset({"bpm"})


def normalize_playback_mode (mode: str) -> str:

	"""Resolve ``"song"`` to ``"continuous"`` and validate the mode name."""

	canonical = PLAYBACK_ALIASES.get(mode, mode)

	if canonical not in PLAYBACK_MODES:
		raise ValueError(f"Unknown playback mode {mode!r}. Available: {list(PLAYBACK_MODES)}")

	return canonical


@dataclasses.dataclass(frozen=True)
class SequencerState:

	"""
	Everything a tick reads, as one immutable snapshot.
	"""

	key: beatrx.intervals.Key
	scale: beatrx.intervals.Scale
	progression: typing.Tuple[beatrx.chords.Chord, ...] = ()
	melody: typing.Tuple[typing.Optional[int], ...] = ()
	grid: beatrx.grid.ManualGrid = dataclasses.field(default_factory=beatrx.grid.ManualGrid.empty)
	playback_mode: str = PLAYBACK_LOOP
	palette: str = beatrx.voices.DEFAULT_PALETTE
	drum_pattern: int = 0
	arpeggiate: bool = False
	bpm: float = 120.0
	octave_range: typing.Tuple[int, int] = beatrx.melody.DEFAULT_OCTAVE_RANGE


	def __post_init__ (self) -> None:

		if self.playback_mode not in PLAYBACK_MODES:
			raise ValueError(f"Unknown playback mode {self.playback_mode!r}")

		if not math.isfinite(self.bpm) or self.bpm <= 0:
			raise ValueError(f"BPM must be a positive number, got {self.bpm!r}")

		if self.octave_range[0] > self.octave_range[1]:
			raise ValueError(f"Invalid octave range {self.octave_range}")

		beatrx.voices.get_palette(self.palette)
		beatrx.drums.get_pattern(self.drum_pattern)


	@classmethod
	def for_key (cls, key: beatrx.intervals.Key, **kwargs: typing.Any) -> "SequencerState":

		"""Build a state for a key, resolving its scale."""

		return cls(key=key, scale=beatrx.intervals.scale_of(key), **kwargs)


def diff_states (old: SequencerState, new: SequencerState) -> typing.FrozenSet[str]:

	"""Return the names of the fields that differ between two snapshots."""

	return frozenset(
		field.name
		for field in dataclasses.fields(SequencerState)
		if getattr(old, field.name) != getattr(new, field.name)
	)


class StepSequencer:

	"""
	Sixteen-step sequencer driving an engine's voices from a clock.

	Two states: stopped (step pinned at 0, nothing triggers) and running
	(one tick per sixteenth note, step cycling 0-15).
	"""

	def __init__ (
		self,
		clock: beatrx.clock.Clock,
		engine: beatrx.engine.MidiEngine,
		state: SequencerState,
		rng: typing.Optional[random.Random] = None
	) -> None:

		"""
		Parameters:
			clock: Clock that drives the ticks. Its ``on_pulse`` hook is set to
				flush the engine.
			engine: Sound engine owning the voices.
			state: Initial snapshot.
			rng: Random source for notes drawn live in continuous mode.
		"""

		self.clock = clock
		self.engine = engine
		self.rng = rng or random.Random()
		self.events = beatrx.event_emitter.EventEmitter()

		self.step = 0
		self.running = False

		self._state = state
		self._handle: typing.Optional[int] = None
		self._last_chord: typing.Optional[beatrx.chords.Chord] = None

		self.clock.on_pulse = self.engine.flush


	@property
	def state (self) -> SequencerState:

		return self._state


	def start (self) -> bool:

		"""
		Start playback from step 0.

		The engine is unlocked first; if that fails playback stays stopped
		and False is returned.
		"""

		if self.running:
			return True

		if not self.engine.unlock():
			logger.error("Playback not started: sound engine is locked")
			return False

		self.step = 0
		self._last_chord = None
		self.clock.bpm = self._state.bpm
		self._subscribe()
		self.clock.start()
		self.running = True

		logger.info(f"Sequencer started in {self._state.key.name()} at {self._state.bpm:.0f} BPM")
		self.events.emit_sync("start")

		return True


	def stop (self) -> None:

		"""
		Stop playback: halt the clock, drop queued notes, release sustained
		notes and reset the step to 0.
		"""

		if not self.running:
			return

		self._unsubscribe()
		self.clock.stop()
		self.engine.cancel_pending()
		self.engine.release_all()

		self.running = False
		self.step = 0
		self._last_chord = None

		logger.info("Sequencer stopped")
		self.events.emit_sync("stop")


	def reconfigure (self, new_state: SequencerState) -> typing.FrozenSet[str]:

		"""
		Swap in a new snapshot and apply the reconfiguration policy.

		Returns:
			The names of the fields that changed (empty when nothing did).
		"""

		changed = diff_states(self._state, new_state)

		if not changed:
			return changed

		old_state = self._state
		self._state = new_state

		if "bpm" in changed:
			self.clock.bpm = new_state.bpm

		if "palette" in changed and new_state.palette != self.engine.palette.name:
			try:
				self.engine.set_palette(new_state.palette)
			except ValueError:
				self._state = old_state
				raise

		if self.running and changed - _NON_TICK_FIELDS:
			self._resubscribe()

		logger.debug(f"Reconfigured: {sorted(changed)}")
		self.events.emit_sync("reconfigure", changed)

		return changed


	def _subscribe (self) -> None:

		state = self._state
		voices = self.engine.voices

		def on_step (time: float) -> None:
			self._tick(time, state, voices)

		self._handle = self.clock.schedule_recurring(on_step, beatrx.constants.durations.SIXTEENTH)


	def _unsubscribe (self) -> None:

		if self._handle is not None:
			self.clock.cancel(self._handle)
			self._handle = None


	def _resubscribe (self) -> None:

		self._unsubscribe()
		self._subscribe()


	def _seconds (self, beats: float) -> float:

		return beats * 60.0 / self.clock.bpm


	def _tick (self, time: float, state: SequencerState, voices: beatrx.voices.VoiceSet) -> None:

		"""
		Trigger everything for the current step, in a fixed order:
		step event, chord lookup, melody, bass, chord, manual grid, drums.
		"""

		step = self.step

		self.events.emit_sync("step", step)

		chord = beatrx.progressions.chord_for_step(state.progression, step)

		if chord is None:
			logger.debug(f"Step {step}: empty progression, skipping melody, bass and chord")

		else:
			if chord != self._last_chord:
				self._last_chord = chord
				self.events.emit_sync("chord", chord)

			note = self._melody_note(step, chord, state)

			if note is not None:
				voices.lead.attack_release(
					note,
					self._seconds(beatrx.constants.durations.EIGHTH),
					time,
					beatrx.constants.velocity.DEFAULT_VELOCITY
				)

			if step % BASS_EVERY == 0:
				voices.bass.attack_release(
					chord.bass_note(BASS_OCTAVE),
					self._seconds(beatrx.constants.durations.HALF),
					time,
					beatrx.constants.velocity.DEFAULT_BASS_VELOCITY
				)

			if step % CHORD_EVERY == 0:
				self._trigger_chord(chord, time, state, voices)

		grid_notes = state.grid.notes_at(step)

		if grid_notes:
			voices.harmony.attack_release(
				grid_notes,
				self._seconds(beatrx.constants.durations.EIGHTH),
				time,
				beatrx.constants.velocity.DEFAULT_VELOCITY
			)

		pattern = beatrx.drums.get_pattern(state.drum_pattern)

		for part in pattern.hits_at(step):
			voices.drums[part].attack_release(
				voices.drums[part].note,
				self._seconds(beatrx.constants.durations.EIGHTH),
				time
			)

		self.step = (step + 1) % beatrx.constants.STEPS_PER_BAR


	def _melody_note (self, step: int, chord: beatrx.chords.Chord, state: SequencerState) -> typing.Optional[int]:

		"""Loop mode reads the precomputed melody; continuous mode draws a fresh note."""

		if state.playback_mode == PLAYBACK_CONTINUOUS:
			return beatrx.melody.next_note(state.scale, chord.tones(), state.octave_range, self.rng)

		if not state.melody:
			return None

		return state.melody[step % len(state.melody)]


	def _trigger_chord (
		self,
		chord: beatrx.chords.Chord,
		time: float,
		state: SequencerState,
		voices: beatrx.voices.VoiceSet
	) -> None:

		"""
		Play the chord as a block, or as a forward arpeggio one sixteenth apart.

		Arpeggio notes whose time has already passed on the transport are
		dropped rather than sent late.
		"""

		if not state.arpeggiate:
			voices.harmony.attack_release(
				chord.tones(),
				self._seconds(beatrx.constants.durations.QUARTER),
				time,
				beatrx.constants.velocity.DEFAULT_CHORD_VELOCITY
			)
			return

		delta = beatrx.clock.seconds_per_step(self.clock.bpm)
		now = self.clock.current_time()

		for index, tone in enumerate(chord.tones()):

			note_time = time + index * delta

			if note_time + LATE_TOLERANCE < now:
				logger.debug(f"Dropped late arpeggio note {tone} ({now - note_time:.4f}s late)")
				continue

			voices.harmony.attack_release(
				tone,
				delta,
				note_time,
				beatrx.constants.velocity.DEFAULT_CHORD_VELOCITY
			)
