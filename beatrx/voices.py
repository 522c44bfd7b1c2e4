"""Voices: the note-triggering side of the sound engine.

A voice turns ``attack`` / ``release`` / ``attack_release`` calls into timed
MIDI events in a shared `EventQueue`; `beatrx.engine.MidiEngine` drains the
queue to the output port as transport time passes.

There are three variants and they all honour the same `Voice` protocol, so
callers never need to know which one they hold:

- `PolyphonicVoice`: every requested note sounds, chords included.
- `MonophonicVoice`: one note at a time. A new attack releases whatever is
  still sounding first, and a chord plays only its first note.
- `DrumVoice`: a polyphonic voice bound to one fixed General MIDI drum note.

Times are seconds on the transport timeline, the same scale as
``Clock.current_time()``.
"""

import dataclasses
import heapq
import itertools
import logging
import typing

import beatrx.constants
import beatrx.constants.gm_drums
import beatrx.constants.velocity


logger = logging.getLogger(__name__)


# Events at or before this time are sent on the next flush.
IMMEDIATE = float("-inf")

TIME_EPSILON = 1e-6

NoteArg = typing.Union[int, typing.Sequence[int]]


@dataclasses.dataclass(order=True)
class MidiEvent:

	"""
	A MIDI message scheduled at a transport time.

	Events at the same time sort note-offs first, then by insertion order,
	so a note released and re-struck on one step is not cut short.
	"""

	time: float
	priority: int
	order: int
	message_type: str = dataclasses.field(compare=False)
	channel: int = dataclasses.field(compare=False)
	note: int = dataclasses.field(compare=False, default=0)
	velocity: int = dataclasses.field(compare=False, default=0)
	control: int = dataclasses.field(compare=False, default=0)
	value: int = dataclasses.field(compare=False, default=0)
	cancelled: bool = dataclasses.field(compare=False, default=False)


class EventQueue:

	"""
	Time-ordered heap of pending MIDI events.
	"""

	def __init__ (self) -> None:

		self._heap: typing.List[MidiEvent] = []
		self._counter = itertools.count()


	def __len__ (self) -> int:

		return sum(1 for event in self._heap if not event.cancelled)


	def push (
		self,
		time: float,
		message_type: str,
		channel: int,
		note: int = 0,
		velocity: int = 0,
		control: int = 0,
		value: int = 0
	) -> MidiEvent:

		"""Schedule a message and return the event, which may later be cancelled."""

		priority = 0 if message_type == "note_off" else 1

		event = MidiEvent(
			time = time,
			priority = priority,
			order = next(self._counter),
			message_type = message_type,
			channel = channel,
			note = note,
			velocity = velocity,
			control = control,
			value = value
		)

		heapq.heappush(self._heap, event)

		return event


	def pop_due (self, now: float) -> typing.List[MidiEvent]:

		"""Remove and return every live event due at or before ``now``, in order."""

		due: typing.List[MidiEvent] = []

		while self._heap and self._heap[0].time <= now + TIME_EPSILON:

			event = heapq.heappop(self._heap)

			if not event.cancelled:
				due.append(event)

		return due


	def pending (self) -> typing.List[MidiEvent]:

		"""Return the live events still queued, in dispatch order."""

		return sorted(event for event in self._heap if not event.cancelled)


	def clear (self) -> int:

		"""Drop every queued event and return how many live events were dropped."""

		dropped = len(self)
		self._heap = []

		return dropped


@typing.runtime_checkable
class Voice (typing.Protocol):

	"""
	The capability set every voice offers.
	"""

	name: str


	def attack (self, notes: NoteArg, time: float, velocity: typing.Optional[int] = None) -> None:
		...


	def release (self, notes: NoteArg, time: float) -> None:
		...


	def attack_release (self, notes: NoteArg, duration: float, time: float, velocity: typing.Optional[int] = None) -> None:
		...


	def release_all (self, time: typing.Optional[float] = None) -> None:
		...


def _as_notes (notes: NoteArg) -> typing.List[int]:

	if isinstance(notes, int):
		return [notes]

	return list(notes)


class _MidiVoice:

	"""
	Shared plumbing: writes note events for one MIDI channel into a queue.
	"""

	def __init__ (
		self,
		queue: EventQueue,
		channel: int,
		name: str = "voice",
		velocity: int = beatrx.constants.velocity.DEFAULT_VELOCITY
	) -> None:

		if not 0 <= channel <= 15:
			raise ValueError(f"MIDI channel {channel} out of range 0-15")

		self.queue = queue
		self.channel = channel
		self.name = name
		self.velocity = velocity


	def __repr__ (self) -> str:

		return f"{type(self).__name__}(name={self.name!r}, channel={self.channel})"


	def _velocity (self, velocity: typing.Optional[int]) -> int:

		value = self.velocity if velocity is None else velocity

		return max(beatrx.constants.velocity.MIN_VELOCITY, min(beatrx.constants.velocity.MAX_VELOCITY, value))


	def _note_on (self, note: int, time: float, velocity: int) -> MidiEvent:

		return self.queue.push(time, "note_on", self.channel, note=note, velocity=velocity)


	def _note_off (self, note: int, time: float) -> MidiEvent:

		return self.queue.push(time, "note_off", self.channel, note=note, velocity=0)


class PolyphonicVoice (_MidiVoice):

	"""
	Plays every note it is given; sustained notes are tracked until released.
	"""

	def __init__ (self, *args: typing.Any, **kwargs: typing.Any) -> None:

		super().__init__(*args, **kwargs)

		self._held: typing.Set[int] = set()


	@property
	def held (self) -> typing.FrozenSet[int]:

		"""Notes attacked without a matching release."""

		return frozenset(self._held)


	def attack (self, notes: NoteArg, time: float, velocity: typing.Optional[int] = None) -> None:

		vel = self._velocity(velocity)

		for note in _as_notes(notes):
			self._note_on(note, time, vel)
			self._held.add(note)


	def release (self, notes: NoteArg, time: float) -> None:

		for note in _as_notes(notes):
			self._note_off(note, time)
			self._held.discard(note)


	def attack_release (self, notes: NoteArg, duration: float, time: float, velocity: typing.Optional[int] = None) -> None:

		vel = self._velocity(velocity)

		for note in _as_notes(notes):
			self._note_on(note, time, vel)
			self._note_off(note, time + duration)


	def release_all (self, time: typing.Optional[float] = None) -> None:

		"""Release every sustained note (immediately when ``time`` is None)."""

		when = IMMEDIATE if time is None else time

		for note in sorted(self._held):
			self._note_off(note, when)

		self._held.clear()


class MonophonicVoice (_MidiVoice):

	"""
	One note at a time.

	Attacking while a note sounds releases it at the new attack time, and a
	pending scheduled release of that note is withdrawn so it cannot cut the
	new note short.
	"""

	def __init__ (self, *args: typing.Any, **kwargs: typing.Any) -> None:

		super().__init__(*args, **kwargs)

		self._last: typing.Optional[int] = None
		self._pending_release: typing.Optional[MidiEvent] = None


	@property
	def sounding (self) -> typing.Optional[int]:

		return self._last


	def _release_last (self, time: float) -> None:

		if self._last is None:
			return

		if self._pending_release is not None and not self._pending_release.cancelled:
			if self._pending_release.time <= time:
				self._pending_release = None
				self._last = None
				return
			self._pending_release.cancelled = True

		self._note_off(self._last, time)
		self._pending_release = None
		self._last = None


	def attack (self, notes: NoteArg, time: float, velocity: typing.Optional[int] = None) -> None:

		"""Attack the first of ``notes``, releasing the previous note first."""

		requested = _as_notes(notes)

		if not requested:
			return

		self._release_last(time)
		self._note_on(requested[0], time, self._velocity(velocity))
		self._last = requested[0]


	def release (self, notes: NoteArg, time: float) -> None:

		if self._last is not None and self._last in _as_notes(notes):
			self._release_last(time)


	def attack_release (self, notes: NoteArg, duration: float, time: float, velocity: typing.Optional[int] = None) -> None:

		self.attack(notes, time, velocity)

		if self._last is not None:
			self._pending_release = self._note_off(self._last, time + duration)


	def release_all (self, time: typing.Optional[float] = None) -> None:

		self._release_last(IMMEDIATE if time is None else time)


class DrumVoice (PolyphonicVoice):

	"""
	A polyphonic voice bound to one General MIDI drum note.

	Whatever notes a caller passes, the voice strikes its own drum note.
	"""

	def __init__ (
		self,
		queue: EventQueue,
		note: int,
		channel: int = beatrx.constants.DRUM_CHANNEL,
		name: str = "drum",
		velocity: int = beatrx.constants.velocity.DEFAULT_VELOCITY
	) -> None:

		super().__init__(queue, channel, name=name, velocity=velocity)

		self.note = note


	def attack (self, notes: NoteArg, time: float, velocity: typing.Optional[int] = None) -> None:

		super().attack(self.note, time, velocity)


	def release (self, notes: NoteArg, time: float) -> None:

		super().release(self.note, time)


	def attack_release (self, notes: NoteArg, duration: float, time: float, velocity: typing.Optional[int] = None) -> None:

		super().attack_release(self.note, duration, time, velocity)


VOICE_KINDS: typing.Dict[str, typing.Type[_MidiVoice]] = {
	"poly": PolyphonicVoice,
	"mono": MonophonicVoice,
}


@dataclasses.dataclass(frozen=True)
class VoiceSpec:

	"""Voice kind and General MIDI program (0-127) for one role."""

	kind: str
	program: int


	def __post_init__ (self) -> None:

		if self.kind not in VOICE_KINDS:
			raise ValueError(f"Unknown voice kind {self.kind!r}. Available: {sorted(VOICE_KINDS)}")

		if not 0 <= self.program <= 127:
			raise ValueError(f"GM program {self.program} out of range 0-127")


@dataclasses.dataclass(frozen=True)
class Palette:

	"""
	An instrument palette: how the lead, harmony and bass roles sound.
	"""

	name: str
	lead: VoiceSpec
	harmony: VoiceSpec
	bass: VoiceSpec


# Programs are zero-based General MIDI numbers.
PALETTES: typing.Dict[str, Palette] = {
	"keygen": Palette(
		name = "keygen",
		lead = VoiceSpec("mono", 81),       # Lead 2 (sawtooth)
		harmony = VoiceSpec("poly", 81),
		bass = VoiceSpec("mono", 38),       # Synth Bass 1
	),
	"chiptune": Palette(
		name = "chiptune",
		lead = VoiceSpec("mono", 80),       # Lead 1 (square)
		harmony = VoiceSpec("poly", 80),
		bass = VoiceSpec("mono", 39),       # Synth Bass 2
	),
	"soft": Palette(
		name = "soft",
		lead = VoiceSpec("poly", 73),       # Flute
		harmony = VoiceSpec("poly", 88),    # Pad 1 (new age)
		bass = VoiceSpec("mono", 32),       # Acoustic Bass
	),
	"organ": Palette(
		name = "organ",
		lead = VoiceSpec("poly", 16),       # Drawbar Organ
		harmony = VoiceSpec("poly", 16),
		bass = VoiceSpec("mono", 33),       # Electric Bass (finger)
	),
}

DEFAULT_PALETTE = "keygen"


def palette_names () -> typing.List[str]:

	return list(PALETTES)


def get_palette (name: str) -> Palette:

	"""
	Look up a palette by name.

	Raises:
		ValueError: If the palette does not exist.
	"""

	if name not in PALETTES:
		raise ValueError(f"Unknown palette {name!r}. Available: {palette_names()}")

	return PALETTES[name]


DRUM_VELOCITIES: typing.Dict[str, int] = {
	"kick": beatrx.constants.velocity.KICK_VELOCITY,
	"snare": beatrx.constants.velocity.SNARE_VELOCITY,
	"hihat": beatrx.constants.velocity.HIHAT_VELOCITY,
}


@dataclasses.dataclass
class VoiceSet:

	"""
	The voices the sequencer triggers, one per role.
	"""

	lead: Voice
	harmony: Voice
	bass: Voice
	drums: typing.Dict[str, DrumVoice]


	def all (self) -> typing.List[Voice]:

		return [self.lead, self.harmony, self.bass, *self.drums.values()]


def build_voices (queue: EventQueue, palette: Palette) -> VoiceSet:

	"""
	Build the voices for a palette, all writing into ``queue``.

	Example:
		```python
		voices = build_voices(EventQueue(), get_palette("keygen"))
		voices.lead.attack_release(72, 0.25, time=0.0)
		```
	"""

	def _make (spec: VoiceSpec, channel: int, name: str, velocity: int) -> Voice:
		return VOICE_KINDS[spec.kind](queue, channel, name=name, velocity=velocity)

	drums = {
		part: DrumVoice(queue, note, name=part, velocity=DRUM_VELOCITIES[part])
		for part, note in beatrx.constants.gm_drums.DRUM_PARTS.items()
	}

	return VoiceSet(
		lead = _make(palette.lead, beatrx.constants.LEAD_CHANNEL, "lead", beatrx.constants.velocity.DEFAULT_VELOCITY),
		harmony = _make(palette.harmony, beatrx.constants.HARMONY_CHANNEL, "harmony", beatrx.constants.velocity.DEFAULT_CHORD_VELOCITY),
		bass = _make(palette.bass, beatrx.constants.BASS_CHANNEL, "bass", beatrx.constants.velocity.DEFAULT_BASS_VELOCITY),
		drums = drums
	)
