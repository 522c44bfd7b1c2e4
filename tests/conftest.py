import dataclasses
import random
import typing

import mido
import pytest

import beatrx.clock
import beatrx.intervals
import beatrx.melody
import beatrx.progressions
import beatrx.sequencer
import beatrx.voices


class FakeMidiOut:

	"""MIDI output stub that records every message sent."""

	def __init__ (self, name: str = "Dummy MIDI") -> None:

		self.name = name
		self.sent: typing.List[mido.Message] = []
		self.closed = False


	def send (self, message: mido.Message) -> None:

		"""Record an outgoing MIDI message."""

		self.sent.append(message)


	def close (self) -> None:

		self.closed = True


	def panic (self) -> None:

		"""No-op panic for the fake device."""

		return None


	def of_type (self, message_type: str) -> typing.List[mido.Message]:

		"""Return the recorded messages of one type."""

		return [message for message in self.sent if message.type == message_type]


class BrokenMidiOut (FakeMidiOut):

	"""A port whose sends always fail, like an unplugged device."""

	def send (self, message: mido.Message) -> None:

		raise OSError("device disconnected")


# Module-level reference so tests can inspect the most recently opened port.
_current_fake_output: typing.Optional[FakeMidiOut] = None


def _fake_get_output_names () -> typing.List[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


def _fake_open_output (name: str, virtual: bool = False) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _current_fake_output
	_current_fake_output = FakeMidiOut(name)
	return _current_fake_output


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use a fake MIDI output for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)


@pytest.fixture
def no_midi_devices (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido so that no output devices exist."""

	monkeypatch.setattr(mido, "get_output_names", lambda: [])


@dataclasses.dataclass
class VoiceCall:

	"""One recorded call on a RecordingVoice."""

	method: str
	notes: typing.List[int]
	time: typing.Optional[float]
	duration: typing.Optional[float] = None
	velocity: typing.Optional[int] = None


class RecordingVoice:

	"""Voice that records calls instead of producing MIDI."""

	def __init__ (self, name: str, note: int = 0, log: typing.Optional[typing.List[typing.Tuple[str, VoiceCall]]] = None) -> None:

		self.name = name
		self.note = note
		self.calls: typing.List[VoiceCall] = []
		self.log = log


	def _record (self, call: VoiceCall) -> None:

		self.calls.append(call)

		if self.log is not None:
			self.log.append((self.name, call))


	def attack (self, notes: typing.Any, time: float, velocity: typing.Optional[int] = None) -> None:
		self._record(VoiceCall("attack", _notes(notes), time, velocity=velocity))


	def release (self, notes: typing.Any, time: float) -> None:
		self._record(VoiceCall("release", _notes(notes), time))


	def attack_release (self, notes: typing.Any, duration: float, time: float, velocity: typing.Optional[int] = None) -> None:
		self._record(VoiceCall("attack_release", _notes(notes), time, duration, velocity))


	def release_all (self, time: typing.Optional[float] = None) -> None:
		self._record(VoiceCall("release_all", [], time))


def _notes (notes: typing.Any) -> typing.List[int]:

	if isinstance(notes, int):
		return [notes]

	return list(notes)


class RecordingEngine:

	"""Engine stand-in whose voices record every trigger."""

	def __init__ (self, unlock_result: bool = True) -> None:

		self.unlock_result = unlock_result
		self.unlock_calls = 0
		self.flushed: typing.List[float] = []
		self.cancel_calls = 0
		self.release_calls = 0
		self.palette = beatrx.voices.get_palette(beatrx.voices.DEFAULT_PALETTE)
		self.palette_changes: typing.List[str] = []
		self.volume_db = 0.0
		self.muted = False
		self.log: typing.List[typing.Tuple[str, VoiceCall]] = []
		self.voices = self._build_voices()


	def _build_voices (self) -> beatrx.voices.VoiceSet:

		return beatrx.voices.VoiceSet(
			lead = RecordingVoice("lead", log = self.log),
			harmony = RecordingVoice("harmony", log = self.log),
			bass = RecordingVoice("bass", log = self.log),
			drums = {
				"kick": RecordingVoice("kick", 36, log = self.log),  # type: ignore[dict-item]
				"snare": RecordingVoice("snare", 38, log = self.log),  # type: ignore[dict-item]
				"hihat": RecordingVoice("hihat", 42, log = self.log),  # type: ignore[dict-item]
			}
		)


	def unlock (self) -> bool:
		self.unlock_calls += 1
		return self.unlock_result


	def flush (self, now: float) -> int:
		self.flushed.append(now)
		return 0


	def cancel_pending (self) -> int:
		self.cancel_calls += 1
		return 0


	def release_all (self) -> None:
		self.release_calls += 1


	def set_palette (self, name: str) -> None:
		self.palette = beatrx.voices.get_palette(name)
		self.palette_changes.append(name)
		self.voices = self._build_voices()


	def set_volume (self, db: float) -> None:
		self.volume_db = db


	def set_muted (self, muted: bool) -> None:
		self.muted = muted


	def close (self) -> None:
		return None


	def calls (self, role: str) -> typing.List[VoiceCall]:

		"""Return the recorded calls for a role (``"lead"``, ``"kick"``, ...)."""

		if role in self.voices.drums:
			return self.voices.drums[role].calls  # type: ignore[attr-defined]

		return getattr(self.voices, role).calls  # type: ignore[no-any-return]


@pytest.fixture
def recording_engine () -> RecordingEngine:

	return RecordingEngine()


@pytest.fixture
def manual_clock () -> beatrx.clock.ManualClock:

	return beatrx.clock.ManualClock(bpm=120)


def make_state (key: str = "C", mode: str = "major", seed: int = 1, **kwargs: typing.Any) -> beatrx.sequencer.SequencerState:

	"""Build a sequencer state with a resolved progression and loop melody."""

	k = beatrx.intervals.Key.from_name(key, mode)
	scale = beatrx.intervals.scale_of(k)
	progression = beatrx.progressions.build_progression(k)
	melody = beatrx.melody.build_loop_melody(scale, progression, random.Random(seed))

	options: typing.Dict[str, typing.Any] = {"progression": progression, "melody": tuple(melody)}
	options.update(kwargs)

	return beatrx.sequencer.SequencerState(key=k, scale=scale, **options)


@pytest.fixture
def state_factory () -> typing.Callable[..., beatrx.sequencer.SequencerState]:

	"""Return ``make_state`` for tests that need a custom snapshot."""

	return make_state


@pytest.fixture
def c_major_state () -> beatrx.sequencer.SequencerState:

	return make_state()
