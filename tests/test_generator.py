import logging
import typing

import pytest

import beatrx.clock
import beatrx.generator
import beatrx.intervals
import beatrx.sequencer

import conftest


@pytest.fixture
def generator (manual_clock: beatrx.clock.ManualClock, recording_engine: conftest.RecordingEngine) -> beatrx.generator.Generator:

	"""A seeded C major generator on a manual clock."""

	return beatrx.generator.Generator(recording_engine, manual_clock, key="C", seed=42)  # type: ignore[arg-type]


def _generator (seed: typing.Optional[int] = 42, **kwargs: typing.Any) -> beatrx.generator.Generator:

	return beatrx.generator.Generator(conftest.RecordingEngine(), beatrx.clock.ManualClock(), seed=seed, **kwargs)  # type: ignore[arg-type]


def test_initial_state (generator: beatrx.generator.Generator) -> None:

	state = generator.state

	assert state.key == beatrx.intervals.Key.from_name("C", "major")
	assert [chord.name() for chord in state.progression] == ["C", "F", "G7", "C"]
	assert len(state.melody) == 16
	assert all(note is not None for note in state.melody)
	assert state.playback_mode == beatrx.sequencer.PLAYBACK_LOOP
	assert not generator.running


def test_same_seed_same_melody () -> None:

	assert _generator(seed=5).state.melody == _generator(seed=5).state.melody


def test_melody_fits_the_chords (generator: beatrx.generator.Generator) -> None:

	state = generator.state

	for step, note in enumerate(state.melody):
		chord = state.progression[step // 4]
		assert note is not None
		assert note % 12 in chord.pitch_classes()
		assert note % 12 in state.scale.pitch_classes


def test_start_and_stop (generator: beatrx.generator.Generator, manual_clock: beatrx.clock.ManualClock) -> None:

	assert generator.start()
	assert generator.running

	manual_clock.advance_steps(3)
	generator.stop()

	assert not generator.running
	assert generator.sequencer.step == 0


def test_toggle_playback (generator: beatrx.generator.Generator) -> None:

	assert generator.toggle_playback()
	assert not generator.toggle_playback()


def test_start_reports_a_locked_engine (manual_clock: beatrx.clock.ManualClock) -> None:

	engine = conftest.RecordingEngine(unlock_result=False)
	generator = beatrx.generator.Generator(engine, manual_clock)  # type: ignore[arg-type]

	assert not generator.start()
	assert not generator.running


def test_set_tempo_clamps (generator: beatrx.generator.Generator, manual_clock: beatrx.clock.ManualClock, caplog: pytest.LogCaptureFixture) -> None:

	assert generator.set_tempo(90) == 90.0
	assert manual_clock.bpm == 90.0

	with caplog.at_level(logging.WARNING):
		assert generator.set_tempo(400) == 240.0

	assert generator.state.bpm == 240.0
	assert "outside" in caplog.text
	assert generator.set_tempo(10) == 60.0


def test_constructor_clamps_tempo () -> None:

	assert _generator(bpm=20).state.bpm == 60.0


def test_non_finite_tempo_is_rejected (generator: beatrx.generator.Generator, manual_clock: beatrx.clock.ManualClock) -> None:

	generator.set_tempo(100)

	for value in (float("nan"), float("inf")):
		with pytest.raises(ValueError):
			generator.set_tempo(value)

	assert generator.state.bpm == 100.0
	assert manual_clock.bpm == 100.0


def test_set_key_regenerates (generator: beatrx.generator.Generator) -> None:

	key = generator.set_key("A", "natural_minor")
	state = generator.state

	assert key.name() == "A minor"
	assert [chord.name() for chord in state.progression] == ["Am", "Dm", "E7", "Am"]
	assert all(note is not None and note % 12 in state.scale.pitch_classes for note in state.melody)


def test_unsupported_key_keeps_playing_the_old_one (generator: beatrx.generator.Generator, caplog: pytest.LogCaptureFixture) -> None:

	before = generator.state

	with caplog.at_level(logging.WARNING):
		with pytest.raises(ValueError):
			generator.set_key("B")

	with pytest.raises(beatrx.intervals.UnsupportedKey):
		generator.set_key("C", "dorian")

	assert generator.state is before
	assert "Rejected key" in caplog.text


def test_set_root_and_mode_keep_the_other_half (generator: beatrx.generator.Generator) -> None:

	generator.set_scale_mode("harmonic_minor")
	assert generator.state.key.name() == "C harmonic minor"

	generator.set_root("E")
	assert generator.state.key.name() == "E harmonic minor"


def test_key_change_keeps_the_options (generator: beatrx.generator.Generator) -> None:

	generator.toggle_cell(2, 5)
	generator.set_drum_pattern(3)
	generator.set_tempo(100)

	generator.set_key("D")

	assert generator.state.grid.is_active(2, 5)
	assert generator.state.drum_pattern == 3
	assert generator.state.bpm == 100.0


def test_randomize_picks_a_supported_key (generator: beatrx.generator.Generator) -> None:

	for _ in range(10):
		key = generator.randomize()
		assert key.root_name in beatrx.intervals.SUPPORTED_ROOTS
		assert generator.state.key == key

	key = generator.randomize(mode="minor")

	assert key.mode == "natural_minor"


def test_progression_variant (generator: beatrx.generator.Generator) -> None:

	generator.set_progression_variant("extended")

	assert generator.progression_variant == "extended"
	assert len(generator.state.progression) == 8

	with pytest.raises(ValueError):
		generator.set_progression_variant("jazz")

	assert generator.progression_variant == "extended"


def test_playback_modes (generator: beatrx.generator.Generator) -> None:

	generator.set_playback_mode("song")
	assert generator.state.playback_mode == beatrx.sequencer.PLAYBACK_CONTINUOUS

	generator.set_playback_mode("loop")
	assert generator.state.playback_mode == beatrx.sequencer.PLAYBACK_LOOP

	with pytest.raises(ValueError):
		generator.set_playback_mode("shuffle")


def test_palette_selection (generator: beatrx.generator.Generator, recording_engine: conftest.RecordingEngine) -> None:

	generator.set_palette("chiptune")

	assert generator.state.palette == "chiptune"
	assert recording_engine.palette_changes == ["chiptune"]

	with pytest.raises(ValueError):
		generator.set_palette("theremin")

	assert generator.state.palette == "chiptune"


def test_drum_pattern_cycling (generator: beatrx.generator.Generator) -> None:

	indices = [generator.next_drum_pattern() for _ in range(5)]

	assert indices == [1, 2, 3, 4, 0]

	with pytest.raises(ValueError):
		generator.set_drum_pattern(9)


def test_arpeggiate (generator: beatrx.generator.Generator) -> None:

	assert generator.toggle_arpeggiate()
	assert generator.state.arpeggiate

	generator.set_arpeggiate(False)
	assert not generator.state.arpeggiate


def test_evolve_changes_only_a_few_steps (generator: beatrx.generator.Generator) -> None:

	before = generator.state.melody
	positions = generator.evolve_melody()
	after = generator.state.melody

	assert 2 <= len(positions) <= 3
	assert all(before[i] == after[i] for i in range(16) if i not in positions)


def test_regenerate_melody (generator: beatrx.generator.Generator) -> None:

	melody = generator.regenerate_melody()

	assert len(melody) == 16
	assert generator.state.melody == melody


def test_grid_editing (generator: beatrx.generator.Generator) -> None:

	assert generator.toggle_cell(0, 0) is True
	assert generator.toggle_cell(0, 0) is False

	generator.toggle_cell(7, 15)
	generator.clear_grid()

	assert generator.state.grid.count() == 0

	with pytest.raises(IndexError):
		generator.toggle_cell(8, 0)


def test_volume_and_mute_pass_through (generator: beatrx.generator.Generator, recording_engine: conftest.RecordingEngine) -> None:

	generator.set_volume(-6)
	generator.set_muted(True)

	assert recording_engine.volume_db == -6
	assert recording_engine.muted


def test_changes_apply_while_playing (generator: beatrx.generator.Generator, manual_clock: beatrx.clock.ManualClock, recording_engine: conftest.RecordingEngine) -> None:

	generator.start()
	manual_clock.advance_steps(4)
	generator.set_key("G")
	manual_clock.advance_steps(4)

	bass = [call.notes[0] for call in recording_engine.calls("bass")]

	# C2 at step 0 in C major, then the IV of G major (C2) at step 4.
	assert bass == [36, 36]
	assert generator.running
	assert generator.sequencer.step == 8
