"""Chord-degree tables and progression resolution.

A progression is stored as a list of `ChordDegree` entries relative to the
key root and only becomes absolute pitches when resolved against a `Key`.
Resolution is deterministic; randomness only enters upstream, when a key is
picked by `random_key()`.
"""

import dataclasses
import logging
import random
import typing

import beatrx.chords
import beatrx.intervals


logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ChordDegree:

	"""
	One position in a progression, relative to the key root.
	"""

	degree: str
	root_offset: int
	quality: str


PROGRESSION_TABLES: typing.Dict[str, typing.Dict[str, typing.List[ChordDegree]]] = {
	"simple": {
		"major": [
			ChordDegree("I", 0, "major"),
			ChordDegree("IV", 5, "major"),
			ChordDegree("V7", 7, "dominant7"),
			ChordDegree("I", 0, "major"),
		],
		"minor": [
			ChordDegree("i", 0, "minor"),
			ChordDegree("iv", 5, "minor"),
			ChordDegree("V7", 7, "dominant7"),
			ChordDegree("i", 0, "minor"),
		],
	},
	"extended": {
		"major": [
			ChordDegree("I", 0, "major"),
			ChordDegree("V", 7, "major"),
			ChordDegree("vi", 9, "minor"),
			ChordDegree("IV", 5, "major"),
			ChordDegree("I", 0, "major"),
			ChordDegree("IV", 5, "major"),
			ChordDegree("V7", 7, "dominant7"),
			ChordDegree("I", 0, "major"),
		],
		"minor": [
			ChordDegree("i", 0, "minor"),
			ChordDegree("V", 7, "major"),
			ChordDegree("VI", 8, "major"),
			ChordDegree("iv", 5, "minor"),
			ChordDegree("i", 0, "minor"),
			ChordDegree("iv", 5, "minor"),
			ChordDegree("V7", 7, "dominant7"),
			ChordDegree("i", 0, "minor"),
		],
	},
}

DEFAULT_VARIANT = "simple"

PROGRESSION_OCTAVE = 3

STEPS_PER_CHORD = 4


def progression_variants () -> typing.List[str]:

	"""Return the names of the available progression tables."""

	return list(PROGRESSION_TABLES)


def degrees_for (key: beatrx.intervals.Key, variant: str = DEFAULT_VARIANT) -> typing.List[ChordDegree]:

	"""Return the chord-degree table for a key's mode family."""

	if variant not in PROGRESSION_TABLES:
		raise ValueError(f"Unknown progression variant {variant!r}. Available: {progression_variants()}")

	family = "minor" if beatrx.intervals.is_minor_family(key.mode) else "major"

	return PROGRESSION_TABLES[variant][family]


def build_progression (key: beatrx.intervals.Key, variant: str = DEFAULT_VARIANT) -> typing.Tuple[beatrx.chords.Chord, ...]:

	"""
	Resolve a progression table against a key.

	Each degree's offset is added to the key root, and the resulting pitch
	class is voiced in octave 3, so every chord root sits between C3 and B3.

	Parameters:
		key: One of the 18 supported keys.
		variant: ``"simple"`` (4 chords) or ``"extended"`` (8 chords).

	Raises:
		UnsupportedKey: If the key is outside the supported set.
		ValueError: If the variant is unknown.

	Example:
		```python
		chords = build_progression(Key.from_name("C"))
		[c.name() for c in chords]  # → ['C', 'F', 'G7', 'C']
		```
	"""

	# Validates the key against the supported set.
	beatrx.intervals.scale_of(key)

	chords = []

	for spec in degrees_for(key, variant):
		pc = (key.root + spec.root_offset) % 12
		root = beatrx.chords.pitch_in_octave(pc, PROGRESSION_OCTAVE)
		chords.append(beatrx.chords.Chord(root=root, quality=spec.quality))

	return tuple(chords)


def random_key (
	rng: random.Random,
	mode: typing.Optional[str] = None,
	roots: typing.Sequence[str] = beatrx.intervals.SUPPORTED_ROOTS
) -> beatrx.intervals.Key:

	"""Pick a key at random from the supported roots.

	When ``mode`` is None the mode is drawn as well; otherwise it is kept.
	"""

	root_name = rng.choice(list(roots))
	chosen_mode = rng.choice(list(beatrx.intervals.SUPPORTED_MODES)) if mode is None else mode

	key = beatrx.intervals.Key.from_name(root_name, chosen_mode)
	logger.debug(f"Random key: {key.name()}")

	return key


def chord_index_for_step (step: int, progression_length: int, steps_per_chord: int = STEPS_PER_CHORD) -> typing.Optional[int]:

	"""
	Map a step to the index of the chord sounding at that step.

	Four steps per chord by default, wrapping around the progression:
	steps 0-3 → chord 0, steps 4-7 → chord 1, and so on.
	Returns None for an empty progression.
	"""

	if progression_length <= 0:
		return None

	return (step // steps_per_chord) % progression_length


def chord_for_step (progression: typing.Sequence[beatrx.chords.Chord], step: int) -> typing.Optional[beatrx.chords.Chord]:

	index = chord_index_for_step(step, len(progression))

	if index is None:
		return None

	return progression[index]
