"""Melody generation constrained by the sounding chord.

Every note is drawn from the scale across an octave range, preferring the
notes whose pitch class belongs to the active chord. The draw never fails: if
the chord shares nothing with the scale, any scale note is allowed.

All randomness comes from an injected ``random.Random`` so a seeded generator
reproduces the same melody.
"""

import logging
import random
import typing

import beatrx.chords
import beatrx.intervals
import beatrx.progressions


logger = logging.getLogger(__name__)


DEFAULT_OCTAVE_RANGE: typing.Tuple[int, int] = (4, 5)

LOOP_STEPS = 16

MelodyStep = typing.Optional[int]


def candidate_notes (scale: beatrx.intervals.Scale, octave_range: typing.Tuple[int, int] = DEFAULT_OCTAVE_RANGE) -> typing.List[int]:

	"""
	Return every scale note within an inclusive octave range, as MIDI numbers.

	Raises:
		ValueError: If the range minimum is greater than its maximum.
	"""

	low, high = octave_range

	if low > high:
		raise ValueError(f"Invalid octave range {octave_range}: minimum is greater than maximum")

	return [
		beatrx.chords.pitch_in_octave(pc, octave)
		for octave in range(low, high + 1)
		for pc in scale.pitch_classes
	]


def next_note (
	scale: beatrx.intervals.Scale,
	chord_tones: typing.Iterable[int],
	octave_range: typing.Tuple[int, int] = DEFAULT_OCTAVE_RANGE,
	rng: typing.Optional[random.Random] = None
) -> int:

	"""
	Draw one melody note that fits the active chord.

	Candidates are filtered to those whose pitch class appears among the
	chord tones. The choice is uniform over the filtered set, or over all
	candidates when no candidate matches.

	Parameters:
		scale: The active scale.
		chord_tones: MIDI numbers (or pitch classes) of the sounding chord.
		octave_range: Inclusive ``(min, max)`` octave range for the result.
		rng: Random source (a fresh unseeded one when omitted).

	Example:
		```python
		scale = scale_of(Key.from_name("C"))
		next_note(scale, [48, 52, 55], rng=random.Random(1))  # one of C, E, G in octaves 4-5
		```
	"""

	if rng is None:
		rng = random.Random()

	candidates = candidate_notes(scale, octave_range)
	chord_pcs = {tone % 12 for tone in chord_tones}
	compatible = [note for note in candidates if note % 12 in chord_pcs]

	if not compatible:
		return rng.choice(candidates)

	return rng.choice(compatible)


def build_loop_melody (
	scale: beatrx.intervals.Scale,
	progression: typing.Sequence[beatrx.chords.Chord],
	rng: random.Random,
	octave_range: typing.Tuple[int, int] = DEFAULT_OCTAVE_RANGE,
	steps: int = LOOP_STEPS
) -> typing.List[MelodyStep]:

	"""
	Precompute a loop melody, one note per step.

	Each step uses the chord active at that step. An empty progression
	produces a bar of rests (``None``).
	"""

	melody: typing.List[MelodyStep] = []

	for step in range(steps):

		chord = beatrx.progressions.chord_for_step(progression, step)

		if chord is None:
			melody.append(None)
			continue

		melody.append(next_note(scale, chord.tones(), octave_range, rng))

	logger.debug(f"Built loop melody: {melody}")

	return melody


def evolve_melody (
	melody: typing.List[MelodyStep],
	scale: beatrx.intervals.Scale,
	progression: typing.Sequence[beatrx.chords.Chord],
	rng: random.Random,
	octave_range: typing.Tuple[int, int] = DEFAULT_OCTAVE_RANGE,
	count: typing.Optional[int] = None
) -> typing.List[int]:

	"""Redraw a few positions of a loop melody in place.

	Two or three distinct positions are picked (``count`` overrides the
	draw) and regenerated against the chord active at each position; the
	rest of the melody is untouched.

	Returns:
		The sorted indices that were redrawn.
	"""

	if not melody or not progression:
		return []

	if count is None:
		count = rng.randint(2, 3)

	count = max(0, min(count, len(melody)))
	positions = sorted(rng.sample(range(len(melody)), count))

	for position in positions:
		chord = beatrx.progressions.chord_for_step(progression, position)
		if chord is None:
			continue

		melody[position] = next_note(scale, chord.tones(), octave_range, rng)

	logger.debug(f"Evolved melody positions {positions}")

	return positions
