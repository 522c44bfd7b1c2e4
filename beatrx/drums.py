"""Drum pattern palette.

Each pattern is three 16-step on/off lanes (kick, snare, hi-hat). Pattern 0
is the plain four-to-the-floor groove the generator starts with; the others
are built from the Euclidean and Bresenham generators in
`beatrx.sequence_utils`.
"""

import logging
import typing

import beatrx.constants
import beatrx.constants.gm_drums
import beatrx.sequence_utils


logger = logging.getLogger(__name__)


Lane = typing.Tuple[int, ...]


class DrumPattern (typing.NamedTuple):

	"""A named set of kick, snare and hi-hat lanes."""

	name: str
	kick: Lane
	snare: Lane
	hihat: Lane


	def lanes (self) -> typing.Dict[str, Lane]:

		return {"kick": self.kick, "snare": self.snare, "hihat": self.hihat}


	def hits_at (self, step: int) -> typing.List[str]:

		"""Return the drum parts that play at a step, in kick, snare, hi-hat order."""

		return [part for part, lane in self.lanes().items() if lane[step % len(lane)]]


def make_pattern (
	name: str,
	kick: typing.Sequence[int],
	snare: typing.Sequence[int],
	hihat: typing.Sequence[int],
	steps: int = beatrx.constants.STEPS_PER_BAR
) -> DrumPattern:

	"""
	Build a pattern, checking that each lane is ``steps`` long and binary.

	Raises:
		ValueError: If a lane has the wrong length or a value other than 0/1.
	"""

	lanes = {"kick": kick, "snare": snare, "hihat": hihat}

	for part, lane in lanes.items():

		if len(lane) != steps:
			raise ValueError(f"Drum lane {part!r} in pattern {name!r} has {len(lane)} steps, expected {steps}")

		if any(value not in (0, 1) for value in lane):
			raise ValueError(f"Drum lane {part!r} in pattern {name!r} must contain only 0 and 1")

	return DrumPattern(name=name, kick=tuple(kick), snare=tuple(snare), hihat=tuple(hihat))


_BACKBEAT = beatrx.sequence_utils.indices_to_sequence([4, 12], 16)

DRUM_PATTERNS: typing.Tuple[DrumPattern, ...] = (
	make_pattern(
		"basic",
		kick = [1, 0, 0, 0] * 4,
		snare = [0, 0, 1, 0] * 4,
		hihat = [1, 0] * 8,
	),
	make_pattern(
		"backbeat",
		kick = beatrx.sequence_utils.indices_to_sequence([0, 8, 10], 16),
		snare = _BACKBEAT,
		hihat = beatrx.sequence_utils.generate_bresenham_sequence(16, 8),
	),
	make_pattern(
		"four_on_floor",
		kick = beatrx.sequence_utils.generate_euclidean_sequence(16, 4),
		snare = _BACKBEAT,
		hihat = beatrx.sequence_utils.rotate_sequence(beatrx.sequence_utils.generate_euclidean_sequence(16, 4), 2),
	),
	make_pattern(
		"breakbeat",
		kick = beatrx.sequence_utils.generate_euclidean_sequence(16, 5),
		snare = _BACKBEAT,
		hihat = beatrx.sequence_utils.generate_euclidean_sequence(16, 8),
	),
	make_pattern(
		"half_time",
		kick = beatrx.sequence_utils.indices_to_sequence([0, 10], 16),
		snare = beatrx.sequence_utils.indices_to_sequence([8], 16),
		hihat = beatrx.sequence_utils.generate_euclidean_sequence(16, 8),
	),
)


def pattern_names () -> typing.List[str]:

	return [pattern.name for pattern in DRUM_PATTERNS]


def get_pattern (index: int) -> DrumPattern:

	"""
	Return the pattern at ``index``.

	Raises:
		ValueError: If the index is outside the palette.
	"""

	if not 0 <= index < len(DRUM_PATTERNS):
		raise ValueError(f"Unknown drum pattern {index}. Available: 0-{len(DRUM_PATTERNS) - 1}")

	return DRUM_PATTERNS[index]


def next_pattern_index (index: int) -> int:

	"""Return the index of the following pattern, wrapping to the first."""

	return (index + 1) % len(DRUM_PATTERNS)


def drum_note (part: str) -> int:

	"""Return the General MIDI note for a drum part name."""

	if part not in beatrx.constants.gm_drums.DRUM_PARTS:
		raise ValueError(f"Unknown drum part {part!r}")

	return beatrx.constants.gm_drums.DRUM_PARTS[part]
