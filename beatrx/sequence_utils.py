"""Step-rhythm generators used to build the drum palette.

Sequences are lists of 0/1 flags, one per sixteenth-note step.
"""

import typing


def generate_euclidean_sequence (steps: int, pulses: int) -> typing.List[int]:

	"""
	Distribute ``pulses`` hits as evenly as possible over ``steps`` (Bjorklund).

	The result is rotated so that it starts on a hit.

	Example:
		```python
		generate_euclidean_sequence(8, 3)  # → [1, 0, 0, 1, 0, 0, 1, 0]
		```
	"""

	if pulses == 0:
		return [0] * steps

	if pulses > steps:
		raise ValueError(f"Pulses ({pulses}) cannot be greater than steps ({steps})")

	sequence: typing.List[int] = []
	counts: typing.List[int] = []
	remainders = [pulses]
	divisor = steps - pulses
	level = 0

	while True:
		counts.append(divisor // remainders[level])
		remainders.append(divisor % remainders[level])
		divisor = remainders[level]
		level += 1
		if remainders[level] <= 1:
			break

	counts.append(divisor)

	def build (level: int) -> None:
		if level == -1:
			sequence.append(0)
		elif level == -2:
			sequence.append(1)
		else:
			for _ in range(counts[level]):
				build(level - 1)
			if remainders[level] != 0:
				build(level - 2)

	build(level)
	first_hit = sequence.index(1)

	return sequence[first_hit:] + sequence[:first_hit]


def generate_bresenham_sequence (steps: int, pulses: int) -> typing.List[int]:

	"""
	Spread hits with Bresenham's line algorithm.

	Unlike the Euclidean form, hits land at the end of each interval, which
	puts the first hit on an off-beat for odd divisions.
	"""

	if steps <= 0:
		raise ValueError("Steps must be positive")

	sequence = [0] * steps
	error = 0

	for i in range(steps):
		error += pulses
		if error >= steps:
			sequence[i] = 1
			error -= steps

	return sequence


def sequence_to_indices (sequence: typing.Sequence[int]) -> typing.List[int]:

	"""Extract step indices where hits occur in a binary sequence."""

	return [i for i, v in enumerate(sequence) if v]


def indices_to_sequence (indices: typing.Iterable[int], steps: int) -> typing.List[int]:

	"""Build a binary sequence with hits at the given step indices.

	Raises:
		IndexError: If an index falls outside ``0..steps-1``.
	"""

	sequence = [0] * steps

	for index in indices:
		if not 0 <= index < steps:
			raise IndexError(f"Step {index} out of range for a {steps}-step sequence")
		sequence[index] = 1

	return sequence


def roll (indices: typing.List[int], shift: int, length: int) -> typing.List[int]:

	"""Circularly shift step indices by the specified amount."""

	return [(i + shift) % length for i in indices]


def rotate_sequence (sequence: typing.Sequence[int], shift: int) -> typing.List[int]:

	"""Rotate a binary sequence to the right by ``shift`` steps."""

	return indices_to_sequence(roll(sequence_to_indices(sequence), shift, len(sequence)), len(sequence))
