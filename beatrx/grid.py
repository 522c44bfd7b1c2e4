"""The manual note grid: eight fixed pitches (C5 down to C4) by sixteen steps.

Grids are immutable; every edit returns a new `ManualGrid`.
"""

import dataclasses
import typing

import beatrx.chords


# Row 0 is the top of the grid.
GRID_NOTES: typing.Tuple[str, ...] = ("C5", "B4", "A4", "G4", "F4", "E4", "D4", "C4")

GRID_PITCHES: typing.Tuple[int, ...] = tuple(beatrx.chords.note_to_midi(note) for note in GRID_NOTES)

GRID_ROWS = len(GRID_NOTES)

GRID_STEPS = 16

Cells = typing.Tuple[typing.Tuple[bool, ...], ...]


def _check_bounds (row: int, step: int) -> None:

	if not 0 <= row < GRID_ROWS:
		raise IndexError(f"Grid row {row} out of range 0-{GRID_ROWS - 1}")

	if not 0 <= step < GRID_STEPS:
		raise IndexError(f"Grid step {step} out of range 0-{GRID_STEPS - 1}")


@dataclasses.dataclass(frozen=True)
class ManualGrid:

	"""
	User-programmed notes: 8 pitch rows by 16 steps.

	Every edit returns a new grid, so a reader holding the old one always
	sees a complete matrix.
	"""

	cells: Cells


	def __post_init__ (self) -> None:

		if len(self.cells) != GRID_ROWS or any(len(row) != GRID_STEPS for row in self.cells):
			raise ValueError(f"Grid must be {GRID_ROWS} rows of {GRID_STEPS} steps")


	@classmethod
	def empty (cls) -> "ManualGrid":

		"""Return a grid with every cell off."""

		return cls(cells=tuple((False,) * GRID_STEPS for _ in range(GRID_ROWS)))


	def toggle (self, row: int, step: int) -> "ManualGrid":

		"""
		Return a new grid with one cell flipped.

		Raises:
			IndexError: If row or step is out of range.
		"""

		return self.set(row, step, not self.is_active(row, step))


	def set (self, row: int, step: int, active: bool) -> "ManualGrid":

		_check_bounds(row, step)

		old_row = self.cells[row]
		new_row = old_row[:step] + (bool(active),) + old_row[step + 1:]

		return ManualGrid(cells=self.cells[:row] + (new_row,) + self.cells[row + 1:])


	def is_active (self, row: int, step: int) -> bool:

		_check_bounds(row, step)

		return self.cells[row][step]


	def active_rows (self, step: int) -> typing.List[int]:

		"""Return the rows switched on in one step column, top row first."""

		return [row for row in range(GRID_ROWS) if self.is_active(row, step)]


	def notes_at (self, step: int) -> typing.List[int]:

		"""Return the MIDI numbers to play at a step."""

		return [GRID_PITCHES[row] for row in self.active_rows(step)]


	def count (self) -> int:

		return sum(sum(row) for row in self.cells)


	def clear (self) -> "ManualGrid":

		return ManualGrid.empty()
