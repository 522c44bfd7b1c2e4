import pytest

import beatrx.grid


def test_grid_pitches_run_from_c5_down_to_c4 () -> None:

	assert beatrx.grid.GRID_PITCHES == (72, 71, 69, 67, 65, 64, 62, 60)


def test_empty_grid () -> None:

	grid = beatrx.grid.ManualGrid.empty()

	assert grid.count() == 0
	assert grid.notes_at(0) == []


def test_toggle_twice_restores_the_cell () -> None:

	grid = beatrx.grid.ManualGrid.empty()

	assert grid.toggle(2, 5).toggle(2, 5) == grid


def test_toggle_flips_exactly_one_cell () -> None:

	"""Toggling (2, 5) never touches (2, 6) or (3, 5)."""

	grid = beatrx.grid.ManualGrid.empty().toggle(2, 5)

	assert grid.is_active(2, 5)
	assert not grid.is_active(2, 6)
	assert not grid.is_active(3, 5)
	assert grid.count() == 1


def test_toggle_returns_a_new_grid () -> None:

	original = beatrx.grid.ManualGrid.empty()
	updated = original.toggle(0, 0)

	assert updated is not original
	assert not original.is_active(0, 0)
	assert updated.is_active(0, 0)


@pytest.mark.parametrize("row, step", [(8, 0), (0, 16), (-1, 0), (0, -1)])
def test_toggle_bounds (row: int, step: int) -> None:

	with pytest.raises(IndexError):
		beatrx.grid.ManualGrid.empty().toggle(row, step)


def test_notes_at_step () -> None:

	grid = beatrx.grid.ManualGrid.empty().toggle(7, 3).toggle(0, 3)

	assert grid.active_rows(3) == [0, 7]
	assert grid.notes_at(3) == [72, 60]
	assert grid.notes_at(4) == []


def test_clear () -> None:

	grid = beatrx.grid.ManualGrid.empty().toggle(1, 1).toggle(4, 9)

	assert grid.clear().count() == 0


def test_grid_shape_is_validated () -> None:

	with pytest.raises(ValueError):
		beatrx.grid.ManualGrid(cells=())
