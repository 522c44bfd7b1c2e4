"""Note names, pitch numbers and chord definitions.

This module is the bottom of the theory model: every other module converts
between note names and MIDI pitch numbers through it, and compares harmony by
pitch class (0-11) rather than by spelling, so ``"D#"`` and ``"Eb"`` are the
same note.

Module-level constants:
- `NOTE_NAME_TO_PC`: Maps note names (e.g., `"C"`, `"F#"`, `"Bb"`) to pitch classes (0-11)
- `PC_TO_NOTE_NAME`: Maps pitch classes to canonical (sharp) note names
- `CHORD_INTERVALS`: Maps chord types to interval lists (semitones from root)
- `CHORD_SUFFIX`: Maps chord types to human-readable suffixes (e.g., `"m"`, `"7"`)

Pitch numbers follow the MIDI convention where **C4 = 60** (middle C), i.e.
``midi = (octave + 1) * 12 + pitch_class``.

Chord types: `"major"`, `"minor"`, `"dominant7"`
"""

import dataclasses
import re
import typing


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
}

PC_TO_NOTE_NAME: typing.List[str] = [
	"C",
	"C#",
	"D",
	"D#",
	"E",
	"F",
	"F#",
	"G",
	"G#",
	"A",
	"A#",
	"B",
]

CHORD_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"major": [0, 4, 7],
	"minor": [0, 3, 7],
	"dominant7": [0, 4, 7, 10],
}

CHORD_SUFFIX: typing.Dict[str, str] = {
	"major": "",
	"minor": "m",
	"dominant7": "7",
}

MIN_PITCH = 0
MAX_PITCH = 127

_NOTE_PATTERN = re.compile(r"^([A-G][#b]?)(-?\d+)$")


def note_name_to_pc (name: str) -> int:

	"""Validate a note name and return its pitch class (0–11).

	Parameters:
		name: Note name without octave (e.g. ``"C"``, ``"F#"``, ``"Bb"``).

	Raises:
		ValueError: If the name is not recognised.

	Example:
		```python
		note_name_to_pc("F#")  # → 6
		note_name_to_pc("Gb")  # → 6
		```
	"""

	if name not in NOTE_NAME_TO_PC:
		raise ValueError(
			f"Unknown note name: {name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return NOTE_NAME_TO_PC[name]


def note_to_midi (note: str) -> int:

	"""Convert a note with octave (e.g. ``"C4"``) to its MIDI pitch number.

	Flat spellings are accepted (``"Eb4"`` → 63) and map to the same number as
	their sharp equivalents.

	Raises:
		ValueError: If the note is malformed or falls outside MIDI range 0–127.

	Example:
		```python
		note_to_midi("C4")   # → 60
		note_to_midi("A#3")  # → 58
		```
	"""

	match = _NOTE_PATTERN.match(note.strip())

	if match is None:
		raise ValueError(f"Malformed note: {note!r}. Expected e.g. 'C4', 'F#3', 'Bb2'.")

	pc = note_name_to_pc(match.group(1))
	octave = int(match.group(2))
	midi = (octave + 1) * 12 + pc

	if midi < MIN_PITCH or midi > MAX_PITCH:
		raise ValueError(f"Note {note!r} is outside the MIDI range")

	return midi


def midi_to_note (midi: int) -> str:

	"""Convert a MIDI pitch number to its canonical note name (sharps).

	Example:
		```python
		midi_to_note(60)  # → "C4"
		midi_to_note(63)  # → "D#4"
		```
	"""

	if midi < MIN_PITCH or midi > MAX_PITCH:
		raise ValueError(f"MIDI pitch {midi} is outside the range {MIN_PITCH}-{MAX_PITCH}")

	return f"{PC_TO_NOTE_NAME[midi % 12]}{midi // 12 - 1}"


def pitch_in_octave (pc: int, octave: int) -> int:

	"""Return the MIDI number of a pitch class placed in a given octave."""

	return (octave + 1) * 12 + (pc % 12)


def chord_tones (root_midi: int, chord_type: str) -> typing.List[int]:

	"""Return the MIDI numbers of a chord built upward from ``root_midi``.

	The root keeps its octave; the remaining tones are stacked above it in
	pitch-number space (a G7 on G3 reaches F4, it does not wrap down).

	Raises:
		ValueError: If ``chord_type`` is not one of ``CHORD_INTERVALS``.

	Example:
		```python
		chord_tones(48, "major")      # → [48, 52, 55]  (C3 E3 G3)
		chord_tones(55, "dominant7")  # → [55, 59, 62, 65]  (G3 B3 D4 F4)
		```
	"""

	if chord_type not in CHORD_INTERVALS:
		raise ValueError(
			f"Unknown chord type: {chord_type!r}. Available: {sorted(CHORD_INTERVALS)}"
		)

	return [root_midi + interval for interval in CHORD_INTERVALS[chord_type]]


@dataclasses.dataclass(frozen=True)
class Chord:

	"""
	A chord voiced from an absolute root pitch.
	"""

	root: int
	quality: str


	def __post_init__ (self) -> None:

		if self.quality not in CHORD_INTERVALS:
			raise ValueError(f"Unknown chord quality: {self.quality}")


	@property
	def root_pc (self) -> int:

		"""Pitch class of the chord root."""

		return self.root % 12


	def intervals (self) -> typing.List[int]:

		"""
		Return the chord intervals for this chord quality.
		"""

		return list(CHORD_INTERVALS[self.quality])


	def tones (self) -> typing.List[int]:

		"""Return the MIDI numbers of every chord tone, root first."""

		return chord_tones(self.root, self.quality)


	def pitch_classes (self) -> typing.FrozenSet[int]:

		"""Return the chord's pitch classes, used for harmonic comparison."""

		return frozenset(tone % 12 for tone in self.tones())


	def bass_note (self, octave: int = 2) -> int:

		"""
		Return the chord root transposed into ``octave``.

		Example:
			```python
			Chord(root=55, quality="dominant7").bass_note()  # → 43 (G2)
			```
		"""

		return pitch_in_octave(self.root_pc, octave)


	def name (self) -> str:

		"""
		Return a human-friendly chord name.
		"""

		return f"{PC_TO_NOTE_NAME[self.root_pc]}{CHORD_SUFFIX[self.quality]}"


	def note_names (self) -> typing.List[str]:

		return [midi_to_note(tone) for tone in self.tones()]
