"""Scales and keys.

Six roots by three modes give the 18 supported keys. `scale_of` resolves a
`Key` to its seven pitch classes and raises `UnsupportedKey` for anything else.
"""

import dataclasses
import typing

import beatrx.chords


class UnsupportedKey (ValueError):

	"""Raised when a key/mode combination is outside the supported set."""


SCALE_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"major": [0, 2, 4, 5, 7, 9, 11],
	"natural_minor": [0, 2, 3, 5, 7, 8, 10],
	"harmonic_minor": [0, 2, 3, 5, 7, 8, 11],
}

MODE_ALIASES: typing.Dict[str, str] = {
	"ionian": "major",
	"minor": "natural_minor",
	"aeolian": "natural_minor",
	"harmonic": "harmonic_minor",
}

MODE_LABELS: typing.Dict[str, str] = {
	"major": "major",
	"natural_minor": "minor",
	"harmonic_minor": "harmonic minor",
}

MINOR_FAMILY: typing.FrozenSet[str] = frozenset({"natural_minor", "harmonic_minor"})

SUPPORTED_MODES: typing.Tuple[str, ...] = ("major", "natural_minor", "harmonic_minor")

# Six roots x three modes = the 18 keys the generator plays in.
SUPPORTED_ROOTS: typing.Tuple[str, ...] = ("C", "G", "D", "A", "E", "F")


def normalize_mode (mode: str) -> str:

	"""Resolve mode aliases (``"minor"``, ``"ionian"``) to a canonical mode name.

	Raises:
		UnsupportedKey: If the mode is not one of ``SUPPORTED_MODES`` or an alias.
	"""

	canonical = MODE_ALIASES.get(mode, mode)

	if canonical not in SCALE_INTERVALS:
		raise UnsupportedKey(f"Unknown mode {mode!r}. Available: {list(SUPPORTED_MODES)}")

	return canonical


def is_minor_family (mode: str) -> bool:

	"""Return True for the natural and harmonic minor modes."""

	return normalize_mode(mode) in MINOR_FAMILY


@dataclasses.dataclass(frozen=True)
class Key:

	"""
	A key: root pitch class plus scale mode.
	"""

	root: int
	mode: str = "major"


	@classmethod
	def from_name (cls, root_name: str, mode: str = "major") -> "Key":

		"""Build a key from a root note name and mode (aliases accepted).

		Example:
			```python
			Key.from_name("G")                  # G major
			Key.from_name("A", "minor")         # A natural minor
			```
		"""

		return cls(root=beatrx.chords.note_name_to_pc(root_name), mode=normalize_mode(mode))


	@classmethod
	def parse (cls, text: str) -> "Key":

		"""Parse a key written as ``"G"``, ``"Am"``, ``"A minor"`` or ``"E harmonic_minor"``."""

		parts = text.split()

		if not parts or len(parts) > 2:
			raise ValueError(f"Cannot parse key: {text!r}")

		root_name = parts[0]
		mode = parts[1] if len(parts) == 2 else "major"

		if len(parts) == 1 and len(root_name) > 1 and root_name.endswith("m"):
			root_name = root_name[:-1]
			mode = "natural_minor"

		return cls.from_name(root_name, mode)


	@property
	def root_name (self) -> str:

		return beatrx.chords.PC_TO_NOTE_NAME[self.root % 12]


	def name (self) -> str:

		"""Return a display name such as ``"C major"`` or ``"E harmonic minor"``."""

		return f"{self.root_name} {MODE_LABELS.get(self.mode, self.mode)}"


@dataclasses.dataclass(frozen=True)
class Scale:

	"""
	The seven pitch classes of a key, ordered upward from the root.
	"""

	root: int
	mode: str
	pitch_classes: typing.Tuple[int, ...]


	def __post_init__ (self) -> None:

		if len(set(self.pitch_classes)) != len(self.pitch_classes):
			raise ValueError(f"Scale contains duplicate pitch classes: {self.pitch_classes}")


	def __contains__ (self, pitch: object) -> bool:

		if not isinstance(pitch, int):
			return False

		return pitch % 12 in self.pitch_classes


	def names (self) -> typing.List[str]:

		"""Return the scale's note names in canonical (sharp) spelling."""

		return [beatrx.chords.PC_TO_NOTE_NAME[pc] for pc in self.pitch_classes]


def supported_keys () -> typing.List[Key]:

	"""Return all 18 supported keys, roots in ``SUPPORTED_ROOTS`` order."""

	return [
		Key.from_name(root_name, mode)
		for root_name in SUPPORTED_ROOTS
		for mode in SUPPORTED_MODES
	]


def scale_of (key: Key) -> Scale:

	"""
	Return the scale for a supported key.

	Parameters:
		key: One of the 18 supported keys.

	Raises:
		UnsupportedKey: If the root or mode is outside the supported set.

	Example:
		```python
		scale_of(Key.from_name("G")).names()
		# → ['G', 'A', 'B', 'C', 'D', 'E', 'F#']
		```
	"""

	if key.mode not in SCALE_INTERVALS:
		raise UnsupportedKey(f"Unsupported mode {key.mode!r}")

	if key.root_name not in SUPPORTED_ROOTS:
		raise UnsupportedKey(
			f"Unsupported key root {key.root_name!r}. Available: {list(SUPPORTED_ROOTS)}"
		)

	intervals = SCALE_INTERVALS[key.mode]

	return Scale(
		root = key.root,
		mode = key.mode,
		pitch_classes = tuple((key.root + interval) % 12 for interval in intervals)
	)
