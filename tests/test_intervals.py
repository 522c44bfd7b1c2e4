import pytest

import beatrx.intervals


def test_eighteen_supported_keys () -> None:

	keys = beatrx.intervals.supported_keys()

	assert len(keys) == 18
	assert len(set(keys)) == 18


@pytest.mark.parametrize("key", beatrx.intervals.supported_keys(), ids=lambda key: key.name())
def test_every_supported_key_has_seven_distinct_pitch_classes (key: beatrx.intervals.Key) -> None:

	scale = beatrx.intervals.scale_of(key)

	assert len(scale.pitch_classes) == 7
	assert len(set(scale.pitch_classes)) == 7
	assert scale.pitch_classes[0] == key.root


def test_g_major_scale () -> None:

	scale = beatrx.intervals.scale_of(beatrx.intervals.Key.from_name("G"))

	assert scale.names() == ["G", "A", "B", "C", "D", "E", "F#"]


def test_a_natural_minor_scale () -> None:

	scale = beatrx.intervals.scale_of(beatrx.intervals.Key.from_name("A", "natural_minor"))

	assert scale.names() == ["A", "B", "C", "D", "E", "F", "G"]


def test_e_harmonic_minor_raises_the_seventh () -> None:

	scale = beatrx.intervals.scale_of(beatrx.intervals.Key.from_name("E", "harmonic_minor"))

	assert scale.names() == ["E", "F#", "G", "A", "B", "C", "D#"]


@pytest.mark.parametrize("root", ["B", "Bb", "C#", "Eb"])
def test_unsupported_root_is_rejected (root: str) -> None:

	"""Roots outside the six supported ones raise UnsupportedKey."""

	with pytest.raises(beatrx.intervals.UnsupportedKey):
		beatrx.intervals.scale_of(beatrx.intervals.Key.from_name(root))


def test_unsupported_key_is_a_value_error () -> None:

	assert issubclass(beatrx.intervals.UnsupportedKey, ValueError)


def test_mode_aliases () -> None:

	assert beatrx.intervals.normalize_mode("minor") == "natural_minor"
	assert beatrx.intervals.normalize_mode("aeolian") == "natural_minor"
	assert beatrx.intervals.normalize_mode("ionian") == "major"


def test_unknown_mode () -> None:

	with pytest.raises(beatrx.intervals.UnsupportedKey):
		beatrx.intervals.normalize_mode("lydian")


def test_key_parse_forms () -> None:

	assert beatrx.intervals.Key.parse("G") == beatrx.intervals.Key(root=7, mode="major")
	assert beatrx.intervals.Key.parse("Am") == beatrx.intervals.Key(root=9, mode="natural_minor")
	assert beatrx.intervals.Key.parse("A minor") == beatrx.intervals.Key(root=9, mode="natural_minor")
	assert beatrx.intervals.Key.parse("E harmonic_minor") == beatrx.intervals.Key(root=4, mode="harmonic_minor")


def test_key_parse_rejects_garbage () -> None:

	with pytest.raises(ValueError):
		beatrx.intervals.Key.parse("")

	with pytest.raises(ValueError):
		beatrx.intervals.Key.parse("C major please")


def test_key_names () -> None:

	assert beatrx.intervals.Key.from_name("C").name() == "C major"
	assert beatrx.intervals.Key.from_name("A", "minor").name() == "A minor"
	assert beatrx.intervals.Key.from_name("E", "harmonic_minor").name() == "E harmonic minor"


def test_scale_rejects_duplicates () -> None:

	with pytest.raises(ValueError):
		beatrx.intervals.Scale(root=0, mode="major", pitch_classes=(0, 2, 4, 4, 7, 9, 11))


def test_scale_membership_by_pitch_class () -> None:

	scale = beatrx.intervals.scale_of(beatrx.intervals.Key.from_name("C"))

	assert 64 in scale
	assert 76 in scale
	assert 61 not in scale


def test_minor_family () -> None:

	assert beatrx.intervals.is_minor_family("natural_minor")
	assert beatrx.intervals.is_minor_family("harmonic_minor")
	assert not beatrx.intervals.is_minor_family("major")
