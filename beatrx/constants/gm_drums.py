"""General MIDI Level 1 drum notes used by the drum voices.

Standard MIDI percussion assignments for channel 10 (0-indexed channel 9).
Only the parts the step sequencer plays are listed; ``DRUM_PARTS`` maps the
part names used by :class:`beatrx.drums.DrumPattern` to note numbers::

    import beatrx.constants.gm_drums

    note = beatrx.constants.gm_drums.DRUM_PARTS["snare"]  # 38
"""

import typing


KICK_1 = 36
SIDE_STICK = 37
SNARE_1 = 38
HAND_CLAP = 39
HI_HAT_CLOSED = 42
HI_HAT_PEDAL = 44
HI_HAT_OPEN = 46


DRUM_PARTS: typing.Dict[str, int] = {
	"kick": KICK_1,
	"snare": SNARE_1,
	"hihat": HI_HAT_CLOSED,
}
