"""Beat-based durations for voice triggers.

All values are in **beats**, where 1.0 = one quarter note.  The sequencer
converts them to seconds at the current tempo when it triggers a voice, so a
tempo change shortens or lengthens notes from the next step onward::

    import beatrx.constants.durations as dur

    seconds = dur.EIGHTH * 60.0 / bpm
"""

THIRTYSECOND = 0.125
SIXTEENTH = 0.25
EIGHTH = 0.5
QUARTER = 1.0
HALF = 2.0
WHOLE = 4.0
