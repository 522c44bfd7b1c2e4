"""Timing constants for BeatRX.

The clock uses **24 pulses per quarter note** (PPQN = 24) as its time base,
the same resolution as MIDI clock.  The sequencer advances one step every
sixteenth note, so a 16-step bar spans 96 pulses.

- ``beatrx.constants.durations`` - beat-based note lengths used when triggering voices
- ``beatrx.constants.velocity`` - MIDI velocity defaults per voice role
- ``beatrx.constants.gm_drums`` - General MIDI drum note numbers
"""

# MIDI Standards - number of pulses in each

MIDI_THIRTYSECOND_NOTE = 3
MIDI_SIXTEENTH_NOTE = 6
MIDI_EIGHTH_NOTE = 12
MIDI_QUARTER_NOTE = 24
MIDI_HALF_NOTE = 48
MIDI_WHOLE_NOTE = 96

# Step grid: one bar of 4/4 in sixteenth notes.

STEPS_PER_BEAT = 4
STEPS_PER_BAR = 16

# MIDI channels (0-indexed). Channel 9 is the General MIDI percussion channel.

LEAD_CHANNEL = 0
HARMONY_CHANNEL = 1
BASS_CHANNEL = 2
DRUM_CHANNEL = 9
