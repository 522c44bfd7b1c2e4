"""MIDI velocity constants.

Velocity is the MIDI attack strength (0-127). The sequencer uses a fixed
velocity per voice role so the mix stays stable across palettes.
"""

# Primary defaults
DEFAULT_VELOCITY = 100          # Lead melody and manual grid notes
DEFAULT_CHORD_VELOCITY = 80     # Block chords and arpeggios (softer)
DEFAULT_BASS_VELOCITY = 96

# Drum kit
KICK_VELOCITY = 112
SNARE_VELOCITY = 100
HIHAT_VELOCITY = 70

# MIDI standard range
MIN_VELOCITY = 0
MAX_VELOCITY = 127
