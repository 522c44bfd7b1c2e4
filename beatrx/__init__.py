"""
BeatRX - a procedural chord, melody and drum generator that plays over MIDI.

BeatRX picks a key, resolves a chord progression from fixed chord-degree
tables, draws a melody whose notes always fit the sounding chord, and plays
it all through a sixteen-step sequencer together with a bass line, a drum
pattern and a hand-programmed note grid. It generates pure MIDI (no audio
engine) for hardware synths or any software instrument.

- **Harmony.** Six roots by three modes (major, natural minor, harmonic
  minor) give 18 keys. Progressions come in a short I-IV-V7-I shape and a
  longer eight-chord shape, voiced in octave 3.
- **Melody.** Loop mode precomputes a 16-step melody and repeats it;
  continuous mode draws a fresh note on every step. ``evolve_melody()``
  redraws a few notes at a time.
- **Sequencer.** One step per sixteenth note. Bass on every beat, chords
  every half bar (block or arpeggiated), manual grid and drums on every step.
- **Live control.** Tempo, key, palette, drum pattern, arpeggiation and grid
  edits apply from the next step without stopping playback. Everything is
  reachable over OSC.
- **Deterministic.** A seed makes every melody and random key repeatable;
  ``ManualClock`` drives the sequencer without real time.

Minimal example:

	```python
	import beatrx
	import beatrx.clock
	import beatrx.engine

	generator = beatrx.Generator(
		engine = beatrx.engine.MidiEngine(),
		clock = beatrx.clock.TransportClock(),
		key = "G",
		bpm = 110,
		seed = 3,
	)

	generator.play()
	```

Package-level exports: ``Generator``, ``StepSequencer``, ``SequencerState``,
``MidiEngine``, ``TransportClock``, ``ManualClock``, ``Key``, ``Scale``,
``Chord``, ``ManualGrid``, ``DrumPattern``, ``UnsupportedKey``.
"""

import beatrx.chords
import beatrx.clock
import beatrx.drums
import beatrx.engine
import beatrx.generator
import beatrx.grid
import beatrx.intervals
import beatrx.sequencer

from beatrx.chords import Chord
from beatrx.clock import ManualClock, TransportClock
from beatrx.drums import DrumPattern
from beatrx.engine import MidiEngine
from beatrx.generator import Generator
from beatrx.grid import ManualGrid
from beatrx.intervals import Key, Scale, UnsupportedKey
from beatrx.sequencer import SequencerState, StepSequencer


__all__ = [
	"Chord",
	"DrumPattern",
	"Generator",
	"Key",
	"ManualClock",
	"ManualGrid",
	"MidiEngine",
	"Scale",
	"SequencerState",
	"StepSequencer",
	"TransportClock",
	"UnsupportedKey",
]
