import logging

import beatrx
import beatrx.clock
import beatrx.engine

logging.basicConfig(level=logging.INFO)

engine = beatrx.engine.MidiEngine(palette="keygen")

generator = beatrx.Generator(
	engine = engine,
	clock = beatrx.clock.TransportClock(),
	key = "A",
	mode = "natural_minor",
	bpm = 110,
	arpeggiate = True,
	progression = "extended",
	seed = 7
)

# Sprinkle a few fixed notes over the generated melody: row 0 is C5, row 7 is C4.
for row, step in [(0, 0), (2, 6), (4, 10), (7, 14)]:
	generator.toggle_cell(row, step)

# Every time the bar wraps, mutate a couple of melody notes.
def on_step (step: int) -> None:

	if step == 15:
		generator.evolve_melody()

generator.events.on("step", on_step)
generator.events.on("chord", lambda chord: logging.info(f"Chord: {chord.name()}"))

# Drive it from a TouchOSC-style surface on port 9000.
generator.osc(receive_port=9000, send_port=9001)

if __name__ == "__main__":

	generator.play()
