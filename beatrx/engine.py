"""The MIDI sound engine.

`MidiEngine` is the only part of BeatRX that talks to hardware. It owns the
output port, the event queue the voices write into, and the voices of the
active palette. The clock calls `MidiEngine.flush` once per pulse to send
whatever has fallen due.
"""

import logging
import math
import typing

import mido

import beatrx.constants
import beatrx.midi_utils
import beatrx.voices


logger = logging.getLogger(__name__)


CC_VOLUME = 7
CC_ALL_SOUND_OFF = 120
CC_ALL_NOTES_OFF = 123

MIN_VOLUME_DB = -60.0
MAX_VOLUME_DB = 0.0


def db_to_cc (db: float) -> int:

	"""Map a gain in decibels to a CC 7 value (0 dB → 127, -60 dB or lower → 0)."""

	if db <= MIN_VOLUME_DB:
		return 0

	return max(0, min(127, round(127 * 10 ** (db / 40.0))))


class MidiEngine:

	"""
	MIDI output, event queue and palette voices for one session.
	"""

	def __init__ (
		self,
		output_device_name: typing.Optional[str] = None,
		palette: str = beatrx.voices.DEFAULT_PALETTE,
		midi_out: typing.Optional[typing.Any] = None,
		virtual: bool = False
	) -> None:

		"""Create the engine without opening any device.

		Parameters:
			output_device_name: MIDI output to open on `unlock()`. When omitted
				the first available output is used.
			palette: Name of the starting instrument palette.
			midi_out: An already-open port (anything with ``send``). Skips
				device discovery on unlock.
			virtual: Open a virtual output port instead of a device.
		"""

		self.output_device_name = output_device_name
		self.virtual = virtual
		self.midi_out = midi_out
		self.unlocked = False

		self.queue = beatrx.voices.EventQueue()
		self.active_notes: typing.Set[typing.Tuple[int, int]] = set()

		self.volume_db = MAX_VOLUME_DB
		self.muted = False

		self.palette = beatrx.voices.get_palette(palette)
		self.voices = beatrx.voices.build_voices(self.queue, self.palette)


	def unlock (self) -> bool:

		"""
		Open the output port once per session.

		Idempotent: later calls return True without touching the device.
		On failure the error is logged and False is returned.
		"""

		if self.unlocked:
			return True

		if self.midi_out is None:
			name, midi_out = beatrx.midi_utils.select_output_device(self.output_device_name, virtual=self.virtual)

			if midi_out is None:
				logger.error("Sound engine could not be unlocked: no MIDI output available")
				return False

			self.output_device_name = name
			self.midi_out = midi_out

		self.unlocked = True
		logger.info(f"Sound engine unlocked (output: {self.output_device_name or 'injected port'})")

		self._send_programs()
		self._send_volume()

		return True


	def set_palette (self, name: str) -> None:

		"""
		Switch instrument palette, rebuilding the voices.

		Raises:
			ValueError: If the palette does not exist. The current palette stays.
		"""

		palette = beatrx.voices.get_palette(name)

		for voice in self.voices.all():
			voice.release_all()

		self.palette = palette
		self.voices = beatrx.voices.build_voices(self.queue, palette)

		if self.unlocked:
			self._send_programs()

		logger.info(f"Palette: {palette.name}")


	def flush (self, now: float) -> int:

		"""Send every queued event due at or before ``now``; return how many were sent."""

		events = self.queue.pop_due(now)

		for event in events:

			key = (event.channel, event.note)

			if event.message_type == "note_on" and event.velocity > 0:
				self.active_notes.add(key)
			elif event.message_type in ("note_on", "note_off"):
				self.active_notes.discard(key)

			self._send(event)

		return len(events)


	def cancel_pending (self) -> int:

		"""Drop every queued event that has not been sent yet."""

		dropped = self.queue.clear()

		if dropped:
			logger.debug(f"Cancelled {dropped} pending MIDI events")

		return dropped


	def release_all (self) -> None:

		"""
		Silence every note this engine started.
		"""

		self.queue.clear()

		for voice in self.voices.all():
			voice.release_all()

		self.flush(math.inf)

		for channel, note in sorted(self.active_notes):
			self._send_message(mido.Message("note_off", channel=channel, note=note, velocity=0))

		self.active_notes.clear()


	def panic (self) -> None:

		"""Release all notes, then send All Notes Off and All Sound Off on every channel."""

		logger.info("Panic: sending all notes off.")

		self.release_all()

		for channel in range(16):
			self._send_message(mido.Message("control_change", channel=channel, control=CC_ALL_NOTES_OFF, value=0))
			self._send_message(mido.Message("control_change", channel=channel, control=CC_ALL_SOUND_OFF, value=0))


	def set_volume (self, db: float) -> None:

		"""Set master volume in decibels (0 dB is full scale), sent as CC 7."""

		self.volume_db = max(MIN_VOLUME_DB, min(MAX_VOLUME_DB, float(db)))
		self._send_volume()


	def set_muted (self, muted: bool) -> None:

		self.muted = bool(muted)
		self._send_volume()


	def close (self) -> None:

		"""Release all notes and close the port."""

		if self.midi_out is None:
			return

		self.release_all()

		try:
			self.midi_out.close()
		except Exception:
			logger.exception("Failed to close MIDI output")

		self.midi_out = None
		self.unlocked = False


	def _channels (self) -> typing.List[int]:

		return [
			beatrx.constants.LEAD_CHANNEL,
			beatrx.constants.HARMONY_CHANNEL,
			beatrx.constants.BASS_CHANNEL,
			beatrx.constants.DRUM_CHANNEL,
		]


	def _send_programs (self) -> None:

		programs = {
			beatrx.constants.LEAD_CHANNEL: self.palette.lead.program,
			beatrx.constants.HARMONY_CHANNEL: self.palette.harmony.program,
			beatrx.constants.BASS_CHANNEL: self.palette.bass.program,
		}

		for channel, program in programs.items():
			self._send_message(mido.Message("program_change", channel=channel, program=program))


	def _send_volume (self) -> None:

		value = 0 if self.muted else db_to_cc(self.volume_db)

		for channel in self._channels():
			self._send_message(mido.Message("control_change", channel=channel, control=CC_VOLUME, value=value))


	def _send (self, event: beatrx.voices.MidiEvent) -> None:

		if event.message_type in ("note_on", "note_off"):
			msg = mido.Message(
				event.message_type,
				channel = event.channel,
				note = event.note,
				velocity = event.velocity
			)

		elif event.message_type == "control_change":
			msg = mido.Message(
				"control_change",
				channel = event.channel,
				control = event.control,
				value = event.value
			)

		elif event.message_type == "program_change":
			msg = mido.Message(
				"program_change",
				channel = event.channel,
				program = event.value
			)

		else:
			logger.warning(f"Unsupported MIDI event type: {event.message_type}")
			return

		self._send_message(msg)


	def _send_message (self, msg: mido.Message) -> None:

		if self.midi_out is None:
			return

		try:
			self.midi_out.send(msg)
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")
