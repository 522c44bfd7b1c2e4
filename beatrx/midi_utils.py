"""MIDI output device discovery via mido."""

import logging
import typing

import mido


logger = logging.getLogger(__name__)


DEFAULT_VIRTUAL_PORT_NAME = "BeatRX"


def select_output_device (
	device_name: typing.Optional[str] = None,
	virtual: bool = False
) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Select and open a MIDI output device.

	- With ``virtual=True``, creates a virtual port (named ``device_name`` or
	  ``"BeatRX"``) that other applications can connect to.
	- With a ``device_name``, opens exactly that device.
	- Otherwise auto-discovers: the first available output is used, with a
	  warning when there is more than one to choose from.

	Returns:
		A tuple of (device_name, midi_out_object) or (None, None) on failure.
	"""

	try:
		if virtual:
			name = device_name or DEFAULT_VIRTUAL_PORT_NAME
			midi_out = mido.open_output(name, virtual=True)
			logger.info(f"Opened virtual MIDI output: {name}")
			return name, midi_out

		outputs = mido.get_output_names()
		logger.info(f"Available MIDI outputs: {outputs}")

		if not outputs:
			logger.error("No MIDI output devices found.")
			return None, None

		if device_name is not None:
			if device_name not in outputs:
				logger.error(
					f"MIDI output device '{device_name}' not found. "
					f"Available devices: {outputs}"
				)
				return None, None

			midi_out = mido.open_output(device_name)
			logger.info(f"Opened MIDI output: {device_name}")
			return device_name, midi_out

		selected_name = outputs[0]

		if len(outputs) > 1:
			logger.warning(
				f"Several MIDI outputs found, using '{selected_name}'. "
				f"Set midi.device_name in the config to choose another: {outputs}"
			)

		midi_out = mido.open_output(selected_name)
		logger.info(f"Opened MIDI output: {selected_name}")
		return selected_name, midi_out

	except Exception as e:
		logger.error(f"Failed to open MIDI output: {e}")
		return None, None
