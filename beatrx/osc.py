"""OSC integration for external control and step broadcasting.

Enable it with ``generator.osc()`` before ``generator.play()``. The server
listens on a UDP port (default 9000) for control messages and sends state
updates to a target host/port (default 127.0.0.1:9001), which is how an
external UI drives the generator and highlights the playing step.

Built-in Receive Handlers
─────────────────────────
- ``/start``, ``/stop``: Transport
- ``/bpm <number>``: Set tempo
- ``/key <root> [mode]``: Set key (e.g. ``/key A natural_minor``)
- ``/mode <mode>``: Set scale mode, keeping the root
- ``/playback <loop|continuous>``: Set playback mode
- ``/palette <name>``: Select instrument palette
- ``/pattern <index>``, ``/pattern/next``: Select or cycle the drum pattern
- ``/arp <0|1>``: Arpeggiate chords
- ``/grid <row> <step>``, ``/grid/clear``: Edit the manual grid
- ``/melody/regenerate``, ``/melody/evolve``: Melody variation
- ``/randomize``: Random key
- ``/volume <db>``, ``/mute <0|1>``: Output level

Built-in Send Events
────────────────────
- ``/step <int>``: Every step
- ``/chord <string>``: On chord change
- ``/key <string>``: On key change
- ``/bpm <float>``: On tempo change
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

if typing.TYPE_CHECKING:
	from beatrx.generator import Generator


logger = logging.getLogger(__name__)


class OscServer:

	"""Async OSC server/client for bi-directional communication."""

	def __init__ (
		self,
		generator: "Generator",
		receive_port: int = 9000,
		send_port: int = 9001,
		send_host: str = "127.0.0.1"
	) -> None:

		self._generator = generator
		self._receive_port = receive_port
		self._send_port = send_port
		self._send_host = send_host

		self._server: typing.Optional[typing.Any] = None
		self._transport: typing.Optional[asyncio.BaseTransport] = None
		self._client: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None
		self._dispatcher = pythonosc.dispatcher.Dispatcher()

		# Register built-in handlers
		self._dispatcher.map("/start", self._handle_start)
		self._dispatcher.map("/stop", self._handle_stop)
		self._dispatcher.map("/bpm", self._handle_bpm)
		self._dispatcher.map("/key", self._handle_key)
		self._dispatcher.map("/mode", self._handle_mode)
		self._dispatcher.map("/playback", self._handle_playback)
		self._dispatcher.map("/palette", self._handle_palette)
		self._dispatcher.map("/pattern", self._handle_pattern)
		self._dispatcher.map("/pattern/next", self._handle_pattern_next)
		self._dispatcher.map("/arp", self._handle_arp)
		self._dispatcher.map("/grid", self._handle_grid)
		self._dispatcher.map("/grid/clear", self._handle_grid_clear)
		self._dispatcher.map("/melody/regenerate", self._handle_melody_regenerate)
		self._dispatcher.map("/melody/evolve", self._handle_melody_evolve)
		self._dispatcher.map("/randomize", self._handle_randomize)
		self._dispatcher.map("/volume", self._handle_volume)
		self._dispatcher.map("/mute", self._handle_mute)

		generator.events.on("step", self._on_step)
		generator.events.on("chord", self._on_chord)
		generator.events.on("reconfigure", self._on_reconfigure)


	@property
	def receive_port (self) -> typing.Optional[int]:

		"""The bound UDP port (useful when constructed with port 0)."""

		if self._transport is None:
			return None

		return self._transport.get_extra_info("sockname")[1]


	async def start (self) -> None:

		"""Start the OSC server and client."""

		self._client = pythonosc.udp_client.SimpleUDPClient(self._send_host, self._send_port)

		self._server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			("0.0.0.0", self._receive_port),
			self._dispatcher,
			asyncio.get_running_loop()  # type: ignore[arg-type]
		)

		transport, _ = await self._server.create_serve_endpoint()
		self._transport = transport

		logger.info(f"OSC listening on :{self.receive_port}, sending to {self._send_host}:{self._send_port}")


	async def stop (self) -> None:

		"""Stop the OSC server."""

		if self._transport:
			self._transport.close()
			self._transport = None
			logger.info("OSC server stopped")


	def send (self, address: str, *args: typing.Any) -> None:

		"""Send an OSC message."""

		if self._client:
			try:
				self._client.send_message(address, args)
			except Exception as e:
				logger.warning(f"OSC send error: {e}")


	def map (self, address: str, handler: typing.Callable) -> None:

		"""Register a custom OSC handler."""

		self._dispatcher.map(address, handler)


	# Outgoing

	def _on_step (self, step: int) -> None:
		self.send("/step", step)

	def _on_chord (self, chord: typing.Any) -> None:
		self.send("/chord", chord.name())

	def _on_reconfigure (self, changed: typing.FrozenSet[str]) -> None:

		state = self._generator.state

		if "key" in changed:
			self.send("/key", state.key.name())

		if "bpm" in changed:
			self.send("/bpm", state.bpm)


	# Handlers

	def _call (self, address: str, operation: typing.Callable[..., typing.Any], *args: typing.Any) -> None:

		"""Run a generator operation, logging rejected input instead of raising."""

		try:
			operation(*args)
		except (ValueError, TypeError, IndexError) as e:
			logger.warning(f"Invalid OSC {address} arguments {list(args)}: {e}")

	def _handle_start (self, address: str, *args: typing.Any) -> None:
		self._call(address, self._generator.start)

	def _handle_stop (self, address: str, *args: typing.Any) -> None:
		self._call(address, self._generator.stop)

	def _handle_bpm (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		self._call(address, lambda value: self._generator.set_tempo(float(value)), args[0])

	def _handle_key (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		self._call(address, self._generator.set_key, *(str(arg) for arg in args[:2]))

	def _handle_mode (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		self._call(address, self._generator.set_scale_mode, str(args[0]))

	def _handle_playback (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		self._call(address, self._generator.set_playback_mode, str(args[0]))

	def _handle_palette (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		self._call(address, self._generator.set_palette, str(args[0]))

	def _handle_pattern (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		self._call(address, lambda value: self._generator.set_drum_pattern(int(value)), args[0])

	def _handle_pattern_next (self, address: str, *args: typing.Any) -> None:
		self._call(address, self._generator.next_drum_pattern)

	def _handle_arp (self, address: str, *args: typing.Any) -> None:
		if not args:
			self._call(address, self._generator.toggle_arpeggiate)
			return
		self._call(address, lambda value: self._generator.set_arpeggiate(bool(int(value))), args[0])

	def _handle_grid (self, address: str, *args: typing.Any) -> None:
		if len(args) < 2:
			logger.warning(f"OSC {address} needs <row> <step>")
			return
		self._call(address, lambda row, step: self._generator.toggle_cell(int(row), int(step)), args[0], args[1])

	def _handle_grid_clear (self, address: str, *args: typing.Any) -> None:
		self._call(address, self._generator.clear_grid)

	def _handle_melody_regenerate (self, address: str, *args: typing.Any) -> None:
		self._call(address, self._generator.regenerate_melody)

	def _handle_melody_evolve (self, address: str, *args: typing.Any) -> None:
		self._call(address, self._generator.evolve_melody)

	def _handle_randomize (self, address: str, *args: typing.Any) -> None:
		self._call(address, self._generator.randomize)

	def _handle_volume (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		self._call(address, lambda value: self._generator.set_volume(float(value)), args[0])

	def _handle_mute (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		self._call(address, lambda value: self._generator.set_muted(bool(int(value))), args[0])
