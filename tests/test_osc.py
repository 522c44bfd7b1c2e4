import asyncio
import typing

import pytest

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

import beatrx.clock
import beatrx.generator
import beatrx.osc

import conftest


@pytest.fixture
def generator (recording_engine: conftest.RecordingEngine) -> beatrx.generator.Generator:

	"""Create a generator for testing."""

	return beatrx.generator.Generator(recording_engine, beatrx.clock.ManualClock(), key="C", seed=1)  # type: ignore[arg-type]


async def _send (server: beatrx.osc.OscServer, address: str, *args: typing.Any) -> None:

	client = pythonosc.udp_client.SimpleUDPClient("127.0.0.1", server.receive_port)
	client.send_message(address, list(args))

	# Give it a tiny bit of time to process
	await asyncio.sleep(0.1)


@pytest.mark.asyncio
async def test_osc_bpm_handler (generator: beatrx.generator.Generator) -> None:

	"""Sending /bpm should update the generator tempo."""

	server = beatrx.osc.OscServer(generator, receive_port=0, send_port=0)
	await server.start()

	await _send(server, "/bpm", 145)

	assert generator.state.bpm == 145
	assert generator.clock.bpm == 145

	await server.stop()


@pytest.mark.asyncio
async def test_osc_key_and_mode_handlers (generator: beatrx.generator.Generator) -> None:

	server = beatrx.osc.OscServer(generator, receive_port=0, send_port=0)
	await server.start()

	await _send(server, "/key", "A", "natural_minor")
	assert generator.state.key.name() == "A minor"

	await _send(server, "/mode", "harmonic_minor")
	assert generator.state.key.name() == "A harmonic minor"

	await server.stop()


@pytest.mark.asyncio
async def test_osc_invalid_key_is_ignored (generator: beatrx.generator.Generator, caplog: pytest.LogCaptureFixture) -> None:

	"""A rejected key is logged and the current key keeps playing."""

	server = beatrx.osc.OscServer(generator, receive_port=0, send_port=0)
	await server.start()

	before = generator.state

	await _send(server, "/key", "B")

	assert generator.state is before
	assert "Invalid OSC /key" in caplog.text

	await server.stop()


@pytest.mark.asyncio
async def test_osc_grid_and_options (generator: beatrx.generator.Generator) -> None:

	server = beatrx.osc.OscServer(generator, receive_port=0, send_port=0)
	await server.start()

	await _send(server, "/grid", 2, 3)
	await _send(server, "/arp", 1)
	await _send(server, "/pattern", 2)
	await _send(server, "/playback", "continuous")

	state = generator.state

	assert state.grid.is_active(2, 3)
	assert state.arpeggiate
	assert state.drum_pattern == 2
	assert state.playback_mode == "continuous"

	await _send(server, "/grid/clear")
	await _send(server, "/arp")

	assert generator.state.grid.count() == 0
	assert not generator.state.arpeggiate

	await server.stop()


@pytest.mark.asyncio
async def test_osc_transport_and_volume (generator: beatrx.generator.Generator, recording_engine: conftest.RecordingEngine) -> None:

	server = beatrx.osc.OscServer(generator, receive_port=0, send_port=0)
	await server.start()

	await _send(server, "/start")
	assert generator.running

	await _send(server, "/volume", -12.0)
	await _send(server, "/mute", 1)

	assert recording_engine.volume_db == pytest.approx(-12.0)
	assert recording_engine.muted

	await _send(server, "/stop")
	assert not generator.running

	await server.stop()


@pytest.mark.asyncio
async def test_osc_sends_step_and_chord_updates (generator: beatrx.generator.Generator) -> None:

	"""Step, chord and key changes are broadcast to the send port."""

	received: typing.List[typing.Tuple[str, typing.Tuple[typing.Any, ...]]] = []

	listener = pythonosc.dispatcher.Dispatcher()
	listener.set_default_handler(lambda address, *args: received.append((address, args)))

	sink = pythonosc.osc_server.AsyncIOOSCUDPServer(("127.0.0.1", 0), listener, asyncio.get_running_loop())  # type: ignore[arg-type]
	sink_transport, _ = await sink.create_serve_endpoint()
	sink_port = sink_transport.get_extra_info("sockname")[1]

	server = beatrx.osc.OscServer(generator, receive_port=0, send_port=sink_port)
	await server.start()

	clock = typing.cast(beatrx.clock.ManualClock, generator.clock)
	generator.start()
	clock.advance_steps(1)
	generator.set_key("G")

	await asyncio.sleep(0.1)

	addresses = [address for address, args in received]

	assert ("/step", (0,)) in received
	assert ("/chord", ("C",)) in received
	assert ("/key", ("G major",)) in received
	assert addresses.index("/step") < addresses.index("/key")

	generator.stop()
	await server.stop()
	sink_transport.close()


@pytest.mark.asyncio
async def test_osc_non_numeric_tempo_is_ignored (generator: beatrx.generator.Generator, caplog: pytest.LogCaptureFixture) -> None:

	"""A tempo of "nan" is logged and the clock keeps its current tempo."""

	server = beatrx.osc.OscServer(generator, receive_port=0, send_port=0)
	await server.start()

	await _send(server, "/bpm", "nan")

	assert generator.state.bpm == 120.0
	assert generator.clock.bpm == 120.0
	assert "Invalid OSC /bpm" in caplog.text

	await server.stop()
