"""Transport clocks.

Both clocks count **pulses** at 24 per quarter note and accumulate transport
time pulse by pulse. A recurring callback fires on every pulse that is a
multiple of its interval, so its grid is anchored to pulse 0 and a change of
tempo only stretches or shrinks the pulses still to come.

- `TransportClock` runs in real time as an asyncio task.
- `ManualClock` advances only when told to, for tests and offline use.
"""

import asyncio
import dataclasses
import itertools
import logging
import math
import time
import typing

import beatrx.constants


logger = logging.getLogger(__name__)


ClockCallback = typing.Callable[[float], typing.Any]


def seconds_per_step (bpm: float, steps_per_beat: int = beatrx.constants.STEPS_PER_BEAT) -> float:

	"""
	Duration of one sequencer step in seconds.

	Example:
		```python
		seconds_per_step(120)  # → 0.125
		seconds_per_step(90)   # → 0.1666...
		```
	"""

	if not math.isfinite(bpm) or bpm <= 0:
		raise ValueError(f"BPM must be a positive number, got {bpm!r}")

	return 60.0 / (bpm * steps_per_beat)


@typing.runtime_checkable
class Clock (typing.Protocol):

	"""
	The scheduling capability the sequencer depends on.
	"""

	bpm: float
	running: bool
	on_pulse: typing.Optional[ClockCallback]


	def schedule_recurring (self, callback: ClockCallback, subdivision: float) -> int:
		...


	def cancel (self, handle: int) -> None:
		...


	def current_time (self) -> float:
		...


	def start (self) -> None:
		...


	def stop (self) -> None:
		...


@dataclasses.dataclass
class ScheduledCallback:

	"""
	Tracks a repeating callback and its interval.
	"""

	handle: int
	callback: ClockCallback
	interval_pulses: int


class _PulseClock:

	"""
	Pulse counting, tempo and callback bookkeeping shared by both clocks.
	"""

	def __init__ (self, bpm: float = 120.0) -> None:

		self.pulses_per_beat = beatrx.constants.MIDI_QUARTER_NOTE
		self.running = False
		self.pulse_count = 0
		self.on_pulse: typing.Optional[ClockCallback] = None

		self._time = 0.0
		self._bpm = 0.0
		self.seconds_per_pulse = 0.0
		self._callbacks: typing.Dict[int, ScheduledCallback] = {}
		self._handles = itertools.count(1)

		self.bpm = bpm


	@property
	def bpm (self) -> float:

		return self._bpm


	@bpm.setter
	def bpm (self, value: float) -> None:

		"""
		Change tempo from the next pulse on, without moving the step grid.
		"""

		value = float(value)

		if not math.isfinite(value) or value <= 0:
			raise ValueError(f"BPM must be a positive number, got {value!r}")

		self._bpm = value
		self.seconds_per_pulse = 60.0 / self._bpm / self.pulses_per_beat

		logger.info(f"BPM set to {self._bpm:.2f}")


	def schedule_recurring (self, callback: ClockCallback, subdivision: float) -> int:

		"""
		Call ``callback(time)`` on every ``subdivision`` beats; return a handle.

		The first call lands on the next pulse that is a multiple of the
		subdivision.

		Raises:
			ValueError: If the subdivision is shorter than one pulse.
		"""

		interval = round(subdivision * self.pulses_per_beat)

		if interval <= 0:
			raise ValueError(f"Subdivision {subdivision} is shorter than one clock pulse")

		handle = next(self._handles)
		self._callbacks[handle] = ScheduledCallback(handle=handle, callback=callback, interval_pulses=interval)

		return handle


	def cancel (self, handle: int) -> None:

		"""Cancel a recurring callback. Unknown handles are ignored."""

		self._callbacks.pop(handle, None)


	def current_time (self) -> float:

		"""Transport time in seconds since the clock started."""

		return self._time


	def reset (self) -> None:

		self.pulse_count = 0
		self._time = 0.0


	def _advance_pulse (self) -> None:

		now = self._time

		for scheduled in list(self._callbacks.values()):

			# Cancelled by an earlier callback in this pulse.
			if scheduled.handle not in self._callbacks:
				continue

			if self.pulse_count % scheduled.interval_pulses != 0:
				continue

			try:
				scheduled.callback(now)
			except Exception:
				logger.exception(f"Clock callback {scheduled.handle} failed")

		if self.on_pulse is not None:
			try:
				self.on_pulse(now)
			except Exception:
				logger.exception("Clock pulse hook failed")

		self.pulse_count += 1
		self._time += self.seconds_per_pulse


class TransportClock (_PulseClock):

	"""
	Real-time clock driven by an asyncio task.
	"""

	def __init__ (self, bpm: float = 120.0, spin_wait: bool = True) -> None:

		"""
		Parameters:
			bpm: Starting tempo.
			spin_wait: When True (default), sleep to within a millisecond of each
				pulse and busy-wait the remainder for lower jitter. Set to False
				to use pure ``asyncio.sleep()`` (lower CPU, higher jitter).
		"""

		super().__init__(bpm)

		self.task: typing.Optional[asyncio.Task] = None
		self._spin_wait = spin_wait
		self._spin_threshold = 0.001


	def start (self) -> None:

		"""
		Start pulsing from pulse 0. Must be called with an event loop running.
		"""

		if self.running:
			return

		self.reset()
		self.running = True
		self.task = asyncio.get_running_loop().create_task(self._run_loop())

		logger.info("Clock started")


	def stop (self) -> None:

		if not self.running:
			return

		self.running = False

		if self.task is not None:
			self.task.cancel()
			self.task = None

		logger.info("Clock stopped")


	async def wait (self) -> None:

		"""Wait until the clock task finishes."""

		if self.task is None:
			return

		try:
			await self.task
		except asyncio.CancelledError:
			pass


	async def _run_loop (self) -> None:

		next_pulse_time = time.perf_counter()

		while self.running:

			while self.running and time.perf_counter() >= next_pulse_time:
				self._advance_pulse()
				next_pulse_time += self.seconds_per_pulse

			if not self.running:
				break

			sleep_time = next_pulse_time - time.perf_counter()

			if sleep_time > 0:
				if self._spin_wait and sleep_time > self._spin_threshold:
					await asyncio.sleep(sleep_time - self._spin_threshold)
					while time.perf_counter() < next_pulse_time:
						pass
				else:
					await asyncio.sleep(sleep_time)
			else:
				await asyncio.sleep(0)


class ManualClock (_PulseClock):

	"""
	A clock that only moves when advanced explicitly.

	Example:
		```python
		clock = ManualClock(bpm=120)
		clock.schedule_recurring(print, 0.25)
		clock.start()
		clock.advance_steps(4)  # prints 0.0, 0.125, 0.25, 0.375
		```
	"""

	def start (self) -> None:

		if self.running:
			return

		self.reset()
		self.running = True


	def stop (self) -> None:

		self.running = False


	def advance_pulses (self, count: int) -> None:

		"""Run ``count`` pulses. Does nothing while stopped."""

		for _ in range(count):

			if not self.running:
				break

			self._advance_pulse()


	def advance_steps (self, count: int) -> None:

		"""Run ``count`` sixteenth-note steps."""

		self.advance_pulses(count * beatrx.constants.MIDI_SIXTEENTH_NOTE)


	def advance (self, seconds: float) -> None:

		"""Run every pulse that falls within the next ``seconds`` of transport time."""

		target = self._time + seconds

		while self.running and self._time <= target - 1e-9:
			self._advance_pulse()
