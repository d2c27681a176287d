"""Turn event descriptor trees into time-stamped triggers.

This is the consumption side of the evaluator's output. It reads descriptors
without changing them and produces a flat, time-ordered list of ``Trigger``
records a player can fire. Times and durations are in beats (1.0 = a quarter
note); converting beats to seconds is left to the player and its tempo.

Timing rules:

- ``sequence`` children play back to back; ``parallel`` children start together.
- A ``beatMachine`` pattern is a sixteenth-note grid. Every ``x`` fires all of
  its sounds. Odd steps are pushed late by ``swing`` times half a step.
- A ``drumMachine`` plays its first active arrangement. The arrangement's loop
  is ``bars * signature`` beats long. Each track lays its steps out at
  ``time`` steps per measure over its own ``bars`` and repeats that pattern
  until the arrangement loop ends, so tracks with different lengths or
  subdivisions run against each other (polyrhythm).
- A step's volume is the sum of its own, its track's and its arrangement's.
"""

import dataclasses
import logging
import typing

import lispbeat.events


logger = logging.getLogger(__name__)


STEP_BEATS = 0.25
DEFAULT_SIGNATURE = 4
DEFAULT_SOUND = "default"


@dataclasses.dataclass(frozen=True)
class Trigger:

	"""
	One sound to fire.

	``velocity`` is the 0-1 note velocity for notes and chords, and None for
	drum-machine steps, which are shaped by ``volume`` alone.
	"""

	time: float
	sound: str
	duration: float
	pitch: lispbeat.events.Pitch = 0
	velocity: typing.Optional[float] = None
	volume: float = 0
	effects: typing.Tuple[lispbeat.events.Effect, ...] = ()
	track: typing.Optional[str] = None


def length (descriptor: typing.Any, signature: int = DEFAULT_SIGNATURE) -> float:

	"""
	How many beats ``descriptor`` occupies when played once.

	Non-descriptor values take no time.
	"""

	if isinstance(descriptor, (lispbeat.events.Note, lispbeat.events.Chord, lispbeat.events.Step)):
		return descriptor.duration

	if isinstance(descriptor, lispbeat.events.Sequence):
		return sum(length(event, signature) for event in descriptor.events)

	if isinstance(descriptor, lispbeat.events.Parallel):
		return max((length(event, signature) for event in descriptor.events), default=0)

	if isinstance(descriptor, lispbeat.events.BeatMachine):
		return len(descriptor.pattern) * STEP_BEATS

	if isinstance(descriptor, lispbeat.events.DrumMachine):
		arrangement = lispbeat.events.active_arrangement(descriptor)
		return arrangement.bars * descriptor.signature if arrangement is not None else 0

	if isinstance(descriptor, lispbeat.events.Arrangement):
		return descriptor.bars * signature

	if isinstance(descriptor, lispbeat.events.Track):
		return lispbeat.events.effective_bars(descriptor) * signature

	if isinstance(descriptor, lispbeat.events.Effect):
		return length(descriptor.target, signature)

	return 0


def schedule (descriptor: typing.Any, start: float = 0.0, loops: int = 1, signature: int = DEFAULT_SIGNATURE) -> typing.List[Trigger]:

	"""
	Flatten a descriptor tree into triggers sorted by time.

	Parameters:
		descriptor: Any event descriptor.
		start: Beat at which the descriptor begins.
		loops: How many times to play it back to back.
		signature: Beats per measure for a bare arrangement or track. A drum
			machine always uses its own ``signature``.

	Example:
		```python
		results = lispbeat.run('(sequence (note "C4") (note "E4" 2))')
		[(t.time, t.pitch) for t in schedule(results[0])]
		# [(0.0, 'C4'), (1.0, 'E4')]
		```
	"""

	if loops < 1:
		raise ValueError("loops must be at least 1")

	if isinstance(descriptor, lispbeat.events.DrumMachine):
		signature = descriptor.signature

	loop_length = length(descriptor, signature)
	triggers: typing.List[Trigger] = []

	for loop in range(loops):
		_schedule(descriptor, start + loop * loop_length, signature, (), triggers)

	triggers.sort(key=lambda trigger: trigger.time)

	return triggers


def schedule_program (results: typing.Sequence[typing.Any], loops: int = 1) -> typing.List[Trigger]:

	"""
	Schedule every descriptor among a program's top-level results from beat 0.

	Results that are not descriptors (numbers, strings, functions) are skipped.
	"""

	triggers: typing.List[Trigger] = []

	for result in results:
		if lispbeat.events.is_descriptor(result):
			triggers.extend(schedule(result, loops=loops))

	triggers.sort(key=lambda trigger: trigger.time)

	logger.info(f"Scheduled {len(triggers)} triggers")

	return triggers


def program_tempo (results: typing.Sequence[typing.Any], default: float = 120) -> float:

	"""The tempo of the first drum or beat machine in ``results``, else ``default``."""

	for result in results:
		if isinstance(result, (lispbeat.events.DrumMachine, lispbeat.events.BeatMachine)):
			return result.tempo

	return default


def _schedule (
	descriptor: typing.Any,
	start: float,
	signature: int,
	effects: typing.Tuple[lispbeat.events.Effect, ...],
	out: typing.List[Trigger]
) -> None:

	if isinstance(descriptor, lispbeat.events.Note):
		out.append(Trigger(
			time = start,
			sound = descriptor.instrument,
			duration = descriptor.duration,
			pitch = descriptor.pitch,
			velocity = descriptor.velocity,
			effects = effects
		))

	elif isinstance(descriptor, lispbeat.events.Chord):
		for pitch in descriptor.notes:
			out.append(Trigger(
				time = start,
				sound = descriptor.instrument,
				duration = descriptor.duration,
				pitch = pitch,
				velocity = descriptor.velocity,
				effects = effects
			))

	elif isinstance(descriptor, lispbeat.events.Sequence):
		position = start
		for event in descriptor.events:
			_schedule(event, position, signature, effects, out)
			position += length(event, signature)

	elif isinstance(descriptor, lispbeat.events.Parallel):
		for event in descriptor.events:
			_schedule(event, start, signature, effects, out)

	elif isinstance(descriptor, lispbeat.events.BeatMachine):
		_schedule_beat_machine(descriptor, start, effects, out)

	elif isinstance(descriptor, lispbeat.events.DrumMachine):
		arrangement = lispbeat.events.active_arrangement(descriptor)

		if arrangement is None:
			logger.warning("No active arrangement found - nothing to play")
			return

		_schedule_arrangement(arrangement, start, descriptor.signature, effects, out)

	elif isinstance(descriptor, lispbeat.events.Arrangement):
		if descriptor.active:
			_schedule_arrangement(descriptor, start, signature, effects, out)

	elif isinstance(descriptor, lispbeat.events.Track):
		loop_beats = lispbeat.events.effective_bars(descriptor) * signature
		_schedule_track(descriptor, None, start, signature, loop_beats, effects, out)

	elif isinstance(descriptor, lispbeat.events.Step):
		if descriptor.active:
			out.append(Trigger(
				time = start,
				sound = DEFAULT_SOUND,
				duration = descriptor.duration,
				pitch = descriptor.pitch,
				volume = descriptor.volume,
				effects = effects
			))

	elif isinstance(descriptor, lispbeat.events.Effect):
		_schedule(descriptor.target, start, signature, effects + (descriptor,), out)


def _schedule_beat_machine (
	machine: lispbeat.events.BeatMachine,
	start: float,
	effects: typing.Tuple[lispbeat.events.Effect, ...],
	out: typing.List[Trigger]
) -> None:

	swing_delay = max(0.0, min(1.0, machine.swing)) * STEP_BEATS / 2

	for index, symbol in enumerate(machine.pattern):

		if symbol != "x":
			continue

		time = start + index * STEP_BEATS + (swing_delay if index % 2 else 0)

		for sound in machine.sounds:
			out.append(Trigger(time=time, sound=sound, duration=STEP_BEATS, effects=effects))


def _schedule_arrangement (
	arrangement: lispbeat.events.Arrangement,
	start: float,
	signature: int,
	effects: typing.Tuple[lispbeat.events.Effect, ...],
	out: typing.List[Trigger]
) -> None:

	loop_beats = arrangement.bars * signature

	for track in arrangement.tracks:
		_schedule_track(track, arrangement, start, signature, loop_beats, effects, out)


def _unwrap_step (item: typing.Any) -> typing.Tuple[typing.Optional[lispbeat.events.Step], typing.Tuple[lispbeat.events.Effect, ...]]:

	"""Peel effects off a track entry, returning the step and its effects outermost first."""

	effects: typing.List[lispbeat.events.Effect] = []

	while isinstance(item, lispbeat.events.Effect):
		effects.append(item)
		item = item.target

	if not isinstance(item, lispbeat.events.Step):
		return None, ()

	return item, tuple(effects)


def _schedule_track (
	track: lispbeat.events.Track,
	arrangement: typing.Optional[lispbeat.events.Arrangement],
	start: float,
	signature: int,
	loop_beats: float,
	effects: typing.Tuple[lispbeat.events.Effect, ...],
	out: typing.List[Trigger]
) -> None:

	if not track.active:
		return

	bars = lispbeat.events.effective_bars(track, arrangement)
	steps_per_measure = track.time
	capacity = steps_per_measure * bars
	track_beats = bars * signature
	step_beats = signature / steps_per_measure

	if len(track.steps) > capacity:
		logger.warning(
			f"Track '{track.sound_name}' has {len(track.steps)} steps but room for {capacity} "
			f"({steps_per_measure} per measure x {bars} bars) - skipping the rest"
		)

	for index, item in enumerate(track.steps[:capacity]):

		step, step_effects = _unwrap_step(item)

		if step is None or not step.active:
			continue

		offset = (index // steps_per_measure) * signature + (index % steps_per_measure) * step_beats
		volume = lispbeat.events.effective_volume(step, track, arrangement)

		while offset < loop_beats:
			out.append(Trigger(
				time = start + offset,
				sound = track.sound_name,
				duration = step.duration,
				pitch = step.pitch,
				volume = volume,
				effects = effects + step_effects,
				track = track.sound_name
			))
			offset += track_beats
