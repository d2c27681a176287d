"""Render scheduled triggers to a Standard MIDI File.

This is the bundled player. Sample voices play their fixed percussion note on
the drum channel. Synth and fallback voices play melodically, each distinct
sound name getting its own channel (starting at the bank's synth channel and
skipping the drum channel) with a program change at the start of the file.
"""

import logging
import typing

import mido

import lispbeat.scheduler
import lispbeat.sounds


logger = logging.getLogger(__name__)


DEFAULT_TICKS_PER_BEAT = 480
MIDI_CHANNELS = 16


def _allocate_channels (voices: typing.Iterable[lispbeat.sounds.Voice], sound_bank: lispbeat.sounds.SoundBank) -> typing.Dict[str, int]:

	"""Give each melodic sound name a channel of its own, wrapping when we run out."""

	free = [channel for channel in range(MIDI_CHANNELS) if channel != sound_bank.drum_channel]
	first = free.index(sound_bank.synth_channel) if sound_bank.synth_channel in free else 0
	free = free[first:] + free[:first]

	channels: typing.Dict[str, int] = {}

	for voice in voices:
		key = voice.name.lower()
		if voice.melodic and key not in channels:
			channels[key] = free[len(channels) % len(free)]

	if len(channels) > len(free):
		logger.warning(f"{len(channels)} melodic sounds share {len(free)} channels")

	return channels


def build_midi (
	triggers: typing.Sequence[lispbeat.scheduler.Trigger],
	tempo: float = 120,
	sound_bank: typing.Optional[lispbeat.sounds.SoundBank] = None,
	ticks_per_beat: int = DEFAULT_TICKS_PER_BEAT,
	base_velocity: int = 100
) -> mido.MidiFile:

	"""
	Build a type 1 MIDI file from ``triggers`` without writing it.

	Track 0 carries the tempo; track 1 carries every note.
	"""

	if tempo <= 0:
		raise ValueError("Tempo must be positive")

	if sound_bank is None:
		sound_bank = lispbeat.sounds.SoundBank()

	voices = [sound_bank.resolve(trigger.sound) for trigger in triggers]
	channels = _allocate_channels(voices, sound_bank)

	mid = mido.MidiFile(type=1)
	mid.ticks_per_beat = ticks_per_beat

	tempo_track = mido.MidiTrack()
	tempo_track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(tempo), time=0))
	mid.tracks.append(tempo_track)

	track = mido.MidiTrack()
	mid.tracks.append(track)

	programs = {voice.name.lower(): voice.program for voice in voices if voice.melodic}

	for key, channel in channels.items():
		track.append(mido.Message("program_change", channel=channel, program=programs[key], time=0))

	# (tick, order, message): note-offs sort ahead of note-ons on the same tick.
	timeline: typing.List[typing.Tuple[int, int, mido.Message]] = []

	for trigger, voice in zip(triggers, voices):

		if voice.melodic:
			channel = channels[voice.name.lower()]

			try:
				note = lispbeat.sounds.pitch_to_midi(trigger.pitch)
			except (ValueError, OverflowError) as e:
				logger.warning(f"Skipping trigger at beat {trigger.time}: {e}")
				continue

		else:
			channel = voice.channel
			note = voice.note

		base = base_velocity if trigger.velocity is None else round(trigger.velocity * 127)
		velocity = lispbeat.sounds.volume_to_velocity(trigger.volume, base)

		on_tick = max(0, round(trigger.time * ticks_per_beat))
		off_tick = max(on_tick + 1, round((trigger.time + trigger.duration) * ticks_per_beat))

		timeline.append((on_tick, 1, mido.Message("note_on", channel=channel, note=note, velocity=velocity)))
		timeline.append((off_tick, 0, mido.Message("note_off", channel=channel, note=note, velocity=0)))

	timeline.sort(key=lambda entry: (entry[0], entry[1]))

	last_tick = 0

	for tick, _, message in timeline:
		message.time = tick - last_tick
		track.append(message)
		last_tick = tick

	return mid


def render_midi (
	triggers: typing.Sequence[lispbeat.scheduler.Trigger],
	filename: str,
	tempo: float = 120,
	sound_bank: typing.Optional[lispbeat.sounds.SoundBank] = None,
	ticks_per_beat: int = DEFAULT_TICKS_PER_BEAT,
	base_velocity: int = 100
) -> mido.MidiFile:

	"""
	Write ``triggers`` to ``filename`` as a MIDI file and return it.

	Example:
		```python
		results = lispbeat.run(open("beat.lisp").read())
		triggers = lispbeat.scheduler.schedule_program(results, loops=4)
		render_midi(triggers, "beat.mid", tempo=lispbeat.scheduler.program_tempo(results))
		```
	"""

	logger.info(f"Saving MIDI render ({len(triggers)} triggers) to {filename}...")

	mid = build_midi(triggers, tempo, sound_bank, ticks_per_beat, base_velocity)
	mid.save(filename)

	logger.info(f"Saved {filename}")

	return mid
