"""Sound bank: maps track and instrument names to playable voices.

A ``SoundBank`` is handed to the player explicitly instead of living in global
caches. It knows three kinds of voice:

- **sample** voices - the drum kit names (``kick``, ``snare``, ...) mapped to
  General MIDI percussion notes on the drum channel. The MIDI renderer always
  plays the fixed kit note and ignores a step's ``pitch``; ``playback_rate``
  converts that pitch to a rate for players that repitch audio.
- **synth** voices - named synthesizer types (``fmsynth``, ``pluck``, ...)
  played melodically on the synth channel, ``pitch`` being a semitone offset
  from middle C or a note name such as ``"C#4"``.
- **fallback** voices - any other name. These get a plain synthesized
  approximation on the synth channel, and a warning is logged once per name.
"""

import dataclasses
import logging
import re
import typing


logger = logging.getLogger(__name__)


MIDDLE_C = 60

NOTE_NAMES: typing.List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0, "C#": 1, "Db": 1,
	"D": 2, "D#": 3, "Eb": 3,
	"E": 4,
	"F": 5, "F#": 6, "Gb": 6,
	"G": 7, "G#": 8, "Ab": 8,
	"A": 9, "A#": 10, "Bb": 10,
	"B": 11,
}

NOTE_NAME_PATTERN = re.compile(r"([A-Ga-g])([#b]?)(-?\d+)")

# General MIDI percussion notes for the default kit names.
DEFAULT_SAMPLES: typing.Dict[str, int] = {
	"kick": 36,
	"snare": 38,
	"hihat": 42,
	"openhat": 46,
	"clap": 39,
	"crash": 49,
	"ride": 51,
	"rimshot": 37,
	"hitom": 50,
	"midtom": 47,
	"lotom": 45,
	"hiconga": 62,
	"loconga": 64,
	"hicowbell": 56,
	"locowbell": 56,
	"timbale": 65,
}

# General MIDI programs standing in for each synth type.
DEFAULT_SYNTHS: typing.Dict[str, int] = {
	"synth": 80,
	"amsynth": 81,
	"fmsynth": 4,
	"monosynth": 38,
	"polysynth": 90,
	"pluck": 45,
	"membrane": 117,
	"metal": 14,
	"noise": 121,
}

FALLBACK_PROGRAM = 80

SAMPLE = "sample"
SYNTH = "synth"
FALLBACK = "fallback"


@dataclasses.dataclass(frozen=True)
class Voice:

	"""
	How a sound name is played.

	``note`` is the fixed MIDI note for sample voices and None for melodic ones.
	"""

	name: str
	kind: str
	channel: int
	note: typing.Optional[int] = None
	program: typing.Optional[int] = None

	@property
	def melodic (self) -> bool:
		return self.kind != SAMPLE


def note_name_to_midi (name: str) -> int:

	"""
	Convert a note name to a MIDI note number, with C4 = 60.

	Example:
		```python
		note_name_to_midi("C4")   # 60
		note_name_to_midi("C#4")  # 61
		note_name_to_midi("Bb3")  # 58
		```
	"""

	match = NOTE_NAME_PATTERN.fullmatch(name.strip())

	key = match.group(1).upper() + match.group(2) if match else None

	if match is None or key not in NOTE_NAME_TO_PC:
		raise ValueError(f"Unknown note name: {name!r}. Expected e.g. 'C4', 'F#3', 'Bb2'.")

	return (int(match.group(3)) + 1) * 12 + NOTE_NAME_TO_PC[key]


def midi_to_note_name (note: int) -> str:

	"""Convert a MIDI note number to a sharp-spelled name, e.g. 61 -> ``"C#4"``."""

	return f"{NOTE_NAMES[note % 12]}{note // 12 - 1}"


def playback_rate (semitones: float) -> float:

	"""Sample playback rate for a pitch shift in semitones."""

	return 2 ** (semitones / 12)


def volume_to_velocity (volume: float, base_velocity: int = 100) -> int:

	"""
	Convert a stacked volume, read as decibels, into a MIDI velocity.

	0 dB keeps ``base_velocity``; +6 dB roughly doubles it; the result is
	clamped to 1-127.
	"""

	velocity = round(base_velocity * 10 ** (volume / 20))

	return max(1, min(127, velocity))


def pitch_to_midi (pitch: typing.Union[str, int, float], base_note: int = MIDDLE_C) -> int:

	"""
	Resolve a descriptor pitch to a MIDI note.

	Numbers are semitone offsets from ``base_note``; strings are note names.
	Either way the result is clamped to the MIDI range 0..127.
	"""

	if isinstance(pitch, str):
		note = note_name_to_midi(pitch)
	else:
		note = base_note + int(round(pitch))

	return max(0, min(127, note))


class SoundBank:

	"""
	Resolves sound names to voices.

	Parameters:
		samples: Sample names to GM percussion notes. Defaults to the built-in kit.
		synths: Synth type names to GM program numbers.
		drum_channel: 0-indexed MIDI channel for sample voices (GM drums = 9).
		synth_channel: 0-indexed MIDI channel for synth and fallback voices.
	"""

	def __init__ (
		self,
		samples: typing.Optional[typing.Mapping[str, int]] = None,
		synths: typing.Optional[typing.Mapping[str, int]] = None,
		drum_channel: int = 9,
		synth_channel: int = 0
	) -> None:

		self.samples: typing.Dict[str, int] = {key.lower(): note for key, note in (DEFAULT_SAMPLES if samples is None else samples).items()}
		self.synths: typing.Dict[str, int] = {key.lower(): program for key, program in (DEFAULT_SYNTHS if synths is None else synths).items()}
		self.drum_channel = drum_channel
		self.synth_channel = synth_channel

		self._warned: typing.Set[str] = set()

	def register_sample (self, name: str, note: int) -> None:

		"""Map ``name`` to a percussion note, replacing any existing mapping."""

		if not 0 <= note <= 127:
			raise ValueError(f"MIDI note must be 0-127, got {note}")

		self.samples[name.lower()] = note

	def resolve (self, name: str) -> Voice:

		"""Return the voice for ``name``, falling back to a plain synth."""

		key = name.lower()

		if key in self.samples:
			return Voice(name, SAMPLE, self.drum_channel, note=self.samples[key])

		if key in self.synths:
			return Voice(name, SYNTH, self.synth_channel, program=self.synths[key])

		if key not in self._warned:
			logger.warning(f"No sample registered for '{name}' - using a synthesized voice")
			self._warned.add(key)

		return Voice(name, FALLBACK, self.synth_channel, program=FALLBACK_PROGRAM)
