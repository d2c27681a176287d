"""Music event descriptors.

These are the values the music primitives return and the only thing handed to
a player. They are frozen dataclasses holding plain data - no reference back to
the environment that built them - so a scheduler can consume a tree at its own
pace while nothing mutates it.

Every descriptor has a class-level ``kind`` tag. Collections are tuples.
"""

import dataclasses
import typing


Pitch = typing.Union[str, int, float]


@dataclasses.dataclass(frozen=True)
class Note:

	kind: typing.ClassVar[str] = "note"

	pitch: Pitch
	duration: float = 1
	velocity: float = 0.7
	instrument: str = "default"


@dataclasses.dataclass(frozen=True)
class Chord:

	kind: typing.ClassVar[str] = "chord"

	notes: typing.Tuple[Pitch, ...]
	duration: float = 1
	velocity: float = 0.7
	instrument: str = "default"


@dataclasses.dataclass(frozen=True)
class Sequence:

	"""Children play back to back."""

	kind: typing.ClassVar[str] = "sequence"

	events: typing.Tuple[typing.Any, ...] = ()


@dataclasses.dataclass(frozen=True)
class Parallel:

	"""Children start together."""

	kind: typing.ClassVar[str] = "parallel"

	events: typing.Tuple[typing.Any, ...] = ()


@dataclasses.dataclass(frozen=True)
class BeatMachine:

	"""
	A one-line step pattern: ``x`` is a hit and ``.`` a rest, one sixteenth each.
	"""

	kind: typing.ClassVar[str] = "beatMachine"

	pattern: str
	sounds: typing.Tuple[str, ...]
	tempo: float = 120
	swing: float = 0


@dataclasses.dataclass(frozen=True)
class Step:

	"""One rhythmic slot of a track."""

	kind: typing.ClassVar[str] = "step"

	active: bool
	pitch: float = 0
	volume: float = 0
	duration: float = 0.25


@dataclasses.dataclass(frozen=True)
class Effect:

	"""An effect applied to a target descriptor, usually a step."""

	kind: typing.ClassVar[str] = "effect"

	effect_type: str
	params: typing.Tuple[typing.Union[int, float, str], ...]
	target: typing.Any


@dataclasses.dataclass(frozen=True)
class Track:

	"""
	One instrument's timeline within an arrangement.

	``bars`` is None until the enclosing arrangement supplies its own value.
	``time`` is the number of steps per measure, independent for each track.
	"""

	kind: typing.ClassVar[str] = "track"

	sound_name: str
	steps: typing.Tuple[typing.Union[Step, Effect], ...]
	active: bool = True
	bars: typing.Optional[int] = None
	time: int = 16
	volume: float = 0


@dataclasses.dataclass(frozen=True)
class Arrangement:

	kind: typing.ClassVar[str] = "arrangement"

	tracks: typing.Tuple[Track, ...]
	active: bool = True
	bars: int = 1
	volume: float = 0
	name: typing.Optional[str] = None


@dataclasses.dataclass(frozen=True)
class DrumMachine:

	kind: typing.ClassVar[str] = "drumMachine"

	arrangements: typing.Tuple[Arrangement, ...]
	tempo: float = 120
	signature: int = 4
	name: typing.Optional[str] = None


DESCRIPTOR_TYPES = (Note, Chord, Sequence, Parallel, BeatMachine, DrumMachine, Arrangement, Track, Step, Effect)


def is_descriptor (value: typing.Any) -> bool:

	"""Return True if ``value`` is a music event descriptor."""

	return isinstance(value, DESCRIPTOR_TYPES)


def effective_bars (track: Track, arrangement: typing.Optional[Arrangement] = None) -> int:

	"""
	A track's own ``bars`` when set, else its arrangement's, else 1.
	"""

	if track.bars is not None:
		return track.bars

	if arrangement is not None:
		return arrangement.bars

	return 1


def effective_volume (step: Step, track: Track, arrangement: typing.Optional[Arrangement] = None) -> float:

	"""
	Stack step, track and arrangement volumes by plain addition.

	Example:
		```python
		# arrangement +2, track -4, step +0.5
		effective_volume(step, track, arrangement)  # -1.5
		```
	"""

	arrangement_volume = arrangement.volume if arrangement is not None else 0

	return step.volume + track.volume + arrangement_volume


def active_arrangement (machine: DrumMachine) -> typing.Optional[Arrangement]:

	"""Return the first active arrangement, or None when all are muted."""

	for arrangement in machine.arrangements:
		if arrangement.active:
			return arrangement

	return None


def as_dict (value: typing.Any) -> typing.Any:

	"""
	Convert a descriptor tree to JSON-friendly dicts and lists.

	Each descriptor becomes a dict with its ``kind`` first, followed by its
	fields. Non-descriptor values pass through, with tuples turned into lists.
	"""

	if is_descriptor(value):
		result: typing.Dict[str, typing.Any] = {"kind": value.kind}

		for field in dataclasses.fields(value):
			result[field.name] = as_dict(getattr(value, field.name))

		return result

	if isinstance(value, (tuple, list)):
		return [as_dict(item) for item in value]

	return value
