"""Built-in functions: arithmetic, comparison and music constructors.

Every primitive is called as ``function(positional, env, named)`` where
``positional`` is a list of evaluated values, ``env`` is the caller's
environment and ``named`` maps keyword names (without ``:``) to evaluated
values. Primitives registered with ``accepts_named=False`` never see named
arguments - the evaluator rejects the call first.

Music constructors apply the defaults below and return frozen descriptors
from ``lispbeat.events``:

====================  ==============================  ==========================================
Primitive             Positional                      Named (default)
====================  ==============================  ==========================================
``note``              pitch, [duration=1]             velocity=0.7, instrument="default"
``chord``             notes (list or one), [dur=1]    velocity=0.7, instrument="default"
``sequence``          events...
``parallel``          events...
``beat-machine``      pattern, sounds                 tempo=120, swing=0
``drum-machine``      [name], arrangements...         tempo=120, signature=4
``arrangement``       tracks...                       active=1, bars=1, volume=0, name
``track``             sound name, steps (list)        active=1, volume=0, bars=inherit, time=16
``step``              active (0/1)                    pitch=0, volume=0, duration=0.25
``effect``            type, params..., target
====================  ==============================  ==========================================
"""

import dataclasses
import functools
import logging
import math
import operator
import typing

import lispbeat.environment
import lispbeat.errors
import lispbeat.evaluator
import lispbeat.events
import lispbeat.lexer
import lispbeat.syntax


logger = logging.getLogger(__name__)


PrimitiveFunction = typing.Callable[
	[typing.List[typing.Any], lispbeat.environment.Environment, typing.Dict[str, typing.Any]],
	typing.Any
]


@dataclasses.dataclass(frozen=True)
class Primitive:

	"""
	A built-in function and whether it takes ``:name value`` arguments.
	"""

	name: str
	function: PrimitiveFunction
	accepts_named: bool = False

	def __repr__ (self) -> str:
		return f"#<primitive {self.name}>"


PRIMITIVES: typing.Dict[str, Primitive] = {}

CONSTANTS: typing.Dict[str, typing.Any] = {
	"true": True,
	"false": False,
}


def primitive (name: str, accepts_named: bool = False) -> typing.Callable[[PrimitiveFunction], PrimitiveFunction]:

	"""Register the decorated function as the primitive ``name``."""

	def decorator (function: PrimitiveFunction) -> PrimitiveFunction:
		PRIMITIVES[name] = Primitive(name, function, accepts_named)
		return function

	return decorator


def global_bindings () -> typing.Dict[str, typing.Any]:

	"""The name-to-value table a global environment starts from."""

	bindings: typing.Dict[str, typing.Any] = dict(CONSTANTS)
	bindings.update(PRIMITIVES)

	return bindings


# ─── Value helpers ───────────────────────────────────────────────────


def extract_value (value: typing.Any) -> typing.Any:

	"""
	Reduce quoted syntax to plain data.

	A quoted string, number or symbol becomes its text or number; a quoted list
	becomes a tuple of extracted items. Other values pass through.
	"""

	if isinstance(value, lispbeat.syntax.Quoted):
		return extract_value(value.child)

	if isinstance(value, (lispbeat.syntax.Number, lispbeat.syntax.StringLiteral)):
		return value.value

	if isinstance(value, lispbeat.syntax.Symbol):
		return value.name

	if isinstance(value, lispbeat.syntax.List):
		return tuple(extract_value(item) for item in value.items)

	return value


def _describe (value: typing.Any) -> str:
	return lispbeat.syntax.to_source(value, limit=40)


def _is_number (value: typing.Any) -> bool:
	return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number (value: typing.Any, where: str) -> typing.Union[int, float]:

	"""
	Coerce an argument to a number.

	Accepts numbers, booleans (as 0/1), quoted numbers and numeric strings.
	"""

	value = extract_value(value)

	if isinstance(value, bool):
		return int(value)

	if _is_number(value):
		return value

	if isinstance(value, str):
		number = lispbeat.lexer.parse_number(value.strip())

		if number is not None:
			return number

	raise lispbeat.errors.InvalidArgument(f"{where} expects a number, got {_describe(value)}")


def to_flag (value: typing.Any, where: str) -> bool:

	"""``active``-style flags are true exactly when they equal 1."""

	return to_number(value, where) == 1


def to_count (value: typing.Any, where: str) -> int:

	"""Coerce to a positive whole number (bars, steps per measure)."""

	number = to_number(value, where)

	if not math.isfinite(number) or number <= 0 or number != int(number):
		raise lispbeat.errors.InvalidArgument(f"{where} expects a positive whole number, got {_describe(number)}")

	return int(number)


def to_text (value: typing.Any, where: str) -> str:

	value = extract_value(value)

	if isinstance(value, str):
		return value

	if _is_number(value):
		return str(value)

	raise lispbeat.errors.InvalidArgument(f"{where} expects a string, got {_describe(value)}")


def to_items (value: typing.Any) -> typing.Tuple[typing.Any, ...]:

	"""
	Treat a quoted list or an evaluated list as its items, and anything else as
	a one-item list.
	"""

	if isinstance(value, lispbeat.syntax.Quoted):
		value = value.child

	if isinstance(value, lispbeat.syntax.List):
		return value.items

	if isinstance(value, (tuple, list)):
		return tuple(value)

	return (value,)


def _named (named: typing.Dict[str, typing.Any], key: str, convert: typing.Callable[[typing.Any, str], typing.Any], where: str, default: typing.Any) -> typing.Any:

	if key not in named:
		return default

	return convert(named[key], f"{where} :{key}")


def _require_descriptors (values: typing.Sequence[typing.Any], types: typing.Tuple[type, ...], where: str, expected: str) -> None:

	for value in values:
		if not isinstance(value, types):
			raise lispbeat.errors.InvalidArgument(f"{where} expects {expected}, got {_describe(value)}")


def _at_most (args: typing.Sequence[typing.Any], count: int, where: str) -> None:

	if len(args) > count:
		raise lispbeat.errors.InvalidArgument(f"{where} takes at most {count} positional argument(s), got {len(args)}")


# ─── Arithmetic ──────────────────────────────────────────────────────


def _numbers (args: typing.Sequence[typing.Any], where: str) -> typing.List[typing.Union[int, float]]:

	numbers = []

	for arg in args:
		if not _is_number(arg):
			raise lispbeat.errors.InvalidArgument(f"'{where}' expects numbers, got {_describe(arg)}")
		numbers.append(arg)

	return numbers


def _at_least (args: typing.Sequence[typing.Any], count: int, where: str) -> None:

	if len(args) < count:
		raise lispbeat.errors.InvalidArgument(f"'{where}' needs at least {count} argument(s)")


@primitive("+")
def _add (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> typing.Any:
	return sum(_numbers(args, "+"), 0)


@primitive("-")
def _subtract (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> typing.Any:

	_at_least(args, 1, "-")
	numbers = _numbers(args, "-")

	if len(numbers) == 1:
		return -numbers[0]

	return functools.reduce(operator.sub, numbers)


@primitive("*")
def _multiply (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> typing.Any:
	return functools.reduce(operator.mul, _numbers(args, "*"), 1)


def _checked (function: typing.Callable[[typing.Any, typing.Any], typing.Any], where: str) -> typing.Callable[[typing.Any, typing.Any], typing.Any]:

	def apply (a: typing.Any, b: typing.Any) -> typing.Any:

		if b == 0:
			raise lispbeat.errors.InvalidArgument(f"Division by zero in '{where}'")

		return function(a, b)

	return apply


@primitive("/")
def _divide (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> typing.Any:

	_at_least(args, 1, "/")
	numbers = _numbers(args, "/")

	if len(numbers) == 1:
		numbers = [1] + numbers

	return functools.reduce(_checked(operator.truediv, "/"), numbers)


@primitive("mod")
def _modulo (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> typing.Any:

	_at_least(args, 2, "mod")

	return functools.reduce(_checked(operator.mod, "mod"), _numbers(args, "mod"))


@primitive("pow")
def _power (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> typing.Any:

	_at_least(args, 1, "pow")

	try:
		result = functools.reduce(operator.pow, _numbers(args, "pow"))
	except ZeroDivisionError:
		raise lispbeat.errors.InvalidArgument("Zero raised to a negative power in 'pow'") from None
	except OverflowError:
		raise lispbeat.errors.InvalidArgument("Result of 'pow' is too large") from None

	# Negative bases with fractional exponents go complex.
	if isinstance(result, complex):
		raise lispbeat.errors.InvalidArgument("'pow' of a negative number to a fractional power has no real result")

	return result


# ─── Comparison ──────────────────────────────────────────────────────


def _chained (args: typing.Sequence[typing.Any], test: typing.Callable[[typing.Any, typing.Any], bool]) -> bool:

	"""True when ``test`` holds for every consecutive pair."""

	return all(test(a, b) for a, b in zip(args, args[1:]))


def _ordered (where: str, test: typing.Callable[[typing.Any, typing.Any], bool]) -> PrimitiveFunction:

	def compare (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> bool:

		if not (all(_is_number(arg) for arg in args) or all(isinstance(arg, str) for arg in args)):
			raise lispbeat.errors.InvalidArgument(f"'{where}' expects all numbers or all strings")

		return _chained(args, test)

	return compare


@primitive("=")
def _equal (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> bool:
	return _chained(args, operator.eq)


@primitive("!=")
def _not_equal (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> bool:
	return _chained(args, operator.ne)


for _name, _test in (("<", operator.lt), (">", operator.gt), ("<=", operator.le), (">=", operator.ge)):
	primitive(_name)(_ordered(_name, _test))


# ─── Utilities ───────────────────────────────────────────────────────


@primitive("list")
def _list (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> typing.Tuple[typing.Any, ...]:
	return tuple(args)


@primitive("print")
def _print (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> typing.Any:

	"""Write the arguments to stdout and return the last one."""

	print(" ".join(arg if isinstance(arg, str) else lispbeat.syntax.to_source(arg) for arg in args))

	return args[-1] if args else lispbeat.evaluator.EMPTY


# ─── Music constructors ──────────────────────────────────────────────


@primitive("note", accepts_named=True)
def _note (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> lispbeat.events.Note:

	_at_most(args, 2, "note")

	if not args:
		raise lispbeat.errors.InvalidArgument("note requires a pitch")

	pitch = extract_value(args[0])
	duration = to_number(args[1], "note duration") if len(args) > 1 else 1

	return lispbeat.events.Note(
		pitch = pitch,
		duration = duration,
		velocity = _named(named, "velocity", to_number, "note", 0.7),
		instrument = _named(named, "instrument", to_text, "note", "default")
	)


@primitive("chord", accepts_named=True)
def _chord (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> lispbeat.events.Chord:

	_at_most(args, 2, "chord")

	if not args:
		raise lispbeat.errors.InvalidArgument("chord requires a list of notes")

	notes = tuple(extract_value(item) for item in to_items(args[0]))
	duration = to_number(args[1], "chord duration") if len(args) > 1 else 1

	return lispbeat.events.Chord(
		notes = notes,
		duration = duration,
		velocity = _named(named, "velocity", to_number, "chord", 0.7),
		instrument = _named(named, "instrument", to_text, "chord", "default")
	)


@primitive("sequence", accepts_named=True)
def _sequence (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> lispbeat.events.Sequence:

	_require_descriptors(args, lispbeat.events.DESCRIPTOR_TYPES, "sequence", "music events")

	return lispbeat.events.Sequence(events=tuple(args))


@primitive("parallel", accepts_named=True)
def _parallel (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> lispbeat.events.Parallel:

	_require_descriptors(args, lispbeat.events.DESCRIPTOR_TYPES, "parallel", "music events")

	return lispbeat.events.Parallel(events=tuple(args))


BEAT_PATTERN_CHARS = frozenset("xX.")


@primitive("beat-machine", accepts_named=True)
def _beat_machine (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> lispbeat.events.BeatMachine:

	_at_most(args, 2, "beat-machine")

	if len(args) < 2:
		raise lispbeat.errors.InvalidArgument("beat-machine requires a pattern and a list of sounds")

	pattern = to_text(args[0], "beat-machine pattern")
	invalid = set(pattern) - BEAT_PATTERN_CHARS

	if invalid:
		raise lispbeat.errors.InvalidArgument(
			f"beat-machine pattern may only contain 'x' and '.', got {''.join(sorted(invalid))!r}"
		)

	return lispbeat.events.BeatMachine(
		pattern = pattern.lower(),
		sounds = tuple(to_text(sound, "beat-machine sound") for sound in to_items(args[1])),
		tempo = _named(named, "tempo", to_number, "beat-machine", 120),
		swing = _named(named, "swing", to_number, "beat-machine", 0)
	)


@primitive("drum-machine", accepts_named=True)
def _drum_machine (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> lispbeat.events.DrumMachine:

	name: typing.Optional[str] = None

	if args and isinstance(args[0], str):
		name, args = args[0], args[1:]

	_require_descriptors(args, (lispbeat.events.Arrangement,), "drum-machine", "arrangements")

	tempo = _named(named, "tempo", to_number, "drum-machine", 120)

	if tempo <= 0:
		raise lispbeat.errors.InvalidArgument(f"drum-machine :tempo must be positive, got {tempo}")

	return lispbeat.events.DrumMachine(
		arrangements = tuple(args),
		tempo = tempo,
		signature = _named(named, "signature", to_count, "drum-machine", 4),
		name = name
	)


@primitive("arrangement", accepts_named=True)
def _arrangement (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> lispbeat.events.Arrangement:

	"""Build an arrangement, resolving each track's inherited ``bars``."""

	_require_descriptors(args, (lispbeat.events.Track,), "arrangement", "tracks")

	bars = _named(named, "bars", to_count, "arrangement", 1)

	tracks = tuple(
		track if track.bars is not None else dataclasses.replace(track, bars=bars)
		for track in args
	)

	return lispbeat.events.Arrangement(
		tracks = tracks,
		active = _named(named, "active", to_flag, "arrangement", True),
		bars = bars,
		volume = _named(named, "volume", to_number, "arrangement", 0),
		name = _named(named, "name", to_text, "arrangement", None)
	)


def _track_step (item: typing.Any, env: lispbeat.environment.Environment) -> typing.Union[lispbeat.events.Step, lispbeat.events.Effect]:

	value = lispbeat.evaluator.evaluate(item, env) if lispbeat.syntax.is_node(item) else item

	if isinstance(value, (lispbeat.events.Step, lispbeat.events.Effect)):
		return value

	raise lispbeat.errors.InvalidTrackSteps(f"Track steps must be step descriptors, got {_describe(value)}")


@primitive("track", accepts_named=True)
def _track (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> lispbeat.events.Track:

	"""
	Build a track from a sound name and a list of steps.

	The steps list is usually quoted, so its ``(step ...)`` forms arrive
	unevaluated and are evaluated here in the caller's environment.
	"""

	_at_most(args, 2, "track")

	if not args:
		raise lispbeat.errors.InvalidArgument("track requires a sound name")

	sound_name = to_text(args[0], "track sound name")

	if len(args) < 2 or not isinstance(args[1], (lispbeat.syntax.List, tuple, list)):
		raise lispbeat.errors.InvalidTrackSteps(
			"Track requires a quoted list of steps as its second argument"
		)

	steps = tuple(_track_step(item, env) for item in to_items(args[1]))

	logger.debug(f"Track {sound_name!r} built with {len(steps)} steps")

	return lispbeat.events.Track(
		sound_name = sound_name,
		steps = steps,
		active = _named(named, "active", to_flag, "track", True),
		bars = _named(named, "bars", to_count, "track", None),
		time = _named(named, "time", to_count, "track", 16),
		volume = _named(named, "volume", to_number, "track", 0)
	)


@primitive("step", accepts_named=True)
def _step (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> lispbeat.events.Step:

	_at_most(args, 1, "step")

	if not args:
		raise lispbeat.errors.InvalidArgument("step requires an active flag (0 or 1)")

	return lispbeat.events.Step(
		active = to_flag(args[0], "step active flag"),
		pitch = _named(named, "pitch", to_number, "step", 0),
		volume = _named(named, "volume", to_number, "step", 0),
		duration = _named(named, "duration", to_number, "step", 0.25)
	)


@primitive("effect", accepts_named=True)
def _effect (args: typing.List[typing.Any], env: lispbeat.environment.Environment, named: typing.Dict[str, typing.Any]) -> lispbeat.events.Effect:

	"""``(effect type params... target)`` - the last positional is the target."""

	if len(args) < 2:
		raise lispbeat.errors.InvalidArgument("effect requires an effect type and a target")

	target = args[-1]

	if not lispbeat.events.is_descriptor(target):
		raise lispbeat.errors.InvalidArgument(f"effect target must be a music event, got {_describe(target)}")

	return lispbeat.events.Effect(
		effect_type = to_text(args[0], "effect type"),
		params = tuple(extract_value(param) for param in args[1:-1]),
		target = target
	)
