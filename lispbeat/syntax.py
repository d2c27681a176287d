"""Syntax tree nodes produced by the parser.

A parsed program is a tuple of nodes, each one of:

- ``Number`` - a numeric literal.
- ``StringLiteral`` - a double-quoted literal. Evaluates to itself.
- ``Symbol`` - a bare identifier, looked up or dispatched on. Keyword markers
  such as ``:velocity`` are ordinary symbols at this level.
- ``List`` - a ``(...)`` or ``[...]`` grouping.
- ``Quoted`` - the child of a ``'`` marker, handed to the parent unevaluated.

Nodes are frozen and may be evaluated any number of times. Source positions
(``line``, ``column``) are carried for diagnostics but ignored by equality, so
``parse("(a b)")`` compares equal to a hand-built tree.
"""

import dataclasses
import typing


@dataclasses.dataclass(frozen=True)
class Number:

	value: typing.Union[int, float]
	line: typing.Optional[int] = dataclasses.field(default=None, compare=False, repr=False)
	column: typing.Optional[int] = dataclasses.field(default=None, compare=False, repr=False)


@dataclasses.dataclass(frozen=True)
class StringLiteral:

	value: str
	line: typing.Optional[int] = dataclasses.field(default=None, compare=False, repr=False)
	column: typing.Optional[int] = dataclasses.field(default=None, compare=False, repr=False)


@dataclasses.dataclass(frozen=True)
class Symbol:

	name: str
	line: typing.Optional[int] = dataclasses.field(default=None, compare=False, repr=False)
	column: typing.Optional[int] = dataclasses.field(default=None, compare=False, repr=False)

	@property
	def is_keyword (self) -> bool:

		"""True for ``:name`` markers used by the named-argument convention."""

		return len(self.name) > 1 and self.name.startswith(":")


@dataclasses.dataclass(frozen=True)
class List:

	items: typing.Tuple["Node", ...] = ()
	bracket: str = dataclasses.field(default="(", compare=False, repr=False)
	line: typing.Optional[int] = dataclasses.field(default=None, compare=False, repr=False)
	column: typing.Optional[int] = dataclasses.field(default=None, compare=False, repr=False)

	def __len__ (self) -> int:
		return len(self.items)

	def __iter__ (self) -> typing.Iterator["Node"]:
		return iter(self.items)

	def __getitem__ (self, index: int) -> "Node":
		return self.items[index]


@dataclasses.dataclass(frozen=True)
class Quoted:

	child: "Node"
	line: typing.Optional[int] = dataclasses.field(default=None, compare=False, repr=False)
	column: typing.Optional[int] = dataclasses.field(default=None, compare=False, repr=False)


Node = typing.Union[Number, StringLiteral, Symbol, List, Quoted]

NODE_TYPES = (Number, StringLiteral, Symbol, List, Quoted)

_CLOSERS = {"(": ")", "[": "]"}


def is_node (value: typing.Any) -> bool:

	"""Return True if ``value`` is a syntax node."""

	return isinstance(value, NODE_TYPES)


def _escape (text: str) -> str:

	return (
		text.replace("\\", "\\\\")
			.replace('"', '\\"')
			.replace("\n", "\\n")
			.replace("\t", "\\t")
	)


def _render (value: typing.Any) -> str:

	if isinstance(value, Number):
		return str(value.value)

	if isinstance(value, StringLiteral):
		return f'"{_escape(value.value)}"'

	if isinstance(value, Symbol):
		return value.name

	if isinstance(value, Quoted):
		return "'" + _render(value.child)

	if isinstance(value, List):
		closer = _CLOSERS.get(value.bracket, ")")
		return value.bracket + " ".join(_render(item) for item in value.items) + closer

	# Runtime values that can appear alongside syntax (evaluated lists, results).
	if isinstance(value, bool):
		return "true" if value else "false"

	if isinstance(value, (int, float)):
		return str(value)

	if isinstance(value, str):
		return f'"{_escape(value)}"'

	if isinstance(value, (tuple, list)):
		return "(" + " ".join(_render(item) for item in value) + ")"

	return repr(value)


def to_source (value: typing.Any, limit: typing.Optional[int] = None) -> str:

	"""
	Render a syntax node or runtime value as s-expression text.

	When ``limit`` is given, the text is cut to that many characters and
	suffixed with ``...``.
	"""

	text = _render(value)

	if limit is not None and len(text) > limit:
		return text[:limit] + "..."

	return text
