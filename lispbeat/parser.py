"""Recursive-descent parser from tokens to syntax nodes.

Brackets must pair by kind: ``(`` closes with ``)`` and ``[`` with ``]``. The
first structural problem aborts the parse with a ``ParseError`` carrying the
line and column of the offending token (or, for a missing closer, of the
opening bracket that was never closed). No partial tree is ever returned.
"""

import logging
import typing

import lispbeat.errors
import lispbeat.lexer
import lispbeat.syntax


logger = logging.getLogger(__name__)


OPENERS: typing.Dict[str, str] = {
	"(": ")",
	"[": "]",
}

CLOSERS = frozenset(OPENERS.values())

QUOTE = "'"


class _Parser:

	"""
	Holds the token stream and the one-token lookahead position.
	"""

	def __init__ (self, tokens: typing.Sequence[lispbeat.lexer.Token]) -> None:

		self.tokens = tokens
		self.position = 0

	def at_end (self) -> bool:
		return self.position >= len(self.tokens)

	def _is_punctuation (self, token: lispbeat.lexer.Token, chars: typing.Container[str]) -> bool:
		return token.kind == lispbeat.lexer.PUNCTUATION and token.value in chars

	def parse_expression (self, after: typing.Optional[lispbeat.lexer.Token] = None) -> lispbeat.syntax.Node:

		"""
		Parse one expression starting at the current token.

		``after`` is the token that demanded this expression (a quote marker),
		used to locate the error when the input ends too early.
		"""

		if self.at_end():
			anchor = after if after is not None else (self.tokens[-1] if self.tokens else None)

			raise lispbeat.errors.UnexpectedEndOfInput(
				"Unexpected end of input",
				line = anchor.line if anchor else 1,
				column = anchor.column if anchor else 1
			)

		token = self.tokens[self.position]
		self.position += 1

		if self._is_punctuation(token, QUOTE):
			child = self.parse_expression(after=token)
			return lispbeat.syntax.Quoted(child, line=token.line, column=token.column)

		if self._is_punctuation(token, OPENERS):
			return self._parse_list(token)

		if self._is_punctuation(token, CLOSERS):
			raise lispbeat.errors.UnexpectedClosingBracket(
				f"Unexpected {token.value}",
				line = token.line,
				column = token.column
			)

		if token.kind == lispbeat.lexer.STRING:
			return lispbeat.syntax.StringLiteral(str(token.value), line=token.line, column=token.column)

		if token.kind == lispbeat.lexer.NUMBER:
			return lispbeat.syntax.Number(token.value, line=token.line, column=token.column)  # type: ignore[arg-type]

		return lispbeat.syntax.Symbol(str(token.value), line=token.line, column=token.column)

	def _parse_list (self, opener: lispbeat.lexer.Token) -> lispbeat.syntax.List:

		"""
		Parse list items up to the closer matching ``opener``.
		"""

		expected = OPENERS[str(opener.value)]
		opening = f"Opening {opener.value} at line {opener.line}, column {opener.column}"
		items: typing.List[lispbeat.syntax.Node] = []

		while not self.at_end() and not self._is_punctuation(self.tokens[self.position], CLOSERS):
			items.append(self.parse_expression())

		if self.at_end():
			raise lispbeat.errors.MissingClosingBracket(
				f"Missing closing {expected}",
				line = opener.line,
				column = opener.column,
				context = opening
			)

		closer = self.tokens[self.position]

		if closer.value != expected:
			raise lispbeat.errors.MismatchedBrackets(
				f"Mismatched brackets: expected '{expected}' but got '{closer.value}'",
				line = closer.line,
				column = closer.column,
				context = opening
			)

		self.position += 1

		return lispbeat.syntax.List(
			tuple(items),
			bracket = str(opener.value),
			line = opener.line,
			column = opener.column
		)


def parse (tokens: typing.Sequence[lispbeat.lexer.Token], source: str = "") -> typing.Tuple[lispbeat.syntax.Node, ...]:

	"""
	Parse a token stream into a program: an ordered tuple of top-level forms.

	Parameters:
		tokens: Output of ``lispbeat.lexer.tokenize``.
		source: The original text. When given, bracket errors quote the
			offending source line in their context.

	Raises:
		lispbeat.errors.ParseError: On the first structural error.
	"""

	parser = _Parser(tokens)
	forms: typing.List[lispbeat.syntax.Node] = []

	try:
		while not parser.at_end():
			start = parser.tokens[parser.position]

			try:
				forms.append(parser.parse_expression())

			except RecursionError:
				raise lispbeat.errors.NestingTooDeep(
					"Nesting too deep",
					line = start.line,
					column = start.column,
					context = f"Form starting at line {start.line}, column {start.column}"
				) from None

	except lispbeat.errors.ParseError as error:
		if source and error.line is not None:
			excerpt = source_line(source, error.line)

			if excerpt:
				error.context = f"{error.context}\n{excerpt}" if error.context else excerpt

		raise

	return tuple(forms)


def source_line (source: str, line: int) -> str:

	"""
	Return the stripped text of a 1-based ``line`` in ``source``, or ``""``.
	"""

	lines = source.splitlines()

	if 1 <= line <= len(lines):
		return lines[line - 1].strip()

	return ""


def parse_program (source: str) -> typing.Tuple[lispbeat.syntax.Node, ...]:

	"""
	Tokenize and parse ``source`` in one step.

	Example:
		```python
		parse_program("(a (b c) d)")
		# (List((Symbol('a'), List((Symbol('b'), Symbol('c'))), Symbol('d'))),)
		```
	"""

	program = parse(lispbeat.lexer.tokenize(source), source)

	logger.debug(f"Parsed {len(program)} top-level forms")

	return program
