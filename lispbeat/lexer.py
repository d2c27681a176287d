"""Tokenizer for lispbeat source text.

Comments run from ``;`` to the end of the line. They are blanked out before
scanning rather than removed, so every token's offset, line and column refer to
the original text.
"""

import dataclasses
import logging
import re
import typing

import lispbeat.errors


logger = logging.getLogger(__name__)


PUNCTUATION = "punctuation"
STRING = "string"
NUMBER = "number"
SYMBOL = "symbol"

PUNCTUATION_CHARS = "'()[]"
ATOM_TERMINATORS = PUNCTUATION_CHARS + '"'

ESCAPES: typing.Dict[str, str] = {
	"n": "\n",
	"t": "\t",
}

NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")

# How much of an unterminated string to quote back in the error.
STRING_CONTEXT_LENGTH = 10


@dataclasses.dataclass(frozen=True)
class Token:

	"""
	A single lexical token with its position in the original source.
	"""

	value: typing.Union[str, int, float]
	kind: str
	position: int
	line: int
	column: int


def strip_comments (text: str) -> str:

	"""
	Blank out ``;`` comments, leaving string literals untouched.

	Comment characters are replaced by spaces so the result has the same length
	and line structure as ``text``.
	"""

	chars = list(text)
	in_string = False
	in_comment = False
	i = 0

	while i < len(chars):

		char = chars[i]

		if in_comment:
			if char == "\n":
				in_comment = False
			else:
				chars[i] = " "

		elif in_string:
			if char == "\\":
				i += 1
			elif char == '"':
				in_string = False

		elif char == '"':
			in_string = True

		elif char == ";":
			in_comment = True
			chars[i] = " "

		i += 1

	return "".join(chars)


def parse_number (atom: str) -> typing.Optional[typing.Union[int, float]]:

	"""
	Return the numeric value of ``atom``, or None if it is not a number.

	Integers stay ``int``; anything with a decimal point becomes ``float``.
	"""

	if not NUMBER_PATTERN.fullmatch(atom):
		return None

	if "." in atom:
		return float(atom)

	return int(atom)


class _Cursor:

	"""
	Walks the source text while tracking line and column.
	"""

	def __init__ (self, text: str) -> None:

		self.text = text
		self.position = 0
		self.line = 1
		self.column = 1

	def done (self) -> bool:
		return self.position >= len(self.text)

	def peek (self) -> str:
		return self.text[self.position]

	def advance (self) -> str:

		char = self.text[self.position]
		self.position += 1

		if char == "\n":
			self.line += 1
			self.column = 1
		else:
			self.column += 1

		return char


def tokenize (source: str) -> typing.List[Token]:

	"""
	Convert source text into a list of positioned tokens.

	Parameters:
		source: Program text. Comments are ignored.

	Returns:
		Tokens in source order. Whitespace never produces a token.

	Raises:
		lispbeat.errors.UnterminatedString: If a string literal has no closing
			quote. The error points at the opening quote.

	Example:
		```python
		tokens = tokenize('(note "C4" :velocity 0.9)')
		[t.value for t in tokens]  # ['(', 'note', 'C4', ':velocity', 0.9, ')']
		```
	"""

	cursor = _Cursor(strip_comments(source))
	tokens: typing.List[Token] = []

	while not cursor.done():

		char = cursor.peek()

		if char.isspace():
			cursor.advance()
			continue

		start, line, column = cursor.position, cursor.line, cursor.column

		if char in PUNCTUATION_CHARS:
			cursor.advance()
			tokens.append(Token(char, PUNCTUATION, start, line, column))
			continue

		if char == '"':
			tokens.append(_read_string(cursor))
			continue

		while not cursor.done() and not cursor.peek().isspace() and cursor.peek() not in ATOM_TERMINATORS:
			cursor.advance()

		atom = cursor.text[start:cursor.position]
		number = parse_number(atom)

		if number is None:
			tokens.append(Token(atom, SYMBOL, start, line, column))
		else:
			tokens.append(Token(number, NUMBER, start, line, column))

	logger.debug(f"Tokenized {len(source)} characters into {len(tokens)} tokens")

	return tokens


def _read_string (cursor: _Cursor) -> Token:

	"""
	Read a double-quoted string starting at the cursor's opening quote.
	"""

	start, line, column = cursor.position, cursor.line, cursor.column
	cursor.advance()

	parts: typing.List[str] = []

	while not cursor.done() and cursor.peek() != '"':

		char = cursor.advance()

		if char == "\\" and not cursor.done():
			escaped = cursor.advance()
			parts.append(ESCAPES.get(escaped, escaped))
		else:
			parts.append(char)

	if cursor.done():
		partial = "".join(parts)
		suffix = "..." if len(partial) > STRING_CONTEXT_LENGTH else ""

		raise lispbeat.errors.UnterminatedString(
			"Unterminated string",
			line = line,
			column = column,
			context = f'"{partial[:STRING_CONTEXT_LENGTH]}{suffix}"'
		)

	cursor.advance()

	return Token("".join(parts), STRING, start, line, column)
