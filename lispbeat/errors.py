"""Error taxonomy for lispbeat.

Every failure the language core can produce is a ``LispbeatError``. The three
branches mirror the pipeline stages:

- ``LexError`` - raised while turning text into tokens.
- ``ParseError`` - raised while building the syntax tree (bracket problems,
  truncated input).
- ``EvaluationError`` - raised while evaluating a form.

All errors share one shape (``kind``, ``message``, ``line``, ``column``,
``context``) so an orchestration layer can report them without inspecting
message text. ``as_dict()`` gives that shape as plain data.
"""

import typing

import lispbeat.syntax


class LispbeatError (Exception):

	"""
	Base class for all structured lispbeat errors.
	"""

	def __init__ (
		self,
		message: str,
		line: typing.Optional[int] = None,
		column: typing.Optional[int] = None,
		context: typing.Optional[str] = None
	) -> None:

		self.message = message
		self.line = line
		self.column = column
		self.context = context

		super().__init__(message)

	@property
	def kind (self) -> str:

		"""The error class name, e.g. ``"MissingClosingBracket"``."""

		return type(self).__name__

	def __str__ (self) -> str:

		text = self.message

		if self.line is not None and self.column is not None:
			text = f"{text} at line {self.line}, column {self.column}"

		if self.context:
			text = f"{text}\nContext: {self.context}"

		return text

	def as_dict (self) -> typing.Dict[str, typing.Any]:

		"""Return the error as plain data for display layers."""

		return {
			"kind": self.kind,
			"message": self.message,
			"line": self.line,
			"column": self.column,
			"context": self.context,
		}


class LexError (LispbeatError):
	pass


class UnterminatedString (LexError):
	pass


class ParseError (LispbeatError):
	pass


class UnexpectedClosingBracket (ParseError):
	pass


class MissingClosingBracket (ParseError):
	pass


class MismatchedBrackets (ParseError):
	pass


class UnexpectedEndOfInput (ParseError):
	pass


class NestingTooDeep (ParseError):
	pass


class EvaluationError (LispbeatError):

	"""
	An error raised while evaluating a form.

	``form`` holds the smallest syntax node known to have failed. It is attached
	once, by the innermost evaluation frame, and never overwritten on the way out.
	"""

	def __init__ (self, message: str, form: typing.Any = None, context: typing.Optional[str] = None) -> None:

		super().__init__(message, context=context)

		self.form: typing.Any = None

		if form is not None:
			self.attach(form)

	def attach (self, form: typing.Any) -> None:

		"""Record the failing form and its source location, unless one is already set."""

		if self.form is not None:
			return

		self.form = form
		self.line = getattr(form, "line", None)
		self.column = getattr(form, "column", None)

		if self.context is None:
			self.context = lispbeat.syntax.to_source(form, limit=60)


class UndefinedVariable (EvaluationError):

	def __init__ (self, name: str, form: typing.Any = None) -> None:

		self.name = name
		super().__init__(f"Undefined variable: {name}", form=form)


class MissingNamedArgumentValue (EvaluationError):
	pass


class NotCallable (EvaluationError):
	pass


class UnsupportedNamedArguments (EvaluationError):

	def __init__ (self, function_name: str, keys: typing.Sequence[str], form: typing.Any = None) -> None:

		self.function_name = function_name
		self.keys = tuple(keys)

		super().__init__(
			f"Function '{function_name}' does not accept named arguments, but received: {', '.join(self.keys)}",
			form = form
		)


class InvalidTrackSteps (EvaluationError):
	pass


class InvalidArgument (EvaluationError):
	pass


class ArityError (EvaluationError):
	pass


class UnboundParameter (EvaluationError):
	pass


class InvalidSpecialForm (EvaluationError):
	pass


class RecursionTooDeep (EvaluationError):
	pass
