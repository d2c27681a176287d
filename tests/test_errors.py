import pytest

import lispbeat.errors
import lispbeat.evaluator
import lispbeat.syntax


def test_hierarchy ():

	"""Every error shares one base and sits under its pipeline stage."""

	assert issubclass(lispbeat.errors.UnterminatedString, lispbeat.errors.LexError)
	assert issubclass(lispbeat.errors.MismatchedBrackets, lispbeat.errors.ParseError)
	assert issubclass(lispbeat.errors.UndefinedVariable, lispbeat.errors.EvaluationError)

	for error_type in (lispbeat.errors.LexError, lispbeat.errors.ParseError, lispbeat.errors.EvaluationError):
		assert issubclass(error_type, lispbeat.errors.LispbeatError)


def test_str_and_as_dict ():

	"""Errors render position and context, and expose the same data as a dict."""

	error = lispbeat.errors.MissingClosingBracket("Missing closing )", line=3, column=5, context="Opening ( at line 3, column 5")

	assert str(error) == "Missing closing ) at line 3, column 5\nContext: Opening ( at line 3, column 5"
	assert error.as_dict() == {
		"kind": "MissingClosingBracket",
		"message": "Missing closing )",
		"line": 3,
		"column": 5,
		"context": "Opening ( at line 3, column 5",
	}


def test_str_without_position ():

	"""Position text is omitted when unknown."""

	assert str(lispbeat.errors.InvalidArgument("bad")) == "bad"


def test_attach_only_once ():

	"""The first attached form wins."""

	inner = lispbeat.syntax.Symbol("x", line=2, column=4)
	outer = lispbeat.syntax.List((inner,), line=1, column=1)

	error = lispbeat.errors.EvaluationError("boom")
	error.attach(inner)
	error.attach(outer)

	assert error.form is inner
	assert (error.line, error.column) == (2, 4)
	assert error.context == "x"


def test_context_is_truncated ():

	"""Long forms are cut down in the error context."""

	with pytest.raises(lispbeat.errors.NotCallable) as info:
		lispbeat.evaluator.run("(1 " + " ".join(["2"] * 100) + ")")

	assert info.value.context.endswith("...")
	assert len(info.value.context) == 63


def test_unsupported_named_arguments_message ():

	"""The message lists every rejected key."""

	error = lispbeat.errors.UnsupportedNamedArguments("+", ["foo", "bar"])

	assert error.message == "Function '+' does not accept named arguments, but received: foo, bar"
	assert error.keys == ("foo", "bar")
