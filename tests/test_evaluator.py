import pytest

import lispbeat.environment
import lispbeat.errors
import lispbeat.evaluator
import lispbeat.parser
import lispbeat.syntax

from lispbeat.syntax import List, Number, Symbol


# ─── Literals and quote ──────────────────────────────────────────────


def test_literals (evaluate_source):

	"""Numbers and strings evaluate to themselves."""

	assert evaluate_source("42") == 42
	assert evaluate_source("-0.5") == -0.5
	assert evaluate_source('"hello"') == "hello"


def test_empty_list_is_empty_value (evaluate_source):

	"""() evaluates to the empty value rather than a call."""

	assert evaluate_source("()") == lispbeat.evaluator.EMPTY


def test_quote_does_not_evaluate (evaluate_source):

	"""(quote (+ 1 2)) returns the list itself, not 3."""

	result = evaluate_source("(quote (+ 1 2))")

	assert result == List((Symbol("+"), Number(1), Number(2)))


def test_quote_marker (evaluate_source):

	"""'x is the same as (quote x)."""

	assert evaluate_source("'(+ 1 2)") == evaluate_source("(quote (+ 1 2))")
	assert evaluate_source("'sym") == Symbol("sym")


def test_quote_arity (evaluate_source):

	"""quote takes exactly one expression."""

	with pytest.raises(lispbeat.errors.InvalidSpecialForm):
		evaluate_source("(quote a b)")


# ─── Arithmetic through the evaluator ────────────────────────────────


def test_arithmetic (evaluate_source):

	"""Basic arithmetic, including unary negation and true division."""

	assert evaluate_source("(+ 1 2 3)") == 6
	assert evaluate_source("(- 5)") == -5
	assert evaluate_source("(/ 2 4)") == 0.5
	assert evaluate_source("(* 2 (+ 1 2))") == 6


def test_all_results_returned ():

	"""interpret returns one result per top-level form, in order."""

	assert lispbeat.evaluator.run("1 (+ 1 1) 3") == [1, 2, 3]


# ─── let ─────────────────────────────────────────────────────────────


def test_let_is_sequential (evaluate_source):

	"""Later bindings see earlier ones."""

	assert evaluate_source("(let '([x 1] [y (+ x 1)]) y)") == 2


def test_let_body_value (evaluate_source):

	"""A let's value is its last body form; an empty body yields ()."""

	assert evaluate_source("(let '([x 1]) x (+ x 10))") == 11
	assert evaluate_source("(let '([x 1]))") == lispbeat.evaluator.EMPTY


def test_let_shadows_without_mutation (evaluate_source):

	"""Inner bindings shadow outer ones only inside their body."""

	assert evaluate_source("(let '([x 1]) (let '([x 2]) x))") == 2
	assert evaluate_source("(let '([x 1]) (let '([x 2]) x) x)") == 1


def test_let_with_evaluated_bindings (evaluate_source):

	"""An unquoted bindings expression is evaluated to get the pairs."""

	assert evaluate_source("(let (list (list \"a\" 5)) a)") == 5


def test_let_bad_binding_shape (evaluate_source):

	"""Each binding must be a two-item pair with a symbol name."""

	with pytest.raises(lispbeat.errors.InvalidSpecialForm):
		evaluate_source("(let '([x]) x)")

	with pytest.raises(lispbeat.errors.InvalidSpecialForm):
		evaluate_source("(let '([1 2]) 1)")

	with pytest.raises(lispbeat.errors.InvalidSpecialForm):
		evaluate_source("(let 5 1)")


# ─── lambda and closures ─────────────────────────────────────────────


def test_lambda_application (evaluate_source):

	"""Closures bind parameters positionally."""

	assert evaluate_source("((lambda (x y) (+ x y)) 3 4)") == 7
	assert evaluate_source("(let '([double (lambda (n) (* n 2))]) (double 21))") == 42


def test_closure_captures_defining_scope (evaluate_source):

	"""A closure sees the environment it was created in, not the caller's."""

	source = "(let '([x 10]) (let '([f (lambda () x)]) (let '([x 20]) (f))))"

	assert evaluate_source(source) == 10


def test_closures_are_reentrant (evaluate_source):

	"""Recursive-style nested calls each get their own frame."""

	source = """
	(let '([add (lambda (a) (lambda (b) (+ a b)))]
	       [add1 (add 1)]
	       [add5 (add 5)])
	  (list (add1 1) (add5 1) (add1 10)))
	"""

	assert evaluate_source(source) == (2, 6, 11)


def test_closure_with_empty_body (evaluate_source):

	"""A lambda with no body returns the empty value."""

	assert evaluate_source("((lambda (x)) 1)") == lispbeat.evaluator.EMPTY


def test_closure_too_many_arguments (evaluate_source):

	"""Extra arguments are an arity error."""

	with pytest.raises(lispbeat.errors.ArityError):
		evaluate_source("((lambda (x) x) 1 2)")


def test_closure_missing_argument_only_fails_when_used (evaluate_source):

	"""Missing parameters are unbound placeholders that error on use."""

	assert evaluate_source("((lambda (x y) x) 1)") == 1

	with pytest.raises(lispbeat.errors.UnboundParameter) as info:
		evaluate_source("((lambda (x y) y) 1)")

	assert "'y'" in info.value.message


def test_lambda_parameter_validation (evaluate_source):

	"""Parameters must be distinct symbols in a list."""

	with pytest.raises(lispbeat.errors.InvalidSpecialForm):
		evaluate_source("(lambda x x)")

	with pytest.raises(lispbeat.errors.InvalidSpecialForm):
		evaluate_source("(lambda (1) 1)")

	with pytest.raises(lispbeat.errors.InvalidSpecialForm):
		evaluate_source("(lambda (a a) a)")


def test_closure_repr (evaluate_source):

	"""Closures describe their parameter list."""

	assert repr(evaluate_source("(lambda (x y) x)")) == "#<lambda (x y)>"


# ─── if and truthiness ───────────────────────────────────────────────


def test_if_branches (evaluate_source):

	"""Only the chosen branch is evaluated."""

	assert evaluate_source("(if 1 \"yes\" \"no\")") == "yes"
	assert evaluate_source("(if 0 \"yes\" \"no\")") == "no"
	assert evaluate_source("(if 1 2 undefined-name)") == 2
	assert evaluate_source("(if 0 undefined-name 3)") == 3


def test_if_without_else (evaluate_source):

	"""A false condition with no else branch yields ()."""

	assert evaluate_source("(if false 1)") == lispbeat.evaluator.EMPTY


def test_if_shape (evaluate_source):

	"""if needs a condition and one or two branches."""

	with pytest.raises(lispbeat.errors.InvalidSpecialForm):
		evaluate_source("(if 1)")


@pytest.mark.parametrize("value, expected", [
	(False, False),
	(True, True),
	(0, False),
	(0.0, False),
	(-1, True),
	("", False),
	("x", True),
	((), False),
	((1,), True),
	(List(()), False),
	(List((Symbol("a"),)), True),
])
def test_truthiness (value, expected):

	"""False, zero, empty strings and empty lists are false."""

	assert lispbeat.evaluator.is_truthy(value) is expected


def test_comparisons_drive_if (evaluate_source):

	"""Comparison results plug straight into if."""

	assert evaluate_source("(if (< 1 2) \"lt\" \"ge\")") == "lt"
	assert evaluate_source("(if (= 1 2) \"eq\" \"ne\")") == "ne"


# ─── Named arguments ─────────────────────────────────────────────────


def test_split_arguments ():

	"""Keyword pairs are pulled out wherever they appear."""

	nodes = lispbeat.parser.parse_program('"C4" :velocity 0.9 2 :instrument "pluck"')
	positional, named = lispbeat.evaluator.split_arguments(nodes)

	assert positional == [lispbeat.syntax.StringLiteral("C4"), Number(2)]
	assert named == {"velocity": Number(0.9), "instrument": lispbeat.syntax.StringLiteral("pluck")}


def test_repeated_named_argument_keeps_last ():

	"""A repeated key keeps the last value."""

	nodes = lispbeat.parser.parse_program(":a 1 :a 2")
	_, named = lispbeat.evaluator.split_arguments(nodes)

	assert named == {"a": Number(2)}


def test_named_argument_missing_value (evaluate_source):

	"""A trailing keyword with no value is an error."""

	with pytest.raises(lispbeat.errors.MissingNamedArgumentValue) as info:
		evaluate_source('(note "C4" :velocity)')

	assert ":velocity" in info.value.message


def test_unsupported_named_arguments_on_primitive (evaluate_source):

	"""Plain arithmetic rejects keyword arguments and names them."""

	with pytest.raises(lispbeat.errors.UnsupportedNamedArguments) as info:
		evaluate_source("(+ 1 2 :foo 1)")

	assert info.value.keys == ("foo",)
	assert info.value.function_name == "+"
	assert "foo" in info.value.message


def test_unsupported_named_arguments_on_closure (evaluate_source):

	"""User lambdas do not take keyword arguments either."""

	with pytest.raises(lispbeat.errors.UnsupportedNamedArguments) as info:
		evaluate_source("(let '([f (lambda (x) x)]) (f 1 :foo 2))")

	assert info.value.keys == ("foo",)


def test_bare_colon_is_a_symbol (evaluate_source):

	"""A lone ':' is not a keyword marker."""

	with pytest.raises(lispbeat.errors.UndefinedVariable):
		evaluate_source("(+ 1 :)")


# ─── Application errors ──────────────────────────────────────────────


def test_undefined_variable_has_location (evaluate_source):

	"""Undefined names report the symbol's position."""

	with pytest.raises(lispbeat.errors.UndefinedVariable) as info:
		evaluate_source("(+ 1\n   nope)")

	error = info.value

	assert error.name == "nope"
	assert (error.line, error.column) == (2, 4)
	assert error.context == "nope"


def test_not_callable (evaluate_source):

	"""Applying a non-function fails with the head rendered."""

	with pytest.raises(lispbeat.errors.NotCallable) as info:
		evaluate_source("(1 2 3)")

	assert info.value.message == "1 is not a function"
	assert info.value.context == "(1 2 3)"


def test_innermost_form_is_attached (evaluate_source):

	"""The error keeps the smallest failing form, not the outer ones."""

	with pytest.raises(lispbeat.errors.InvalidArgument) as info:
		evaluate_source('(sequence (note "C4") (+ 1 "x"))')

	assert info.value.context == '(+ 1 "x")'
	assert info.value.column == 23


def test_failing_form_aborts_program ():

	"""No partial results come back from a failing run."""

	with pytest.raises(lispbeat.errors.UndefinedVariable):
		lispbeat.evaluator.run("1 2 missing 4")


def test_primitives_can_be_shadowed (evaluate_source):

	"""The head symbol is looked up like any other name."""

	assert evaluate_source("(let '([+ (lambda (a b) (* a b))]) (+ 3 4))") == 12


def test_special_forms_are_not_values (evaluate_source):

	"""Special form names are not bound in the environment."""

	with pytest.raises(lispbeat.errors.UndefinedVariable):
		evaluate_source("(list if)")


def test_evaluation_never_mutates_input ():

	"""The same parsed program can be evaluated repeatedly with equal results."""

	program = lispbeat.parser.parse_program("(let '([x 2]) (* x (+ x 1)))")

	first = lispbeat.evaluator.interpret(program)
	second = lispbeat.evaluator.interpret(program)

	assert first == second == [6]


def test_interpret_with_custom_environment ():

	"""Callers may supply their own environment on top of the globals."""

	env = lispbeat.evaluator.global_environment().extend({"bpm": 128})

	assert lispbeat.evaluator.interpret(lispbeat.parser.parse_program("(+ bpm 2)"), env) == [130]


def test_recursion_too_deep ():

	"""Evaluating a form nested past the stack limit is an evaluation error."""

	node = lispbeat.syntax.Number(1)

	for _ in range(5000):
		node = lispbeat.syntax.List((lispbeat.syntax.Symbol("+"), lispbeat.syntax.Number(1), node))

	node = lispbeat.syntax.List(node.items, line=3, column=1)

	with pytest.raises(lispbeat.errors.RecursionTooDeep) as info:
		lispbeat.evaluator.interpret((node,))

	assert isinstance(info.value, lispbeat.errors.EvaluationError)
	assert (info.value.line, info.value.column) == (3, 1)
	assert info.value.form is node
