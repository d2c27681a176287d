"""Tree-walking evaluator.

``evaluate(node, env)`` dispatches on node type:

- ``Number`` and ``StringLiteral`` evaluate to their value.
- ``Symbol`` is looked up through the environment chain. Keyword-looking
  symbols (``:velocity``) get no special treatment here; they are only
  meaningful in argument position.
- ``Quoted`` returns its child unevaluated, as data.
- An empty ``List`` evaluates to the empty value ``()``.
- A ``List`` headed by ``quote``, ``let``, ``lambda`` or ``if`` is a special
  form. Any other ``List`` is a function application.

Applications split their arguments into positional and named ones (a
``:name value`` pair anywhere in the argument list), evaluate both eagerly in
the caller's environment, and call the function with
``(positional, env, named)``. Only primitives registered as accepting named
arguments may receive them.

Truth in ``if``: ``false``, numeric zero, ``""`` and empty lists are false;
every other value is true.

Closure arity: calling with too many arguments raises ``ArityError``. Missing
trailing parameters are bound to ``NO_VALUE``; reading one raises
``UnboundParameter``.
"""

import dataclasses
import logging
import typing

import lispbeat.environment
import lispbeat.errors
import lispbeat.parser
import lispbeat.primitives
import lispbeat.syntax


logger = logging.getLogger(__name__)


EMPTY: typing.Tuple[typing.Any, ...] = ()


class _NoValue:

	"""Placeholder bound to closure parameters that received no argument."""

	def __repr__ (self) -> str:
		return "#<no value>"


NO_VALUE = _NoValue()


@dataclasses.dataclass(frozen=True, eq=False)
class Closure:

	"""
	A user-defined function created by ``lambda``.

	``environment`` is the chain the lambda was evaluated in, not the caller's.
	"""

	parameters: typing.Tuple[str, ...]
	body: typing.Tuple[lispbeat.syntax.Node, ...]
	environment: lispbeat.environment.Environment

	def __repr__ (self) -> str:
		return f"#<lambda ({' '.join(self.parameters)})>"


def is_truthy (value: typing.Any) -> bool:

	"""
	Decide which branch ``if`` takes.

	False values: ``False``, ``0``, ``0.0``, ``""``, ``()`` and an empty list
	node. Everything else, including ``true``, non-zero numbers, descriptors and
	functions, is true.
	"""

	if isinstance(value, bool):
		return value

	if isinstance(value, (int, float)):
		return value != 0

	if isinstance(value, str):
		return value != ""

	if isinstance(value, (tuple, list, lispbeat.syntax.List)):
		return len(value) > 0

	return True


def split_arguments (arguments: typing.Sequence[lispbeat.syntax.Node]) -> typing.Tuple[typing.List[lispbeat.syntax.Node], typing.Dict[str, lispbeat.syntax.Node]]:

	"""
	Separate ``:name value`` pairs from positional arguments.

	Positional arguments keep their relative order. A repeated name keeps the
	last value given.

	Raises:
		lispbeat.errors.MissingNamedArgumentValue: If a keyword marker is the
			last argument.
	"""

	positional: typing.List[lispbeat.syntax.Node] = []
	named: typing.Dict[str, lispbeat.syntax.Node] = {}

	i = 0

	while i < len(arguments):

		argument = arguments[i]

		if isinstance(argument, lispbeat.syntax.Symbol) and argument.is_keyword:

			if i + 1 >= len(arguments):
				raise lispbeat.errors.MissingNamedArgumentValue(
					f"Named argument {argument.name} is missing a value",
					form = argument
				)

			named[argument.name[1:]] = arguments[i + 1]
			i += 2
			continue

		positional.append(argument)
		i += 1

	return positional, named


def evaluate (node: lispbeat.syntax.Node, env: lispbeat.environment.Environment) -> typing.Any:

	"""
	Evaluate a single syntax node in ``env``.

	Raises:
		lispbeat.errors.EvaluationError: With the innermost failing form attached.
	"""

	if isinstance(node, lispbeat.syntax.Number):
		return node.value

	if isinstance(node, lispbeat.syntax.StringLiteral):
		return node.value

	if isinstance(node, lispbeat.syntax.Symbol):
		return _evaluate_symbol(node, env)

	if isinstance(node, lispbeat.syntax.Quoted):
		return node.child

	if isinstance(node, lispbeat.syntax.List):

		if not node.items:
			return EMPTY

		try:
			head = node.items[0]

			if isinstance(head, lispbeat.syntax.Symbol) and head.name in SPECIAL_FORMS:
				return SPECIAL_FORMS[head.name](node, env)

			return _evaluate_application(node, env)

		except lispbeat.errors.EvaluationError as error:
			error.attach(node)
			raise

	raise lispbeat.errors.InvalidArgument(f"Cannot evaluate value: {lispbeat.syntax.to_source(node, limit=60)}")


def _evaluate_symbol (node: lispbeat.syntax.Symbol, env: lispbeat.environment.Environment) -> typing.Any:

	try:
		value = env.lookup(node.name)

	except lispbeat.errors.UndefinedVariable as error:
		error.attach(node)
		raise

	if value is NO_VALUE:
		raise lispbeat.errors.UnboundParameter(
			f"Parameter '{node.name}' was not given an argument",
			form = node
		)

	return value


def _evaluate_body (body: typing.Sequence[lispbeat.syntax.Node], env: lispbeat.environment.Environment) -> typing.Any:

	result: typing.Any = EMPTY

	for form in body:
		result = evaluate(form, env)

	return result


def _evaluate_application (node: lispbeat.syntax.List, env: lispbeat.environment.Environment) -> typing.Any:

	head, *arguments = node.items

	function = evaluate(head, env)

	positional_nodes, named_nodes = split_arguments(arguments)

	positional = [evaluate(argument, env) for argument in positional_nodes]
	named = {key: evaluate(value, env) for key, value in named_nodes.items()}

	return apply_function(function, positional, env, named, name=lispbeat.syntax.to_source(head, limit=40))


def apply_function (
	function: typing.Any,
	positional: typing.Sequence[typing.Any],
	env: lispbeat.environment.Environment,
	named: typing.Optional[typing.Mapping[str, typing.Any]] = None,
	name: typing.Optional[str] = None
) -> typing.Any:

	"""
	Call a primitive or closure with already-evaluated arguments.

	Parameters:
		function: A ``Primitive`` or ``Closure``.
		positional: Positional argument values.
		env: The caller's environment, passed through to primitives.
		named: Named argument values, keyed without the leading ``:``.
		name: How to refer to the function in error messages.
	"""

	named = named or {}
	label = name if name is not None else repr(function)

	if isinstance(function, lispbeat.primitives.Primitive):

		if named and not function.accepts_named:
			raise lispbeat.errors.UnsupportedNamedArguments(function.name, list(named))

		return function.function(list(positional), env, dict(named))

	if isinstance(function, Closure):

		if named:
			raise lispbeat.errors.UnsupportedNamedArguments(label, list(named))

		return call_closure(function, positional)

	raise lispbeat.errors.NotCallable(f"{label} is not a function")


def call_closure (closure: Closure, arguments: typing.Sequence[typing.Any]) -> typing.Any:

	"""
	Invoke ``closure`` with positional ``arguments`` in one new frame.

	The frame is parented at the closure's defining environment.
	"""

	if len(arguments) > len(closure.parameters):
		raise lispbeat.errors.ArityError(
			f"{closure!r} takes {len(closure.parameters)} argument(s) but was given {len(arguments)}"
		)

	bindings = {
		parameter: arguments[i] if i < len(arguments) else NO_VALUE
		for i, parameter in enumerate(closure.parameters)
	}

	return _evaluate_body(closure.body, closure.environment.extend(bindings))


def _special_quote (node: lispbeat.syntax.List, env: lispbeat.environment.Environment) -> typing.Any:

	if len(node.items) != 2:
		raise lispbeat.errors.InvalidSpecialForm("quote takes exactly one expression")

	return node.items[1]


def _binding_pairs (bindings_node: lispbeat.syntax.Node, env: lispbeat.environment.Environment) -> typing.Sequence[typing.Any]:

	if isinstance(bindings_node, lispbeat.syntax.Quoted):
		bindings = bindings_node.child
	else:
		bindings = evaluate(bindings_node, env)

	if isinstance(bindings, lispbeat.syntax.List):
		return bindings.items

	if isinstance(bindings, (tuple, list)):
		return bindings

	raise lispbeat.errors.InvalidSpecialForm(
		f"let bindings must be a list of [name value] pairs, got {lispbeat.syntax.to_source(bindings, limit=40)}"
	)


def _binding_name (name: typing.Any) -> str:

	if isinstance(name, lispbeat.syntax.Symbol):
		return name.name

	if isinstance(name, str):
		return name

	raise lispbeat.errors.InvalidSpecialForm(
		f"let binding name must be a symbol, got {lispbeat.syntax.to_source(name, limit=40)}"
	)


def _special_let (node: lispbeat.syntax.List, env: lispbeat.environment.Environment) -> typing.Any:

	"""
	``(let bindings body...)`` with sequential binding.

	Each binding's value expression sees the bindings before it. A value that
	is not a syntax node (from an evaluated bindings list) is used as is.
	"""

	if len(node.items) < 2:
		raise lispbeat.errors.InvalidSpecialForm("let requires a bindings list")

	scope = env

	for pair in _binding_pairs(node.items[1], env):

		items = pair.items if isinstance(pair, lispbeat.syntax.List) else pair

		if not isinstance(items, (tuple, list)) or len(items) != 2:
			raise lispbeat.errors.InvalidSpecialForm(
				f"let binding must be a [name value] pair, got {lispbeat.syntax.to_source(pair, limit=40)}"
			)

		name = _binding_name(items[0])
		value_expression = items[1]

		if lispbeat.syntax.is_node(value_expression):
			value = evaluate(value_expression, scope)
		else:
			value = value_expression

		scope = scope.extend({name: value})

	return _evaluate_body(node.items[2:], scope)


def _special_lambda (node: lispbeat.syntax.List, env: lispbeat.environment.Environment) -> Closure:

	if len(node.items) < 2:
		raise lispbeat.errors.InvalidSpecialForm("lambda requires a parameter list")

	parameter_list = node.items[1]

	if isinstance(parameter_list, lispbeat.syntax.Quoted):
		parameter_list = parameter_list.child

	if not isinstance(parameter_list, lispbeat.syntax.List):
		raise lispbeat.errors.InvalidSpecialForm(
			f"lambda parameters must be a list, got {lispbeat.syntax.to_source(parameter_list, limit=40)}"
		)

	names: typing.List[str] = []

	for parameter in parameter_list.items:

		if not isinstance(parameter, lispbeat.syntax.Symbol):
			raise lispbeat.errors.InvalidSpecialForm(
				f"lambda parameter must be a symbol, got {lispbeat.syntax.to_source(parameter, limit=40)}"
			)

		if parameter.name in names:
			raise lispbeat.errors.InvalidSpecialForm(f"Duplicate lambda parameter: {parameter.name}")

		names.append(parameter.name)

	closure = Closure(tuple(names), tuple(node.items[2:]), env)

	logger.debug(f"Created {closure!r}")

	return closure


def _special_if (node: lispbeat.syntax.List, env: lispbeat.environment.Environment) -> typing.Any:

	if len(node.items) not in (3, 4):
		raise lispbeat.errors.InvalidSpecialForm("if takes a condition, a then branch and an optional else branch")

	if is_truthy(evaluate(node.items[1], env)):
		return evaluate(node.items[2], env)

	if len(node.items) == 4:
		return evaluate(node.items[3], env)

	return EMPTY


SPECIAL_FORMS: typing.Dict[str, typing.Callable[[lispbeat.syntax.List, lispbeat.environment.Environment], typing.Any]] = {
	"quote": _special_quote,
	"let": _special_let,
	"lambda": _special_lambda,
	"if": _special_if,
}


def global_environment () -> lispbeat.environment.Environment:

	"""A fresh global environment holding every primitive and constant."""

	return lispbeat.environment.create(lispbeat.primitives.global_bindings())


def interpret (program: typing.Sequence[lispbeat.syntax.Node], env: typing.Optional[lispbeat.environment.Environment] = None) -> typing.List[typing.Any]:

	"""
	Evaluate each top-level form in order and return all results.

	Parameters:
		program: Output of ``lispbeat.parser.parse``.
		env: Environment to evaluate in. Defaults to a fresh global one.

	Raises:
		lispbeat.errors.EvaluationError: The first failing form aborts the run;
			no partial results are returned.
		lispbeat.errors.RecursionTooDeep: A form nests or recurses past the
			interpreter's stack limit.
	"""

	if env is None:
		env = global_environment()

	results = []

	for form in program:

		try:
			results.append(evaluate(form, env))

		# Explicit context; to_source recurses as deep as the form.
		except RecursionError:
			raise lispbeat.errors.RecursionTooDeep(
				"Recursion too deep while evaluating form",
				form = form,
				context = f"Form starting at line {form.line}, column {form.column}"
			) from None

	logger.debug(f"Evaluated {len(results)} top-level forms")

	return results


def run (source: str) -> typing.List[typing.Any]:

	"""
	Parse and interpret ``source``.

	Example:
		```python
		run("(+ 1 2 3)")  # [6]
		```
	"""

	return interpret(lispbeat.parser.parse_program(source))
