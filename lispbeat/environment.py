"""Persistent, immutable variable scopes.

An ``Environment`` is one frame of bindings plus a reference to its parent.
Frames are never changed after creation: ``extend`` builds a new frame on top
of an existing chain, sharing the chain rather than copying it. Closures keep
a reference to the chain they were created in, and re-entrant or interleaved
calls each build their own frames, so no evaluation can observe another's
bindings.
"""

import types
import typing

import lispbeat.errors


class Environment:

	"""
	A single immutable frame of name-to-value bindings with an optional parent.
	"""

	__slots__ = ("_bindings", "_parent")

	def __init__ (self, bindings: typing.Optional[typing.Mapping[str, typing.Any]] = None, parent: typing.Optional["Environment"] = None) -> None:

		object.__setattr__(self, "_bindings", types.MappingProxyType(dict(bindings or {})))
		object.__setattr__(self, "_parent", parent)

	def __setattr__ (self, name: str, value: typing.Any) -> None:
		raise AttributeError("Environment frames are immutable")

	def __repr__ (self) -> str:
		return f"Environment({len(self._bindings)} bindings, depth={self.depth})"

	@property
	def parent (self) -> typing.Optional["Environment"]:
		return self._parent

	@property
	def bindings (self) -> typing.Mapping[str, typing.Any]:

		"""Read-only view of this frame's own bindings."""

		return self._bindings

	@property
	def depth (self) -> int:

		"""Number of frames in the chain, this one included."""

		depth = 0
		env: typing.Optional[Environment] = self

		while env is not None:
			depth += 1
			env = env._parent

		return depth

	def lookup (self, name: str) -> typing.Any:

		"""
		Return the value bound to ``name`` in this frame or the nearest ancestor.

		Raises:
			lispbeat.errors.UndefinedVariable: If no frame binds ``name``.
		"""

		env: typing.Optional[Environment] = self

		while env is not None:

			if name in env._bindings:
				return env._bindings[name]

			env = env._parent

		raise lispbeat.errors.UndefinedVariable(name)

	def contains (self, name: str) -> bool:

		"""Return True if ``name`` is bound anywhere in the chain."""

		env: typing.Optional[Environment] = self

		while env is not None:

			if name in env._bindings:
				return True

			env = env._parent

		return False

	def extend (self, bindings: typing.Mapping[str, typing.Any]) -> "Environment":

		"""Return a new environment whose single frame is ``bindings``, parented here."""

		return Environment(bindings, parent=self)

	def names (self) -> typing.Set[str]:

		"""All names visible from this frame."""

		visible: typing.Set[str] = set()
		env: typing.Optional[Environment] = self

		while env is not None:
			visible.update(env._bindings)
			env = env._parent

		return visible


def create (bindings: typing.Optional[typing.Mapping[str, typing.Any]] = None, parent: typing.Optional[Environment] = None) -> Environment:

	"""Create an environment from initial bindings and an optional parent."""

	return Environment(bindings, parent)


def lookup (env: Environment, name: str) -> typing.Any:

	"""Look ``name`` up through ``env``'s chain."""

	return env.lookup(name)


def extend (env: Environment, bindings: typing.Mapping[str, typing.Any]) -> Environment:

	"""Return a new environment binding ``bindings`` on top of ``env``."""

	return env.extend(bindings)
