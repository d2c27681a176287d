import typing

import pytest

import lispbeat.environment
import lispbeat.evaluator
import lispbeat.sounds


@pytest.fixture
def env () -> lispbeat.environment.Environment:

	"""A fresh global environment with every primitive bound."""

	return lispbeat.evaluator.global_environment()


@pytest.fixture
def evaluate_source () -> typing.Callable[[str], typing.Any]:

	"""Return a helper that runs a program and gives back its last result."""

	def _evaluate (source: str) -> typing.Any:

		results = lispbeat.evaluator.run(source)

		return results[-1] if results else None

	return _evaluate


@pytest.fixture
def sound_bank () -> lispbeat.sounds.SoundBank:

	"""The default kit and synth table."""

	return lispbeat.sounds.SoundBank()
