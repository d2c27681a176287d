"""Render the example programs in this directory to MIDI files.

Run from the repository root:

	python examples/render.py
"""

import logging
import pathlib

import lispbeat
import lispbeat.events
import lispbeat.scheduler

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

EXAMPLES_DIR = pathlib.Path(__file__).parent
LOOPS = 4


def render (path: pathlib.Path) -> None:

	results = lispbeat.run(path.read_text())

	for result in results:
		if lispbeat.events.is_descriptor(result):
			logger.info(f"{path.name}: {result.kind} lasting {lispbeat.scheduler.length(result)} beats")

	triggers = lispbeat.schedule_program(results, loops=LOOPS)
	output = path.with_suffix(".mid")

	lispbeat.render_midi(triggers, str(output), tempo=lispbeat.program_tempo(results))


if __name__ == "__main__":

	for program in sorted(EXAMPLES_DIR.glob("*.lisp")):
		render(program)
