import argparse
import logging
import sys
import typing

import lispbeat.config
import lispbeat.errors
import lispbeat.evaluator
import lispbeat.midi_render
import lispbeat.scheduler
import lispbeat.syntax


logger = logging.getLogger(__name__)


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(prog="lispbeat", description="Evaluate a lispbeat program and optionally render it to MIDI")
	parser.add_argument("program", help="Path to a lispbeat source file, or - for stdin")
	parser.add_argument("--config", default=lispbeat.config.DEFAULT_CONFIG_PATH, help=f"YAML config file (default: {lispbeat.config.DEFAULT_CONFIG_PATH})")
	parser.add_argument("--render", metavar="OUT.mid", help="Write the program's music to a MIDI file")
	parser.add_argument("--loops", type=int, help="How many times to play each descriptor when rendering")
	parser.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level")

	return parser


def _read_source (path: str) -> str:

	if path == "-":
		return sys.stdin.read()

	with open(path, 'r') as f:
		return f.read()


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Command line entry point. Returns the process exit status.
	"""

	args = build_parser().parse_args(argv)

	try:
		config = lispbeat.config.load_config(args.config)
	except (ValueError, OSError) as e:
		print(f"Could not load config {args.config}: {e}", file=sys.stderr)
		return 2

	logging.basicConfig(level=logging.DEBUG if args.verbose else config.log_level)

	try:
		source = _read_source(args.program)
	except OSError as e:
		print(f"Could not read {args.program}: {e}", file=sys.stderr)
		return 2

	try:
		results = lispbeat.evaluator.run(source)
	except lispbeat.errors.LispbeatError as e:
		print(f"{e.kind}: {e}", file=sys.stderr)
		return 1

	for result in results:
		print(lispbeat.syntax.to_source(result))

	if args.render:
		loops = args.loops if args.loops is not None else config.loops

		if loops < 1:
			print("--loops must be at least 1", file=sys.stderr)
			return 2

		triggers = lispbeat.scheduler.schedule_program(results, loops=loops)

		lispbeat.midi_render.render_midi(
			triggers,
			args.render,
			tempo = lispbeat.scheduler.program_tempo(results, default=config.tempo),
			sound_bank = config.sound_bank(),
			ticks_per_beat = config.ticks_per_beat,
			base_velocity = config.base_velocity
		)

	return 0


if __name__ == "__main__":
	sys.exit(main())
